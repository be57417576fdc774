"""
Stripe integration.

PaymentIntents and refunds go over the REST API, form-encoded with Bearer
auth; amounts are always in minor units. Webhook signatures are checked with
the stripe SDK.
"""

import json
import logging
import urllib.error
import urllib.parse
import urllib.request

import stripe

from .config import settings
from .exceptions import PaymentNotConfigured, PaymentServiceError, WebhookSignatureError

logger = logging.getLogger(__name__)

# Stripe wants ISO 4217; the shop's own code for shekels is NIS
STRIPE_CURRENCY_CODES = {"NIS": "ils"}


def stripe_currency(currency) -> str:
    code = str(getattr(currency, "value", currency) or "ils")
    return STRIPE_CURRENCY_CODES.get(code.upper(), code.lower())


def _flatten_params(params: dict, prefix: str = None) -> list:
    """{"metadata": {"orderId": "X"}} -> [("metadata[orderId]", "X")]"""
    items = []
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else key
        if value is None:
            continue
        if isinstance(value, dict):
            items.extend(_flatten_params(value, name))
        elif isinstance(value, bool):
            items.append((name, "true" if value else "false"))
        else:
            items.append((name, str(value)))
    return items


class StripeClient:
    """Thin wrapper over the handful of Stripe endpoints the shop uses."""

    def is_configured(self) -> bool:
        return bool(settings.STRIPE_SECRET_KEY)

    def _request(self, method: str, path: str, params: dict = None) -> dict:
        if not self.is_configured():
            raise PaymentNotConfigured()

        url = f"{settings.STRIPE_API_BASE}{path}"
        data = None
        if params:
            encoded = urllib.parse.urlencode(_flatten_params(params))
            if method == "GET":
                url = f"{url}?{encoded}"
            else:
                data = encoded.encode("utf-8")

        req = urllib.request.Request(
            url,
            data=data,
            headers={
                "Authorization": f"Bearer {settings.STRIPE_SECRET_KEY}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            method=method,
        )

        try:
            with urllib.request.urlopen(req, timeout=30) as response:
                return json.loads(response.read())
        except urllib.error.HTTPError as e:
            error_body = e.read().decode("utf-8", errors="replace")
            try:
                error = json.loads(error_body).get("error", {})
            except ValueError:
                error = {}
            logger.error("Stripe %s %s failed: %s %s", method, path, e.code, error_body)
            raise PaymentServiceError(
                error.get("message") or f"Stripe API error ({e.code})",
                stripe_code=error.get("code"),
            )
        except urllib.error.URLError as e:
            logger.error("Stripe unreachable for %s %s: %s", method, path, e.reason)
            raise PaymentServiceError("Payment provider unreachable")

    # --- PaymentIntents ---

    def create_payment_intent(self, order, amount: int, currency: str) -> dict:
        intent = self._request("POST", "/payment_intents", {
            "amount": amount,
            "currency": stripe_currency(currency),
            "description": f"Wood Kits Order #{order.order_number}",
            "receipt_email": order.customer_email,
            "metadata": {
                "orderId": order.order_number,
                "customerEmail": order.customer_email,
                "customerName": order.customer_name,
            },
        })
        logger.info("Created PaymentIntent %s for order %s", intent.get("id"), order.order_number)
        return intent

    def retrieve_payment_intent(self, payment_intent_id: str) -> dict:
        return self._request("GET", f"/payment_intents/{urllib.parse.quote(payment_intent_id)}")

    # --- Refunds ---

    def create_refund(self, payment_intent_id: str, order_number: str,
                      amount: int = None, reason: str = "requested_by_customer") -> dict:
        refund = self._request("POST", "/refunds", {
            "payment_intent": payment_intent_id,
            "amount": amount,
            "reason": reason,
            "metadata": {"orderId": order_number},
        })
        logger.info("Created refund %s for order %s", refund.get("id"), order_number)
        return refund

    # --- Webhooks ---

    def verify_webhook(self, payload: bytes, signature_header: str) -> dict:
        """
        Check the Stripe-Signature header against the raw body with the SDK's
        verifier and return the parsed event.
        """
        secret = settings.STRIPE_WEBHOOK_SECRET
        if not secret:
            raise WebhookSignatureError("Webhook secret not configured")
        if not signature_header:
            raise WebhookSignatureError("Missing Stripe-Signature header")

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError:
            raise WebhookSignatureError("Webhook payload is not valid UTF-8")

        try:
            stripe.WebhookSignature.verify_header(
                body, signature_header, secret,
                tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("Rejected Stripe webhook: %s", e)
            raise WebhookSignatureError("Webhook signature verification failed")

        try:
            return json.loads(body)
        except ValueError:
            raise WebhookSignatureError("Webhook payload is not valid JSON")


stripe_client = StripeClient()
