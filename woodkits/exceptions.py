"""
Domain exceptions.

Each carries the HTTP status it maps to. main.py registers one handler for
WoodKitsError that renders the standard {success: false, ...} envelope.
"""

import math


class WoodKitsError(Exception):
    """Base class for errors that cross the API boundary as structured failures."""

    status_code = 500
    error = "ServerError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> list:
        return []

    def to_payload(self) -> dict:
        payload = {"success": False, "message": self.message, "error": self.error}
        details = self.details()
        if details:
            payload["details"] = details
        return payload


class ProductNotFound(WoodKitsError):
    status_code = 404
    error = "NotFound"

    def __init__(self, product_id=None):
        super().__init__("Product not found")
        self.product_id = product_id


class PricingValidationError(WoodKitsError):
    """
    A requested configuration value is unusable.

    constraint: 'min' | 'max' | 'type' | 'editable'
    bound: the violated limit (None for type errors)
    """

    status_code = 400
    error = "ValidationError"

    def __init__(self, field: str, constraint: str, bound=None, value=None, message: str = None):
        self.field = field
        self.constraint = constraint
        self.bound = bound
        self.value = value
        super().__init__(message or self._default_message())

    def _default_message(self) -> str:
        if self.constraint == "min":
            return f"{self.field} must be at least {self.bound} (min={self.bound})"
        if self.constraint == "max":
            return f"{self.field} must be at most {self.bound} (max={self.bound})"
        if self.constraint == "editable":
            return f"{self.field} is fixed at {self.bound} and cannot be changed"
        return f"{self.field} must be {self.bound or 'a number'}"

    def details(self) -> list:
        value = self.value
        if isinstance(value, float) and not math.isfinite(value):
            value = str(value)  # NaN/inf are not valid JSON
        return [{
            "field": self.field,
            "constraint": self.constraint,
            "bound": self.bound,
            "value": value,
        }]


class PaymentNotConfigured(WoodKitsError):
    status_code = 503
    error = "ServiceUnavailable"

    def __init__(self):
        super().__init__("Payment service not configured")


class PaymentServiceError(WoodKitsError):
    """Stripe rejected the request or could not be reached."""

    status_code = 502
    error = "PaymentError"

    def __init__(self, message: str, stripe_code: str = None):
        super().__init__(message)
        self.stripe_code = stripe_code

    def to_payload(self) -> dict:
        payload = super().to_payload()
        if self.stripe_code:
            payload["code"] = self.stripe_code
        return payload


class WebhookSignatureError(WoodKitsError):
    status_code = 400
    error = "WebhookError"


class EmailDeliveryError(WoodKitsError):
    status_code = 502
    error = "EmailError"
