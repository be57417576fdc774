"""
Stripe payment endpoints.

POST /api/v1/payments/create-intent     PaymentIntent for an order
POST /api/v1/payments/confirm           reconcile an intent after checkout
POST /api/v1/payments/webhook           Stripe event delivery (signed)
GET  /api/v1/payments/status/{orderId}  payment state of an order
POST /api/v1/payments/refund            admin refund
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_admin
from ..database import get_db
from ..exceptions import PaymentNotConfigured
from ..order_service import (
    add_timeline_entry,
    find_order,
    get_order_or_404,
    mark_payment_failed,
    mark_payment_succeeded,
)
from ..payment_service import stripe_client
from ..pricing_engine import to_minor_units

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])

FAILED_INTENT_STATUSES = ("requires_payment_method", "canceled")


def _intent_order(db: Session, intent: dict):
    order_id = (intent.get("metadata") or {}).get("orderId")
    if not order_id:
        return None
    return find_order(db, order_id)


@router.post("/create-intent")
def create_intent(request: schemas.PaymentIntentCreate, db: Session = Depends(get_db)):
    if not stripe_client.is_configured():
        raise PaymentNotConfigured()

    order = get_order_or_404(db, request.orderId)
    expected = to_minor_units(order.total, order.currency)
    if abs(expected - request.amount) > 1:
        logger.warning("Amount mismatch for order %s: expected %d, got %d",
                       order.order_number, expected, request.amount)
        raise HTTPException(
            status_code=400,
            detail={"message": "Amount mismatch", "expected": expected, "provided": request.amount},
        )

    intent = stripe_client.create_payment_intent(order, request.amount, request.currency)
    return {
        "success": True,
        "data": {
            "clientSecret": intent.get("client_secret"),
            "paymentIntentId": intent.get("id"),
        },
    }


@router.post("/confirm")
def confirm_payment(request: schemas.PaymentConfirm, db: Session = Depends(get_db)):
    order = get_order_or_404(db, request.orderId)
    intent = stripe_client.retrieve_payment_intent(request.paymentIntentId)

    if (intent.get("metadata") or {}).get("orderId") != order.order_number:
        raise HTTPException(status_code=400, detail="Payment and order mismatch")

    status = intent.get("status")
    if status == "succeeded":
        if order.payment_status != models.PaymentStatus.PAID:
            mark_payment_succeeded(order, intent)
            db.commit()
            logger.info("Payment confirmed for order %s", order.order_number)
    elif status in FAILED_INTENT_STATUSES:
        mark_payment_failed(order, intent)
        db.commit()
        logger.warning("Payment failed for order %s (%s)", order.order_number, status)

    return {
        "success": True,
        "data": {
            "orderId": order.order_number,
            "paymentStatus": status,
            "orderStatus": order.status.value,
        },
    }


def _process_webhook(db: Session, payload: bytes, signature: str) -> dict:
    """Signature is checked against the raw body, before any JSON parsing."""
    event = stripe_client.verify_webhook(payload, signature)

    event_type = event.get("type")
    intent = (event.get("data") or {}).get("object") or {}

    if event_type == "payment_intent.succeeded":
        order = _intent_order(db, intent)
        if order and order.payment_status != models.PaymentStatus.PAID:
            mark_payment_succeeded(order, intent)
            db.commit()
            logger.info("Webhook: payment succeeded for order %s", order.order_number)
        elif not order:
            logger.warning("Webhook: no order for PaymentIntent %s", intent.get("id"))
    elif event_type == "payment_intent.payment_failed":
        order = _intent_order(db, intent)
        if order:
            mark_payment_failed(order, intent)
            db.commit()
            logger.warning("Webhook: payment failed for order %s", order.order_number)
        else:
            logger.warning("Webhook: no order for PaymentIntent %s", intent.get("id"))
    else:
        logger.info("Webhook: unhandled event type %s", event_type)

    return {"received": True}


@router.post("/webhook")
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    # Raw body must be read on the loop; session work runs in the threadpool
    payload = await request.body()
    return await run_in_threadpool(
        _process_webhook, db, payload, request.headers.get("stripe-signature"),
    )


@router.get("/status/{order_id}")
def payment_status(order_id: str, db: Session = Depends(get_db)):
    order = get_order_or_404(db, order_id)
    return {
        "success": True,
        "data": {
            "orderId": order.order_number,
            "paymentStatus": order.payment_status.value,
            "orderStatus": order.status.value,
            "total": order.total,
            "currency": order.currency.value,
            "transactionId": order.transaction_id,
            "paymentDate": order.payment_date.isoformat() if order.payment_date else None,
        },
    }


@router.post("/refund")
def refund_payment(
    request: schemas.RefundRequest,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    order = get_order_or_404(db, request.orderId)
    if not order.transaction_id:
        raise HTTPException(status_code=400, detail="No payment found for this order")

    refund = stripe_client.create_refund(order.transaction_id, order.order_number,
                                         amount=request.amount, reason=request.reason)

    order.payment_status = models.PaymentStatus.REFUNDED
    order.status = models.OrderStatus.REFUNDED
    add_timeline_entry(order, models.OrderStatus.REFUNDED, f"Refund issued: {request.reason}", admin.username)
    db.commit()
    logger.info("Order %s refunded by %s (refund %s)", order.order_number, admin.username, refund.get("id"))

    return {
        "success": True,
        "message": "Refund processed successfully",
        "data": {
            "refundId": refund.get("id"),
            "amount": refund.get("amount"),
            "status": refund.get("status"),
        },
    }
