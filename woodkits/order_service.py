"""
Order helpers shared by the orders, payments and admin routers.

Line items are priced through pricing_engine.calculate_price, the same
calculator the storefront's calculate-price endpoint uses, so an order can
never disagree with the quote the customer saw.
"""

import logging
import random
import string
import time
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from . import models
from .exceptions import PricingValidationError
from .pricing_engine import calculate_price, round_money

logger = logging.getLogger(__name__)

_ORDER_SUFFIX_CHARS = string.ascii_uppercase + string.digits


def generate_order_number() -> str:
    """WK-<epoch ms>-<9 uppercase alphanumerics>"""
    suffix = "".join(random.choices(_ORDER_SUFFIX_CHARS, k=9))
    return f"WK-{int(time.time() * 1000)}-{suffix}"


def localized(value, language: str = "en") -> str:
    """Pick a language from a {en, he, es} dict, falling back to English."""
    if isinstance(value, dict):
        return value.get(language) or value.get("en") or ""
    return value or ""


def find_product(db: Session, product_id: str):
    """Look up by public code, or by numeric primary key."""
    product = db.query(models.Product).filter(models.Product.product_id == product_id).first()
    if product is None and str(product_id).isdigit():
        product = db.query(models.Product).filter(models.Product.id == int(product_id)).first()
    return product


def find_order(db: Session, order_id: str):
    """Look up by order number (WK-...), or by numeric primary key."""
    if str(order_id).isdigit():
        return db.query(models.Order).filter(
            or_(models.Order.order_number == order_id, models.Order.id == int(order_id))
        ).first()
    return db.query(models.Order).filter(models.Order.order_number == order_id).first()


def get_order_or_404(db: Session, order_id: str) -> models.Order:
    order = find_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def add_timeline_entry(order: models.Order, status: str, note: str = None, updated_by: str = "system"):
    timeline = list(order.timeline or [])
    timeline.append({
        "status": getattr(status, "value", status),
        "timestamp": datetime.utcnow().isoformat(),
        "note": note,
        "updatedBy": updated_by,
    })
    order.timeline = timeline
    flag_modified(order, "timeline")


# --- Pricing ---

def price_order_items(db: Session, items: list, language: str = "en") -> tuple:
    """
    Validate and price each requested line.

    Args:
        items: list of schemas.OrderItemCreate

    Returns:
        (order_items, subtotal, currency)

    Raises:
        HTTPException 400 for unknown, inactive, out-of-stock or mixed-currency products
        PricingValidationError when a configuration is rejected by the calculator
    """
    order_items = []
    subtotal = 0.0
    currency = None

    for index, item in enumerate(items):
        product = find_product(db, item.productId)
        if not product or not product.is_active:
            raise HTTPException(status_code=400, detail=f"Product not found: {item.productId}")
        if not product.in_stock:
            raise HTTPException(status_code=400, detail=f"Product out of stock: {item.productId}")

        if currency is None:
            currency = product.currency
        elif product.currency != currency:
            raise HTTPException(status_code=400, detail="All items in an order must share one currency")

        try:
            result = calculate_price(product, item.configuration)
        except PricingValidationError as e:
            raise PricingValidationError(
                e.field, e.constraint, bound=e.bound, value=e.value,
                message=f"Item {index + 1} ({item.productId}): {e.message}",
            ) from e

        pricing = result["pricing"]
        unit_price = pricing["totalPrice"]
        line_total = round_money(unit_price * item.quantity, result["currency"])

        order_items.append(models.OrderItem(
            product_pk=product.id,
            product_code=product.product_id,
            name=localized(product.name, language),
            configuration={
                **item.configuration,
                "dimensions": result["dimensions"],
                "options": result["options"],
            },
            base_price=pricing["basePrice"],
            size_adjustment=pricing["sizeAdjustment"],
            options_cost=pricing["optionsCost"],
            unit_price=unit_price,
            quantity=item.quantity,
            total_price=line_total,
        ))
        subtotal += line_total

    return order_items, subtotal, currency


def calculate_order_totals(subtotal: float, tax_rate: float, shipping: float = 0.0, discount: float = 0.0) -> dict:
    """
    subtotal = sum of line totals
    tax = subtotal * tax_rate
    total = subtotal + tax + shipping - discount (never below zero)
    """
    subtotal = round_money(subtotal)
    tax = round_money(subtotal * tax_rate)
    total = round_money(subtotal + tax + shipping - discount)
    if total < 0:
        logger.warning("Discount %s exceeds order value %s, total clamped to 0", discount, subtotal + tax + shipping)
        total = 0.0
    return {
        "subtotal": subtotal,
        "taxRate": tax_rate,
        "tax": tax,
        "shipping": round_money(shipping),
        "discount": round_money(discount),
        "total": total,
    }


# --- Payment state ---

def mark_payment_succeeded(order: models.Order, payment_intent: dict):
    order.payment_status = models.PaymentStatus.PAID
    order.transaction_id = payment_intent.get("id")
    order.payment_provider = "stripe"
    order.payment_date = datetime.utcnow()
    if order.status == models.OrderStatus.PENDING:
        order.status = models.OrderStatus.CONFIRMED
    add_timeline_entry(order, models.OrderStatus.CONFIRMED, "Payment received successfully", "stripe")


def mark_payment_failed(order: models.Order, payment_intent: dict):
    order.payment_status = models.PaymentStatus.FAILED
    order.transaction_id = payment_intent.get("id")
    order.payment_provider = "stripe"
    reason = (payment_intent.get("last_payment_error") or {}).get("message") or payment_intent.get("status")
    add_timeline_entry(order, "payment_failed", f"Payment failed: {reason}", "stripe")


# --- Serialization ---

def _iso(value):
    return value.isoformat() if value else None


def _enum(value):
    return getattr(value, "value", value)


def order_item_to_dict(item: models.OrderItem) -> dict:
    return {
        "productId": item.product_code,
        "name": item.name,
        "configuration": item.configuration or {},
        "pricing": {
            "basePrice": item.base_price,
            "sizeAdjustment": item.size_adjustment,
            "optionsCost": item.options_cost,
            "colorCost": item.options_cost,
            "unitPrice": item.unit_price,
        },
        "quantity": item.quantity,
        "totalPrice": item.total_price,
    }


def order_to_dict(order: models.Order, include_admin: bool = False) -> dict:
    data = {
        "id": order.id,
        "orderId": order.order_number,
        "customer": {
            "name": order.customer_name,
            "email": order.customer_email,
            "phone": order.customer_phone,
            "address": order.customer_address,
        },
        "items": [order_item_to_dict(item) for item in order.items],
        "pricing": {
            "subtotal": order.subtotal,
            "taxRate": order.tax_rate,
            "tax": order.tax,
            "shipping": order.shipping_cost,
            "discount": order.discount,
            "total": order.total,
        },
        "currency": _enum(order.currency),
        "status": _enum(order.status),
        "paymentStatus": _enum(order.payment_status),
        "paymentMethod": _enum(order.payment_method),
        "paymentDetails": {
            "transactionId": order.transaction_id,
            "paymentProvider": order.payment_provider,
            "paymentDate": _iso(order.payment_date),
        },
        "shipping": {
            "method": _enum(order.shipping_method),
            "address": order.shipping_address,
            "estimatedDelivery": _iso(order.estimated_delivery),
            "trackingNumber": order.tracking_number,
        },
        "notes": {"customer": order.customer_notes},
        "timeline": order.timeline or [],
        "language": order.language,
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
    }
    if include_admin:
        data["notes"]["admin"] = order.admin_notes
        data["metadata"] = {
            "source": order.source,
            "userAgent": order.user_agent,
            "ipAddress": order.ip_address,
        }
    return data


def order_summary(order: models.Order) -> dict:
    return {
        "id": order.id,
        "orderId": order.order_number,
        "customerName": order.customer_name,
        "customerEmail": order.customer_email,
        "itemsCount": sum(item.quantity for item in order.items),
        "total": order.total,
        "currency": _enum(order.currency),
        "status": _enum(order.status),
        "paymentStatus": _enum(order.payment_status),
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
    }
