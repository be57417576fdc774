"""
Order endpoints.

POST /api/v1/orders                        place an order (public)
GET  /api/v1/orders/{orderId}?email=       customer lookup
GET  /api/v1/orders/{orderId}/receipt      PDF receipt
GET  /api/v1/orders                        admin listing
PUT  /api/v1/orders/{orderId}/status       admin status change
GET  /api/v1/orders/stats/summary          admin statistics
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_admin
from ..config import settings
from ..database import get_db
from ..email_service import email_service
from ..exceptions import EmailDeliveryError
from ..order_service import (
    add_timeline_entry,
    calculate_order_totals,
    generate_order_number,
    get_order_or_404,
    order_summary,
    order_to_dict,
    price_order_items,
)
from ..receipt_generator import generate_receipt_pdf

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


def _check_customer_email(order: models.Order, email: Optional[str]):
    if email and order.customer_email.lower() != email.strip().lower():
        raise HTTPException(status_code=403, detail="Access denied. Invalid email verification.")


def _notify(send, order: models.Order, kind: str):
    """Email is best effort: a provider failure never fails the order operation."""
    try:
        send(order)
    except EmailDeliveryError as e:
        logger.error("Failed to send %s email for order %s: %s", kind, order.order_number, e.message)


@router.post("", status_code=201)
def create_order(order_in: schemas.OrderCreate, request: Request, db: Session = Depends(get_db)):
    items, subtotal, currency = price_order_items(db, order_in.items, order_in.language)
    if order_in.currency and order_in.currency != currency:
        raise HTTPException(status_code=400, detail="Order currency does not match product currency")

    totals = calculate_order_totals(subtotal, settings.TAX_RATE, order_in.shippingCost, order_in.discount)
    address = order_in.customer.address
    address_value = address.model_dump() if isinstance(address, schemas.Address) else address

    order = models.Order(
        order_number=generate_order_number(),
        customer_name=order_in.customer.name,
        customer_email=order_in.customer.email.lower(),
        customer_phone=order_in.customer.phone,
        customer_address=address_value,
        subtotal=totals["subtotal"],
        tax_rate=totals["taxRate"],
        tax=totals["tax"],
        shipping_cost=totals["shipping"],
        discount=totals["discount"],
        total=totals["total"],
        currency=currency,
        status=models.OrderStatus.PENDING,
        payment_status=models.PaymentStatus.PENDING,
        payment_method=order_in.paymentMethod,
        shipping_method=order_in.shippingMethod,
        customer_notes=order_in.customerNotes,
        estimated_delivery=datetime.utcnow() + timedelta(days=settings.ESTIMATED_DELIVERY_DAYS),
        timeline=[],
        source="website",
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
        language=order_in.language,
        items=items,
    )
    add_timeline_entry(order, models.OrderStatus.PENDING, "Order created", "customer")
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("Order %s created: %d items, total %s %s",
                order.order_number, len(items), order.total, order.currency.value)

    _notify(email_service.send_order_confirmation, order, "confirmation")

    return {
        "success": True,
        "message": "Order created successfully",
        "data": {
            "orderId": order.order_number,
            "id": order.id,
            "total": order.total,
            "currency": order.currency.value,
            "status": order.status.value,
            "estimatedDelivery": order.estimated_delivery.isoformat(),
        },
    }


# --- Admin ---

@router.get("")
def list_orders(
    status: Optional[models.OrderStatus] = None,
    customer: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    query = db.query(models.Order)
    if status:
        query = query.filter(models.Order.status == status)
    if customer:
        pattern = f"%{customer}%"
        query = query.filter(or_(
            models.Order.customer_name.ilike(pattern),
            models.Order.customer_email.ilike(pattern),
        ))

    total = query.count()
    total_pages = math.ceil(total / limit) if total else 0
    orders = (
        query.order_by(models.Order.created_at.desc(), models.Order.id.desc())
        .offset((page - 1) * limit).limit(limit).all()
    )

    return {
        "success": True,
        "data": [order_summary(o) for o in orders],
        "pagination": {
            "currentPage": page,
            "totalPages": total_pages,
            "totalOrders": total,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        },
    }


@router.get("/stats/summary")
def order_stats(
    period: int = Query(30, ge=1, le=3650),
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    since = datetime.utcnow() - timedelta(days=period)
    orders = db.query(models.Order).filter(models.Order.created_at >= since).all()

    status_distribution = {}
    for order in orders:
        status_distribution[order.status.value] = status_distribution.get(order.status.value, 0) + 1

    revenue = sum(o.total for o in orders)
    return {
        "success": True,
        "data": {
            "period": f"{period} days",
            "totalOrders": len(orders),
            "totalRevenue": round(revenue, 2),
            "averageOrderValue": round(revenue / len(orders), 2) if orders else 0,
            "statusDistribution": status_distribution,
            "currency": settings.DEFAULT_CURRENCY,
        },
    }


# --- Customer lookup ---

@router.get("/{order_id}")
def get_order(order_id: str, email: Optional[str] = None, db: Session = Depends(get_db)):
    order = get_order_or_404(db, order_id)
    _check_customer_email(order, email)
    return {"success": True, "data": order_to_dict(order)}


@router.get("/{order_id}/receipt")
def download_receipt(order_id: str, email: Optional[str] = None, db: Session = Depends(get_db)):
    """Returns: application/pdf"""
    order = get_order_or_404(db, order_id)
    _check_customer_email(order, email)

    pdf_bytes = generate_receipt_pdf(order)
    filename = f"Receipt-{order.order_number}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/{order_id}/status")
def update_order_status(
    order_id: str,
    update: schemas.OrderStatusUpdate,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    order = get_order_or_404(db, order_id)
    previous = order.status

    order.status = update.status
    if update.note:
        order.admin_notes = update.note
    if update.trackingNumber:
        order.tracking_number = update.trackingNumber
    add_timeline_entry(order, update.status, update.note, admin.username)
    db.commit()
    db.refresh(order)
    logger.info("Order %s status %s -> %s by %s",
                order.order_number, previous.value, order.status.value, admin.username)

    _notify(email_service.send_order_status_update, order, "status update")

    return {
        "success": True,
        "message": "Order status updated successfully",
        "data": {
            "orderId": order.order_number,
            "status": order.status.value,
            "timeline": order.timeline,
            "updatedAt": order.updated_at.isoformat() if order.updated_at else None,
        },
    }
