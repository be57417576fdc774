"""
Admin back-office: login, dashboard, pricing maintenance, review moderation, health.

Everything except /login requires an admin bearer token.
"""

import logging
import platform
import time
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from .. import models, schemas
from ..auth import authenticate_admin, create_admin_token, get_current_admin
from ..config import settings
from ..database import get_db
from ..order_service import get_order_or_404, order_summary, order_to_dict
from ..review_service import moderate_review, review_to_dict, update_product_rating
from .products import get_product_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

STARTED_AT = time.time()


def _get_review_or_404(db: Session, review_id: int) -> models.Review:
    review = db.query(models.Review).filter(models.Review.id == review_id).first()
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


def _pricing_entry(product: models.Product) -> dict:
    return {
        "productId": product.product_id,
        "name": product.name,
        "basePrice": product.base_price,
        "currency": product.currency.value,
        "dimensions": product.dimensions or {},
        "options": product.options or {},
        "isActive": product.is_active,
        "updatedAt": product.updated_at.isoformat() if product.updated_at else None,
    }


@router.post("/login")
def login(credentials: schemas.AdminLogin, db: Session = Depends(get_db)):
    admin = authenticate_admin(db, credentials.username, credentials.password)
    if not admin:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token, expires_at = create_admin_token(admin)
    logger.info("Admin '%s' logged in", admin.username)
    return {
        "success": True,
        "message": "Login successful",
        "data": {
            "token": token,
            "expiresAt": expires_at.isoformat(),
            "username": admin.username,
        },
    }


@router.get("/dashboard")
def dashboard(
    period: int = Query(30, ge=1, le=3650),
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    now = datetime.utcnow()
    since = now - timedelta(days=period)

    orders = db.query(models.Order).filter(models.Order.created_at >= since).all()
    revenue_orders = [o for o in orders if o.status not in models.INACTIVE_ORDER_STATUSES]
    revenue = sum(o.total for o in revenue_orders)

    status_distribution = {}
    for order in orders:
        status_distribution[order.status.value] = status_distribution.get(order.status.value, 0) + 1

    total_products = db.query(func.count(models.Product.id)).scalar()
    active_products = db.query(func.count(models.Product.id)).filter(models.Product.is_active.is_(True)).scalar()
    avg_rating = (
        db.query(func.avg(models.Product.rating_average))
        .filter(models.Product.rating_count > 0)
        .scalar()
    )
    total_reviews = db.query(func.count(models.Review.id)).scalar()
    pending_reviews = (
        db.query(func.count(models.Review.id))
        .filter(models.Review.status == models.ReviewStatus.PENDING)
        .scalar()
    )

    recent_orders = (
        db.query(models.Order)
        .order_by(models.Order.created_at.desc(), models.Order.id.desc())
        .limit(5).all()
    )

    # Daily revenue, last 7 days including today
    today = now.date()
    daily = {(today - timedelta(days=offset)).isoformat(): 0.0 for offset in range(6, -1, -1)}
    week_orders = db.query(models.Order).filter(
        models.Order.created_at >= datetime.combine(today - timedelta(days=6), datetime.min.time()),
        models.Order.status.notin_(models.INACTIVE_ORDER_STATUSES),
    ).all()
    for order in week_orders:
        day = order.created_at.date().isoformat()
        if day in daily:
            daily[day] = round(daily[day] + order.total, 2)

    return {
        "success": True,
        "data": {
            "period": f"{period} days",
            "orders": {
                "total": len(orders),
                "revenue": round(revenue, 2),
                "averageOrderValue": round(revenue / len(revenue_orders), 2) if revenue_orders else 0,
                "statusDistribution": status_distribution,
            },
            "products": {
                "total": total_products,
                "active": active_products,
                "averageRating": round(avg_rating, 1) if avg_rating is not None else 0,
            },
            "reviews": {
                "total": total_reviews,
                "pending": pending_reviews,
            },
            "recentOrders": [order_summary(o) for o in recent_orders],
            "dailyRevenue": [{"date": day, "revenue": amount} for day, amount in daily.items()],
            "currency": settings.DEFAULT_CURRENCY,
        },
    }


# --- Orders ---

@router.get("/orders/{order_id}")
def order_detail(
    order_id: str,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    """Full order including admin notes and request metadata."""
    order = get_order_or_404(db, order_id)
    return {"success": True, "data": order_to_dict(order, include_admin=True)}


# --- Pricing ---

@router.get("/pricing")
def list_pricing(
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    products = db.query(models.Product).order_by(models.Product.product_id).all()
    return {"success": True, "data": [_pricing_entry(p) for p in products]}


@router.put("/pricing/{product_id}")
def update_pricing(
    product_id: str,
    update: schemas.PricingUpdate,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    product = get_product_or_404(db, product_id)

    if update.basePrice is not None:
        product.base_price = update.basePrice
    if update.dimensions is not None:
        product.dimensions = {name: spec.model_dump() for name, spec in update.dimensions.items()}
        flag_modified(product, "dimensions")
    if update.options is not None:
        product.options = {name: spec.model_dump() for name, spec in update.options.items()}
        flag_modified(product, "options")

    db.commit()
    db.refresh(product)
    logger.info("Pricing for %s updated by %s", product.product_id, admin.username)
    return {
        "success": True,
        "message": "Pricing updated successfully",
        "data": _pricing_entry(product),
    }


# --- Reviews ---

@router.get("/reviews/pending")
def pending_reviews(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    reviews = (
        db.query(models.Review)
        .filter(models.Review.status == models.ReviewStatus.PENDING)
        .order_by(models.Review.created_at.asc(), models.Review.id.asc())
        .limit(limit).all()
    )
    return {"success": True, "data": [review_to_dict(r, include_private=True) for r in reviews]}


@router.put("/reviews/{review_id}/moderate")
def moderate(
    review_id: int,
    decision: schemas.ReviewModeration,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    review = _get_review_or_404(db, review_id)
    previous = review.status
    moderate_review(db, review, decision.status, decision.moderationNotes)
    db.commit()
    db.refresh(review)
    logger.info("Review %d moderated %s -> %s by %s",
                review.id, previous.value, review.status.value, admin.username)
    return {
        "success": True,
        "message": "Review moderated successfully",
        "data": review_to_dict(review, include_private=True),
    }


@router.delete("/reviews/{review_id}")
def delete_review(
    review_id: int,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    review = _get_review_or_404(db, review_id)
    product = review.product
    db.delete(review)
    db.flush()
    update_product_rating(db, product)
    db.commit()
    logger.info("Review %d deleted by %s", review_id, admin.username)
    return {"success": True, "message": "Review deleted successfully"}


@router.post("/reviews/{review_id}/reply", status_code=201)
def reply_to_review(
    review_id: int,
    reply: schemas.ReviewReply,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    review = _get_review_or_404(db, review_id)
    entry = {
        "text": reply.text,
        "author": {
            "name": reply.authorName or settings.COMPANY_NAME,
            "isAdmin": True,
        },
        "createdAt": datetime.utcnow().isoformat(),
    }
    replies = list(review.replies or [])
    replies.append(entry)
    review.replies = replies
    flag_modified(review, "replies")
    db.commit()
    return {"success": True, "message": "Reply added successfully", "data": entry}


@router.get("/health")
def health(
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as e:
        logger.error("Database health check failed: %s", e)
        database = "disconnected"

    return {
        "success": True,
        "data": {
            "status": "healthy" if database == "connected" else "degraded",
            "database": database,
            "uptimeSeconds": round(time.time() - STARTED_AT, 1),
            "pythonVersion": platform.python_version(),
            "environment": settings.ENVIRONMENT,
            "timestamp": datetime.utcnow().isoformat(),
        },
    }
