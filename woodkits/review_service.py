"""
Review helpers shared by the public reviews router and admin moderation.
"""

import logging
import re
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")


def strip_html(text):
    if text is None:
        return None
    return _TAG_RE.sub("", text).strip()


def find_verified_order(db: Session, email: str, product: models.Product):
    """Most recent live order by this email containing the product, if any."""
    if not email:
        return None
    return (
        db.query(models.Order)
        .join(models.OrderItem, models.OrderItem.order_id == models.Order.id)
        .filter(
            func.lower(models.Order.customer_email) == email.lower(),
            models.OrderItem.product_pk == product.id,
            models.Order.status.notin_(models.INACTIVE_ORDER_STATUSES),
        )
        .order_by(models.Order.created_at.desc())
        .first()
    )


def review_stats(db: Session, product_pk: int) -> dict:
    """{averageRating, totalReviews, distribution{1..5}} over approved reviews."""
    rows = (
        db.query(models.Review.rating, func.count(models.Review.id))
        .filter(
            models.Review.product_pk == product_pk,
            models.Review.status == models.ReviewStatus.APPROVED,
        )
        .group_by(models.Review.rating)
        .all()
    )
    distribution = {str(star): 0 for star in range(1, 6)}
    total = 0
    weighted = 0
    for rating, count in rows:
        distribution[str(rating)] = count
        total += count
        weighted += rating * count
    return {
        "averageRating": round(weighted / total, 1) if total else 0,
        "totalReviews": total,
        "distribution": distribution,
    }


def update_product_rating(db: Session, product: models.Product):
    """Recompute the product's rating aggregate from approved reviews. Caller commits."""
    stats = review_stats(db, product.id)
    product.rating_average = stats["averageRating"]
    product.rating_count = stats["totalReviews"]
    logger.info("Product %s rating now %.1f over %d reviews",
                product.product_id, product.rating_average, product.rating_count)


def moderate_review(db: Session, review: models.Review, status: models.ReviewStatus,
                    notes: str = None):
    review.status = status
    review.moderation_notes = notes
    review.moderated_at = datetime.utcnow()
    db.flush()
    update_product_rating(db, review.product)


def review_to_dict(review: models.Review, include_private: bool = False) -> dict:
    data = {
        "id": review.id,
        "productId": review.product.product_id if review.product else None,
        "customer": {
            "name": review.customer_name,
            "verified": review.customer_verified,
        },
        "rating": review.rating,
        "title": review.title,
        "text": review.text,
        "images": review.images or [],
        "helpful": {"count": review.helpful_count or 0},
        "status": review.status.value,
        "language": review.language,
        "replies": review.replies or [],
        "createdAt": review.created_at.isoformat() if review.created_at else None,
    }
    if include_private:
        data["customer"]["email"] = review.customer_email
        data["moderation"] = {
            "notes": review.moderation_notes,
            "moderatedAt": review.moderated_at.isoformat() if review.moderated_at else None,
        }
        data["metadata"] = {
            "source": review.source,
            "userAgent": review.user_agent,
            "ipAddress": review.ip_address,
            "orderReference": review.order_reference,
        }
    return data
