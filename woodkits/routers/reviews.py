"""
Public review endpoints. Moderation lives in the admin router.
"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from .. import models, schemas
from ..database import get_db
from ..exceptions import ProductNotFound
from ..order_service import find_product
from ..review_service import (
    find_verified_order,
    review_stats,
    review_to_dict,
    strip_html,
    update_product_rating,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


def _get_review_or_404(db: Session, review_id: int) -> models.Review:
    review = db.query(models.Review).filter(models.Review.id == review_id).first()
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


@router.get("/product/{product_id}")
def list_product_reviews(
    product_id: str,
    language: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
):
    product = find_product(db, product_id)
    if not product:
        raise ProductNotFound(product_id)

    query = db.query(models.Review).filter(
        models.Review.product_pk == product.id,
        models.Review.status == models.ReviewStatus.APPROVED,
    )
    if language:
        query = query.filter(models.Review.language == language)

    total = query.count()
    total_pages = math.ceil(total / limit) if total else 0
    reviews = (
        query.order_by(models.Review.created_at.desc(), models.Review.id.desc())
        .offset((page - 1) * limit).limit(limit).all()
    )

    return {
        "success": True,
        "data": {
            "reviews": [review_to_dict(r) for r in reviews],
            "stats": review_stats(db, product.id),
            "pagination": {
                "currentPage": page,
                "totalPages": total_pages,
                "totalReviews": total,
                "hasNextPage": page < total_pages,
                "hasPrevPage": page > 1,
            },
        },
    }


@router.post("", status_code=201)
def submit_review(review_in: schemas.ReviewCreate, request: Request, db: Session = Depends(get_db)):
    """
    New reviews wait for moderation, unless the email belongs to a customer
    who ordered this product: those are marked verified and published.
    """
    product = find_product(db, review_in.productId)
    if not product or not product.is_active:
        raise ProductNotFound(review_in.productId)

    email = review_in.customer.email.lower() if review_in.customer.email else None
    if email:
        duplicate = db.query(models.Review).filter(
            models.Review.product_pk == product.id,
            func.lower(models.Review.customer_email) == email,
        ).first()
        if duplicate:
            raise HTTPException(status_code=400, detail="You have already reviewed this product")

    text = strip_html(review_in.text)
    if len(text) < 10:
        raise HTTPException(status_code=400, detail="Review text must be at least 10 characters")

    order = find_verified_order(db, email, product)
    review = models.Review(
        product_pk=product.id,
        customer_name=strip_html(review_in.customer.name),
        customer_email=email,
        customer_verified=order is not None,
        rating=review_in.rating,
        title=strip_html(review_in.title),
        text=text,
        status=models.ReviewStatus.APPROVED if order else models.ReviewStatus.PENDING,
        language=review_in.language,
        source="website",
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
        order_reference=order.order_number if order else None,
        images=[],
        helpful_users=[],
        replies=[],
    )
    db.add(review)
    db.flush()
    if order:
        update_product_rating(db, product)
    db.commit()
    db.refresh(review)

    logger.info("Review %d submitted for %s (%s)", review.id, product.product_id, review.status.value)
    message = (
        "Review published as a verified purchase"
        if order else "Review submitted successfully and is pending moderation"
    )
    return {
        "success": True,
        "message": message,
        "data": {
            "id": review.id,
            "status": review.status.value,
            "verified": review.customer_verified,
            "submittedAt": review.created_at.isoformat() if review.created_at else None,
        },
    }


@router.get("/recent")
def recent_reviews(
    limit: int = Query(5, ge=1, le=50),
    language: Optional[str] = None,
    minRating: int = Query(4, ge=1, le=5),
    db: Session = Depends(get_db),
):
    query = db.query(models.Review).filter(
        models.Review.status == models.ReviewStatus.APPROVED,
        models.Review.rating >= minRating,
    )
    if language:
        query = query.filter(models.Review.language == language)
    reviews = query.order_by(models.Review.created_at.desc(), models.Review.id.desc()).limit(limit).all()
    return {"success": True, "data": [review_to_dict(r) for r in reviews]}


@router.post("/{review_id}/helpful")
def mark_helpful(review_id: int, request: Request, db: Session = Depends(get_db)):
    """One vote per client IP."""
    review = _get_review_or_404(db, review_id)
    if review.status != models.ReviewStatus.APPROVED:
        raise HTTPException(status_code=400, detail="Cannot mark unapproved review as helpful")

    voter = request.client.host if request.client else "unknown"
    voters = list(review.helpful_users or [])
    if voter not in voters:
        voters.append(voter)
        review.helpful_users = voters
        review.helpful_count = len(voters)
        flag_modified(review, "helpful_users")
        db.commit()

    return {
        "success": True,
        "message": "Review marked as helpful",
        "data": {"helpfulCount": review.helpful_count},
    }


@router.get("/{review_id}")
def get_review(review_id: int, db: Session = Depends(get_db)):
    review = _get_review_or_404(db, review_id)
    if review.status != models.ReviewStatus.APPROVED:
        raise HTTPException(status_code=404, detail="Review not available")
    return {"success": True, "data": review_to_dict(review)}
