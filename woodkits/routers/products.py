"""
Catalog endpoints: listing, lookup, price calculation, admin CRUD.

Pricing goes through pricing_engine.calculate_price; this module only finds
the product and shapes the response.
"""

import logging
import math

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_admin
from ..catalog_seed import seed_products
from ..database import get_db
from ..exceptions import ProductNotFound
from ..order_service import find_product, localized
from ..pricing_engine import calculate_price, default_configuration

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])

SORT_COLUMNS = {
    "createdAt": models.Product.created_at,
    "basePrice": models.Product.base_price,
    "name": models.Product.product_id,
}


def product_to_dict(product: models.Product, language: str = None) -> dict:
    """Wire shape. With a language, name/description are flattened to that language."""
    if language:
        name = localized(product.name, language)
        description = localized(product.description, language)
    else:
        name = product.name
        description = product.description
    return {
        "id": product.id,
        "productId": product.product_id,
        "name": name,
        "description": description,
        "category": product.category.value if product.category else None,
        "basePrice": product.base_price,
        "currency": product.currency.value if product.currency else None,
        "dimensions": product.dimensions or {},
        "options": product.options or {},
        "tags": product.tags or [],
        "images": product.images or [],
        "inventory": {
            "inStock": product.in_stock,
            "stockLevel": product.stock_level,
            "lowStockThreshold": product.low_stock_threshold,
        },
        "ratings": {
            "average": product.rating_average or 0,
            "count": product.rating_count or 0,
        },
        "isActive": product.is_active,
        "createdAt": product.created_at.isoformat() if product.created_at else None,
        "updatedAt": product.updated_at.isoformat() if product.updated_at else None,
    }


def get_product_or_404(db: Session, product_id: str) -> models.Product:
    product = find_product(db, product_id)
    if not product:
        raise ProductNotFound(product_id)
    return product


def _apply_product_fields(product: models.Product, data: dict):
    """Copy camelCase request fields onto the ORM row."""
    field_map = {
        "name": "name",
        "description": "description",
        "category": "category",
        "basePrice": "base_price",
        "currency": "currency",
        "dimensions": "dimensions",
        "options": "options",
        "tags": "tags",
        "images": "images",
        "inStock": "in_stock",
        "stockLevel": "stock_level",
        "lowStockThreshold": "low_stock_threshold",
        "isActive": "is_active",
    }
    for wire_name, column in field_map.items():
        if wire_name in data:
            setattr(product, column, data[wire_name])


def _price_response(product: models.Product, configuration: dict) -> dict:
    result = calculate_price(product, configuration)
    return {
        "success": True,
        "data": {
            "productId": result["productId"],
            "pricing": result["pricing"],
            "currency": result["currency"],
            "configuration": {
                "dimensions": result["dimensions"],
                "options": result["options"],
            },
            "ignored": result["ignored"],
        },
    }


# --- Public ---

@router.get("")
def list_products(
    category: models.ProductCategory = None,
    active: bool = True,
    language: str = "en",
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    sort: str = "createdAt",
    db: Session = Depends(get_db),
):
    query = db.query(models.Product).filter(models.Product.is_active == active)
    if category:
        query = query.filter(models.Product.category == category)

    column = SORT_COLUMNS.get(sort.lstrip("-"), models.Product.created_at)
    query = query.order_by(column.desc() if sort.startswith("-") else column.asc())

    total = query.count()
    total_pages = math.ceil(total / limit) if total else 0
    products = query.offset((page - 1) * limit).limit(limit).all()

    if language not in models.SUPPORTED_LANGUAGES:
        language = "en"

    return {
        "success": True,
        "data": [product_to_dict(p, language) for p in products],
        "pagination": {
            "currentPage": page,
            "totalPages": total_pages,
            "totalProducts": total,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        },
        "meta": {"language": language, "resultsPerPage": limit},
    }


@router.get("/meta/categories")
def list_categories(db: Session = Depends(get_db)):
    rows = db.query(models.Product.category).filter(models.Product.is_active == True).distinct().all()  # noqa: E712
    return {"success": True, "data": sorted(row[0].value for row in rows)}


@router.post("/calculate-price")
def calculate_price_by_body(request: schemas.PriceRequest, db: Session = Depends(get_db)):
    """Pricing contract: {productId, configuration: {dimensions, options}}."""
    if not request.productId:
        raise HTTPException(status_code=400, detail="productId is required")
    product = get_product_or_404(db, request.productId)
    return _price_response(product, request.to_configuration())


@router.get("/{product_id}")
def get_product(product_id: str, language: str = "en", db: Session = Depends(get_db)):
    product = get_product_or_404(db, product_id)
    if not product.is_active:
        raise HTTPException(status_code=404, detail="Product is not available")

    if language not in models.SUPPORTED_LANGUAGES:
        language = "en"

    data = product_to_dict(product, language)
    data["defaultConfiguration"] = default_configuration(product)
    return {"success": True, "data": data, "meta": {"language": language}}


@router.post("/{product_id}/calculate-price")
def calculate_product_price(product_id: str, request: schemas.PriceRequest, db: Session = Depends(get_db)):
    """Accepts {configuration: {...}} or {dimensions, options} at the top level."""
    product = get_product_or_404(db, product_id)
    return _price_response(product, request.to_configuration())


# --- Admin ---

@router.post("", status_code=201)
def create_product(
    product_in: schemas.ProductCreate,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    existing = db.query(models.Product).filter(models.Product.product_id == product_in.productId).first()
    if existing:
        raise HTTPException(status_code=400, detail="Product with this ID already exists")

    product = models.Product(product_id=product_in.productId)
    _apply_product_fields(product, product_in.model_dump(exclude={"productId"}))
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("Admin %s created product %s", admin.username, product.product_id)
    return {"success": True, "message": "Product created successfully", "data": product_to_dict(product)}


@router.post("/seed")
def seed_default_catalog(
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    added = seed_products(db)
    return {"success": True, "message": f"Seeded {len(added)} products", "data": added}


@router.put("/{product_id}")
def update_product(
    product_id: str,
    product_in: schemas.ProductUpdate,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    product = get_product_or_404(db, product_id)
    _apply_product_fields(product, product_in.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(product)
    logger.info("Admin %s updated product %s", admin.username, product.product_id)
    return {"success": True, "message": "Product updated successfully", "data": product_to_dict(product)}


@router.delete("/{product_id}")
def delete_product(
    product_id: str,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    """Soft delete: the row stays so existing orders keep their product reference."""
    product = get_product_or_404(db, product_id)
    product.is_active = False
    db.commit()
    logger.info("Admin %s deactivated product %s", admin.username, product.product_id)
    return {"success": True, "message": "Product deactivated successfully"}
