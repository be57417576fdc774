"""
Product image management (admin).

POST   /api/v1/products/{id}/images                 upload one image
DELETE /api/v1/products/{id}/images/{index}         remove by position
PUT    /api/v1/products/{id}/images/{index}/primary set the primary image

Stores to Cloudflare R2 if configured, otherwise local uploads/products/.
"""

import logging
import uuid
from io import BytesIO
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from .. import models
from ..auth import get_current_admin
from ..config import settings
from ..database import get_db
from .products import get_product_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["product-images"])

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "webp"}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
UPLOAD_DIR = "uploads/products"  # local fallback, served at /uploads/products

CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}


def _get_extension(filename: str) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def _r2_configured() -> bool:
    return bool(
        settings.CLOUDFLARE_R2_ACCOUNT_ID
        and settings.CLOUDFLARE_R2_ACCESS_KEY_ID
        and settings.CLOUDFLARE_R2_SECRET_ACCESS_KEY
    )


def _upload_to_r2(file_bytes: bytes, key: str, content_type: str) -> str:
    """Upload to Cloudflare R2 and return the public URL."""
    import boto3

    s3 = boto3.client(
        "s3",
        endpoint_url=f"https://{settings.CLOUDFLARE_R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=settings.CLOUDFLARE_R2_ACCESS_KEY_ID,
        aws_secret_access_key=settings.CLOUDFLARE_R2_SECRET_ACCESS_KEY,
    )
    s3.upload_fileobj(
        BytesIO(file_bytes),
        settings.CLOUDFLARE_R2_BUCKET,
        key,
        ExtraArgs={"ContentType": content_type},
    )
    return f"https://{settings.CLOUDFLARE_R2_BUCKET}.{settings.CLOUDFLARE_R2_ACCOUNT_ID}.r2.dev/{key}"


def _save_locally(file_bytes: bytes, filename: str) -> str:
    upload_dir = Path(UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    with open(upload_dir / filename, "wb") as f:
        f.write(file_bytes)
    return f"/uploads/products/{filename}"


def _save_images(product: models.Product, images: list):
    product.images = images
    flag_modified(product, "images")


def _default_alt(product: models.Product) -> str:
    name = product.name or {}
    return name.get("en") or product.product_id


def _image_at(images: list, index: int) -> dict:
    if index < 0 or index >= len(images):
        raise HTTPException(status_code=404, detail="Image not found")
    return images[index]


@router.post("/{product_id}/images")
async def upload_product_image(
    product_id: str,
    file: UploadFile = File(...),
    alt: Optional[str] = Form(None),
    is_primary: bool = Form(False),
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    """
    Upload an image for a product.

    - jpg, jpeg, png, webp only; max 10MB; non-empty
    - First image of a product becomes primary automatically
    """
    product = get_product_or_404(db, product_id)

    ext = _get_extension(file.filename or "")
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"File type '{ext}' not allowed. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
        )

    file_bytes = await file.read()

    if len(file_bytes) > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File too large ({len(file_bytes) / 1024 / 1024:.1f}MB). Maximum is 10MB.",
        )
    if len(file_bytes) == 0:
        raise HTTPException(status_code=400, detail="Empty file.")

    unique_name = f"{product.product_id}_{uuid.uuid4().hex[:12]}.{ext}"
    content_type = CONTENT_TYPES.get(ext, "application/octet-stream")

    if _r2_configured():
        url = _upload_to_r2(file_bytes, f"products/{unique_name}", content_type)
    else:
        url = _save_locally(file_bytes, unique_name)

    images = [dict(img) for img in (product.images or [])]
    make_primary = is_primary or not images
    if make_primary:
        for img in images:
            img["isPrimary"] = False
    images.append({
        "url": url,
        "alt": alt or _default_alt(product),
        "isPrimary": make_primary,
    })
    _save_images(product, images)
    db.commit()

    logger.info("Admin %s uploaded image %s for %s", admin.username, unique_name, product.product_id)
    return {"success": True, "data": {"images": images, "url": url, "filename": unique_name}}


@router.delete("/{product_id}/images/{index}")
def delete_product_image(
    product_id: str,
    index: int,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    """Remove an image. If it was primary, the first remaining image is promoted."""
    product = get_product_or_404(db, product_id)
    images = [dict(img) for img in (product.images or [])]
    removed = _image_at(images, index)
    images.pop(index)

    if removed.get("isPrimary") and images:
        images[0]["isPrimary"] = True

    _save_images(product, images)
    db.commit()
    logger.info("Admin %s removed image %d from %s", admin.username, index, product.product_id)
    return {"success": True, "data": {"images": images, "removed": removed}}


@router.put("/{product_id}/images/{index}/primary")
def set_primary_image(
    product_id: str,
    index: int,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(get_current_admin),
):
    product = get_product_or_404(db, product_id)
    images = [dict(img) for img in (product.images or [])]
    _image_at(images, index)

    for position, img in enumerate(images):
        img["isPrimary"] = position == index

    _save_images(product, images)
    db.commit()
    return {"success": True, "data": {"images": images}}
