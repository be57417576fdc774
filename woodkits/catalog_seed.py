"""
Default catalog, seeded on first startup and via POST /api/v1/products/seed.

Prices are in NIS. Dimensions are centimetres; multipliers are NIS per cm
away from the default size.
"""

import logging

from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)

LACQUER = {"available": True, "price": 45}
NO_HANDRAIL = {"available": False, "price": 0}

DEFAULT_PRODUCTS = {
    "amsterdam-bookshelf": {
        "name": {
            "en": "Amsterdam Bookshelf",
            "he": "כוננית אמסטרדם",
            "es": "Estantería Ámsterdam",
        },
        "description": {
            "en": "Open solid-pine bookshelf built to your wall. Choose length, depth and height.",
            "he": "כוננית פתוחה מעץ אורן מלא בהתאמה לקיר שלך. בחרו אורך, עומק וגובה.",
            "es": "Estantería abierta de pino macizo a la medida de tu pared. Elige largo, fondo y alto.",
        },
        "category": models.ProductCategory.BOOKSHELF,
        "base_price": 800,
        "dimensions": {
            "length": {"min": 60, "max": 200, "default": 120, "step": 10, "multiplier": 2.5,
                       "visible": True, "editable": True},
            "width": {"min": 20, "max": 50, "default": 30, "step": 5, "multiplier": 3.0,
                      "visible": True, "editable": True},
            "height": {"min": 80, "max": 220, "default": 180, "step": 10, "multiplier": 2.0,
                       "visible": True, "editable": True},
        },
        "options": {"lacquer": LACQUER, "handrail": NO_HANDRAIL},
        "tags": ["bookshelf", "pine", "custom-size"],
    },
    "garden-bench": {
        "name": {
            "en": "Garden Bench",
            "he": "ספסל גינה",
            "es": "Banco de Jardín",
        },
        "description": {
            "en": "Weather-treated outdoor bench. Length is adjustable; seat depth and height are fixed.",
            "he": "ספסל חוץ מטופל לעמידות במזג אוויר. האורך מתכוונן, עומק וגובה המושב קבועים.",
            "es": "Banco de exterior tratado para la intemperie. El largo es ajustable; fondo y alto son fijos.",
        },
        "category": models.ProductCategory.OUTDOOR,
        "base_price": 600,
        "dimensions": {
            "length": {"min": 100, "max": 180, "default": 150, "step": 10, "multiplier": 2.0,
                       "visible": True, "editable": True},
            "width": {"min": 35, "max": 50, "default": 40, "step": 5, "multiplier": 1.5,
                      "visible": True, "editable": False},
            "height": {"min": 40, "max": 50, "default": 45, "step": 5, "multiplier": 1.0,
                       "visible": False, "editable": False},
        },
        "options": {"lacquer": LACQUER, "handrail": NO_HANDRAIL},
        "tags": ["outdoor", "bench"],
    },
    "designer-dog-bed": {
        "name": {
            "en": "Designer Dog Bed",
            "he": "מיטת כלב מעוצבת",
            "es": "Cama de Diseño para Perro",
        },
        "description": {
            "en": "Raised wooden dog bed sized to your dog.",
            "he": "מיטת עץ מוגבהת לכלב, בהתאמה לגודל הכלב שלך.",
            "es": "Cama elevada de madera para perro, a la medida de tu mascota.",
        },
        "category": models.ProductCategory.PET,
        "base_price": 320,
        "dimensions": {
            "length": {"min": 40, "max": 100, "default": 70, "step": 5, "multiplier": 1.5,
                       "visible": True, "editable": True},
            "width": {"min": 30, "max": 80, "default": 50, "step": 5, "multiplier": 1.5,
                      "visible": True, "editable": True},
            "height": {"min": 10, "max": 20, "default": 15, "step": 1, "multiplier": 2.0,
                       "visible": False, "editable": False},
        },
        "options": {"lacquer": LACQUER, "handrail": NO_HANDRAIL},
        "tags": ["pet", "dog-bed"],
    },
    "stairs": {
        "name": {
            "en": "Wooden Stairs",
            "he": "מדרגות עץ",
            "es": "Escalera de Madera",
        },
        "description": {
            "en": "Freestanding wooden step unit. Choose the width, lacquer finish and an optional handrail.",
            "he": "יחידת מדרגות עץ עומדת. בחרו רוחב, ציפוי לכה ומעקה אופציונלי.",
            "es": "Escalera de madera independiente. Elige el ancho, acabado lacado y pasamanos opcional.",
        },
        "category": models.ProductCategory.STAIRS,
        "base_price": 500,
        "dimensions": {
            "width": {"min": 60, "max": 120, "default": 80, "step": 10, "multiplier": 2,
                      "visible": True, "editable": True},
        },
        "options": {
            "lacquer": {"available": True, "price": 50},
            "handrail": {"available": True, "price": 100},
        },
        "tags": ["stairs"],
    },
}


def seed_products(db: Session) -> list:
    """Insert any default product that is missing. Returns the product codes added."""
    added = []
    for product_id, data in DEFAULT_PRODUCTS.items():
        existing = db.query(models.Product).filter(models.Product.product_id == product_id).first()
        if existing:
            continue
        db.add(models.Product(
            product_id=product_id,
            currency=models.Currency.NIS,
            images=[],
            **data,
        ))
        added.append(product_id)
    db.commit()
    if added:
        logger.info("Seeded %d default products: %s", len(added), ", ".join(added))
    return added
