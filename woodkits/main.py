from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import os
import time

from .config import settings
from .database import engine, Base
from .exceptions import WoodKitsError
from .routers import products, images, orders, reviews, admin, payments, email

logger = logging.getLogger("woodkits")

API_PREFIX = "/api/v1"

# Create tables (handles new tables but won't add columns to existing ones)
Base.metadata.create_all(bind=engine)


def _run_migrations():
    """Run pending Alembic migrations on startup.

    Databases created by Base.metadata.create_all() before Alembic was
    introduced have the tables but no alembic_version; those are stamped at
    the initial revision first.
    """
    try:
        from alembic.config import Config
        from alembic import command
        from sqlalchemy import inspect

        alembic_ini = os.path.join(os.path.dirname(__file__), "..", "alembic.ini")
        if not os.path.exists(alembic_ini):
            logger.info("alembic.ini not found, skipping migrations")
            return

        alembic_cfg = Config(alembic_ini)
        alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

        insp = inspect(engine)
        has_alembic = "alembic_version" in insp.get_table_names()
        has_products = "products" in insp.get_table_names()

        if not has_alembic and has_products:
            logger.info("Stamping initial migration 3f6c2a9d1b47 (tables already exist)")
            command.stamp(alembic_cfg, "3f6c2a9d1b47")

        logger.info("Running pending Alembic migrations...")
        command.upgrade(alembic_cfg, "head")
        logger.info("Migrations complete")

    except Exception as e:
        # Never let migration errors prevent app startup
        logger.warning(f"Alembic migration warning: {e}")


app = FastAPI(
    title="Wood Kits API",
    description="Configurable wooden furniture storefront with live price calculation",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def access_log(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info("%s %s -> %d (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


# --- Error envelope ---

@app.exception_handler(WoodKitsError)
async def woodkits_error_handler(request: Request, exc: WoodKitsError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.error, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc), "message": error.get("msg")})
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Validation Error", "details": details},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict):
        content = {"success": False, **exc.detail}
    else:
        content = {"success": False, "message": exc.detail}
    if exc.status_code == 404 and exc.detail == "Not Found":
        content["message"] = f"Route {request.url.path} not found"
        content["suggestions"] = [
            f"GET {API_PREFIX}/products",
            f"POST {API_PREFIX}/products/calculate-price",
            f"POST {API_PREFIX}/orders",
            f"GET {API_PREFIX}/reviews/recent",
            "GET /health",
        ]
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


# API routes
app.include_router(products.router, prefix=API_PREFIX)
app.include_router(images.router, prefix=API_PREFIX)
app.include_router(orders.router, prefix=API_PREFIX)
app.include_router(reviews.router, prefix=API_PREFIX)
app.include_router(admin.router, prefix=API_PREFIX)
app.include_router(payments.router, prefix=API_PREFIX)
app.include_router(email.router, prefix=API_PREFIX)

# Serve uploaded images (local fallback when R2 not configured)
uploads_path = os.path.join(os.path.dirname(__file__), "..", "uploads")
if os.path.exists(uploads_path):
    app.mount("/uploads", StaticFiles(directory=uploads_path), name="uploads")


@app.get("/health")
def health():
    return {"status": "ok", "app": "woodkits-api", "environment": settings.ENVIRONMENT}


@app.get("/")
def root():
    return {
        "success": True,
        "message": "Wood Kits API",
        "version": app.version,
        "endpoints": {
            "products": f"{API_PREFIX}/products",
            "orders": f"{API_PREFIX}/orders",
            "reviews": f"{API_PREFIX}/reviews",
            "admin": f"{API_PREFIX}/admin",
            "payments": f"{API_PREFIX}/payments",
            "email": f"{API_PREFIX}/email",
        },
    }


@app.on_event("startup")
def auto_migrate():
    """Run pending Alembic migrations on startup."""
    _run_migrations()


@app.on_event("startup")
def auto_seed():
    """Seed the default catalog and the admin account on first run."""
    from .auth import ensure_admin_user
    from .catalog_seed import seed_products
    from .database import SessionLocal
    db = SessionLocal()
    try:
        seed_products(db)
        if settings.ADMIN_PASSWORD:
            ensure_admin_user(db, settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD)
        else:
            logger.warning("ADMIN_PASSWORD not set, admin account not seeded")
    finally:
        db.close()
