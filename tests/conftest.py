"""
Shared test fixtures: file-backed SQLite database, test client, admin auth, seeded catalog.
"""

import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set env before importing app modules (settings are read at import)
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = ""
os.environ["SENDGRID_API_KEY"] = ""

from woodkits import models
from woodkits.auth import hash_password
from woodkits.catalog_seed import seed_products
from woodkits.database import Base, get_db
from woodkits.main import app


TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "workshop-admin-pass"


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_products(db):
    """Default catalog: amsterdam-bookshelf, garden-bench, designer-dog-bed, stairs."""
    return seed_products(db)


@pytest.fixture
def admin_headers(client, db):
    """Create the admin account, log in, and return auth headers."""
    db.add(models.AdminUser(username=ADMIN_USERNAME, password_hash=hash_password(ADMIN_PASSWORD)))
    db.commit()
    response = client.post("/api/v1/admin/login", json={
        "username": ADMIN_USERNAME,
        "password": ADMIN_PASSWORD,
    })
    assert response.status_code == 200
    token = response.json()["data"]["token"]
    return {"Authorization": f"Bearer {token}"}


def order_payload(**overrides):
    """Valid order body for one default-configured stairs kit."""
    payload = {
        "customer": {
            "name": "Dana Levi",
            "email": "dana@example.com",
            "phone": "+972 50-123-4567",
            "address": {"street": "Herzl 12", "city": "Tel Aviv", "postalCode": "6100000"},
        },
        "items": [
            {"productId": "stairs", "quantity": 1, "configuration": {}},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def placed_order(client, seeded_products):
    """An order for one default stairs kit, returned as the create response data."""
    response = client.post("/api/v1/orders", json=order_payload())
    assert response.status_code == 201
    return response.json()["data"]
