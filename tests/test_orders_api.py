"""
Order API tests.

Tests:
1-3.   Placement: server-side pricing, totals with VAT, order number format
4-9.   Placement rejections (unknown/out-of-stock product, bad or malformed config, validation)
10-12. Customer lookup with email verification
13.    PDF receipt
14-17. Admin listing, status change + timeline, stats, admin detail
18.    Email failure does not fail the order
"""

import re
from unittest.mock import patch

from conftest import order_payload
from woodkits import models
from woodkits.exceptions import EmailDeliveryError


# --- Placement ---

def test_create_order_prices_server_side(client, db, seeded_products):
    """Line items are priced by the calculator, never taken from the client."""
    payload = order_payload(items=[{
        "productId": "stairs",
        "quantity": 2,
        "configuration": {
            "dimensions": {"width": 100},
            "options": {"lacquer": True, "handrail": True},
            "unitPrice": 1,
        },
    }])
    response = client.post("/api/v1/orders", json=payload)
    assert response.status_code == 201
    data = response.json()["data"]

    order = db.query(models.Order).filter(models.Order.order_number == data["orderId"]).first()
    item = order.items[0]
    assert item.unit_price == 690
    assert item.total_price == 1380
    assert item.size_adjustment == 40
    assert item.options_cost == 150
    assert order.subtotal == 1380


def test_create_order_totals_include_vat(client, seeded_products):
    """Default stairs: 500 + 17% VAT = 585."""
    response = client.post("/api/v1/orders", json=order_payload(shippingCost=50, discount=20))
    data = response.json()["data"]
    assert data["total"] == 615
    assert data["currency"] == "NIS"
    assert data["status"] == "pending"


def test_order_number_format(placed_order):
    """WK-<epoch ms>-<9 uppercase alphanumerics>."""
    assert re.fullmatch(r"WK-\d{13}-[A-Z0-9]{9}", placed_order["orderId"])


def test_create_order_unknown_product(client, seeded_products):
    """Unknown product in items: 400 naming the product."""
    payload = order_payload(items=[{"productId": "ghost", "quantity": 1}])
    response = client.post("/api/v1/orders", json=payload)
    assert response.status_code == 400
    assert response.json()["message"] == "Product not found: ghost"


def test_create_order_out_of_stock(client, db, seeded_products):
    """Out-of-stock product cannot be ordered."""
    product = db.query(models.Product).filter(models.Product.product_id == "stairs").first()
    product.in_stock = False
    db.commit()
    response = client.post("/api/v1/orders", json=order_payload())
    assert response.status_code == 400
    assert response.json()["message"] == "Product out of stock: stairs"


def test_create_order_invalid_configuration(client, seeded_products):
    """A calculator rejection names the item and keeps the field details."""
    payload = order_payload(items=[{
        "productId": "stairs",
        "quantity": 1,
        "configuration": {"dimensions": {"width": 200}},
    }])
    response = client.post("/api/v1/orders", json=payload)
    assert response.status_code == 400
    body = response.json()
    assert body["message"].startswith("Item 1 (stairs):")
    assert body["details"][0]["constraint"] == "max"


def test_create_order_malformed_configuration(client, seeded_products):
    """Options sent as a list are rejected per item, not a server error."""
    payload = order_payload(items=[{
        "productId": "stairs",
        "quantity": 1,
        "configuration": {"options": ["lacquer"]},
    }])
    response = client.post("/api/v1/orders", json=payload)
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "ValidationError"
    assert body["details"][0]["field"] == "options"


def test_create_order_requires_items(client, seeded_products):
    """Empty item list fails request validation."""
    response = client.post("/api/v1/orders", json=order_payload(items=[]))
    assert response.status_code == 400
    assert response.json()["message"] == "Validation Error"


def test_create_order_rejects_bad_phone(client, seeded_products):
    """Phone must be digits, spaces, dashes, parentheses and an optional +."""
    payload = order_payload()
    payload["customer"]["phone"] = "call me maybe"
    response = client.post("/api/v1/orders", json=payload)
    assert response.status_code == 400
    fields = [d["field"] for d in response.json()["details"]]
    assert "customer.phone" in fields


# --- Customer lookup ---

def test_get_order_by_number(client, placed_order):
    """Lookup by order number returns the full order."""
    response = client.get(f"/api/v1/orders/{placed_order['orderId']}")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["pricing"]["total"] == 585
    assert data["items"][0]["productId"] == "stairs"
    assert data["timeline"][0]["status"] == "pending"
    assert "admin" not in data["notes"]


def test_get_order_email_must_match(client, placed_order):
    """Wrong email is 403; matching email is case-insensitive."""
    order_id = placed_order["orderId"]
    assert client.get(f"/api/v1/orders/{order_id}", params={"email": "eve@example.com"}).status_code == 403
    assert client.get(f"/api/v1/orders/{order_id}", params={"email": "DANA@example.com"}).status_code == 200


def test_get_unknown_order_404(client, seeded_products):
    """Unknown order number is 404."""
    response = client.get("/api/v1/orders/WK-0-NOPE")
    assert response.status_code == 404
    assert response.json()["message"] == "Order not found"


def test_download_receipt_pdf(client, placed_order):
    """Receipt is a PDF attachment named after the order."""
    response = client.get(f"/api/v1/orders/{placed_order['orderId']}/receipt")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert placed_order["orderId"] in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


# --- Admin ---

def test_admin_list_orders(client, admin_headers, placed_order):
    """Admin listing shows the order summary; anonymous callers get 401."""
    assert client.get("/api/v1/orders").status_code == 401
    response = client.get("/api/v1/orders", headers=admin_headers)
    assert response.status_code == 200
    summaries = response.json()["data"]
    assert summaries[0]["orderId"] == placed_order["orderId"]
    assert summaries[0]["itemsCount"] == 1


def test_admin_status_update_appends_timeline(client, admin_headers, placed_order):
    """Status change records who/when/why and stores tracking number."""
    order_id = placed_order["orderId"]
    response = client.put(
        f"/api/v1/orders/{order_id}/status",
        json={"status": "shipped", "note": "Left the workshop", "trackingNumber": "IL123"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    timeline = response.json()["data"]["timeline"]
    assert [entry["status"] for entry in timeline] == ["pending", "shipped"]
    assert timeline[-1]["updatedBy"] == "admin"

    detail = client.get(f"/api/v1/admin/orders/{order_id}", headers=admin_headers).json()["data"]
    assert detail["notes"]["admin"] == "Left the workshop"
    assert detail["shipping"]["trackingNumber"] == "IL123"


def test_admin_status_update_rejects_unknown_status(client, admin_headers, placed_order):
    """Status outside the enum is a validation error."""
    response = client.put(
        f"/api/v1/orders/{placed_order['orderId']}/status",
        json={"status": "teleported"},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_admin_order_stats(client, admin_headers, placed_order):
    """Stats summarise count, revenue and status distribution."""
    response = client.get("/api/v1/orders/stats/summary", headers=admin_headers)
    data = response.json()["data"]
    assert data["totalOrders"] == 1
    assert data["totalRevenue"] == 585
    assert data["statusDistribution"] == {"pending": 1}


def test_email_failure_does_not_fail_order(client, seeded_products):
    """A provider error while sending the confirmation is logged, not raised."""
    with patch("woodkits.routers.orders.email_service.send_order_confirmation",
               side_effect=EmailDeliveryError("SendGrid returned 500")):
        response = client.post("/api/v1/orders", json=order_payload())
    assert response.status_code == 201
