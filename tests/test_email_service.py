"""
Email service tests. SendGrid calls are mocked at urllib.request.urlopen.

Tests:
1-3. Templates: confirmation contents, localized status label, RTL Hebrew
4.   Unconfigured sends are skipped, not raised
5-6. Configured send payload; provider errors raise EmailDeliveryError
7-9. Admin endpoints: status, send (502 on provider failure), body required
"""

import io
import json
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from conftest import order_payload
from woodkits import models
from woodkits.config import settings
from woodkits.email_service import EmailService, format_money, get_translations
from woodkits.exceptions import EmailDeliveryError


@pytest.fixture
def sendgrid_configured():
    with patch.object(settings, "SENDGRID_API_KEY", "SG.test-key"):
        yield


def _order(client, db, **overrides):
    response = client.post("/api/v1/orders", json=order_payload(**overrides))
    order_id = response.json()["data"]["orderId"]
    return db.query(models.Order).filter(models.Order.order_number == order_id).first()


def _accepted(message_id="msg-1"):
    response = MagicMock()
    response.headers = {"X-Message-Id": message_id}
    response.__enter__.return_value = response
    return response


# --- Templates ---

def test_confirmation_template_lists_items_and_total(client, db, seeded_products):
    """English confirmation carries order number, item name and shekel total."""
    order = _order(client, db, items=[{
        "productId": "stairs", "quantity": 1,
        "configuration": {"dimensions": {"width": 100}, "options": {"handrail": True}},
    }])
    html, text = EmailService().render_order_confirmation(order, get_translations("en"))
    assert order.order_number in html
    assert "Wooden Stairs" in html
    assert format_money(order.total, "NIS") in html
    assert "Handrail" in html
    assert 'dir="ltr"' in html


def test_status_update_uses_localized_label(client, db, seeded_products):
    """Spanish status email shows the Spanish status label."""
    order = _order(client, db, language="es")
    order.status = models.OrderStatus.SHIPPED
    order.tracking_number = "IL999"
    t = get_translations("es")
    html, text = EmailService().render_status_update(order, t)
    assert t["status"]["shipped"] in html
    assert "IL999" in text


def test_hebrew_renders_right_to_left(client, db, seeded_products):
    """Hebrew templates set dir=rtl."""
    order = _order(client, db, language="he")
    html, _ = EmailService().render_order_confirmation(order, get_translations("he"))
    assert 'dir="rtl"' in html


# --- Transport ---

def test_unconfigured_send_is_skipped():
    """No API key: nothing is sent and nothing raises."""
    result = EmailService().send_custom_email("a@example.com", "Hi", text="Hello there")
    assert result == {"sent": False, "reason": "Service not configured"}


def test_configured_send_posts_to_sendgrid(sendgrid_configured):
    """Payload has personalizations, sender, both content types and a category."""
    with patch("woodkits.email_service.urllib.request.urlopen", return_value=_accepted()) as urlopen:
        result = EmailService().send_custom_email("a@example.com", "Hi", html="<p>Hello</p>", text="Hello")
    assert result == {"sent": True, "messageId": "msg-1"}

    request = urlopen.call_args[0][0]
    assert request.get_header("Authorization") == "Bearer SG.test-key"
    body = json.loads(request.data)
    assert body["personalizations"] == [{"to": [{"email": "a@example.com"}]}]
    assert body["from"]["email"] == settings.FROM_EMAIL
    assert [c["type"] for c in body["content"]] == ["text/plain", "text/html"]
    assert body["categories"] == ["custom"]


def test_provider_error_raises(sendgrid_configured):
    """SendGrid 4xx/5xx becomes EmailDeliveryError."""
    error = urllib.error.HTTPError(settings.SENDGRID_API_URL, 401, "Unauthorized", {},
                                   io.BytesIO(b'{"errors": [{"message": "bad key"}]}'))
    with patch("woodkits.email_service.urllib.request.urlopen", side_effect=error):
        with pytest.raises(EmailDeliveryError):
            EmailService().send_test_email("a@example.com")


# --- Admin endpoints ---

def test_email_status_endpoint(client, admin_headers):
    """Status reports provider and configuration."""
    response = client.get("/api/v1/email/status", headers=admin_headers)
    data = response.json()["data"]
    assert data["provider"] == "sendgrid"
    assert data["configured"] is False


def test_admin_send_surfaces_provider_failure(client, admin_headers, sendgrid_configured):
    """Admin sends propagate provider errors as 502."""
    error = urllib.error.URLError("connection refused")
    with patch("woodkits.email_service.urllib.request.urlopen", side_effect=error):
        response = client.post("/api/v1/email/send", json={
            "to": "a@example.com", "subject": "Hi", "text": "Hello",
        }, headers=admin_headers)
    assert response.status_code == 502
    assert response.json()["error"] == "EmailError"


def test_admin_send_requires_body(client, admin_headers):
    """Neither html nor text: validation error."""
    response = client.post("/api/v1/email/send", json={"to": "a@example.com", "subject": "Hi"},
                           headers=admin_headers)
    assert response.status_code == 400
