"""
Transactional email via the SendGrid v3 REST API.

Order confirmation and status-update templates in English, Hebrew (RTL) and
Spanish. When SENDGRID_API_KEY is unset every send is skipped and reported
as {"sent": False, "reason": ...}; callers never need to check first.
"""

import json
import logging
import urllib.error
import urllib.request
from html import escape

from .config import settings
from .exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {"NIS": "₪", "ILS": "₪", "USD": "$", "EUR": "€"}

TRANSLATIONS = {
    "en": {
        "dir": "ltr",
        "orderConfirmation": "Order Confirmation",
        "orderUpdate": "Order Status Update",
        "orderDetails": "Order Details",
        "orderNumber": "Order Number",
        "orderDate": "Order Date",
        "customerName": "Customer",
        "orderItems": "Order Items",
        "quantity": "Quantity",
        "subtotal": "Subtotal",
        "tax": "Tax",
        "shipping": "Shipping",
        "discount": "Discount",
        "total": "Total",
        "whatNext": "What happens next?",
        "processOrder": "We will process your order within 1-2 business days",
        "contactUpdate": "We will contact you with updates on your order status",
        "estimatedDelivery": "Estimated delivery time is 10-14 business days",
        "specialInstructions": "Special Instructions",
        "questions": "Questions? Contact us at",
        "thankYou": "Thank you for choosing Wood Kits!",
        "hello": "Hello",
        "orderUpdateMessage": "Your order",
        "hasBeenUpdated": "has been updated",
        "currentStatus": "Current Status",
        "trackingNumber": "Tracking Number",
        "status": {
            "pending": "Order Received - Pending Processing",
            "confirmed": "Order Confirmed - Processing",
            "processing": "In Production",
            "ready": "Ready for Pickup/Delivery",
            "shipped": "Shipped",
            "delivered": "Delivered",
            "cancelled": "Cancelled",
            "refunded": "Refunded",
        },
        "labels": {
            "length": "Length",
            "width": "Width",
            "height": "Height",
            "depth": "Depth",
            "steps": "Steps",
            "lacquer": "Lacquer Finish",
            "handrail": "Handrail",
        },
    },
    "he": {
        "dir": "rtl",
        "orderConfirmation": "אישור הזמנה",
        "orderUpdate": "עדכון סטטוס הזמנה",
        "orderDetails": "פרטי ההזמנה",
        "orderNumber": "מספר הזמנה",
        "orderDate": "תאריך הזמנה",
        "customerName": "לקוח",
        "orderItems": "פריטי ההזמנה",
        "quantity": "כמות",
        "subtotal": "סכום ביניים",
        "tax": "מס",
        "shipping": "משלוח",
        "discount": "הנחה",
        "total": 'סה"כ',
        "whatNext": "מה קורה הלאה?",
        "processOrder": "נעבד את ההזמנה שלך תוך 1-2 ימי עסקים",
        "contactUpdate": "ניצור קשר עם עדכונים על סטטוס ההזמנה",
        "estimatedDelivery": "זמן אספקה משוער: 10-14 ימי עסקים",
        "specialInstructions": "הוראות מיוחדות",
        "questions": "שאלות? צרו קשר:",
        "thankYou": "תודה שבחרתם בערכות עץ!",
        "hello": "שלום",
        "orderUpdateMessage": "ההזמנה שלך",
        "hasBeenUpdated": "עודכנה",
        "currentStatus": "סטטוס נוכחי",
        "trackingNumber": "מספר מעקב",
        "status": {
            "pending": "הזמנה התקבלה - ממתינה לעיבוד",
            "confirmed": "הזמנה אושרה - בעיבוד",
            "processing": "בייצור",
            "ready": "מוכן לאיסוף/משלוח",
            "shipped": "נשלח",
            "delivered": "הועבר",
            "cancelled": "בוטל",
            "refunded": "הוחזר",
        },
        "labels": {
            "length": "אורך",
            "width": "רוחב",
            "height": "גובה",
            "depth": "עומק",
            "steps": "מדרגות",
            "lacquer": "ציפוי לכה",
            "handrail": "מעקה",
        },
    },
    "es": {
        "dir": "ltr",
        "orderConfirmation": "Confirmación de Pedido",
        "orderUpdate": "Actualización del Estado del Pedido",
        "orderDetails": "Detalles del Pedido",
        "orderNumber": "Número de Pedido",
        "orderDate": "Fecha del Pedido",
        "customerName": "Cliente",
        "orderItems": "Artículos del Pedido",
        "quantity": "Cantidad",
        "subtotal": "Subtotal",
        "tax": "Impuesto",
        "shipping": "Envío",
        "discount": "Descuento",
        "total": "Total",
        "whatNext": "¿Qué sigue?",
        "processOrder": "Procesaremos tu pedido en 1-2 días hábiles",
        "contactUpdate": "Te contactaremos con actualizaciones del estado",
        "estimatedDelivery": "Tiempo estimado de entrega: 10-14 días hábiles",
        "specialInstructions": "Instrucciones Especiales",
        "questions": "¿Preguntas? Contáctanos en",
        "thankYou": "¡Gracias por elegir Kits de Madera!",
        "hello": "Hola",
        "orderUpdateMessage": "Tu pedido",
        "hasBeenUpdated": "ha sido actualizado",
        "currentStatus": "Estado Actual",
        "trackingNumber": "Número de Seguimiento",
        "status": {
            "pending": "Pedido Recibido - Pendiente de Procesamiento",
            "confirmed": "Pedido Confirmado - Procesando",
            "processing": "En Producción",
            "ready": "Listo para Recoger/Entregar",
            "shipped": "Enviado",
            "delivered": "Entregado",
            "cancelled": "Cancelado",
            "refunded": "Reembolsado",
        },
        "labels": {
            "length": "Longitud",
            "width": "Ancho",
            "height": "Altura",
            "depth": "Profundidad",
            "steps": "Escalones",
            "lacquer": "Acabado Lacado",
            "handrail": "Pasamanos",
        },
    },
}


def get_translations(language: str) -> dict:
    return TRANSLATIONS.get(language or "en", TRANSLATIONS["en"])


def format_money(amount, currency) -> str:
    code = getattr(currency, "value", currency) or "NIS"
    return f"{CURRENCY_SYMBOLS.get(str(code).upper(), '')}{amount:,.2f}"


def format_configuration(configuration: dict, t: dict) -> str:
    """'Width: 100cm, Lacquer Finish' style summary of a line item's configuration."""
    parts = []
    labels = t["labels"]
    for name, value in (configuration.get("dimensions") or {}).items():
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value:
            parts.append(f"{labels.get(name, name)}: {value:g}cm")
    for name, enabled in (configuration.get("options") or {}).items():
        if enabled is True:
            parts.append(labels.get(name, name))
    return ", ".join(parts)


class EmailService:
    """SendGrid-backed sender. One module-level instance: `email_service`."""

    def is_configured(self) -> bool:
        return bool(settings.SENDGRID_API_KEY)

    def status(self) -> dict:
        return {
            "configured": self.is_configured(),
            "provider": "sendgrid",
            "fromEmail": settings.FROM_EMAIL,
            "fromName": settings.FROM_NAME,
        }

    # --- Public senders ---

    def send_order_confirmation(self, order) -> dict:
        t = get_translations(order.language)
        html, text = self.render_order_confirmation(order, t)
        subject = f"{t['orderConfirmation']} - {order.order_number}"
        return self._send(order.customer_email, subject, html, text, category="order_confirmation")

    def send_order_status_update(self, order) -> dict:
        t = get_translations(order.language)
        html, text = self.render_status_update(order, t)
        subject = f"{t['orderUpdate']} - {order.order_number}"
        return self._send(order.customer_email, subject, html, text, category="order_status")

    def send_custom_email(self, to: str, subject: str, html: str = None, text: str = None) -> dict:
        return self._send(to, subject, html or escape(text or ""), text or "", category="custom")

    def send_test_email(self, to: str) -> dict:
        html = (
            "<h1>Wood Kits</h1>"
            "<p>This is a test email from the Wood Kits store. Email delivery is working.</p>"
        )
        text = "This is a test email from the Wood Kits store. Email delivery is working."
        return self._send(to, "Wood Kits - Test Email", html, text, category="test")

    # --- Templates ---

    def render_order_confirmation(self, order, t: dict) -> tuple:
        """Returns (html, text)."""
        currency = order.currency
        created = order.created_at.strftime("%Y-%m-%d") if order.created_at else ""
        tax_pct = f"{(order.tax_rate or 0) * 100:g}%"

        rows = []
        lines = []
        for item in order.items:
            config = format_configuration(item.configuration or {}, t)
            rows.append(
                '<tr style="border-bottom: 1px solid #eee;">'
                f'<td style="padding: 15px;"><strong style="color: #8B4513;">{escape(item.name)}</strong><br>'
                f'<small style="color: #666;">{t["quantity"]}: {item.quantity}<br>{escape(config)}</small></td>'
                f'<td style="padding: 15px; text-align: right;">{format_money(item.total_price, currency)}</td>'
                "</tr>"
            )
            lines.append(
                f"- {item.name} ({t['quantity']}: {item.quantity}) - {format_money(item.total_price, currency)}"
            )

        totals = [
            (t["subtotal"], order.subtotal),
            (f"{t['tax']} ({tax_pct})", order.tax),
        ]
        if order.shipping_cost:
            totals.append((t["shipping"], order.shipping_cost))
        if order.discount:
            totals.append((t["discount"], -order.discount))

        total_rows = "".join(
            f'<tr style="background: #f5f5f5;"><td style="padding: 15px;">{label}:</td>'
            f'<td style="padding: 15px; text-align: right;">{format_money(amount, currency)}</td></tr>'
            for label, amount in totals
        )
        notes_html = ""
        notes_text = ""
        if order.customer_notes:
            notes_html = (
                '<div style="background: #fff3cd; padding: 15px; margin: 20px 0; border-radius: 8px;">'
                f"<strong>{t['specialInstructions']}:</strong><br>{escape(order.customer_notes)}</div>"
            )
            notes_text = f"{t['specialInstructions']}: {order.customer_notes}\n"

        html = f"""<!DOCTYPE html>
<html dir="{t['dir']}">
<head><meta charset="UTF-8"><title>{t['orderConfirmation']}</title></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: #8B4513; color: white; padding: 30px; text-align: center; border-radius: 10px;">
    <h1 style="margin: 0;">{escape(settings.COMPANY_NAME)}</h1>
    <p style="margin: 10px 0 0 0;">{t['orderConfirmation']}</p>
  </div>
  <div style="background: #f9f9f9; padding: 20px; margin: 20px 0; border-radius: 8px;">
    <h2 style="color: #8B4513; margin-top: 0;">{t['orderDetails']}</h2>
    <p><strong>{t['orderNumber']}:</strong> {order.order_number}</p>
    <p><strong>{t['orderDate']}:</strong> {created}</p>
    <p><strong>{t['customerName']}:</strong> {escape(order.customer_name)}</p>
  </div>
  <h3 style="color: #8B4513;">{t['orderItems']}</h3>
  <table style="width: 100%; border-collapse: collapse;">
    {''.join(rows)}
    {total_rows}
    <tr style="background: #8B4513; color: white;">
      <td style="padding: 15px; font-weight: bold;">{t['total']}:</td>
      <td style="padding: 15px; text-align: right; font-weight: bold;">{format_money(order.total, currency)}</td>
    </tr>
  </table>
  <div style="background: #e8f5e8; padding: 20px; margin: 20px 0; border-radius: 8px;">
    <h3 style="color: #2E7D32; margin-top: 0;">{t['whatNext']}</h3>
    <ul><li>{t['processOrder']}</li><li>{t['contactUpdate']}</li><li>{t['estimatedDelivery']}</li></ul>
  </div>
  {notes_html}
  <div style="text-align: center; margin: 30px 0; color: #666;">
    <p>{t['questions']} <a href="mailto:{settings.FROM_EMAIL}">{settings.FROM_EMAIL}</a></p>
    <p>{t['thankYou']}</p>
  </div>
</body>
</html>"""

        text_totals = "\n".join(f"{label}: {format_money(amount, currency)}" for label, amount in totals)
        text = (
            f"{t['orderConfirmation']}\n\n"
            f"{t['orderNumber']}: {order.order_number}\n"
            f"{t['orderDate']}: {created}\n"
            f"{t['customerName']}: {order.customer_name}\n\n"
            f"{t['orderItems']}:\n" + "\n".join(lines) + "\n\n"
            f"{text_totals}\n"
            f"{t['total']}: {format_money(order.total, currency)}\n\n"
            f"{t['whatNext']}\n- {t['processOrder']}\n- {t['contactUpdate']}\n- {t['estimatedDelivery']}\n\n"
            f"{notes_text}"
            f"{t['questions']} {settings.FROM_EMAIL}\n\n"
            f"{t['thankYou']}\n{settings.FROM_NAME}\n"
        )
        return html, text

    def render_status_update(self, order, t: dict) -> tuple:
        """Returns (html, text)."""
        status = getattr(order.status, "value", order.status)
        status_label = t["status"].get(status, status)
        tracking_html = ""
        tracking_text = ""
        if order.tracking_number:
            tracking_html = f"<p><strong>{t['trackingNumber']}:</strong> {escape(order.tracking_number)}</p>"
            tracking_text = f"{t['trackingNumber']}: {order.tracking_number}\n"

        html = f"""<!DOCTYPE html>
<html dir="{t['dir']}">
<head><meta charset="UTF-8"><title>{t['orderUpdate']}</title></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: #8B4513; color: white; padding: 30px; text-align: center; border-radius: 10px;">
    <h1 style="margin: 0;">{escape(settings.COMPANY_NAME)}</h1>
    <p style="margin: 10px 0 0 0;">{t['orderUpdate']}</p>
  </div>
  <div style="background: #f9f9f9; padding: 20px; margin: 20px 0; border-radius: 8px;">
    <h2 style="color: #8B4513; margin-top: 0;">{t['hello']} {escape(order.customer_name)},</h2>
    <p>{t['orderUpdateMessage']} <strong>{order.order_number}</strong> {t['hasBeenUpdated']}</p>
    <div style="background: white; padding: 20px; border-radius: 8px; border-left: 4px solid #8B4513;">
      <h3 style="margin-top: 0; color: #8B4513;">{t['currentStatus']}</h3>
      <p style="font-size: 18px; font-weight: bold; color: #2E7D32; margin: 0;">{status_label}</p>
    </div>
    {tracking_html}
  </div>
  <div style="text-align: center; margin: 30px 0; color: #666;">
    <p>{t['questions']} <a href="mailto:{settings.FROM_EMAIL}">{settings.FROM_EMAIL}</a></p>
  </div>
</body>
</html>"""

        text = (
            f"{t['orderUpdate']}\n\n"
            f"{t['hello']} {order.customer_name},\n\n"
            f"{t['orderUpdateMessage']} {order.order_number} {t['hasBeenUpdated']}\n\n"
            f"{t['currentStatus']}: {status_label}\n"
            f"{tracking_text}\n"
            f"{t['questions']} {settings.FROM_EMAIL}\n\n"
            f"{settings.FROM_NAME}\n"
        )
        return html, text

    # --- Transport ---

    def _send(self, to: str, subject: str, html: str, text: str, category: str = None) -> dict:
        if not self.is_configured():
            logger.info("SendGrid not configured, skipping %s email to %s", category, to)
            return {"sent": False, "reason": "Service not configured"}

        content = []
        if text:
            content.append({"type": "text/plain", "value": text})
        if html:
            content.append({"type": "text/html", "value": html})

        body = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": settings.FROM_EMAIL, "name": settings.FROM_NAME},
            "subject": subject,
            "content": content,
        }
        if category:
            body["categories"] = [category]

        req = urllib.request.Request(
            settings.SENDGRID_API_URL,
            data=json.dumps(body).encode("utf-8"),
            headers={
                "Authorization": f"Bearer {settings.SENDGRID_API_KEY}",
                "Content-Type": "application/json",
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=30) as response:
                message_id = response.headers.get("X-Message-Id")
        except urllib.error.HTTPError as e:
            error_body = e.read().decode("utf-8", errors="replace")
            logger.error("SendGrid rejected %s email to %s: %s %s", category, to, e.code, error_body)
            raise EmailDeliveryError(f"Email provider error ({e.code})")
        except urllib.error.URLError as e:
            logger.error("SendGrid unreachable sending %s email to %s: %s", category, to, e.reason)
            raise EmailDeliveryError("Email provider unreachable")

        logger.info("Sent %s email to %s (message id %s)", category, to, message_id)
        return {"sent": True, "messageId": message_id}


email_service = EmailService()
