"""
PDF order receipt.

Uses fpdf2 (pure Python, no system dependencies). Core fonts are latin-1
only, so localized product names outside that range are transliterated to
'?' by _safe(); amounts are printed with the ISO-ish code (NIS 590.00).
"""

from datetime import datetime

from fpdf import FPDF

from .config import settings


def _fmt(amount, currency="NIS") -> str:
    code = getattr(currency, "value", currency) or ""
    return f"{code} {amount:,.2f}".strip()


def _safe(text) -> str:
    """Make text safe for fpdf2 core fonts (latin-1)."""
    return (
        str(text or "")
        .replace("—", " - ")  # em dash
        .replace("–", "-")    # en dash
        .replace("“", '"')
        .replace("”", '"')
        .replace("‘", "'")
        .replace("’", "'")
        .replace("₪", "NIS ")  # shekel sign
        .encode("latin-1", errors="replace")
        .decode("latin-1")
    )


def _address_lines(address) -> list:
    if isinstance(address, dict):
        street = address.get("street") or ""
        city = " ".join(p for p in [address.get("city"), address.get("postalCode")] if p)
        return [line for line in [street, city, address.get("country")] if line]
    return [address] if address else []


def _configuration_summary(configuration: dict) -> str:
    parts = []
    for name, value in (configuration.get("dimensions") or {}).items():
        parts.append(f"{name} {value:g}cm" if isinstance(value, (int, float)) else f"{name} {value}")
    for name, enabled in (configuration.get("options") or {}).items():
        if enabled is True:
            parts.append(name)
    return ", ".join(parts)


class ReceiptPDF(FPDF):
    """Single-section receipt layout."""

    def __init__(self):
        super().__init__()
        self.set_auto_page_break(auto=True, margin=20)

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(150, 150, 150)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="C")

    def section_header(self, title):
        self.set_font("Helvetica", "B", 11)
        self.set_fill_color(139, 69, 19)  # wood brown
        self.set_text_color(255, 255, 255)
        self.cell(0, 8, f"  {title}", fill=True, new_x="LMARGIN", new_y="NEXT")
        self.set_text_color(0, 0, 0)
        self.ln(2)

    def table_header(self, cols):
        """cols: [(label, width), ...]"""
        self.set_font("Helvetica", "B", 8)
        self.set_fill_color(240, 240, 240)
        for label, width in cols:
            align = "R" if label in ("Qty", "Unit", "Total") else "L"
            self.cell(width, 6, label, border="B", fill=True, align=align)
        self.ln()

    def total_row(self, label, amount, bold=False):
        self.set_font("Helvetica", "B" if bold else "", 10)
        self.cell(130, 6, label)
        self.cell(60, 6, amount, align="R")
        self.ln()


def generate_receipt_pdf(order) -> bytes:
    """
    Args:
        order: models.Order with items loaded

    Returns:
        PDF bytes
    """
    currency = order.currency
    pdf = ReceiptPDF()
    pdf.alias_nb_pages()
    pdf.add_page()

    # Header
    pdf.set_font("Helvetica", "B", 20)
    pdf.cell(0, 10, _safe(settings.COMPANY_NAME), new_x="LMARGIN", new_y="NEXT")
    contact = " | ".join(p for p in [settings.COMPANY_EMAIL, settings.COMPANY_PHONE] if p)
    if contact:
        pdf.set_font("Helvetica", "", 9)
        pdf.set_text_color(100, 100, 100)
        pdf.cell(0, 5, _safe(contact), new_x="LMARGIN", new_y="NEXT")
        pdf.set_text_color(0, 0, 0)
    pdf.ln(4)

    created = order.created_at or datetime.utcnow()
    pdf.set_font("Helvetica", "B", 14)
    pdf.cell(0, 8, f"RECEIPT #{order.order_number}", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 10)
    pdf.cell(0, 5, f"Date: {created.strftime('%B %d, %Y')}", new_x="LMARGIN", new_y="NEXT")
    status = getattr(order.payment_status, "value", order.payment_status)
    pdf.cell(0, 5, f"Payment: {status}", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(3)

    # Customer
    pdf.section_header("CUSTOMER")
    pdf.set_font("Helvetica", "", 9)
    for line in [order.customer_name, order.customer_email, order.customer_phone, *_address_lines(order.customer_address)]:
        pdf.cell(0, 5, _safe(line), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(3)

    # Items
    pdf.section_header("ITEMS")
    cols = [("Product", 60), ("Configuration", 60), ("Qty", 15), ("Unit", 25), ("Total", 30)]
    pdf.table_header(cols)
    pdf.set_font("Helvetica", "", 8)
    for item in order.items:
        config = _configuration_summary(item.configuration or {})
        pdf.cell(60, 5.5, _safe(item.name[:38]))
        pdf.cell(60, 5.5, _safe(config[:45]))
        pdf.cell(15, 5.5, str(item.quantity), align="R")
        pdf.cell(25, 5.5, f"{item.unit_price:,.2f}", align="R")
        pdf.cell(30, 5.5, f"{item.total_price:,.2f}", align="R")
        pdf.ln()
    pdf.ln(4)

    # Totals
    pdf.section_header("TOTAL")
    pdf.total_row("Subtotal", _fmt(order.subtotal, currency))
    pdf.total_row(f"VAT ({(order.tax_rate or 0) * 100:g}%)", _fmt(order.tax, currency))
    if order.shipping_cost:
        pdf.total_row("Shipping", _fmt(order.shipping_cost, currency))
    if order.discount:
        pdf.total_row("Discount", _fmt(-order.discount, currency))

    pdf.ln(1)
    pdf.set_fill_color(139, 69, 19)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font("Helvetica", "B", 13)
    pdf.cell(130, 10, "  ORDER TOTAL", fill=True)
    pdf.cell(60, 10, f"{_fmt(order.total, currency)}  ", fill=True, align="R")
    pdf.set_text_color(0, 0, 0)
    pdf.ln(14)

    pdf.set_font("Helvetica", "I", 8)
    pdf.set_text_color(100, 100, 100)
    pdf.cell(0, 4, "Thank you for choosing Wood Kits!", new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(0, 0, 0)

    return bytes(pdf.output())
