"""Invoice PDF rendering with reportlab.

``render_invoice`` is a pure function of an ``InvoiceDocument`` snapshot.
The canvas is created in reportlab's invariant mode, which pins the
creation date and document id, so identical snapshots render to identical
bytes.
"""

from dataclasses import dataclass
from datetime import datetime
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

GOLD = colors.Color(0.72, 0.58, 0.25)
GRAY = colors.Color(0.4, 0.4, 0.4)
LIGHT_GRAY = colors.Color(0.93, 0.93, 0.93)

ROWS_PER_PAGE = 22


@dataclass(frozen=True)
class InvoiceLine:
    name: str
    sku: str
    quantity: int
    unit_price: float
    line_total: float


@dataclass(frozen=True)
class InvoiceDocument:
    store_name: str
    support_email: str
    invoice_number: str
    issued_on: datetime
    order_id: str
    order_number: str
    currency: str
    payment_status: str
    gateway_payment_id: str | None
    billed_to: tuple[str, ...]
    lines: tuple[InvoiceLine, ...]
    subtotal: float
    bundle_savings: float
    discount: float
    coupon_code: str | None
    shipping: float
    total: int


def money(currency: str, amount: float) -> str:
    # The standard PDF fonts carry no rupee glyph
    symbol = "Rs." if currency == "INR" else currency
    return f"{symbol} {amount:,.2f}"


def render_invoice(document: InvoiceDocument) -> bytes:
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4, invariant=1)
    pdf.setTitle(f"Invoice {document.invoice_number}")
    pdf.setAuthor(document.store_name)

    _, height = A4
    y = _draw_header(pdf, document, height)
    y = _draw_parties(pdf, document, y)
    y = _draw_items(pdf, document, y, height)
    y = _draw_totals(pdf, document, y)
    _draw_footer(pdf, y)

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def _text(pdf, x, y, value, size=10, bold=False, color=colors.black):
    pdf.setFont("Helvetica-Bold" if bold else "Helvetica", size)
    pdf.setFillColor(color)
    pdf.drawString(x, y, value)


def _draw_header(pdf, document, height):
    top = height - 60
    _text(pdf, 50, top, document.store_name.upper(), size=24, bold=True, color=GOLD)
    _text(pdf, 50, top - 20, f"Support: {document.support_email}", color=GRAY)
    _text(pdf, 400, top, "TAX INVOICE", size=16, bold=True)

    info = [
        ("Invoice No", document.invoice_number),
        ("Date", document.issued_on.strftime("%d %b %Y")),
        ("Order ID", document.order_number),
        ("Payment Mode", "Online"),
        ("Status", document.payment_status.title()),
    ]
    y = top - 50
    for label, value in info:
        _text(pdf, 330, y, f"{label}:", bold=True)
        _text(pdf, 430, y, value)
        y -= 15
    return y - 20


def _draw_parties(pdf, document, y):
    _text(pdf, 50, y, "Billed To:", size=12, bold=True)
    _text(pdf, 300, y, "Shipped To:", size=12, bold=True)
    _text(pdf, 300, y - 18, "Same as billing address")

    line_y = y - 18
    for line in document.billed_to:
        _text(pdf, 50, line_y, line)
        line_y -= 14

    y = min(line_y, y - 40) - 20
    _text(pdf, 50, y, "PAYMENT DETAILS", size=12, bold=True, color=GOLD)
    _text(pdf, 50, y - 20, f"Transaction ID: {document.gateway_payment_id or 'N/A'}")
    _text(pdf, 300, y - 20, f"Status: {document.payment_status.title()}")
    return y - 50


def _draw_table_header(pdf, y):
    pdf.setFillColor(LIGHT_GRAY)
    pdf.rect(40, y - 7, 520, 22, stroke=0, fill=1)
    for x, label in ((50, "Item"), (270, "SKU"), (360, "Qty"), (410, "Price"), (490, "Total")):
        _text(pdf, x, y, label, bold=True)
    return y - 22


def _draw_items(pdf, document, y, height):
    y = _draw_table_header(pdf, y)
    for index, line in enumerate(document.lines):
        if index and index % ROWS_PER_PAGE == 0:
            pdf.showPage()
            y = _draw_table_header(pdf, height - 60)
        _text(pdf, 50, y, line.name[:40], size=9)
        _text(pdf, 270, y, line.sku or "N/A", size=9)
        _text(pdf, 360, y, str(line.quantity), size=9)
        _text(pdf, 410, y, money(document.currency, line.unit_price), size=9)
        _text(pdf, 490, y, money(document.currency, line.line_total), size=9)
        y -= 18
    return y - 10


def _draw_totals(pdf, document, y):
    pdf.setStrokeColor(LIGHT_GRAY)
    pdf.line(40, y + 10, 560, y + 10)

    rows = [("Subtotal", money(document.currency, document.subtotal + document.bundle_savings))]
    if document.bundle_savings:
        rows.append(("Bundle Savings", f"- {money(document.currency, document.bundle_savings)}"))
    if document.discount:
        label = f"Discount ({document.coupon_code})" if document.coupon_code else "Discount"
        rows.append((label, f"- {money(document.currency, document.discount)}"))
    rows.append(("Shipping", "Free" if not document.shipping else money(document.currency, document.shipping)))

    y -= 10
    for label, value in rows:
        _text(pdf, 350, y, label)
        _text(pdf, 470, y, value)
        y -= 16

    pdf.setFillColor(LIGHT_GRAY)
    pdf.rect(340, y - 7, 220, 24, stroke=0, fill=1)
    _text(pdf, 350, y, "Total", size=11, bold=True)
    _text(pdf, 470, y, money(document.currency, document.total), size=11, bold=True)

    return y - 40


def _draw_footer(pdf, y):
    _text(pdf, 50, y, "Invoice Note:", bold=True)
    _text(
        pdf,
        50,
        y - 15,
        "This is a system-generated invoice and does not require a physical signature.",
        size=9,
        color=GRAY,
    )
