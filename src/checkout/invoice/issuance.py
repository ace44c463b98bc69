"""Invoice issuance: ``ensure_invoice`` and the snapshot it renders from.

Called from the payment-capture path and from the manual regenerate
endpoint. The document is rebuilt only from figures frozen on the order, so
regenerating it after a catalogue price change reproduces the original
amounts.
"""

from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from checkout.config import get_settings
from checkout.errors import CheckoutValidationError
from checkout.invoice.document import InvoiceDocument, InvoiceLine, render_invoice
from checkout.invoice.invoice import IssueInvoice, find_invoice
from checkout.invoice.sequence import get_sequence
from checkout.order.order import Order, OrderStatus, load_order
from checkout.payment.transaction import PaymentTransaction
from checkout.storage import get_document_store

logger = structlog.get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True)
class InvoiceResult:
    invoice_number: str
    pdf_url: str
    newly_issued: bool


def storage_key_for(order: Order) -> str:
    return f"{order.order_number}.pdf"


def build_document(order: Order, invoice_number: str, gateway_payment_id: str | None) -> InvoiceDocument:
    settings = get_settings()
    address = order.shipping_address
    billed_to = tuple(
        line
        for line in (
            address.full_name,
            address.address_line_1,
            address.address_line_2,
            ", ".join(part for part in (address.city, address.state, address.pincode) if part),
            address.country,
            f"Phone: {address.phone}" if address.phone else None,
            address.email,
        )
        if line
    )
    lines = tuple(
        InvoiceLine(
            name=f"{item.product_name} ({item.variant_name})" if item.variant_name else item.product_name,
            sku=item.sku or "",
            quantity=item.quantity,
            unit_price=item.unit_price,
            line_total=item.line_total,
        )
        # Entity order from the store is not guaranteed; sort for a stable layout
        for item in sorted(order.items, key=lambda i: (i.product_name, str(i.variant_id or ""), str(i.id)))
    )
    return InvoiceDocument(
        store_name=settings.store_name,
        support_email=settings.store_support_email,
        invoice_number=invoice_number,
        issued_on=order.paid_at or order.created_at,
        order_id=str(order.id),
        order_number=order.order_number,
        currency=order.currency,
        payment_status=order.payment_status,
        gateway_payment_id=gateway_payment_id,
        billed_to=billed_to,
        lines=lines,
        subtotal=order.subtotal,
        bundle_savings=order.bundle_savings or 0.0,
        discount=order.discount_amount or 0.0,
        coupon_code=order.coupon_code,
        shipping=order.shipping_amount or 0.0,
        total=order.total_amount,
    )


def ensure_invoice(order_id) -> InvoiceResult:
    """Issue the order's invoice, or re-render and replace the existing one.

    The invoice number of an existing invoice is always reused. A new number
    is taken from the sequence only when no invoice exists yet.
    """
    order = load_order(order_id)
    if order.status != OrderStatus.PAID.value:
        raise CheckoutValidationError("Invoices can only be generated for paid orders.")

    existing = find_invoice(order.id)
    invoice_number = existing.invoice_number if existing else get_sequence().next()

    transaction = current_domain.repository_for(PaymentTransaction).for_order(order.id)
    gateway_payment_id = transaction.gateway_payment_id if transaction else None

    store = get_document_store()
    key = storage_key_for(order)
    document = build_document(order, invoice_number, gateway_payment_id)
    pdf_url = store.put(key, render_invoice(document), PDF_CONTENT_TYPE)

    persisted_number = current_domain.process(
        IssueInvoice(
            order_id=str(order.id),
            order_number=order.order_number,
            invoice_number=invoice_number,
            storage_key=key,
            pdf_url=pdf_url,
            total_amount=order.total_amount,
        ),
        asynchronous=False,
    )

    if persisted_number != invoice_number:
        # A concurrent issuance persisted first; its number stands and ours is skipped
        logger.warning(
            "Invoice number superseded by concurrent issuance",
            order_id=str(order.id),
            allocated=invoice_number,
            persisted=persisted_number,
        )
        pdf_url = store.put(
            key, render_invoice(build_document(order, persisted_number, gateway_payment_id)), PDF_CONTENT_TYPE
        )

    logger.info(
        "Invoice issued" if existing is None else "Invoice regenerated",
        order_id=str(order.id),
        invoice_number=persisted_number,
    )
    return InvoiceResult(
        invoice_number=persisted_number,
        pdf_url=pdf_url,
        newly_issued=existing is None and persisted_number == invoice_number,
    )
