"""Invoice aggregate (CQRS).

The invoice's identity is its order's id, so an order can never hold two
invoice rows. ``invoice_number`` is set once at issuance; regeneration only
replaces the stored document.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.invoice.events import InvoiceIssued, InvoiceRegenerated


class InvoiceStatus(Enum):
    ISSUED = "issued"


@checkout.aggregate
class Invoice:
    order_id = Identifier(required=True, unique=True)
    order_number = String(required=True, max_length=50)
    invoice_number = String(required=True, max_length=50, unique=True)
    storage_key = String(required=True, max_length=255)
    pdf_url = String(required=True, max_length=1000)
    total_amount = Integer(required=True, min_value=0)
    status = String(choices=InvoiceStatus, default=InvoiceStatus.ISSUED.value)
    regeneration_count = Integer(default=0)
    issued_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def issue(cls, order_id, order_number, invoice_number, storage_key, pdf_url, total_amount):
        now = datetime.now(UTC)
        invoice = cls(
            id=str(order_id),
            order_id=order_id,
            order_number=order_number,
            invoice_number=invoice_number,
            storage_key=storage_key,
            pdf_url=pdf_url,
            total_amount=total_amount,
            status=InvoiceStatus.ISSUED.value,
            issued_at=now,
            updated_at=now,
        )
        invoice.raise_(
            InvoiceIssued(
                invoice_id=str(invoice.id),
                order_id=str(order_id),
                invoice_number=invoice_number,
                pdf_url=pdf_url,
                total_amount=total_amount,
                issued_at=now,
            )
        )
        return invoice

    def replace_document(self, storage_key, pdf_url):
        now = datetime.now(UTC)
        self.storage_key = storage_key
        self.pdf_url = pdf_url
        self.regeneration_count = (self.regeneration_count or 0) + 1
        self.updated_at = now

        self.raise_(
            InvoiceRegenerated(
                invoice_id=str(self.id),
                order_id=str(self.order_id),
                invoice_number=self.invoice_number,
                pdf_url=pdf_url,
                regenerated_at=now,
            )
        )


def find_invoice(order_id) -> Invoice | None:
    try:
        return current_domain.repository_for(Invoice).get(str(order_id))
    except ObjectNotFoundError:
        return None


@checkout.command(part_of="Invoice")
class IssueInvoice:
    """Insert the order's invoice, or replace the document of the existing one."""

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    invoice_number = String(required=True, max_length=50)
    storage_key = String(required=True, max_length=255)
    pdf_url = String(required=True, max_length=1000)
    total_amount = Integer(required=True)


@checkout.command_handler(part_of=Invoice)
class IssueInvoiceHandler:
    @handle(IssueInvoice)
    def issue_invoice(self, command):
        """Returns the invoice number that ended up persisted for the order."""
        repo = current_domain.repository_for(Invoice)
        invoice = find_invoice(command.order_id)

        if invoice is None:
            invoice = Invoice.issue(
                order_id=command.order_id,
                order_number=command.order_number,
                invoice_number=command.invoice_number,
                storage_key=command.storage_key,
                pdf_url=command.pdf_url,
                total_amount=command.total_amount,
            )
        else:
            invoice.replace_document(storage_key=command.storage_key, pdf_url=command.pdf_url)

        repo.add(invoice)
        return invoice.invoice_number
