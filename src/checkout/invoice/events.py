"""Domain events for the Invoice aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Invoice")
class InvoiceIssued:
    """An invoice number was assigned to an order and its document stored."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    invoice_number = String(required=True)
    pdf_url = String(required=True)
    total_amount = Integer(required=True)
    issued_at = DateTime(required=True)


@checkout.event(part_of="Invoice")
class InvoiceRegenerated:
    """The invoice document was re-rendered and replaced; its number is unchanged."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    invoice_number = String(required=True)
    pdf_url = String(required=True)
    regenerated_at = DateTime(required=True)
