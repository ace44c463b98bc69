"""Domain events for the PaymentTransaction aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="PaymentTransaction")
class TransactionOpened:
    """A remote payment intent was created for an order."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    order_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    amount = Integer(required=True)
    currency = String(required=True)
    opened_at = DateTime(required=True)


@checkout.event(part_of="PaymentTransaction")
class TransactionCaptured:
    """The gateway reported the payment as captured."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    order_id = Identifier(required=True)
    gateway_payment_id = String(required=True)
    captured_at = DateTime(required=True)


@checkout.event(part_of="PaymentTransaction")
class TransactionFailed:
    """The payment attempt ended without a capture."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    order_id = Identifier(required=True)
    gateway_payment_id = String()
    failed_at = DateTime(required=True)


@checkout.event(part_of="PaymentTransaction")
class DisputeStatusChanged:
    """A chargeback was opened, progressed or resolved."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    gateway_event = String(required=True)
    changed_at = DateTime(required=True)


@checkout.event(part_of="PaymentTransaction")
class TransactionRefunded:
    """Captured money was returned to the customer through the gateway."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    order_id = Identifier(required=True)
    gateway_payment_id = String(required=True)
    gateway_refund_id = String(required=True)
    amount = Integer(required=True)
    refunded_at = DateTime(required=True)
