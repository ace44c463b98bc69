"""In-memory e-mail adapter for development and tests."""

from uuid import uuid4

from checkout.notifications.email_port import DeliveryResult, EmailMessage, EmailPort


class FakeEmailAdapter(EmailPort):
    """Keeps every accepted message in ``outbox``. ``fail_with`` makes it refuse delivery."""

    def __init__(self):
        self.outbox: list[EmailMessage] = []
        self.failure: str | None = None

    def fail_with(self, reason: str = "Mailbox unavailable") -> None:
        self.failure = reason

    def send(self, message: EmailMessage) -> DeliveryResult:
        if self.failure:
            return DeliveryResult(delivered=False, error=self.failure)

        self.outbox.append(message)
        return DeliveryResult(delivered=True, message_id=f"email-{uuid4().hex[:12]}")
