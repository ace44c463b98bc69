"""Outbound e-mail port used to deliver invoice links to customers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    text: str
    html: str | None = None
    reply_to: str | None = None


@dataclass(frozen=True)
class DeliveryResult:
    delivered: bool
    message_id: str | None = None
    error: str | None = None


class EmailPort(ABC):
    @abstractmethod
    def send(self, message: EmailMessage) -> DeliveryResult:
        """Hand one message to the provider.

        Provider refusals come back as ``DeliveryResult(delivered=False)``;
        only transport bugs raise.
        """
        ...
