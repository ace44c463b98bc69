"""Invoice number sequence: a monotonic counter with a single atomic ``next()``.

Numbers are never reused. A number handed out to an issuance that then
loses the race to persist its invoice is skipped, leaving a gap.
"""

import threading
from abc import ABC, abstractmethod

import structlog
from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from checkout.config import get_settings

logger = structlog.get_logger(__name__)

INVOICE_PREFIX = "INV"


def format_invoice_number(value: int) -> str:
    return f"{INVOICE_PREFIX}-{value:04d}"


class InvoiceNumberSequence(ABC):
    @abstractmethod
    def next(self) -> str:
        """Allocate and return the next invoice number."""
        ...


class InMemoryInvoiceNumberSequence(InvoiceNumberSequence):
    def __init__(self, start: int = 0) -> None:
        self._value = start
        self._lock = threading.Lock()

    def next(self) -> str:
        with self._lock:
            self._value += 1
            return format_invoice_number(self._value)


metadata = MetaData()

sequence_counters = Table(
    "sequence_counters",
    metadata,
    Column("name", String(50), primary_key=True),
    Column("value", Integer, nullable=False, default=0),
)


class SqlInvoiceNumberSequence(InvoiceNumberSequence):
    """Counter row incremented and read back inside one transaction."""

    COUNTER_NAME = "invoice_number"

    def __init__(self, engine: Engine | str) -> None:
        self.engine = create_engine(engine) if isinstance(engine, str) else engine

    def create_tables(self) -> None:
        metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        metadata.drop_all(self.engine)

    def next(self) -> str:
        try:
            return format_invoice_number(self._increment())
        except IntegrityError:
            # Another process created the counter row first
            return format_invoice_number(self._increment())

    def _increment(self) -> int:
        counter = sequence_counters.c
        with self.engine.begin() as conn:
            result = conn.execute(
                update(sequence_counters)
                .where(counter.name == self.COUNTER_NAME)
                .values(value=counter.value + 1)
            )
            if result.rowcount != 1:
                conn.execute(sequence_counters.insert().values(name=self.COUNTER_NAME, value=1))
                return 1
            return conn.execute(select(counter.value).where(counter.name == self.COUNTER_NAME)).scalar_one()


_current_sequence: InvoiceNumberSequence | None = None


def get_sequence() -> InvoiceNumberSequence:
    """Return the current sequence, building it from settings on first use."""
    global _current_sequence
    if _current_sequence is None:
        database_url = get_settings().database_url
        if database_url:
            _current_sequence = SqlInvoiceNumberSequence(database_url)
        else:
            _current_sequence = InMemoryInvoiceNumberSequence()
    return _current_sequence


def set_sequence(sequence: InvoiceNumberSequence) -> None:
    global _current_sequence
    _current_sequence = sequence


def reset_sequence() -> None:
    global _current_sequence
    _current_sequence = None
