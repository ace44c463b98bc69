"""Stock ledger port (abstract interface).

A ledger holds available quantity per SKU, where a SKU is a product or one
of its variants. ``reserve`` is all-or-nothing across the whole item list and
must serialize concurrent callers for the same SKU; ``release`` puts back
exactly what a prior successful ``reserve`` took.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class StockItem:
    product_id: str
    quantity: int
    variant_id: str | None = None

    @property
    def sku_key(self) -> tuple[str, str]:
        return str(self.product_id), str(self.variant_id) if self.variant_id else ""


class InsufficientStock(Exception):  # noqa: N818
    """Raised when at least one SKU in a reservation cannot be covered."""

    def __init__(self, shortfalls: list[dict]):
        self.shortfalls = shortfalls
        skus = ", ".join(f"{s['product_id']}/{s['variant_id'] or '-'}" for s in shortfalls)
        super().__init__(f"Insufficient stock for {skus}")


def consolidate(items: list[StockItem]) -> dict[tuple[str, str], int]:
    """Sum requested quantities per SKU so each SKU is decremented once."""
    totals: dict[tuple[str, str], int] = {}
    for item in items:
        if item.quantity < 1:
            raise ValueError(f"Reservation quantity must be positive, got {item.quantity}")
        totals[item.sku_key] = totals.get(item.sku_key, 0) + item.quantity
    return totals


class StockLedger(ABC):
    """Abstract stock ledger."""

    @abstractmethod
    def reserve(self, items: list[StockItem]) -> None:
        """Decrement every item's stock, or none of them.

        Raises:
            InsufficientStock: when any SKU cannot cover its requested quantity.
        """
        ...

    @abstractmethod
    def release(self, items: list[StockItem]) -> None:
        """Return previously reserved quantities to stock."""
        ...

    @abstractmethod
    def available(self, product_id: str, variant_id: str | None = None) -> int:
        """Current available quantity for one SKU (0 when unknown)."""
        ...

    @abstractmethod
    def set_stock(self, product_id: str, quantity: int, variant_id: str | None = None) -> None:
        """Set the available quantity for one SKU."""
        ...
