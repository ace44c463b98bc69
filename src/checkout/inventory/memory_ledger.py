"""In-process stock ledger for development and tests."""

import threading

import structlog

from checkout.inventory.port import InsufficientStock, StockItem, StockLedger, consolidate

logger = structlog.get_logger(__name__)


class InMemoryStockLedger(StockLedger):
    """Stock ledger guarded by a single lock.

    The check-then-apply in ``reserve`` happens under the lock, so concurrent
    reservations against the same SKU never oversell.
    """

    def __init__(self) -> None:
        self._stock: dict[tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def reserve(self, items: list[StockItem]) -> None:
        requested = consolidate(items)
        with self._lock:
            shortfalls = [
                {
                    "product_id": pid,
                    "variant_id": vid or None,
                    "requested": qty,
                    "available": self._stock.get((pid, vid), 0),
                }
                for (pid, vid), qty in requested.items()
                if self._stock.get((pid, vid), 0) < qty
            ]
            if shortfalls:
                raise InsufficientStock(shortfalls)

            for key, qty in requested.items():
                self._stock[key] -= qty

        logger.debug("Stock reserved", skus=len(requested))

    def release(self, items: list[StockItem]) -> None:
        returned = consolidate(items)
        with self._lock:
            for key, qty in returned.items():
                self._stock[key] = self._stock.get(key, 0) + qty

        logger.debug("Stock released", skus=len(returned))

    def available(self, product_id: str, variant_id: str | None = None) -> int:
        key = StockItem(product_id=product_id, quantity=1, variant_id=variant_id).sku_key
        with self._lock:
            return self._stock.get(key, 0)

    def set_stock(self, product_id: str, quantity: int, variant_id: str | None = None) -> None:
        if quantity < 0:
            raise ValueError("Stock quantity cannot be negative")
        key = StockItem(product_id=product_id, quantity=1, variant_id=variant_id).sku_key
        with self._lock:
            self._stock[key] = quantity
