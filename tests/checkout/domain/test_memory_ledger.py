"""Domain tests for the in-memory stock ledger.

Covers:
- All-or-nothing reservation across SKUs
- Variant SKUs are tracked separately from the product SKU
- Duplicate SKUs in one request are consolidated
- Concurrent reservations never oversell
"""

import threading

import pytest
from checkout.inventory.memory_ledger import InMemoryStockLedger
from checkout.inventory.port import InsufficientStock, StockItem


class TestReserveAndRelease:
    def test_reserve_decrements_stock(self):
        ledger = InMemoryStockLedger()
        ledger.set_stock("prod-a", 10)

        ledger.reserve([StockItem("prod-a", 3)])

        assert ledger.available("prod-a") == 7

    def test_shortfall_touches_nothing(self):
        ledger = InMemoryStockLedger()
        ledger.set_stock("prod-a", 10)
        ledger.set_stock("prod-b", 1)

        with pytest.raises(InsufficientStock) as exc_info:
            ledger.reserve([StockItem("prod-a", 3), StockItem("prod-b", 2)])

        assert ledger.available("prod-a") == 10
        assert ledger.available("prod-b") == 1
        assert exc_info.value.shortfalls[0]["product_id"] == "prod-b"

    def test_unknown_sku_has_no_stock(self):
        ledger = InMemoryStockLedger()

        with pytest.raises(InsufficientStock):
            ledger.reserve([StockItem("ghost", 1)])

    def test_variant_stock_is_separate(self):
        ledger = InMemoryStockLedger()
        ledger.set_stock("prod-a", 5)
        ledger.set_stock("prod-a", 1, variant_id="var-1")

        ledger.reserve([StockItem("prod-a", 1, variant_id="var-1")])

        assert ledger.available("prod-a", variant_id="var-1") == 0
        assert ledger.available("prod-a") == 5

    def test_duplicate_lines_are_consolidated(self):
        ledger = InMemoryStockLedger()
        ledger.set_stock("prod-a", 3)

        with pytest.raises(InsufficientStock):
            ledger.reserve([StockItem("prod-a", 2), StockItem("prod-a", 2)])

        assert ledger.available("prod-a") == 3

    def test_release_returns_exact_quantities(self):
        ledger = InMemoryStockLedger()
        ledger.set_stock("prod-a", 10)
        items = [StockItem("prod-a", 4)]
        ledger.reserve(items)

        ledger.release(items)

        assert ledger.available("prod-a") == 10

    def test_non_positive_quantity_is_rejected(self):
        ledger = InMemoryStockLedger()
        ledger.set_stock("prod-a", 10)

        with pytest.raises(ValueError):
            ledger.reserve([StockItem("prod-a", 0)])


class TestConcurrentReservations:
    def test_successes_never_exceed_stock(self):
        ledger = InMemoryStockLedger()
        ledger.set_stock("prod-a", 5)
        successes = []
        failures = []
        start = threading.Barrier(12)

        def attempt():
            start.wait()
            try:
                ledger.reserve([StockItem("prod-a", 1)])
                successes.append(1)
            except InsufficientStock:
                failures.append(1)

        threads = [threading.Thread(target=attempt) for _ in range(12)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(successes) == 5
        assert len(failures) == 7
        assert ledger.available("prod-a") == 0
