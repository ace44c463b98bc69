"""Stock ledger factory.

Provides get_ledger() / set_ledger() to swap implementations:
- SqlStockLedger when a database URL is configured
- InMemoryStockLedger for development and testing
"""

from checkout.config import get_settings
from checkout.inventory.port import StockLedger

_current_ledger: StockLedger | None = None


def get_ledger() -> StockLedger:
    """Return the current stock ledger, building it from settings on first use."""
    global _current_ledger
    if _current_ledger is None:
        database_url = get_settings().database_url
        if database_url:
            from checkout.inventory.sql_ledger import SqlStockLedger

            _current_ledger = SqlStockLedger(database_url)
        else:
            from checkout.inventory.memory_ledger import InMemoryStockLedger

            _current_ledger = InMemoryStockLedger()
    return _current_ledger


def set_ledger(ledger: StockLedger) -> None:
    """Override the active ledger (useful for tests)."""
    global _current_ledger
    _current_ledger = ledger


def reset_ledger() -> None:
    """Reset to the settings-driven default."""
    global _current_ledger
    _current_ledger = None
