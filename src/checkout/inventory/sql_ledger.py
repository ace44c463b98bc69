"""Relational stock ledger backed by SQLAlchemy Core.

Every ``reserve`` runs in one transaction made of guarded conditional
updates (``quantity = quantity - n WHERE quantity >= n``). A SKU whose update
touches no row fails the whole transaction, which rolls back every decrement
already applied in it.
"""

import structlog
from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, select, update
from sqlalchemy.engine import Engine

from checkout.inventory.port import InsufficientStock, StockItem, StockLedger, consolidate

logger = structlog.get_logger(__name__)

metadata = MetaData()

inventory_stock = Table(
    "inventory_stock",
    metadata,
    Column("product_id", String(64), primary_key=True),
    # Empty string when the row tracks the product itself rather than a variant
    Column("variant_id", String(64), primary_key=True, default=""),
    Column("quantity", Integer, nullable=False, default=0),
)


class SqlStockLedger(StockLedger):
    def __init__(self, engine: Engine | str) -> None:
        self.engine = create_engine(engine) if isinstance(engine, str) else engine

    def create_tables(self) -> None:
        metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        metadata.drop_all(self.engine)

    def reserve(self, items: list[StockItem]) -> None:
        requested = consolidate(items)
        # Stable ordering keeps row locks acquired in the same order across transactions
        ordered = sorted(requested.items())

        with self.engine.begin() as conn:
            shortfalls = []
            for (product_id, variant_id), qty in ordered:
                result = conn.execute(
                    update(inventory_stock)
                    .where(
                        inventory_stock.c.product_id == product_id,
                        inventory_stock.c.variant_id == variant_id,
                        inventory_stock.c.quantity >= qty,
                    )
                    .values(quantity=inventory_stock.c.quantity - qty)
                )
                if result.rowcount != 1:
                    shortfalls.append(
                        {"product_id": product_id, "variant_id": variant_id or None, "requested": qty}
                    )
            if shortfalls:
                raise InsufficientStock(shortfalls)

        logger.debug("Stock reserved", skus=len(requested))

    def release(self, items: list[StockItem]) -> None:
        returned = consolidate(items)
        with self.engine.begin() as conn:
            for (product_id, variant_id), qty in sorted(returned.items()):
                result = conn.execute(
                    update(inventory_stock)
                    .where(
                        inventory_stock.c.product_id == product_id,
                        inventory_stock.c.variant_id == variant_id,
                    )
                    .values(quantity=inventory_stock.c.quantity + qty)
                )
                if result.rowcount != 1:
                    conn.execute(
                        inventory_stock.insert().values(product_id=product_id, variant_id=variant_id, quantity=qty)
                    )

        logger.debug("Stock released", skus=len(returned))

    def available(self, product_id: str, variant_id: str | None = None) -> int:
        product_key, variant_key = StockItem(product_id=product_id, quantity=1, variant_id=variant_id).sku_key
        with self.engine.connect() as conn:
            quantity = conn.execute(
                select(inventory_stock.c.quantity).where(
                    inventory_stock.c.product_id == product_key,
                    inventory_stock.c.variant_id == variant_key,
                )
            ).scalar()
        return quantity or 0

    def set_stock(self, product_id: str, quantity: int, variant_id: str | None = None) -> None:
        if quantity < 0:
            raise ValueError("Stock quantity cannot be negative")
        product_key, variant_key = StockItem(product_id=product_id, quantity=1, variant_id=variant_id).sku_key
        with self.engine.begin() as conn:
            result = conn.execute(
                update(inventory_stock)
                .where(
                    inventory_stock.c.product_id == product_key,
                    inventory_stock.c.variant_id == variant_key,
                )
                .values(quantity=quantity)
            )
            if result.rowcount != 1:
                conn.execute(
                    inventory_stock.insert().values(product_id=product_key, variant_id=variant_key, quantity=quantity)
                )
