"""Checkout bounded context: checkout, payment reconciliation and invoicing.

Turns a shopping cart into a paid, inventory-backed order: server-side
pricing, atomic stock reservation, gateway intent creation, idempotent
webhook reconciliation and exactly-once invoice issuance.
"""

import structlog
from protean.domain import Domain

checkout = Domain(name="checkout")

logger = structlog.get_logger(__name__)
