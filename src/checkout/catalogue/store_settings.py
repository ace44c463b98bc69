"""StoreSettings aggregate: store-wide shipping terms."""

from protean.fields import Float
from protean.utils.globals import current_domain

from checkout.config import get_settings
from checkout.domain import checkout
from checkout.pricing.engine import ShippingTerms


@checkout.aggregate
class StoreSettings:
    shipping_cost = Float(required=True, min_value=0.0)
    free_shipping_threshold = Float(required=True, min_value=0.0)


def current_shipping_terms() -> ShippingTerms:
    """Shipping terms from the persisted settings, or configured defaults when none exist."""
    records = current_domain.repository_for(StoreSettings)._dao.query.all().items
    if records:
        record = records[0]
        return ShippingTerms(
            flat_cost=record.shipping_cost,
            free_shipping_threshold=record.free_shipping_threshold,
        )

    settings = get_settings()
    return ShippingTerms(
        flat_cost=settings.shipping_cost,
        free_shipping_threshold=settings.free_shipping_threshold,
    )
