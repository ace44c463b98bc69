"""Bundle aggregate: a set of products sold together under one price rule."""

from protean.fields import Boolean, Float, String

from checkout.domain import checkout
from checkout.pricing.engine import BundlePriceType, BundleTerms


@checkout.aggregate
class Bundle:
    name = String(required=True, max_length=255)
    price_type = String(required=True, choices=BundlePriceType, default=BundlePriceType.FIXED.value)
    price_value = Float(required=True, min_value=0.0)
    is_active = Boolean(default=True)

    def terms(self) -> BundleTerms:
        return BundleTerms(
            bundle_id=str(self.id),
            price_type=self.price_type,
            price_value=self.price_value,
        )
