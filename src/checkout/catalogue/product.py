"""Product aggregate with ProductVariant entity.

Only the fields that feed server-side pricing and the order snapshot live
here: names, SKUs and prices. Catalogue editing is handled elsewhere.
"""

from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, HasMany, String

from checkout.domain import checkout


@checkout.entity(part_of="Product")
class ProductVariant:
    """A purchasable variant of a product.

    Either ``absolute_price`` replaces the product price outright, or
    ``price_adjustment`` is added to the product's base price.
    """

    name = String(required=True, max_length=255)
    sku = String(max_length=50)
    price_adjustment = Float()
    absolute_price = Float(min_value=0.0)


@checkout.aggregate
class Product:
    name = String(required=True, max_length=255)
    sku = String(max_length=50)
    base_price = Float(required=True, min_value=0.0)
    discount_price = Float(min_value=0.0)
    is_active = Boolean(default=True)
    variants = HasMany(ProductVariant)

    def add_variant(self, name, sku=None, price_adjustment=None, absolute_price=None):
        variant = ProductVariant(
            name=name,
            sku=sku,
            price_adjustment=price_adjustment,
            absolute_price=absolute_price,
        )
        self.add_variants(variant)
        return variant

    def find_variant(self, variant_id):
        """Return the variant with ``variant_id``; raise if it is not part of this product."""
        variant = next((v for v in self.variants if str(v.id) == str(variant_id)), None)
        if variant is None:
            raise ValidationError({"variant_id": [f"Variant {variant_id} does not belong to product {self.id}"]})
        return variant
