import json

import pytest
from checkout.catalogue.bundle import Bundle
from checkout.catalogue.coupon import Coupon
from checkout.catalogue.product import Product
from checkout.config import Settings, reset_settings, set_settings
from checkout.gateway import reset_gateway, set_gateway
from checkout.gateway.fake_adapter import FakeGateway
from checkout.inventory import reset_ledger, set_ledger
from checkout.inventory.memory_ledger import InMemoryStockLedger
from checkout.invoice.sequence import InMemoryInvoiceNumberSequence, reset_sequence, set_sequence
from checkout.notifications import reset_email_adapter, set_email_adapter
from checkout.notifications.fake_email import FakeEmailAdapter
from checkout.orchestration.checkout import CheckoutOrchestrator, CheckoutRequest
from checkout.storage import reset_document_store, set_document_store
from checkout.storage.memory_store import InMemoryDocumentStore
from protean import current_domain
from protean.integrations.pytest import DomainFixture

ADDRESS = {
    "full_name": "Asha Rao",
    "phone": "9800000000",
    "email": "asha@example.com",
    "address_line_1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
    "country": "India",
}


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    with checkout_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def _adapters():
    """Fresh in-memory adapters and default settings for every test."""
    set_settings(Settings(environment="test"))
    set_ledger(InMemoryStockLedger())
    set_gateway(FakeGateway())
    set_sequence(InMemoryInvoiceNumberSequence())
    set_document_store(InMemoryDocumentStore())
    set_email_adapter(FakeEmailAdapter())

    yield

    reset_ledger()
    reset_gateway()
    reset_sequence()
    reset_document_store()
    reset_email_adapter()
    reset_settings()


@pytest.fixture()
def ledger():
    from checkout.inventory import get_ledger

    return get_ledger()


@pytest.fixture()
def gateway():
    from checkout.gateway import get_gateway

    return get_gateway()


@pytest.fixture()
def document_store():
    from checkout.storage import get_document_store

    return get_document_store()


@pytest.fixture()
def email_adapter():
    from checkout.notifications import get_email_adapter

    return get_email_adapter()


@pytest.fixture()
def address():
    return dict(ADDRESS)


# ---------------------------------------------------------------------------
# Catalogue and cart factories
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_product(ledger):
    def _make(name="Product A", base_price=500.0, stock=10, discount_price=None, sku=None, variants=()):
        product = Product(name=name, sku=sku or name.upper().replace(" ", "-"), base_price=base_price)
        if discount_price is not None:
            product.discount_price = discount_price
        for variant in variants:
            product.add_variant(**variant)
        current_domain.repository_for(Product).add(product)

        if variants:
            for variant in product.variants:
                ledger.set_stock(str(product.id), stock, variant_id=str(variant.id))
        else:
            ledger.set_stock(str(product.id), stock)
        return current_domain.repository_for(Product).get(product.id)

    return _make


@pytest.fixture()
def make_bundle():
    def _make(price_type="fixed", price_value=800.0, name="Starter Bundle"):
        bundle = Bundle(name=name, price_type=price_type, price_value=price_value)
        current_domain.repository_for(Bundle).add(bundle)
        return bundle

    return _make


@pytest.fixture()
def make_coupon():
    def _make(code="SAVE10", discount_type="percentage", discount_value=10.0, **kwargs):
        coupon = Coupon(code=code, discount_type=discount_type, discount_value=discount_value, **kwargs)
        current_domain.repository_for(Coupon).add(coupon)
        return coupon

    return _make


@pytest.fixture()
def fill_cart():
    from checkout.cart.management import AddToCart

    def _fill(user_id, product, quantity=1, variant=None, bundle=None):
        return current_domain.process(
            AddToCart(
                user_id=user_id,
                product_id=str(product.id),
                variant_id=str(variant.id) if variant else None,
                bundle_id=str(bundle.id) if bundle else None,
                quantity=quantity,
            ),
            asynchronous=False,
        )

    return _fill


@pytest.fixture()
def checkout_cart():
    def _checkout(user_id="user-1", coupon_code=None, shipping_address=None):
        return CheckoutOrchestrator().checkout(
            CheckoutRequest(
                user_id=user_id,
                shipping_address=shipping_address or dict(ADDRESS),
                coupon_code=coupon_code,
            )
        )

    return _checkout


@pytest.fixture()
def placed_order(make_product, fill_cart, checkout_cart):
    """A pending order for two units of a 500.00 product, with its payment intent."""
    product = make_product(stock=10)
    fill_cart("user-1", product, quantity=2)
    result = checkout_cart("user-1")
    return result, product


# ---------------------------------------------------------------------------
# Gateway webhook bodies
# ---------------------------------------------------------------------------
@pytest.fixture()
def webhook_body():
    def _body(event, order_id=None, user_id="user-1", gateway_order_id=None, payment_id="pay_test123", dispute=None):
        payload = {
            "payment": {
                "entity": {
                    "id": payment_id,
                    "order_id": gateway_order_id,
                    "amount": 100000,
                    "currency": "INR",
                    "notes": {"order_id": order_id, "user_id": user_id} if order_id else {},
                }
            }
        }
        if dispute is not None:
            payload["dispute"] = {"entity": dispute}
        return json.dumps({"event": event, "payload": payload}).encode("utf-8")

    return _body
