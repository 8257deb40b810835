import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain

SHIPPING_ADDRESS = {
    "full_name": "Asha Rao",
    "address": "12 Hill Cart Road",
    "city": "Siliguri",
    "state": "West Bengal",
    "pincode": "734001",
    "phone": "9876543210",
}


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture
def shipping_address():
    return dict(SHIPPING_ADDRESS)


@pytest.fixture
def make_product():
    """Factory: register a product and return its id."""
    from ordering.catalogue.registration import RegisterProduct

    def _make(name="Darjeeling Tea", price=100.0, stock=5, **kwargs):
        return current_domain.process(
            RegisterProduct(name=name, price=price, stock=stock, **kwargs),
            asynchronous=False,
        )

    return _make


@pytest.fixture
def add_to_cart():
    from ordering.cart.items import AddToCart

    def _add(customer_id, product_id, quantity=1):
        return current_domain.process(
            AddToCart(customer_id=customer_id, product_id=product_id, quantity=quantity),
            asynchronous=False,
        )

    return _add


@pytest.fixture
def notifier():
    from ordering.notifications.fake import FakeNotificationSender

    return FakeNotificationSender()


@pytest.fixture
def order_service(notifier):
    from ordering.order.service import CheckoutSettings, OrderService

    service = OrderService(notifier, settings=CheckoutSettings(max_attempts=3, retry_backoff=0.0))
    yield service
    service.shutdown(wait=True)


@pytest.fixture
def place_order(order_service, make_product, add_to_cart, shipping_address):
    """Factory: fill a customer's cart and check it out. Returns the Order."""

    def _place(customer_id="cust-001", lines=None, **kwargs):
        lines = lines or [{"price": 100.0, "stock": 5, "quantity": 2}]
        for index, line in enumerate(lines):
            product_id = line.get("product_id") or make_product(
                name=line.get("name", f"Product {index + 1}"),
                price=line["price"],
                stock=line["stock"],
            )
            add_to_cart(customer_id, product_id, line["quantity"])
        return order_service.create_order(customer_id, shipping_address, **kwargs)

    return _place


