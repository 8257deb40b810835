"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.cart.cart import ShoppingCart
from ordering.catalogue.product import Product
from ordering.order.order import Order
from protean import current_domain
from pytest_bdd import given, parsers, then, when

CUSTOMER = "cust-bdd-001"


@pytest.fixture
def world():
    """Mutable scenario state shared between steps."""
    return {"products": {}, "order": None, "error": None}


def _product(world, label):
    return current_domain.repository_for(Product).get(world["products"][label])


def _order(world):
    return current_domain.repository_for(Order).get_by_reference(world["order"].reference)


def _attempt(world, action):
    try:
        return action()
    except Exception as exc:
        world["error"] = exc
        return None


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("tax is 5% and shipping is free from 500")
def _(monkeypatch):
    monkeypatch.setenv("SHOP_TAX_RATE", "0.05")
    monkeypatch.setenv("SHOP_SHIPPING_FEE", "50")
    monkeypatch.setenv("SHOP_FREE_SHIPPING_THRESHOLD", "500")


@given(parsers.cfparse('a product "{label}" priced {price:g} with {stock:d} in stock'))
def _(world, make_product, label, price, stock):
    world["products"][label] = make_product(name=label, price=price, stock=stock)


@given(parsers.cfparse('the customer has {quantity:d} of "{label}" in their cart'))
def _(world, add_to_cart, label, quantity):
    add_to_cart(CUSTOMER, world["products"][label], quantity)


@given("the customer has placed an order")
def _(world, order_service, shipping_address):
    world["order"] = order_service.create_order(CUSTOMER, shipping_address)


@given(parsers.cfparse('the order has moved to {statuses}'))
def _(world, order_service, statuses):
    for status in (s.strip().strip('"') for s in statuses.split(",")):
        world["order"] = order_service.transition_status(world["order"].reference, status)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the customer places an order")
def _(world, order_service, shipping_address):
    world["order"] = _attempt(world, lambda: order_service.create_order(CUSTOMER, shipping_address))


@when(parsers.cfparse('the customer cancels the order because "{reason}"'))
def _(world, order_service, reason):
    _attempt(world, lambda: order_service.cancel_order(world["order"].reference, CUSTOMER, reason))


@when(parsers.cfparse('the order is marked "{status}"'))
def _(world, order_service, status):
    _attempt(world, lambda: order_service.transition_status(world["order"].reference, status))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the order is pending")
def _(world):
    assert world["error"] is None
    assert _order(world).status == "pending"


@then(parsers.cfparse('the order is "{status}"'))
def _(world, status):
    assert _order(world).status == status


@then(parsers.cfparse("the order subtotal is {subtotal:g}, shipping {shipping:g}, tax {tax:g} and total {total:g}"))
def _(world, subtotal, shipping, tax, total):
    pricing = _order(world).pricing
    assert (pricing.subtotal, pricing.shipping, pricing.tax, pricing.total) == (subtotal, shipping, tax, total)


@given(parsers.cfparse('"{label}" has {stock:d} in stock'))
@then(parsers.cfparse('"{label}" has {stock:d} in stock'))
def _(world, label, stock):
    assert _product(world, label).stock == stock


@then("the customer's cart is empty")
def _(world):
    assert current_domain.repository_for(ShoppingCart).for_customer(CUSTOMER).is_empty


@then(parsers.cfparse('the customer\'s cart still has {quantity:d} of "{label}"'))
def _(world, label, quantity):
    cart = current_domain.repository_for(ShoppingCart).for_customer(CUSTOMER)
    assert cart.snapshot() == [{"product_id": world["products"][label], "quantity": quantity}]


@then(parsers.cfparse('checkout fails with insufficient stock for "{label}"'))
def _(world, label):
    from ordering.errors import InsufficientStock

    assert isinstance(world["error"], InsufficientStock)
    assert world["error"].product_name == label


@then("no order exists")
def _():
    assert current_domain.repository_for(Order)._dao.query.all().items == []


@then("cancelling fails because the order is not cancellable")
def _(world):
    from ordering.errors import OrderNotCancellable

    assert isinstance(world["error"], OrderNotCancellable)


@then("the status change is refused")
def _(world):
    from ordering.errors import IllegalTransition

    assert isinstance(world["error"], IllegalTransition)


@then("the delivery time is recorded")
def _(world):
    assert _order(world).delivered_at is not None


@then(parsers.cfparse('the last tracking entry has status "{status}"'))
def _(world, status):
    assert _order(world).timeline()[-1].status == status


@then(parsers.cfparse('the last tracking entry mentions "{text}"'))
def _(world, text):
    assert text in _order(world).timeline()[-1].message
