"""Application tests for checkout — cart to order in one transaction."""

import json

import pytest
from ordering.cart.cart import ShoppingCart
from ordering.catalogue.product import Product
from ordering.errors import ConcurrencyConflict, EmptyCart, InsufficientStock, ProductNotFound
from ordering.inventory.ledger import StockLedger
from ordering.order.creation import PlaceOrder
from ordering.order.order import Order
from ordering.order.reference import is_valid_reference
from protean import current_domain
from protean.exceptions import ValidationError


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock


def _cart_lines(customer_id):
    cart = current_domain.repository_for(ShoppingCart).for_customer(customer_id)
    return cart.snapshot() if cart else []


def _order_count():
    return len(current_domain.repository_for(Order)._dao.query.all().items)


class TestSuccessfulCheckout:
    def test_prices_reserves_and_clears_cart(self, order_service, make_product, add_to_cart, shipping_address):
        p1 = make_product(name="Darjeeling Tea", price=100.0, stock=5)
        add_to_cart("cust-001", p1, 2)

        order = order_service.create_order("cust-001", shipping_address)

        assert order.pricing.subtotal == 200.0
        assert order.pricing.shipping == 50.0
        assert order.pricing.tax == 10.0
        assert order.pricing.total == 260.0
        assert order.status == "pending"
        assert _stock(p1) == 3
        assert _cart_lines("cust-001") == []

    def test_order_is_persisted_with_snapshot(self, order_service, make_product, add_to_cart, shipping_address):
        p1 = make_product(name="Darjeeling Tea", price=100.0, stock=5, image="tea.jpg")
        add_to_cart("cust-001", p1, 2)

        order = order_service.create_order("cust-001", shipping_address, payment_method="upi", notes="Ring twice")
        stored = current_domain.repository_for(Order).get_by_reference(order.reference)

        assert is_valid_reference(stored.reference)
        assert stored.customer_id == "cust-001"
        assert stored.payment_method == "upi"
        assert stored.payment_status == "pending"
        assert stored.notes == "Ring twice"
        assert stored.shipping_address.city == "Siliguri"
        [item] = stored.items
        assert (item.name, item.unit_price, item.quantity, item.image) == ("Darjeeling Tea", 100.0, 2, "tea.jpg")
        assert [u.message for u in stored.timeline()] == ["Order placed successfully"]

    def test_free_shipping_at_threshold(self, place_order):
        order = place_order(lines=[{"price": 250.0, "stock": 5, "quantity": 2}])
        assert order.pricing.shipping == 0.0
        assert order.pricing.total == 525.0

    def test_pricing_policy_from_environment(self, place_order, monkeypatch):
        monkeypatch.setenv("SHOP_TAX_RATE", "0.18")
        order = place_order(lines=[{"price": 100.0, "stock": 5, "quantity": 1}])
        assert order.pricing.tax == 18.0
        assert order.pricing.total == 168.0

    def test_coupon_code_is_recorded(self, place_order):
        order = place_order(coupon_code="WELCOME10")
        assert order.coupon_code == "WELCOME10"
        assert order.pricing.discount == 0.0

    def test_resolved_discount_is_applied_before_saving(self, place_order):
        order = place_order(coupon_code="WELCOME10", discount=20)
        assert order.pricing.to_dict() == {
            "subtotal": 200.0,
            "shipping": 50.0,
            "tax": 10.0,
            "discount": 20.0,
            "total": 240.0,
        }
        stored = current_domain.repository_for(Order).get_by_reference(order.reference)
        assert stored.pricing.total == 240.0

    def test_discount_above_subtotal_is_rejected(self, order_service, make_product, add_to_cart, shipping_address):
        p1 = make_product(stock=5)
        add_to_cart("cust-001", p1, 1)

        with pytest.raises(ValidationError) as exc:
            order_service.create_order("cust-001", shipping_address, discount=500)

        assert "discount" in exc.value.messages
        assert _stock(p1) == 5
        assert _order_count() == 0

    def test_last_unit_makes_product_unavailable(self, order_service, make_product, add_to_cart, shipping_address):
        p1 = make_product(stock=2)
        add_to_cart("cust-001", p1, 2)
        order_service.create_order("cust-001", shipping_address)
        assert current_domain.repository_for(Product).get(p1).is_available is False

    def test_references_are_unique(self, place_order):
        first = place_order(customer_id="cust-001")
        second = place_order(customer_id="cust-002")
        assert first.reference != second.reference


class TestFailedCheckout:
    def test_insufficient_stock_changes_nothing(self, order_service, make_product, add_to_cart, shipping_address):
        p2 = make_product(name="Oolong", stock=2)
        add_to_cart("cust-001", p2, 3)

        with pytest.raises(InsufficientStock) as exc:
            order_service.create_order("cust-001", shipping_address)

        assert exc.value.product_name == "Oolong"
        assert exc.value.available == 2
        assert exc.value.requested == 3
        assert _stock(p2) == 2
        assert _order_count() == 0
        assert _cart_lines("cust-001") == [{"product_id": p2, "quantity": 3}]

    def test_partial_reservations_are_undone(self, order_service, make_product, add_to_cart, shipping_address):
        p1 = make_product(name="Assam", stock=5)
        p2 = make_product(name="Nilgiri", stock=5)
        add_to_cart("cust-001", p1, 2)
        add_to_cart("cust-001", p2, 4)
        StockLedger().adjust(p2, -3)

        with pytest.raises(InsufficientStock):
            order_service.create_order("cust-001", shipping_address)

        assert _stock(p1) == 5
        assert _stock(p2) == 2
        assert _order_count() == 0
        assert len(_cart_lines("cust-001")) == 2

    def test_empty_cart(self, order_service, shipping_address):
        with pytest.raises(EmptyCart):
            order_service.create_order("cust-404", shipping_address)

    def test_emptied_cart(self, order_service, make_product, add_to_cart, shipping_address):
        from ordering.cart.items import RemoveFromCart

        p1 = make_product()
        add_to_cart("cust-001", p1, 1)
        current_domain.process(RemoveFromCart(customer_id="cust-001", product_id=p1), asynchronous=False)

        with pytest.raises(EmptyCart):
            order_service.create_order("cust-001", shipping_address)

    def test_missing_product(self, order_service, make_product, add_to_cart, shipping_address):
        p1 = make_product(stock=5)
        add_to_cart("cust-001", p1, 1)
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer("cust-001")
        cart.add_item("prod-404", 1)
        repo.add(cart)

        with pytest.raises(ProductNotFound):
            order_service.create_order("cust-001", shipping_address)

        assert _stock(p1) == 5
        assert _order_count() == 0

    def test_invalid_address_fails_before_commit(self, order_service, make_product, add_to_cart, shipping_address):
        p1 = make_product(stock=5)
        add_to_cart("cust-001", p1, 2)
        del shipping_address["pincode"]

        with pytest.raises(ValidationError):
            order_service.create_order("cust-001", shipping_address)

        assert _stock(p1) == 5
        assert _order_count() == 0

    def test_failure_after_order_is_saved_rolls_back(
        self, order_service, make_product, add_to_cart, shipping_address, monkeypatch
    ):
        p1 = make_product(stock=5)
        add_to_cart("cust-001", p1, 2)

        def broken_clear(cart):
            raise RuntimeError("cart store unavailable")

        monkeypatch.setattr(ShoppingCart, "clear", broken_clear)

        with pytest.raises(RuntimeError):
            order_service.create_order("cust-001", shipping_address)

        assert _stock(p1) == 5
        assert _order_count() == 0
        assert _cart_lines("cust-001") == [{"product_id": p1, "quantity": 2}]

    def test_handler_refuses_unlocked_products(self, make_product, add_to_cart, shipping_address):
        p1 = make_product(stock=5)
        add_to_cart("cust-001", p1, 1)

        with pytest.raises(ConcurrencyConflict):
            current_domain.process(
                PlaceOrder(customer_id="cust-001", shipping_address=json.dumps(shipping_address)),
                asynchronous=False,
            )

        assert _stock(p1) == 5
        assert _order_count() == 0
