"""Order creation — converts a customer's cart into a pending order.

``PlaceOrder`` runs as one Unit of Work: every cart line is reserved against
stock, the order is priced and persisted, and the cart is emptied. Any failure
releases the reservations made so far and propagates, so either all of it
commits or none of it does.

The caller must already hold the stock locks of every product in the cart
(see ``OrderService.create_order``); the handler refuses to touch stock it has
not locked.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.catalogue.product import Product
from ordering.domain import ordering
from ordering.errors import ConcurrencyConflict, EmptyCart
from ordering.inventory.locks import stock_locks
from ordering.order.order import Order, PaymentMethod
from ordering.order.reference import generate_reference
from ordering.pricing import PricingPolicy, calculate_pricing

logger = structlog.get_logger(__name__)

MAX_REFERENCE_ATTEMPTS = 5


@ordering.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    shipping_address = Text(required=True)  # JSON: address dict
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.COD.value)
    notes = Text()
    coupon_code = String(max_length=100)
    # Resolved by the caller from coupon_code; never computed here
    discount = Float(min_value=0.0, default=0.0)


def _unique_reference(repo) -> str:
    for _ in range(MAX_REFERENCE_ATTEMPTS):
        reference = generate_reference()
        if not repo.reference_exists(reference):
            return reference
    raise ConcurrencyConflict("Could not allocate a unique order reference")


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        shipping_address = (
            json.loads(command.shipping_address)
            if isinstance(command.shipping_address, str)
            else command.shipping_address
        )

        cart_repo = current_domain.repository_for(ShoppingCart)
        cart = cart_repo.for_customer(command.customer_id)
        if cart is None or cart.is_empty:
            raise EmptyCart(command.customer_id)

        product_repo = current_domain.repository_for(Product)
        order_repo = current_domain.repository_for(Order)

        reserved = []
        try:
            lines = []
            for line in cart.snapshot():
                product_id = line["product_id"]
                if not stock_locks.is_held(product_id):
                    raise ConcurrencyConflict(
                        f"Stock lock for product {product_id} is not held by this checkout",
                        product_ids=[product_id],
                    )

                product = product_repo.get_product(product_id)
                product.reserve(line["quantity"])
                product_repo.add(product)
                reserved.append((product, line["quantity"]))

                lines.append(
                    {
                        "product_id": product_id,
                        "name": product.name,
                        "unit_price": product.price,
                        "quantity": line["quantity"],
                        "image": product.image,
                    }
                )

            pricing = calculate_pricing(lines, shipping_address, PricingPolicy.from_env())
            if command.discount:
                if command.discount > pricing.subtotal:
                    raise ValidationError({"discount": ["Discount cannot exceed the order subtotal"]})
                pricing = pricing.with_discount(command.discount)

            order = Order.place(
                reference=_unique_reference(order_repo),
                customer_id=command.customer_id,
                items=lines,
                pricing=pricing,
                shipping_address=shipping_address,
                payment_method=command.payment_method or PaymentMethod.COD.value,
                notes=command.notes,
                coupon_code=command.coupon_code,
            )
            order_repo.add(order)

            cart.clear()
            cart_repo.add(cart)
        except Exception:
            # Undo this attempt's reservations before the error propagates
            for product, quantity in reversed(reserved):
                product.restore(quantity)
                product_repo.add(product)
            raise

        return order.reference
