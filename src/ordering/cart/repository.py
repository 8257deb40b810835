"""Repository for the ShoppingCart aggregate — carts are looked up by owner."""

from ordering.cart.cart import ShoppingCart
from ordering.domain import ordering


@ordering.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def for_customer(self, customer_id) -> ShoppingCart | None:
        carts = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return carts[0] if carts else None

    def get_or_create(self, customer_id) -> ShoppingCart:
        return self.for_customer(customer_id) or ShoppingCart.create(customer_id=str(customer_id))
