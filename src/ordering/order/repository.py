"""Repository for the Order aggregate — reference lookups and paginated listings."""

from ordering.domain import ordering
from ordering.errors import OrderNotFound
from ordering.order.order import Order


@ordering.repository(part_of=Order)
class OrderRepository:
    def find_by_reference(self, reference) -> Order | None:
        orders = self._dao.query.filter(reference=reference).all().items
        return orders[0] if orders else None

    def get_by_reference(self, reference, customer_id=None) -> Order:
        """Load an order by reference, optionally scoped to its owner.

        An order owned by someone else is reported as not found.
        """
        order = self.find_by_reference(reference)
        if order is None or (customer_id is not None and str(order.customer_id) != str(customer_id)):
            raise OrderNotFound(reference)
        return order

    def reference_exists(self, reference) -> bool:
        return self.find_by_reference(reference) is not None

    def page(self, page=1, limit=10, **filters):
        """One page of orders, newest first.

        Returns a ``(orders, total)`` tuple.
        """
        query = self._dao.query
        if filters:
            query = query.filter(**filters)
        results = query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
        return results.items, results.total

    def find_for_customer(self, customer_id, page=1, limit=10):
        return self.page(page=page, limit=limit, customer_id=str(customer_id))

    def find_all(self, page=1, limit=10, status=None):
        if status:
            return self.page(page=page, limit=limit, status=status)
        return self.page(page=page, limit=limit)
