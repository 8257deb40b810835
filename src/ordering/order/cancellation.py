"""Customer cancellation — command and handler.

Customers can only cancel their own orders, and only while pending or
confirmed. The status change and the stock restoration of every line item
commit together.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.lifecycle import restore_line_items
from ordering.order.order import Order


@ordering.command(part_of="Order")
class CancelOrder:
    reference = String(required=True, max_length=32)
    customer_id = Identifier(required=True)
    reason = String(max_length=500)


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_by_reference(command.reference, customer_id=command.customer_id)

        order.cancel(reason=command.reason or "")
        restore_line_items(order)

        repo.add(order)
        return order.reference
