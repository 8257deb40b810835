"""Order lifecycle — administrative status changes, payment and notes.

Status changes go through ``Order.transition``. An administrative cancellation
puts every line item's stock back in the same Unit of Work, so the caller must
hold the stock locks of the order's products.
"""

from protean import handle
from protean.fields import String, Text
from protean.utils.globals import current_domain

from ordering.catalogue.product import Product
from ordering.domain import ordering
from ordering.errors import ConcurrencyConflict
from ordering.inventory.locks import stock_locks
from ordering.order.order import Order, OrderStatus, PaymentStatus


@ordering.command(part_of="Order")
class TransitionOrderStatus:
    reference = String(required=True, max_length=32)
    new_status = String(required=True, choices=OrderStatus)
    message = String(max_length=500)
    location = String(max_length=255)


@ordering.command(part_of="Order")
class RecordPayment:
    reference = String(required=True, max_length=32)
    payment_status = String(required=True, choices=PaymentStatus)
    transaction_id = String(max_length=255)
    gateway_order_id = String(max_length=255)
    gateway_payment_id = String(max_length=255)


@ordering.command(part_of="Order")
class UpdateAdminNotes:
    reference = String(required=True, max_length=32)
    admin_notes = Text()


def restore_line_items(order):
    """Put back the stock reserved by every line item of ``order``."""
    product_repo = current_domain.repository_for(Product)
    for item in order.items:
        if not stock_locks.is_held(item.product_id):
            raise ConcurrencyConflict(
                f"Stock lock for product {item.product_id} is not held by this transaction",
                product_ids=[str(item.product_id)],
            )
        product = product_repo.get_product(item.product_id)
        product.restore(item.quantity)
        product_repo.add(product)


@ordering.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(TransitionOrderStatus)
    def transition_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_by_reference(command.reference)

        order.transition(command.new_status, message=command.message, location=command.location)
        if command.new_status == OrderStatus.CANCELLED.value:
            restore_line_items(order)

        repo.add(order)
        return order.reference

    @handle(RecordPayment)
    def record_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_by_reference(command.reference)
        order.record_payment(
            payment_status=command.payment_status,
            transaction_id=command.transaction_id,
            gateway_order_id=command.gateway_order_id,
            gateway_payment_id=command.gateway_payment_id,
        )
        repo.add(order)
        return order.reference

    @handle(UpdateAdminNotes)
    def update_admin_notes(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_by_reference(command.reference)
        order.update_admin_notes(command.admin_notes)
        repo.add(order)
        return order.reference
