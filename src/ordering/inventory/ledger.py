"""Stock ledger — reserve, restore and adjust product stock.

Each command runs in its own Unit of Work. ``StockLedger`` is the entry point
for callers outside a checkout: it takes the product's stock lock before
processing the command and keeps it until the Unit of Work has committed, so
concurrent reservations against the same product are serialized and can
never oversell.
"""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from ordering.catalogue.product import Product
from ordering.domain import ordering
from ordering.errors import ConcurrencyConflict
from ordering.inventory.locks import stock_locks


@ordering.command(part_of="Product")
class ReserveStock:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="Product")
class RestoreStock:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="Product")
class AdjustStock:
    """Signed stock change: negative deltas reserve, positive deltas restore."""

    product_id = Identifier(required=True)
    delta = Integer(required=True)


def _require_lock(product_id):
    if not stock_locks.is_held(product_id):
        raise ConcurrencyConflict(
            f"Stock lock for product {product_id} is not held by this transaction",
            product_ids=[str(product_id)],
        )


@ordering.command_handler(part_of=Product)
class StockLedgerHandler:
    @handle(ReserveStock)
    def reserve_stock(self, command):
        _require_lock(command.product_id)
        repo = current_domain.repository_for(Product)
        product = repo.get_product(command.product_id)
        product.reserve(command.quantity)
        repo.add(product)
        return product.stock

    @handle(RestoreStock)
    def restore_stock(self, command):
        _require_lock(command.product_id)
        repo = current_domain.repository_for(Product)
        product = repo.get_product(command.product_id)
        product.restore(command.quantity)
        repo.add(product)
        return product.stock

    @handle(AdjustStock)
    def adjust_stock(self, command):
        _require_lock(command.product_id)
        repo = current_domain.repository_for(Product)
        product = repo.get_product(command.product_id)
        if command.delta < 0:
            product.reserve(-command.delta)
        elif command.delta > 0:
            product.restore(command.delta)
        repo.add(product)
        return product.stock


class StockLedger:
    """Lock-guarded access to product stock.

    Returns the stock count left after each operation.
    """

    def reserve(self, product_id, quantity) -> int:
        with stock_locks.hold([product_id]):
            return current_domain.process(
                ReserveStock(product_id=str(product_id), quantity=quantity),
                asynchronous=False,
            )

    def restore(self, product_id, quantity) -> int:
        with stock_locks.hold([product_id]):
            return current_domain.process(
                RestoreStock(product_id=str(product_id), quantity=quantity),
                asynchronous=False,
            )

    def adjust(self, product_id, delta) -> int:
        with stock_locks.hold([product_id]):
            return current_domain.process(
                AdjustStock(product_id=str(product_id), delta=delta),
                asynchronous=False,
            )

    def available(self, product_id) -> int:
        return current_domain.repository_for(Product).get_product(product_id).stock
