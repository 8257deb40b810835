"""Domain events for the Product aggregate's stock ledger."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Product")
class ProductRegistered:
    """A sellable product was registered with its opening stock."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    price = Float(required=True)
    initial_stock = Integer(required=True)
    registered_at = DateTime(required=True)


@ordering.event(part_of="Product")
class StockReserved:
    """Units were taken out of available stock for an order."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reserved_at = DateTime(required=True)


@ordering.event(part_of="Product")
class StockRestored:
    """Units were returned to available stock (cancellation or rollback)."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    restored_at = DateTime(required=True)
