"""Product aggregate — the catalogue record the ordering context sells from.

Only the fields checkout needs live here: name, price, primary image and the
available stock count. Stock is never overwritten directly; it moves only
through ``reserve`` and ``restore``, which keep ``stock >= 0`` and the
availability flag in step with it.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String

from ordering.catalogue.events import ProductRegistered, StockReserved, StockRestored
from ordering.domain import ordering
from ordering.errors import InsufficientStock


class StockStatus(Enum):
    OUT_OF_STOCK = "out-of-stock"
    LOW_STOCK = "low-stock"
    IN_STOCK = "in-stock"


@ordering.aggregate
class Product:
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    image = String(max_length=500, default="")
    is_available = Boolean(default=True)
    is_active = Boolean(default=True)
    low_stock_threshold = Integer(default=10, min_value=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def stock_cannot_be_negative(self):
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, name, price, stock=0, image="", low_stock_threshold=10, product_id=None):
        now = datetime.now(UTC)
        kwargs = {"id": product_id} if product_id else {}
        product = cls(
            name=name,
            price=price,
            stock=stock,
            image=image or "",
            is_available=stock > 0,
            low_stock_threshold=low_stock_threshold,
            created_at=now,
            updated_at=now,
            **kwargs,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                name=name,
                price=price,
                initial_stock=stock,
                registered_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Derived (computed at read time, never stored)
    # -------------------------------------------------------------------
    @property
    def stock_status(self) -> str:
        if self.stock == 0:
            return StockStatus.OUT_OF_STOCK.value
        if self.stock <= self.low_stock_threshold:
            return StockStatus.LOW_STOCK.value
        return StockStatus.IN_STOCK.value

    # -------------------------------------------------------------------
    # Stock ledger
    # -------------------------------------------------------------------
    def reserve(self, quantity):
        """Take ``quantity`` units out of stock, or fail without touching it."""
        if quantity is None or quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        if self.stock < quantity:
            raise InsufficientStock(
                product_name=self.name,
                available=self.stock,
                requested=quantity,
                product_id=self.id,
            )

        previous = self.stock
        now = datetime.now(UTC)
        self.stock = previous - quantity
        if self.stock == 0:
            self.is_available = False
        self.updated_at = now

        self.raise_(
            StockReserved(
                product_id=str(self.id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                reserved_at=now,
            )
        )

    def restore(self, quantity):
        """Return ``quantity`` units to stock."""
        if quantity is None or quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        previous = self.stock
        now = datetime.now(UTC)
        self.stock = previous + quantity
        if self.stock > 0:
            self.is_available = True
        self.updated_at = now

        self.raise_(
            StockRestored(
                product_id=str(self.id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                restored_at=now,
            )
        )
