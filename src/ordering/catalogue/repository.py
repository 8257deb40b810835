"""Repository for the Product aggregate."""

from protean.exceptions import ObjectNotFoundError

from ordering.catalogue.product import Product
from ordering.domain import ordering
from ordering.errors import ProductNotFound


@ordering.repository(part_of=Product)
class ProductRepository:
    def get_product(self, product_id) -> Product:
        """Load a product, raising ``ProductNotFound`` when it does not exist."""
        try:
            return self.get(str(product_id))
        except ObjectNotFoundError:
            raise ProductNotFound(product_id) from None
