"""Ordering bounded context — Catalogue stock, Shopping Cart and Orders.

Handles the stock ledger for sellable products, the per-customer shopping
cart, and the order lifecycle: checkout converts a cart into a priced,
stock-reserving order which then moves through a constrained status machine.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
