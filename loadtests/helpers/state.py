"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state — no cross-user sharing.
"""

from dataclasses import dataclass, field


@dataclass
class ShopperState:
    """Tracks a single simulated shopper from cart to order."""

    customer_id: str | None = None
    product_ids: list[str] = field(default_factory=list)
    order_reference: str | None = None
    current_status: str | None = None
