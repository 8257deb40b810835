"""Order pricing — subtotal, shipping, tax, discount and total.

Pure computation: given resolved line items and a pricing policy it always
produces the same breakdown, so any persisted order total can be re-derived
for auditing.

    subtotal = sum(unit_price * quantity)
    shipping = shipping_fee if subtotal < free_shipping_threshold else 0
    tax      = round_half_up(subtotal * tax_rate, 2)
    total    = round_half_up(subtotal + shipping + tax - discount, 2)
"""

import os
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
TOTAL_TOLERANCE = 0.01


def _dec(value) -> Decimal:
    # str() first so that binary float noise (0.1 + 0.2) does not leak in
    return Decimal(str(value))


def round_money(value) -> float:
    """Round to two decimal places, half-up (0.005 -> 0.01)."""
    return float(_dec(value).quantize(CENT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PricingPolicy:
    """Shipping and tax parameters applied at checkout."""

    tax_rate: float = 0.05
    shipping_fee: float = 50.0
    free_shipping_threshold: float = 500.0

    @classmethod
    def from_env(cls) -> "PricingPolicy":
        return cls(
            tax_rate=float(os.environ.get("SHOP_TAX_RATE", cls.tax_rate)),
            shipping_fee=float(os.environ.get("SHOP_SHIPPING_FEE", cls.shipping_fee)),
            free_shipping_threshold=float(
                os.environ.get("SHOP_FREE_SHIPPING_THRESHOLD", cls.free_shipping_threshold)
            ),
        )


@dataclass(frozen=True)
class PricingBreakdown:
    subtotal: float
    shipping: float
    tax: float
    discount: float
    total: float

    def with_discount(self, discount) -> "PricingBreakdown":
        """Coupon hook: apply a discount and recompute the total."""
        discount = round_money(discount)
        if discount < 0:
            raise ValueError("Discount cannot be negative")
        total = _dec(self.subtotal) + _dec(self.shipping) + _dec(self.tax) - _dec(discount)
        return replace(self, discount=discount, total=round_money(total))

    def total_matches(self) -> bool:
        expected = self.subtotal + self.shipping + self.tax - self.discount
        return abs(self.total - expected) <= TOTAL_TOLERANCE

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "shipping": self.shipping,
            "tax": self.tax,
            "discount": self.discount,
            "total": self.total,
        }


def calculate_pricing(items, shipping_address=None, policy: PricingPolicy | None = None) -> PricingBreakdown:
    """Price a list of line items.

    Args:
        items: Iterable of dicts (or objects) exposing ``unit_price`` and ``quantity``.
        shipping_address: Destination. Only its presence matters today; shipping
            is a flat fee regardless of region.
        policy: Tax and shipping parameters; defaults to ``PricingPolicy()``.
    """
    policy = policy or PricingPolicy()

    subtotal = Decimal("0")
    for item in items:
        unit_price = item["unit_price"] if isinstance(item, dict) else item.unit_price
        quantity = item["quantity"] if isinstance(item, dict) else item.quantity
        subtotal += _dec(unit_price) * quantity

    shipping = Decimal("0")
    if subtotal < _dec(policy.free_shipping_threshold):
        shipping = _dec(policy.shipping_fee)

    tax = (subtotal * _dec(policy.tax_rate)).quantize(CENT, rounding=ROUND_HALF_UP)
    total = subtotal + shipping + tax

    return PricingBreakdown(
        subtotal=round_money(subtotal),
        shipping=round_money(shipping),
        tax=round_money(tax),
        discount=0.0,
        total=round_money(total),
    )
