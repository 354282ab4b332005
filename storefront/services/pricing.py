"""
Pricing engine.

Works on integer cents end to end. Tax is the only step that multiplies by
a fraction; it goes through Decimal and rounds half-up to the cent so the
same lines always price the same.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Protocol

from storefront.utils.logging import get_logger
from storefront.utils.settings import (
    DEFAULT_CURRENCY,
    DEFAULT_FLAT_SHIPPING_FEE,
    DEFAULT_FREE_SHIPPING_THRESHOLD,
    DEFAULT_TAX_RATE,
)

logger = get_logger(__name__)


class PricedLine(Protocol):
    quantity: int
    price: int


@dataclass(frozen=True)
class PricingPolicy:
    tax_rate: Decimal = DEFAULT_TAX_RATE
    free_shipping_threshold: int = DEFAULT_FREE_SHIPPING_THRESHOLD
    flat_shipping_fee: int = DEFAULT_FLAT_SHIPPING_FEE
    currency: str = DEFAULT_CURRENCY

    @classmethod
    def for_store(cls, store) -> "PricingPolicy":
        """Store overrides, falling back to the defaults for unset columns."""
        defaults = cls()
        return cls(
            tax_rate=Decimal(str(store.tax_rate)) if store.tax_rate is not None else defaults.tax_rate,
            free_shipping_threshold=(
                store.free_shipping_threshold
                if store.free_shipping_threshold is not None
                else defaults.free_shipping_threshold
            ),
            flat_shipping_fee=(
                store.flat_shipping_fee if store.flat_shipping_fee is not None else defaults.flat_shipping_fee
            ),
            currency=store.currency or defaults.currency,
        )


@dataclass(frozen=True)
class Totals:
    subtotal: int
    tax_amount: int
    shipping_amount: int
    discount_amount: int
    total_amount: int
    currency: str


def compute_subtotal(lines: Iterable[PricedLine]) -> int:
    return sum(line.quantity * line.price for line in lines)


def compute_tax(subtotal: int, rate: Decimal) -> int:
    return int((Decimal(subtotal) * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_shipping(subtotal: int, policy: PricingPolicy) -> int:
    return 0 if subtotal >= policy.free_shipping_threshold else policy.flat_shipping_fee


def price(lines: Iterable[PricedLine], policy: PricingPolicy | None = None, discount_amount: int = 0) -> Totals:
    """
    Price a set of lines.

    ``discount_amount`` is an extension point for a coupon subsystem; nothing
    in this service computes one, so it is 0 in practice.
    """
    policy = policy or PricingPolicy()
    subtotal = compute_subtotal(lines)
    tax_amount = compute_tax(subtotal, policy.tax_rate)
    shipping_amount = compute_shipping(subtotal, policy)

    total_amount = subtotal + tax_amount + shipping_amount - discount_amount
    if total_amount < 0:
        logger.warning(
            f"Negative order total {total_amount} (subtotal={subtotal}, discount={discount_amount}), clamping to 0"
        )
        total_amount = 0

    return Totals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        shipping_amount=shipping_amount,
        discount_amount=discount_amount,
        total_amount=total_amount,
        currency=policy.currency,
    )
