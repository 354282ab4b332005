"""
Inventory guard.

Decides whether a requested quantity of a product can be sold. Checks made
outside the checkout transaction are advisory only; checkout repeats the
check against rows it has just re-read and locked.
"""
from dataclasses import dataclass
from typing import Optional, Protocol

from storefront.domain.errors import InsufficientInventoryError


class StockedProduct(Protocol):
    name: str
    inventory_quantity: int
    track_inventory: bool
    allow_backorders: bool


@dataclass(frozen=True)
class Availability:
    ok: bool
    requested: int
    available: Optional[int] = None  # None when stock is not limiting

    def __bool__(self) -> bool:
        return self.ok


def check_availability(product: StockedProduct, requested_qty: int) -> Availability:
    if not product.track_inventory or product.allow_backorders:
        return Availability(ok=True, requested=requested_qty)

    available = product.inventory_quantity
    return Availability(ok=available >= requested_qty, requested=requested_qty, available=available)


def ensure_available(product: StockedProduct, requested_qty: int) -> None:
    """Raise InsufficientInventoryError when the policy refuses the quantity."""
    if not check_availability(product, requested_qty):
        raise InsufficientInventoryError(product.name)
