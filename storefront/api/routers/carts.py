#storefront/api/routers/carts.py
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Response

from storefront.api.deps import (
    get_cart_service,
    get_optional_identity,
    require_identity,
    resolve_store,
)
from storefront.data.models.store import StoreModel
from storefront.domain.identity import Identity, SessionIdentity
from storefront.domain.schemas import (
    CartItemOut,
    CartOut,
    CartTotalsOut,
    CartValidationOut,
    ItemIn,
    QuantityIn,
)
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/stores/{store_domain}/cart", tags=["cart"])


@router.get("", response_model=CartOut)
def get_cart(
    response: Response,
    store: StoreModel = Depends(resolve_store),
    identity: Optional[Identity] = Depends(get_optional_identity),
    svc: CartService = Depends(get_cart_service),
):
    """
    Returns the caller's cart, creating it on first access. Anonymous callers
    without a session token get a new one in the X-Session-ID response header.
    """
    if identity is None:
        identity = SessionIdentity(token=uuid.uuid4().hex)
    if isinstance(identity, SessionIdentity):
        response.headers["X-Session-ID"] = identity.token
    return svc.get_cart(store, identity)


@router.post("/items", response_model=CartItemOut, status_code=201)
def add_item(
    payload: ItemIn,
    store: StoreModel = Depends(resolve_store),
    identity: Identity = Depends(require_identity),
    svc: CartService = Depends(get_cart_service),
):
    return svc.add_item(
        store,
        identity,
        product_id=payload.product_id,
        quantity=payload.quantity,
        variant_id=payload.variant_id,
    )


@router.put("/items/{item_id}", response_model=CartItemOut)
def update_item(
    item_id: int,
    payload: QuantityIn,
    store: StoreModel = Depends(resolve_store),
    identity: Identity = Depends(require_identity),
    svc: CartService = Depends(get_cart_service),
):
    return svc.update_item(store, identity, item_id, payload.quantity)


@router.delete("/items/{item_id}", status_code=204)
def remove_item(
    item_id: int,
    store: StoreModel = Depends(resolve_store),
    identity: Identity = Depends(require_identity),
    svc: CartService = Depends(get_cart_service),
):
    svc.remove_item(store, identity, item_id)
    return Response(status_code=204)


@router.delete("", status_code=204)
def clear_cart(
    store: StoreModel = Depends(resolve_store),
    identity: Identity = Depends(require_identity),
    svc: CartService = Depends(get_cart_service),
):
    svc.clear_cart(store, identity)
    return Response(status_code=204)


@router.get("/totals", response_model=CartTotalsOut)
def get_totals(
    store: StoreModel = Depends(resolve_store),
    identity: Identity = Depends(require_identity),
    svc: CartService = Depends(get_cart_service),
):
    return svc.get_totals(store, identity)


@router.post("/validate", response_model=CartValidationOut)
def validate_cart(
    store: StoreModel = Depends(resolve_store),
    identity: Identity = Depends(require_identity),
    svc: CartService = Depends(get_cart_service),
):
    """Advisory availability report; checkout re-checks on its own."""
    return svc.validate_cart(store, identity)
