# storefront/api/routers/orders.py
from typing import Optional

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import (
    get_checkout_service,
    get_order_service,
    require_identity,
    resolve_store,
)
from storefront.data.models.store import StoreModel
from storefront.domain.identity import Identity
from storefront.domain.schemas import CheckoutIn, CheckoutOut, OrderEnvelopeOut, OrderListOut
from storefront.services.checkout_service import CheckoutService
from storefront.services.order_service import OrderService
from storefront.utils.settings import ORDER_PAGE_SIZE_DEFAULT, ORDER_PAGE_SIZE_MAX

router = APIRouter(prefix="/stores/{store_domain}/orders", tags=["orders"])


@router.post("", response_model=CheckoutOut, status_code=201)
def checkout(
    payload: CheckoutIn,
    store: StoreModel = Depends(resolve_store),
    identity: Identity = Depends(require_identity),
    svc: CheckoutService = Depends(get_checkout_service),
):
    """
    Turns the caller's cart into an order.
    The cart is left untouched when anything fails.
    """
    return svc.checkout(
        store,
        identity,
        shipping_address=payload.shipping_address.model_dump(),
        billing_address=payload.billing_address.model_dump() if payload.billing_address else None,
        payment_method=payload.payment_method,
        notes=payload.notes,
    )


@router.get("", response_model=OrderListOut)
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(ORDER_PAGE_SIZE_DEFAULT, ge=1, le=ORDER_PAGE_SIZE_MAX),
    status: Optional[str] = Query(None),
    store: StoreModel = Depends(resolve_store),
    identity: Identity = Depends(require_identity),
    svc: OrderService = Depends(get_order_service),
):
    return svc.list_orders(store, identity, page=page, limit=limit, status=status)


@router.get("/{order_id}", response_model=OrderEnvelopeOut)
def get_order(
    order_id: int,
    store: StoreModel = Depends(resolve_store),
    identity: Identity = Depends(require_identity),
    svc: OrderService = Depends(get_order_service),
):
    return {"order": svc.get_order(store, identity, order_id)}
