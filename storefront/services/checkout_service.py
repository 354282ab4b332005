# storefront/services/checkout_service.py
import secrets
import string
import time
from collections import OrderedDict
from enum import Enum
from typing import Any, Dict, List, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.database import transaction
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.payment import PaymentTransactionModel
from storefront.data.models.product import ProductModel
from storefront.data.models.store import StoreModel
from storefront.domain.errors import (
    EmptyCartError,
    InsufficientInventoryError,
    NoCartError,
    ValidationError,
)
from storefront.domain.identity import Identity, owner_columns
from storefront.repos.cart_repo import CartRepo
from storefront.repos.order_repo import OrderRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.inventory import ensure_available
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import order_item_to_dict, order_to_dict, payment_to_dict
from storefront.services.pricing import PricingPolicy, Totals, price
from storefront.utils.logging import get_logger
from storefront.utils.retry import order_number_retry

logger = get_logger(__name__)

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits

Line = Tuple[CartItemModel, ProductModel]


def generate_order_number() -> str:
    """ORD-<epoch millis>-<9 random chars>. Uniqueness is enforced by the DB."""
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


class CheckoutState(str, Enum):
    START = "start"
    CART_LOADED = "cart_loaded"
    VALIDATED = "validated"
    PRICED = "priced"
    PERSISTED = "persisted"
    INVENTORY_ADJUSTED = "inventory_adjusted"
    PAYMENT_RECORDED = "payment_recorded"
    CART_CLEARED = "cart_cleared"
    COMMITTED = "committed"


class CheckoutService:
    """
    Cart -> order conversion.

    Everything from reading the cart to clearing it runs in one transaction:
    product rows are re-read and locked, stock is re-checked against them,
    the order and its items are written, stock is decremented relative to
    the stored value, a pending payment is recorded and the cart lines are
    deleted. Any failure rolls all of it back and leaves the cart as it was.
    """

    def __init__(self, db: Session, notifier: NotificationService | None = None):
        self.db = db
        self.carts = CartRepo(db)
        self.products = ProductRepo(db)
        self.orders = OrderRepo(db)
        self.notifier = notifier
        self.state = CheckoutState.START

    def checkout(
        self,
        store: StoreModel,
        identity: Identity,
        shipping_address: Dict[str, Any],
        payment_method: str,
        billing_address: Dict[str, Any] | None = None,
        notes: str | None = None,
    ) -> Dict[str, Any]:
        if not payment_method:
            raise ValidationError("payment_method is required")
        if not shipping_address:
            raise ValidationError("shipping_address is required")

        self.state = CheckoutState.START
        try:
            with transaction(self.db):
                cart = self.carts.find_cart(store.id, identity, for_update=True)
                if not cart:
                    raise NoCartError()

                lines = self.carts.get_cart_lines_for_update(cart.id)
                if not lines:
                    raise EmptyCartError()
                self._advance(CheckoutState.CART_LOADED)

                self._validate(lines)
                self._advance(CheckoutState.VALIDATED)

                totals = price([item for item, _ in lines], PricingPolicy.for_store(store))
                self._advance(CheckoutState.PRICED)

                order = self._insert_order(
                    store,
                    identity,
                    totals,
                    shipping_address=dict(shipping_address),
                    billing_address=dict(billing_address or shipping_address),
                    notes=notes,
                )
                items = self._persist_items(order, lines)
                self._advance(CheckoutState.PERSISTED)

                self._decrement_inventory(lines)
                self._advance(CheckoutState.INVENTORY_ADJUSTED)

                payment = self._record_payment(order, payment_method, totals)
                self._advance(CheckoutState.PAYMENT_RECORDED)

                self.carts.clear_cart(cart.id)
                self.carts.touch_cart(cart)
                self._advance(CheckoutState.CART_CLEARED)

                result = {
                    "order": order_to_dict(order),
                    "items": [order_item_to_dict(i) for i in items],
                    "payment": payment_to_dict(payment),
                }
        except Exception as e:
            logger.warning(f"Checkout for cart owner {identity.owner_key} in store {store.id} aborted at {self.state.value}: {e}")
            self.state = CheckoutState.START
            raise

        self._advance(CheckoutState.COMMITTED)
        logger.info(
            f"Order {result['order']['order_number']} created in store {store.id}, "
            f"total {result['order']['total_amount']} {result['order']['currency']}"
        )
        self._notify(result["order"])
        return result

    def _advance(self, state: CheckoutState) -> None:
        logger.debug(f"Checkout {self.state.value} -> {state.value}")
        self.state = state

    def _validate(self, lines: List[Line]) -> None:
        """
        Authoritative stock check against the rows just locked.

        Quantities of the same product on several lines (variants) are added
        up first. Stops at the first failing product.
        """
        requested: "OrderedDict[int, Tuple[ProductModel, int]]" = OrderedDict()
        for item, product in lines:
            if not product.is_active:
                raise ValidationError(f"Product no longer available: {product.name}", code="product_unavailable")
            _, qty = requested.get(product.id, (product, 0))
            requested[product.id] = (product, qty + item.quantity)

        for product, qty in requested.values():
            ensure_available(product, qty)

    @order_number_retry()
    def _insert_order(
        self,
        store: StoreModel,
        identity: Identity,
        totals: Totals,
        shipping_address: Dict[str, Any],
        billing_address: Dict[str, Any],
        notes: str | None,
    ) -> OrderModel:
        order = OrderModel(
            store_id=store.id,
            order_number=generate_order_number(),
            status="pending",
            subtotal=totals.subtotal,
            tax_amount=totals.tax_amount,
            shipping_amount=totals.shipping_amount,
            discount_amount=totals.discount_amount,
            total_amount=totals.total_amount,
            currency=totals.currency,
            shipping_address=shipping_address,
            billing_address=billing_address,
            notes=notes,
            **owner_columns(identity),
        )
        #savepoint, a collision only undoes this insert
        try:
            with self.db.begin_nested():
                self.orders.create_order(order)
        except IntegrityError:
            logger.warning(f"Order number {order.order_number} rejected by the database, generating a new one")
            raise
        return order

    def _persist_items(self, order: OrderModel, lines: List[Line]) -> List[OrderItemModel]:
        return self.orders.add_items(
            [
                OrderItemModel(
                    order_id=order.id,
                    product_id=product.id,
                    variant_id=item.variant_id,
                    product_name=product.name,
                    product_sku=product.sku,
                    quantity=item.quantity,
                    unit_price=item.price,
                    total_price=item.quantity * item.price,
                )
                for item, product in lines
            ]
        )

    def _decrement_inventory(self, lines: List[Line]) -> None:
        for item, product in lines:
            if not product.track_inventory:
                continue
            if not self.products.decrement_inventory(product.id, item.quantity):
                raise InsufficientInventoryError(product.name)

    def _record_payment(self, order: OrderModel, payment_method: str, totals: Totals) -> PaymentTransactionModel:
        return self.orders.add_payment(
            PaymentTransactionModel(
                order_id=order.id,
                payment_method=payment_method,
                amount=totals.total_amount,
                currency=totals.currency,
                status="pending",
            )
        )

    def _notify(self, order: Dict[str, Any]) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.send_order_confirmation(order["id"], order["order_number"])
        except Exception as e:
            # order is committed already
            logger.warning(f"Order confirmation for {order['order_number']} not dispatched: {e}")
