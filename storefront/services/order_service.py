# storefront/services/order_service.py
import math
from typing import Any, Dict

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.payment import PaymentTransactionModel
from storefront.data.models.store import StoreModel
from storefront.domain.errors import NotFoundError, ValidationError
from storefront.domain.identity import Identity
from storefront.repos.order_repo import OrderRepo
from storefront.utils.logging import get_logger
from storefront.utils.settings import ORDER_PAGE_SIZE_DEFAULT, ORDER_PAGE_SIZE_MAX

logger = get_logger(__name__)


def order_to_dict(order: OrderModel) -> Dict[str, Any]:
    return {
        "id": order.id,
        "store_id": order.store_id,
        "order_number": order.order_number,
        "status": order.status,
        "subtotal": order.subtotal,
        "tax_amount": order.tax_amount,
        "shipping_amount": order.shipping_amount,
        "discount_amount": order.discount_amount,
        "total_amount": order.total_amount,
        "currency": order.currency,
        "shipping_address": order.shipping_address,
        "billing_address": order.billing_address,
        "notes": order.notes,
        "created_at": order.created_at,
    }


def order_item_to_dict(item: OrderItemModel) -> Dict[str, Any]:
    return {
        "id": item.id,
        "product_id": item.product_id,
        "variant_id": item.variant_id,
        "product_name": item.product_name,
        "product_sku": item.product_sku,
        "quantity": item.quantity,
        "unit_price": item.unit_price,
        "total_price": item.total_price,
    }


def payment_to_dict(payment: PaymentTransactionModel) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "payment_method": payment.payment_method,
        "transaction_id": payment.transaction_id,
        "amount": payment.amount,
        "currency": payment.currency,
        "status": payment.status,
        "created_at": payment.created_at,
    }


class OrderService:
    """
    Read side for orders.

    Every lookup is scoped by store and owner; an order of another store or
    another caller is reported as missing, never as forbidden.
    """

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)

    def get_order(self, store: StoreModel, identity: Identity, order_id: int) -> Dict[str, Any]:
        order = self.repo.get_order(store.id, order_id, identity)
        if not order:
            raise NotFoundError("Order not found")

        payment = self.repo.get_latest_payment(order.id)
        return {
            **order_to_dict(order),
            "items": [order_item_to_dict(i) for i in self.repo.get_items(order.id)],
            "payment": payment_to_dict(payment) if payment else None,
        }

    def list_orders(
        self,
        store: StoreModel,
        identity: Identity,
        page: int = 1,
        limit: int = ORDER_PAGE_SIZE_DEFAULT,
        status: str | None = None,
    ) -> Dict[str, Any]:
        if page < 1:
            raise ValidationError("page must be a positive integer")
        if limit < 1 or limit > ORDER_PAGE_SIZE_MAX:
            raise ValidationError(f"limit must be between 1 and {ORDER_PAGE_SIZE_MAX}")

        total = self.repo.count_orders(store.id, identity, status)
        rows = self.repo.list_orders(store.id, identity, offset=(page - 1) * limit, limit=limit, status=status)

        return {
            "orders": [
                {
                    "id": o.id,
                    "order_number": o.order_number,
                    "status": o.status,
                    "subtotal": o.subtotal,
                    "tax_amount": o.tax_amount,
                    "shipping_amount": o.shipping_amount,
                    "discount_amount": o.discount_amount,
                    "total_amount": o.total_amount,
                    "currency": o.currency,
                    "created_at": o.created_at,
                    "item_count": item_count,
                }
                for o, item_count in rows
            ],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }
