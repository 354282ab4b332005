# storefront/repos/order_repo.py
from typing import List, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.payment import PaymentTransactionModel
from storefront.domain.identity import Identity
from storefront.repos._owner import owner_clause


class OrderRepo:
    """
    Orders, their items and payment records.

    Inserts only flush; the caller owns the transaction. There are no
    update methods, orders are immutable once written.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def add_items(self, items: List[OrderItemModel]) -> List[OrderItemModel]:
        self.db.add_all(items)
        self.db.flush()
        return items

    def add_payment(self, payment: PaymentTransactionModel) -> PaymentTransactionModel:
        self.db.add(payment)
        self.db.flush()
        return payment

    def get_order(self, store_id: int, order_id: int, identity: Identity) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(
                OrderModel.id == order_id,
                OrderModel.store_id == store_id,
                owner_clause(OrderModel, identity),
            )
        ).scalar_one_or_none()

    def get_items(self, order_id: int) -> List[OrderItemModel]:
        return list(
            self.db.execute(
                select(OrderItemModel)
                .where(OrderItemModel.order_id == order_id)
                .order_by(OrderItemModel.id)
            ).scalars()
        )

    def get_latest_payment(self, order_id: int) -> PaymentTransactionModel | None:
        return self.db.execute(
            select(PaymentTransactionModel)
            .where(PaymentTransactionModel.order_id == order_id)
            .order_by(PaymentTransactionModel.created_at.desc(), PaymentTransactionModel.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def _owned(self, store_id: int, identity: Identity, status: str | None):
        clauses = [OrderModel.store_id == store_id, owner_clause(OrderModel, identity)]
        if status:
            clauses.append(OrderModel.status == status)
        return clauses

    def count_orders(self, store_id: int, identity: Identity, status: str | None = None) -> int:
        return self.db.execute(
            select(func.count(OrderModel.id)).where(*self._owned(store_id, identity, status))
        ).scalar_one()

    def list_orders(
        self,
        store_id: int,
        identity: Identity,
        offset: int,
        limit: int,
        status: str | None = None,
    ) -> List[Tuple[OrderModel, int]]:
        """Newest first, with the number of items per order."""
        item_count = (
            select(func.count(OrderItemModel.id))
            .where(OrderItemModel.order_id == OrderModel.id)
            .correlate(OrderModel)
            .scalar_subquery()
        )
        rows = self.db.execute(
            select(OrderModel, item_count.label("item_count"))
            .where(*self._owned(store_id, identity, status))
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset(offset)
            .limit(limit)
        ).all()
        return [(order, count) for order, count in rows]
