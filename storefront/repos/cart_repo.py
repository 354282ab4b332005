# storefront/repos/cart_repo.py
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Tuple

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.product import ProductModel
from storefront.domain.errors import ValidationError
from storefront.domain.identity import Identity, owner_columns
from storefront.repos._owner import dialect_insert


def _set_quantity(item: CartItemModel, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError("Quantity must be at least 1")
    item.quantity = value


#only these cart line fields may be changed from request data
CART_ITEM_UPDATERS: Dict[str, Callable[[CartItemModel, Any], None]] = {
    "quantity": _set_quantity,
}


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def find_cart(self, store_id: int, identity: Identity, for_update: bool = False) -> CartModel | None:
        stmt = select(CartModel).where(
            CartModel.store_id == store_id,
            CartModel.owner_key == identity.owner_key,
        )
        if for_update:
            # serializes commands on the same cart; lines read afterwards
            # are current as of the lock
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_or_create_cart(self, store_id: int, identity: Identity, for_update: bool = False) -> CartModel:
        """
        Atomic find-or-insert.

        INSERT ... ON CONFLICT DO NOTHING against u_store_cart_owner, then read
        back whichever row won. Two first-time requests for the same owner end
        up on the same cart.
        """
        insert = dialect_insert(self.db)
        stmt = (
            insert(CartModel)
            .values(store_id=store_id, owner_key=identity.owner_key, **owner_columns(identity))
            .on_conflict_do_nothing(index_elements=["store_id", "owner_key"])
        )
        self.db.execute(stmt)
        return self.find_cart(store_id, identity, for_update=for_update)

    def get_cart_lines(self, cart_id: int) -> List[Tuple[CartItemModel, ProductModel]]:
        """Lines joined with their product, insertion order."""
        rows = self.db.execute(
            select(CartItemModel, ProductModel)
            .join(ProductModel, CartItemModel.product_id == ProductModel.id)
            .where(CartItemModel.cart_id == cart_id)
            .order_by(CartItemModel.created_at, CartItemModel.id)
        ).all()
        return [(item, product) for item, product in rows]

    def get_cart_lines_for_update(self, cart_id: int) -> List[Tuple[CartItemModel, ProductModel]]:
        """
        Lines with freshly read product rows, locked until the end of the
        transaction. Ordered by product id so concurrent checkouts lock in
        the same order.
        """
        rows = self.db.execute(
            select(CartItemModel, ProductModel)
            .join(ProductModel, CartItemModel.product_id == ProductModel.id)
            .where(CartItemModel.cart_id == cart_id)
            .order_by(ProductModel.id, CartItemModel.id)
            .with_for_update(of=[CartItemModel, ProductModel])
            .execution_options(populate_existing=True)
        ).all()
        return [(item, product) for item, product in rows]

    def get_cart_item(self, cart_id: int, product_id: int, variant_id: int | None) -> CartItemModel | None:
        stmt = select(CartItemModel).where(
            CartItemModel.cart_id == cart_id,
            CartItemModel.product_id == product_id,
        )
        if variant_id is None:
            stmt = stmt.where(CartItemModel.variant_id.is_(None))
        else:
            stmt = stmt.where(CartItemModel.variant_id == variant_id)
        return self.db.execute(stmt.execution_options(populate_existing=True)).scalar_one_or_none()

    def get_cart_item_by_id(self, cart_id: int, item_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.id == item_id,
                CartItemModel.cart_id == cart_id,
            )
        ).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def update_cart_item(self, item: CartItemModel, changes: Dict[str, Any]) -> CartItemModel:
        unknown = set(changes) - set(CART_ITEM_UPDATERS)
        if unknown:
            raise ValidationError(f"Fields not updatable: {', '.join(sorted(unknown))}")

        for field, value in changes.items():
            CART_ITEM_UPDATERS[field](item, value)
        self.db.flush()
        return item

    def delete_cart_item(self, item: CartItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    def clear_cart(self, cart_id: int) -> int:
        result = self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id == cart_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def touch_cart(self, cart: CartModel) -> None:
        cart.updated_at = datetime.now(timezone.utc)
        self.db.flush()
