# storefront/repos/product_repo.py
from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_active_product(self, store_id: int, product_id: int) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel).where(
                ProductModel.id == product_id,
                ProductModel.store_id == store_id,
                ProductModel.is_active.is_(True),
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def decrement_inventory(self, product_id: int, quantity: int) -> bool:
        """
        Relative decrement of tracked stock.

        The WHERE clause repeats the availability policy so the row is only
        touched when the decrement is allowed at the moment of the write.
        Returns False when no row qualified.
        """
        result = self.db.execute(
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.track_inventory.is_(True),
                or_(
                    ProductModel.allow_backorders.is_(True),
                    ProductModel.inventory_quantity >= quantity,
                ),
            )
            .values(inventory_quantity=ProductModel.inventory_quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
