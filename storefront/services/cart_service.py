from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.product import ProductModel
from storefront.data.models.store import StoreModel
from storefront.data.database import transaction
from storefront.domain.errors import ConflictError, NotFoundError, TransactionError, ValidationError
from storefront.domain.identity import Identity
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.inventory import check_availability, ensure_available
from storefront.services.pricing import compute_subtotal
from storefront.utils.logging import get_logger
from storefront.utils.retry import duplicate_line_retry

logger = get_logger(__name__)


class CartService:
    """
    Cart use cases for one (store, identity) pair.

    commands (add, update, remove, clear) change state and commit,
    queries (get, totals, validate) only read.
    Inventory checks here are advisory, checkout re-checks for real.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)

    #queries
    def get_or_create_cart(self, store_id: int, identity: Identity) -> CartModel:
        with transaction(self.db):
            cart = self.repo.get_or_create_cart(store_id, identity)
        return cart

    def get_cart(self, store: StoreModel, identity: Identity) -> Dict[str, Any]:
        cart = self.get_or_create_cart(store.id, identity)
        lines = self.repo.get_cart_lines(cart.id)

        return {
            "cart": {
                "id": cart.id,
                "store_id": cart.store_id,
                "user_id": cart.user_id,
                "session_id": cart.session_token,
                "created_at": cart.created_at,
                "updated_at": cart.updated_at,
            },
            "items": [self._line_dict(item, product) for item, product in lines],
        }

    def get_totals(self, store: StoreModel, identity: Identity) -> Dict[str, Any]:
        cart = self.repo.find_cart(store.id, identity)
        if not cart:
            return {"subtotal": 0, "total_items": 0, "items": []}

        items = [item for item, _ in self.repo.get_cart_lines(cart.id)]
        return {
            "subtotal": compute_subtotal(items),
            "total_items": len(items),
            "items": [
                {
                    "id": i.id,
                    "product_id": i.product_id,
                    "quantity": i.quantity,
                    "price": i.price,
                    "total": i.quantity * i.price,
                }
                for i in items
            ],
        }

    def validate_cart(self, store: StoreModel, identity: Identity) -> Dict[str, Any]:
        cart = self.repo.find_cart(store.id, identity)
        if not cart:
            return {"valid": True, "issues": []}

        issues = []
        for item, product in self.repo.get_cart_lines(cart.id):
            if not product.is_active:
                issue = "Product no longer available"
            elif not check_availability(product, item.quantity):
                issue = "Insufficient inventory"
            else:
                continue
            issues.append({"item_id": item.id, "product_name": product.name, "issue": issue})

        return {"valid": not issues, "issues": issues}

    #commands
    def add_item(
        self,
        store: StoreModel,
        identity: Identity,
        product_id: int,
        quantity: int,
        variant_id: int | None = None,
    ) -> Dict[str, Any]:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        product = self.products.get_active_product(store.id, product_id)
        if not product:
            raise NotFoundError("Product not found")

        ensure_available(product, quantity)

        try:
            item = self._add_or_increment(store.id, identity, product, variant_id, quantity)
        except TransactionError as e:
            if isinstance(e.__cause__, IntegrityError):
                raise ConflictError("Cart was modified concurrently, please retry") from e
            raise
        return self._item_dict(item)

    @duplicate_line_retry()
    def _add_or_increment(
        self,
        store_id: int,
        identity: Identity,
        product: ProductModel,
        variant_id: int | None,
        quantity: int,
    ) -> CartItemModel:
        with transaction(self.db):
            cart = self.repo.get_or_create_cart(store_id, identity, for_update=True)
            existing = self.repo.get_cart_item(cart.id, product.id, variant_id)

            if existing:
                new_quantity = existing.quantity + quantity
                # merged quantity has to fit as well, not just the increment
                ensure_available(product, new_quantity)
                logger.info(
                    f"Product {product.id} already in cart {cart.id}, "
                    f"quantity {existing.quantity} -> {new_quantity}"
                )
                item = self.repo.update_cart_item(existing, {"quantity": new_quantity})
            else:
                logger.info(f"Adding product {product.id} to cart {cart.id}")
                item = self.repo.add_cart_item(
                    CartItemModel(
                        cart_id=cart.id,
                        product_id=product.id,
                        variant_id=variant_id,
                        quantity=quantity,
                        price=product.price,
                    )
                )

            self.repo.touch_cart(cart)

        return item

    def update_item(self, store: StoreModel, identity: Identity, item_id: int, quantity: int) -> Dict[str, Any]:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        with transaction(self.db):
            cart, item = self._owned_item(store, identity, item_id)

            product = self.products.get_active_product(store.id, item.product_id)
            if not product:
                raise ValidationError("Product no longer available", code="product_unavailable")
            ensure_available(product, quantity)

            self.repo.update_cart_item(item, {"quantity": quantity})
            self.repo.touch_cart(cart)

        logger.info(f"Cart item {item_id} in cart {cart.id} set to quantity {quantity}")
        return self._item_dict(item)

    def remove_item(self, store: StoreModel, identity: Identity, item_id: int) -> None:
        with transaction(self.db):
            cart, item = self._owned_item(store, identity, item_id)
            self.repo.delete_cart_item(item)
            self.repo.touch_cart(cart)

        logger.info(f"Cart item {item_id} removed from cart {cart.id}")

    def clear_cart(self, store: StoreModel, identity: Identity) -> None:
        with transaction(self.db):
            cart = self.repo.find_cart(store.id, identity, for_update=True)
            if not cart:
                return
            removed = self.repo.clear_cart(cart.id)
            self.repo.touch_cart(cart)

        logger.info(f"Cart {cart.id} cleared ({removed} lines)")

    def _owned_item(self, store: StoreModel, identity: Identity, item_id: int):
        cart = self.repo.find_cart(store.id, identity, for_update=True)
        item = self.repo.get_cart_item_by_id(cart.id, item_id) if cart else None
        if not item:
            raise NotFoundError("Cart item not found")
        return cart, item

    @staticmethod
    def _item_dict(item: CartItemModel) -> Dict[str, Any]:
        return {
            "id": item.id,
            "cart_id": item.cart_id,
            "product_id": item.product_id,
            "variant_id": item.variant_id,
            "quantity": item.quantity,
            "price": item.price,
            "created_at": item.created_at,
            "updated_at": item.updated_at,
        }

    @staticmethod
    def _line_dict(item: CartItemModel, product: ProductModel) -> Dict[str, Any]:
        return {
            "id": item.id,
            "product_id": item.product_id,
            "variant_id": item.variant_id,
            "quantity": item.quantity,
            "price": item.price,
            "product_name": product.name,
            "sku": product.sku,
            "product_price": product.price,
            "line_total": item.quantity * item.price,
            "created_at": item.created_at,
        }
