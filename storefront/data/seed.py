# storefront/data/seed.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.data.models.store import StoreModel
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

DEMO_STORE = {"name": "TechHub", "subdomain": "tech", "currency": "USD"}

#prices in cents
DEMO_PRODUCTS = [
    {"name": "Keyboard", "sku": "KB-001", "price": 19999, "inventory_quantity": 25},
    {"name": "Mouse", "sku": "MS-001", "price": 4950, "inventory_quantity": 100},
    {"name": "Monitor", "sku": "MN-001", "price": 89900, "inventory_quantity": 5},
    {"name": "USB-C Cable", "sku": "CB-001", "price": 999, "track_inventory": False},
]


def seed(db: Session) -> StoreModel:
    """Create the demo store and catalog. Does nothing when the store already exists."""
    store = db.execute(
        select(StoreModel).where(StoreModel.subdomain == DEMO_STORE["subdomain"])
    ).scalar_one_or_none()
    if store:
        return store

    store = StoreModel(**DEMO_STORE)
    db.add(store)
    db.flush()
    db.add_all(ProductModel(store_id=store.id, **p) for p in DEMO_PRODUCTS)
    db.commit()

    logger.info(f"Seeded demo store '{store.subdomain}' with {len(DEMO_PRODUCTS)} products")
    return store
