# storefront/data/models/store.py
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String

from storefront.data.database import Base


class StoreModel(Base):
    """Tenant. NULL policy columns fall back to the defaults from settings."""

    __tablename__ = "stores"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    subdomain = Column(String(100), nullable=False, unique=True)
    domain = Column(String(255), nullable=True, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)

    currency = Column(String(3), nullable=False, default="USD")
    tax_rate = Column(Numeric(6, 4), nullable=True)
    free_shipping_threshold = Column(Integer, nullable=True)
    flat_shipping_fee = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
