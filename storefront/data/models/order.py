from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class OrderModel(Base):
    """
    Immutable purchase snapshot.

    total_amount == subtotal + tax_amount + shipping_amount - discount_amount,
    all in cents.
    """

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey("stores.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, nullable=True)
    session_token = Column(String(128), nullable=True)
    order_number = Column(String(40), nullable=False, unique=True)

    status = Column(String(20), nullable=False, default="pending")
    subtotal = Column(Integer, nullable=False)
    tax_amount = Column(Integer, nullable=False)
    shipping_amount = Column(Integer, nullable=False)
    discount_amount = Column(Integer, nullable=False, default=0)
    total_amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)

    shipping_address = Column(JSON, nullable=False)
    billing_address = Column(JSON, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    items = relationship("OrderItemModel", back_populates="order", order_by="OrderItemModel.id")
    payments = relationship("PaymentTransactionModel", back_populates="order")

    __table_args__ = (
        Index("ix_orders_store_user", "store_id", "user_id", "created_at"),
        Index("ix_orders_store_session", "store_id", "session_token", "created_at"),
    )
