# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime


# All money fields are integer minor units (cents).


class StoreOut(BaseModel):
    id: int
    name: str
    subdomain: str
    domain: Optional[str] = None
    currency: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class ItemIn(BaseModel):
    """Schema for adding a product to the cart."""

    product_id: int = Field(..., gt=0, description="Product ID (must be > 0)")
    variant_id: Optional[int] = Field(None, gt=0, description="Optional variant ID")
    quantity: int = Field(1, ge=1, description="Quantity (at least 1)")


class QuantityIn(BaseModel):
    """Schema for changing the quantity of a cart line."""

    quantity: int = Field(..., ge=1, description="New quantity (at least 1)")


class CartLineOut(BaseModel):
    id: int
    product_id: int
    variant_id: Optional[int] = None
    quantity: int
    price: int
    product_name: str
    sku: Optional[str] = None
    product_price: int
    line_total: int
    created_at: Optional[datetime] = None


class CartInfoOut(BaseModel):
    id: int
    store_id: int
    user_id: Optional[int] = None
    session_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CartOut(BaseModel):
    """Schema for the cart (response)."""

    cart: CartInfoOut
    items: List[CartLineOut]


class CartItemOut(BaseModel):
    """Schema for a single cart line returned by add/update."""

    id: int
    cart_id: int
    product_id: int
    variant_id: Optional[int] = None
    quantity: int
    price: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CartTotalsLineOut(BaseModel):
    id: int
    product_id: int
    quantity: int
    price: int
    total: int


class CartTotalsOut(BaseModel):
    subtotal: int
    total_items: int
    items: List[CartTotalsLineOut]


class CartIssueOut(BaseModel):
    item_id: int
    product_name: str
    issue: str


class CartValidationOut(BaseModel):
    valid: bool
    issues: List[CartIssueOut]


class AddressIn(BaseModel):
    """Postal address captured by value on the order."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    line1: str = Field(..., min_length=1, max_length=255)
    line2: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=2, max_length=2, description="ISO 3166-1 alpha-2")
    phone: Optional[str] = Field(None, max_length=32)


class CheckoutIn(BaseModel):
    """Schema for converting the caller's cart into an order."""

    shipping_address: AddressIn
    billing_address: Optional[AddressIn] = Field(
        None, description="Defaults to the shipping address"
    )
    payment_method: str = Field(..., min_length=1, max_length=50)
    notes: Optional[str] = Field(None, max_length=2000)


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    variant_id: Optional[int] = None
    product_name: str
    product_sku: Optional[str] = None
    quantity: int
    unit_price: int
    total_price: int

    model_config = ConfigDict(from_attributes=True)


class PaymentOut(BaseModel):
    id: int
    payment_method: str
    transaction_id: Optional[str] = None
    amount: int
    currency: str
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderSummaryOut(BaseModel):
    id: int
    order_number: str
    status: str
    subtotal: int
    tax_amount: int
    shipping_amount: int
    discount_amount: int
    total_amount: int
    currency: str
    created_at: datetime
    item_count: int = 0


class OrderOut(BaseModel):
    id: int
    store_id: int
    order_number: str
    status: str
    subtotal: int
    tax_amount: int
    shipping_amount: int
    discount_amount: int
    total_amount: int
    currency: str
    shipping_address: dict
    billing_address: dict
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CheckoutOut(BaseModel):
    order: OrderOut
    items: List[OrderItemOut]
    payment: PaymentOut


class OrderDetailOut(OrderOut):
    items: List[OrderItemOut]
    payment: Optional[PaymentOut] = None


class OrderEnvelopeOut(BaseModel):
    order: OrderDetailOut


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class OrderListOut(BaseModel):
    orders: List[OrderSummaryOut]
    pagination: PaginationOut

