"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

PaymentMethodName = Literal["cod", "card", "upi", "razorpay"]
OrderStatusName = Literal["pending", "confirmed", "preparing", "shipped", "delivered", "cancelled", "refunded"]


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingAddressSchema(BaseModel):
    full_name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    pincode: str = Field(min_length=1)
    phone: str = Field(min_length=1)


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Product Schemas
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    stock: int = Field(ge=0, default=0)
    image: str = ""
    low_stock_threshold: int = Field(ge=0, default=10)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Darjeeling First Flush",
                    "price": 450.0,
                    "stock": 25,
                    "image": "https://cdn.example.com/tea.jpg",
                }
            ]
        }
    }


class ProductIdResponse(BaseModel):
    product_id: str


class ProductResponse(BaseModel):
    product_id: str
    name: str
    price: float
    stock: int
    image: str | None = None
    is_available: bool
    stock_status: str


class AdjustStockRequest(BaseModel):
    delta: int


# ---------------------------------------------------------------------------
# Cart Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)


class UpdateCartQuantityRequest(BaseModel):
    # Zero removes the item
    quantity: int


class CartItemResponse(BaseModel):
    product_id: str
    quantity: int


class CartResponse(BaseModel):
    customer_id: str
    items: list[CartItemResponse] = []
    total_items: int = 0


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    customer_id: str
    shipping_address: ShippingAddressSchema
    payment_method: PaymentMethodName = "cod"
    notes: str | None = None
    coupon_code: str | None = None
    customer_email: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "shipping_address": {
                        "full_name": "Asha Rao",
                        "address": "12 Hill Cart Road",
                        "city": "Siliguri",
                        "state": "West Bengal",
                        "pincode": "734001",
                        "phone": "9876543210",
                    },
                    "payment_method": "cod",
                }
            ]
        }
    }


class CancelOrderRequest(BaseModel):
    customer_id: str
    reason: str = ""


class UpdateStatusRequest(BaseModel):
    status: OrderStatusName
    message: str | None = None
    location: str | None = None


class UpdateNotesRequest(BaseModel):
    admin_notes: str


class RecordPaymentRequest(BaseModel):
    payment_status: Literal["completed", "failed"]
    transaction_id: str | None = None
    gateway_order_id: str | None = None
    gateway_payment_id: str | None = None


# ---------------------------------------------------------------------------
# Order Response Schemas
# ---------------------------------------------------------------------------
class OrderItemResponse(BaseModel):
    product_id: str
    name: str
    unit_price: float
    quantity: int
    image: str | None = None


class PricingResponse(BaseModel):
    subtotal: float
    shipping: float
    tax: float
    discount: float
    total: float


class TrackingUpdateResponse(BaseModel):
    status: str
    message: str | None = None
    timestamp: datetime | None = None
    location: str | None = None


class PaymentResponse(BaseModel):
    method: str
    status: str
    transaction_id: str | None = None
    paid_at: datetime | None = None


class OrderResponse(BaseModel):
    reference: str
    customer_id: str
    status: str
    items: list[OrderItemResponse]
    pricing: PricingResponse
    shipping_address: ShippingAddressSchema
    payment: PaymentResponse
    tracking: list[TrackingUpdateResponse]
    total_items: int
    is_cancellable: bool
    is_returnable: bool
    cancel_reason: str | None = None
    admin_notes: str | None = None
    refund_amount: float | None = None
    notes: str | None = None
    coupon_code: str | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime | None = None


class PaginationResponse(BaseModel):
    current_page: int
    total_pages: int
    total_orders: int
    has_next: bool
    has_prev: bool


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    pagination: PaginationResponse


class TimelineEntryResponse(BaseModel):
    status: str
    message: str
    timestamp: datetime | None = None
    completed: bool


class TrackOrderResponse(BaseModel):
    reference: str
    current_status: str
    timeline: list[TimelineEntryResponse]
    updates: list[TrackingUpdateResponse]
