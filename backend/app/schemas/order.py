"""Order placement and order status schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator

from app.core.sanitize import sanitize_text
from app.models.order import OrderSource, OrderStatus, OrderType, PaymentMethod


class CartLine(BaseModel):
    """One line of a cart being placed."""

    menu_item_id: int
    quantity: int = Field(gt=0)
    unit_price_override: Optional[Decimal] = Field(default=None, ge=0)
    customizations: Optional[dict] = None
    customization_text: Optional[str] = Field(default=None, max_length=500)

    @field_validator("customization_text", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)


class PlaceOrderRequest(BaseModel):
    """A cart placement request.

    Required fields are typed Optional so that a missing one is reported by
    the order service as an InvalidRequest naming the field, the same way
    whether the request came over HTTP or from another service.
    """

    items: List[CartLine] = Field(default_factory=list)
    total_amount: Optional[Decimal] = Field(default=None, ge=0)
    payment_method: Optional[PaymentMethod] = None
    session_id: Optional[str] = Field(default=None, max_length=100)
    order_type: OrderType = OrderType.DINE_IN
    source: OrderSource = OrderSource.WEB

    customer_id: Optional[int] = None  # Staff-attached customer (POS)
    guest_name: Optional[str] = Field(default=None, max_length=200)
    guest_phone: Optional[str] = Field(default=None, max_length=50)

    delivery_address: Optional[str] = None
    delivery_slot: Optional[str] = Field(default=None, max_length=50)

    coupon_code: Optional[str] = Field(default=None, max_length=50)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("order_type", "payment_method", mode="before")
    @classmethod
    def _lowercase(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator("guest_name", "delivery_address", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)


class CustomerSummary(BaseModel):
    id: int
    name: Optional[str] = None
    phone: str

    model_config = {"from_attributes": True}


class StatusEventResponse(BaseModel):
    status: OrderStatus
    timestamp: datetime

    model_config = {"from_attributes": True}


class OrderItemResponse(BaseModel):
    id: int
    menu_item_id: int
    menu_item_name: Optional[str] = None
    quantity: int
    unit_price: float
    customizations: Optional[dict] = None
    customization_text: Optional[str] = None

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    """A placed order with customer and menu item names."""

    id: int
    session_id: str
    customer: Optional[CustomerSummary] = None
    guest_name: Optional[str] = None
    guest_phone: Optional[str] = None
    total_amount: float
    payment_method: PaymentMethod
    order_type: OrderType
    source: OrderSource
    delivery_address: Optional[str] = None
    delivery_slot: Optional[str] = None
    coupon_code: Optional[str] = None
    discount_amount: float = 0
    status: OrderStatus
    status_history: List[StatusEventResponse] = []
    items: List[OrderItemResponse] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class OrderStatusResponse(BaseModel):
    """Cheap polling projection."""

    id: int
    status: OrderStatus
    status_history: List[StatusEventResponse] = []

    model_config = {"from_attributes": True}


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class CancelOrderResponse(BaseModel):
    message: str = "Order cancelled"
    order: OrderResponse
