"""Customer order models: Order, OrderItem and the status history log."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.db.base import Base, TimestampMixin, utcnow
from app.db.types import ExactNumeric
from app.models.validators import non_negative, positive


def _enum_column(enum_cls):
    return SQLEnum(enum_cls, values_callable=lambda x: [e.value for e in x], native_enum=False, length=32)


class OrderStatus(str, Enum):
    """Order lifecycle states."""

    PENDING = "Pending"
    ACCEPTED = "Accepted"
    COOKING = "Cooking"
    READY = "Ready"
    SERVED = "Served"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    PAID = "Paid"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    UPI = "upi"
    CARD = "card"
    COD = "cod"


class OrderType(str, Enum):
    DINE_IN = "dine-in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"


class OrderSource(str, Enum):
    """Channel an order was submitted from."""

    WEB = "web"  # Storefront
    QR = "qr"  # Table QR menu
    POS = "pos"  # Staff point-of-sale terminal


class Order(Base, TimestampMixin):
    """A placed order. Never deleted; cancellation is a status."""

    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_session_total_created", "session_id", "total_amount", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    session_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    customer_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    guest_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    guest_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    total_amount: Mapped[Decimal] = mapped_column(ExactNumeric(10, 2), nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(_enum_column(PaymentMethod), nullable=False)
    order_type: Mapped[OrderType] = mapped_column(
        _enum_column(OrderType), default=OrderType.DINE_IN, nullable=False
    )
    source: Mapped[OrderSource] = mapped_column(_enum_column(OrderSource), default=OrderSource.WEB, nullable=False)

    delivery_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delivery_slot: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    coupon_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    discount_amount: Mapped[Decimal] = mapped_column(ExactNumeric(10, 2), default=Decimal("0"), nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        _enum_column(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True
    )

    customer: Mapped[Optional["Customer"]] = relationship("Customer", back_populates="orders")
    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )
    status_history: Mapped[List["OrderStatusEvent"]] = relationship(
        "OrderStatusEvent", back_populates="order", cascade="all, delete-orphan",
        order_by="OrderStatusEvent.id",
    )

    @validates("total_amount", "discount_amount")
    def _validate_money(self, key, value):
        return non_negative(key, value)

    def record_status(self, status: OrderStatus, at: Optional[datetime] = None) -> "OrderStatusEvent":
        """Set the status and append it to the history log."""
        event = OrderStatusEvent(status=status, timestamp=at or utcnow())
        self.status = status
        self.status_history.append(event)
        return event


class OrderStatusEvent(Base):
    """Append-only status history entry."""

    __tablename__ = "order_status_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[OrderStatus] = mapped_column(_enum_column(OrderStatus), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="status_history")


class OrderItem(Base):
    """A cart line. ``unit_price`` is a snapshot taken at submission time."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_item_id: Mapped[int] = mapped_column(ForeignKey("menu_items.id"), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    customizations: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    customization_text: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    unit_price: Mapped[Decimal] = mapped_column(ExactNumeric(10, 2), nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="items")
    menu_item: Mapped["MenuItem"] = relationship("MenuItem")

    @property
    def menu_item_name(self) -> Optional[str]:
        return self.menu_item.name if self.menu_item else None

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return positive(key, value)


# Forward references
from app.models.customer import Customer
from app.models.menu import MenuItem
