"""Customer model for loyalty tracking."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional, List

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.db.base import Base, TimestampMixin
from app.db.types import ExactNumeric
from app.models.validators import non_negative


class Customer(Base, TimestampMixin):
    """A known customer, identified by phone number."""

    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(primary_key=True)
    phone: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Counters, incremented by the loyalty service when an order commits
    loyalty_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_spent: Mapped[Decimal] = mapped_column(ExactNumeric(12, 2), default=Decimal("0"), nullable=False)
    visit_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    orders: Mapped[List["Order"]] = relationship("Order", back_populates="customer")

    @validates("loyalty_points", "total_spent", "visit_count")
    def _validate_non_negative(self, key, value):
        return non_negative(key, value)


# Forward references
from app.models.order import Order
