"""Inventory deduction audit log."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin


class InventoryLog(Base, TimestampMixin):
    """Ingredient deductions applied for one order.

    ``entries`` is a list of ``{"ingredient_id", "name", "amount", "unit"}``.
    Rows are written once by the order service and never updated.
    """

    __tablename__ = "inventory_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    reason: Mapped[str] = mapped_column(String(50), default="Order Placed", nullable=False)
    entries: Mapped[list] = mapped_column(JSON, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
