"""Menu catalogue models: MenuItem and its recipe links."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional, List

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.db.base import Base, TimestampMixin
from app.db.types import ExactNumeric
from app.models.validators import hhmm, non_negative, positive

DEFAULT_WINDOW_START = "00:00"
DEFAULT_WINDOW_END = "23:59"


class MenuItem(Base, TimestampMixin):
    """A sellable item.

    Stock is tracked either through ``recipe_links`` (recipe-backed item) or,
    when the item has no links, through its own flat ``quantity`` counter
    (simple item). ``in_stock`` is a manual override: when False the item is
    not orderable from customer-facing channels.
    """

    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(ExactNumeric(10, 2), nullable=False)
    cost: Mapped[Optional[Decimal]] = mapped_column(ExactNumeric(10, 2), nullable=True)  # Manual cost override
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Flat counter, used only when the item has no recipe
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    in_stock: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Time-of-day window, local clock; start > end wraps midnight
    is_time_bound: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    available_start: Mapped[str] = mapped_column(String(5), default=DEFAULT_WINDOW_START, nullable=False)
    available_end: Mapped[str] = mapped_column(String(5), default=DEFAULT_WINDOW_END, nullable=False)

    is_subscription_item: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    recipe_links: Mapped[List["RecipeLink"]] = relationship(
        "RecipeLink", back_populates="menu_item", cascade="all, delete-orphan"
    )

    @validates("price", "cost")
    def _validate_money(self, key, value):
        return non_negative(key, value)

    @validates("available_start", "available_end")
    def _validate_window(self, key, value):
        return hhmm(key, value)

    def __repr__(self) -> str:
        return f"<MenuItem {self.id} {self.name!r}>"


class RecipeLink(Base):
    """How much of one ingredient a single unit of a menu item consumes."""

    __tablename__ = "recipe_links"
    __table_args__ = (
        UniqueConstraint("menu_item_id", "ingredient_id", name="uq_recipe_item_ingredient"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    menu_item_id: Mapped[int] = mapped_column(
        ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id: Mapped[int] = mapped_column(
        ForeignKey("ingredients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity_required: Mapped[Decimal] = mapped_column(ExactNumeric(12, 4), nullable=False)  # In the ingredient's unit

    menu_item: Mapped["MenuItem"] = relationship("MenuItem", back_populates="recipe_links")
    ingredient: Mapped["Ingredient"] = relationship("Ingredient", back_populates="recipe_links")

    @validates("quantity_required")
    def _validate_quantity(self, key, value):
        return positive(key, value)


# Forward references
from app.models.ingredient import Ingredient
