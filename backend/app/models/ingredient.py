"""Ingredient stock model."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import Enum as SQLEnum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.db.base import Base, TimestampMixin
from app.db.types import ExactNumeric
from app.models.validators import non_negative


class IngredientUnit(str, Enum):
    """Units an ingredient is stocked and consumed in."""

    GRAM = "g"
    MILLILITRE = "ml"
    PIECE = "pcs"
    SLICE = "slice"
    KILOGRAM = "kg"
    LITRE = "l"


# Stock amounts are kept to the gram, millilitre or 0.001 kg/l
STOCK_AMOUNT = ExactNumeric(14, 3)


def quantize_stock(amount: Decimal) -> Decimal:
    return STOCK_AMOUNT.quantize(amount)


class Ingredient(Base, TimestampMixin):
    """A raw stock item consumed through recipes.

    ``current_stock`` is only changed by the stock ledger (order deductions
    and admin restock). Customer-facing orders never drive it below zero;
    POS orders may.
    """

    __tablename__ = "ingredients"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    current_stock: Mapped[Decimal] = mapped_column(STOCK_AMOUNT, default=Decimal("0"), nullable=False)
    unit: Mapped[IngredientUnit] = mapped_column(
        SQLEnum(IngredientUnit, values_callable=lambda x: [e.value for e in x], native_enum=False),
        nullable=False,
    )
    cost_per_unit: Mapped[Decimal] = mapped_column(ExactNumeric(10, 4), default=Decimal("0"), nullable=False)
    low_stock_threshold: Mapped[Decimal] = mapped_column(STOCK_AMOUNT, default=Decimal("0"), nullable=False)
    manufacturer: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    recipe_links: Mapped[List["RecipeLink"]] = relationship("RecipeLink", back_populates="ingredient")

    @validates("cost_per_unit", "low_stock_threshold")
    def _validate_non_negative(self, key, value):
        return non_negative(key, value)

    def __repr__(self) -> str:
        return f"<Ingredient {self.id} {self.name!r} {self.current_stock}{self.unit.value if self.unit else ''}>"


# Forward references
from app.models.menu import RecipeLink
