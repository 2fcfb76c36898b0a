"""Stock Ledger - owns ingredient and menu item stock counters.

All stock changes made while placing an order go through this service so
they share the caller's transaction:

1. Rows are locked in ascending id order (SELECT ... FOR UPDATE on servers
   that support it; SQLite serialises writers with BEGIN IMMEDIATE instead).
2. Decrements are single conditional UPDATE statements, so a concurrent
   writer can never push stock below what the check saw.
3. Nothing here commits. The order service commits or rolls back the whole
   order as one unit.

``restock`` is an admin operation outside order placement and commits on its
own.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.exceptions import IngredientNotFound, InsufficientStock, InvalidRequest
from app.models.ingredient import Ingredient
from app.models.inventory_log import InventoryLog
from app.models.menu import MenuItem

logger = logging.getLogger(__name__)


@dataclass
class Deduction:
    """An ingredient amount consumed by an order."""

    ingredient: Ingredient
    amount: Decimal
    menu_item_name: str = ""

    def to_log_entry(self) -> dict:
        return {
            "ingredient_id": self.ingredient.id,
            "name": self.ingredient.name,
            "amount": float(self.amount),
            "unit": self.ingredient.unit.value,
        }


class StockLedger:
    """Bounded decrements on ingredient and simple-item stock."""

    def __init__(self, db: Session):
        self.db = db

    # ===== LOCKING =====

    def lock_ingredients(self, ingredient_ids: Iterable[int]) -> Dict[int, Ingredient]:
        ids = sorted(set(ingredient_ids))
        if not ids:
            return {}
        rows = self.db.execute(
            select(Ingredient)
            .where(Ingredient.id.in_(ids))
            .order_by(Ingredient.id)
            .with_for_update()
        ).scalars().all()
        return {row.id: row for row in rows}

    def lock_menu_items(self, menu_item_ids: Iterable[int]) -> Dict[int, MenuItem]:
        ids = sorted(set(menu_item_ids))
        if not ids:
            return {}
        rows = self.db.execute(
            select(MenuItem)
            .where(MenuItem.id.in_(ids))
            .order_by(MenuItem.id)
            .with_for_update()
        ).scalars().all()
        return {row.id: row for row in rows}

    # ===== DECREMENTS =====

    def deduct_ingredient(self, deduction: Deduction, enforce: bool = True) -> None:
        """Subtract ``deduction.amount`` from the ingredient's stock.

        With ``enforce`` the update only applies while enough stock remains;
        without it (trusted POS orders) stock may go negative.
        """
        ingredient = deduction.ingredient
        stmt = (
            update(Ingredient)
            .where(Ingredient.id == ingredient.id)
            .values(current_stock=Ingredient.current_stock - deduction.amount)
            .execution_options(synchronize_session=False)
        )
        if enforce:
            stmt = stmt.where(Ingredient.current_stock >= deduction.amount)

        result = self.db.execute(stmt)
        if result.rowcount == 0:
            raise InsufficientStock(
                f"Insufficient {ingredient.name} for {deduction.menu_item_name}.",
                name=ingredient.name,
            )
        self.db.expire(ingredient, ["current_stock"])

    def deduct_menu_item(self, menu_item: MenuItem, quantity: int, enforce: bool = True) -> None:
        """Decrement a simple item's own counter, marking it out of stock at zero."""
        stmt = (
            update(MenuItem)
            .where(MenuItem.id == menu_item.id)
            .values(quantity=MenuItem.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if enforce:
            stmt = stmt.where(MenuItem.quantity >= quantity)

        result = self.db.execute(stmt)
        if result.rowcount == 0:
            raise InsufficientStock(f"{menu_item.name} is out of stock", name=menu_item.name)

        self.db.execute(
            update(MenuItem)
            .where(MenuItem.id == menu_item.id, MenuItem.quantity <= 0)
            .values(in_stock=False)
            .execution_options(synchronize_session=False)
        )
        self.db.expire(menu_item, ["quantity", "in_stock"])

    def record_deductions(self, order_id: int, deductions: List[Deduction]) -> InventoryLog:
        """Write the audit row for an order's ingredient deductions."""
        log = InventoryLog(
            order_id=order_id,
            reason="Order Placed",
            entries=[d.to_log_entry() for d in deductions],
        )
        self.db.add(log)
        return log

    # ===== ADMIN =====

    def restock(self, ingredient_id: int, amount: Decimal) -> Ingredient:
        """Add delivered stock to an ingredient and commit."""
        if amount is None or amount <= 0:
            raise InvalidRequest(f"Restock amount must be positive, got {amount}")

        ingredient = self.db.get(Ingredient, ingredient_id)
        if ingredient is None:
            raise IngredientNotFound(ingredient_id)

        self.db.execute(
            update(Ingredient)
            .where(Ingredient.id == ingredient_id)
            .values(current_stock=Ingredient.current_stock + amount)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(ingredient)
        logger.info(f"Restocked '{ingredient.name}' by {amount} {ingredient.unit.value}, now {ingredient.current_stock}")
        return ingredient

    def low_stock(self) -> List[Ingredient]:
        """Ingredients at or below their low-stock threshold."""
        return list(self.db.execute(
            select(Ingredient)
            .where(Ingredient.current_stock <= Ingredient.low_stock_threshold)
            .order_by(Ingredient.name)
        ).scalars().all())
