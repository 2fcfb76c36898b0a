"""Recipe resolver: what a menu item consumes per unit sold."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.menu import RecipeLink


@dataclass(frozen=True)
class RecipeRequirement:
    ingredient_id: int
    quantity_required: Decimal  # Per one unit of the menu item, in the ingredient's unit


class RecipeResolver:
    """Looks up recipe links for menu items.

    An item with no links is a simple item: ``resolve`` returns None and the
    caller tracks the item through its own quantity counter instead.
    """

    def __init__(self, db: Session):
        self.db = db

    def resolve(self, menu_item_id: int) -> Optional[List[RecipeRequirement]]:
        links = self.db.execute(
            select(RecipeLink)
            .where(RecipeLink.menu_item_id == menu_item_id)
            .order_by(RecipeLink.ingredient_id)
        ).scalars().all()
        if not links:
            return None
        return [RecipeRequirement(link.ingredient_id, link.quantity_required) for link in links]

    def resolve_many(self, menu_item_ids: Iterable[int]) -> Dict[int, Optional[List[RecipeRequirement]]]:
        """Resolve several items in one query. Items without links map to None."""
        ids = set(menu_item_ids)
        resolved: Dict[int, Optional[List[RecipeRequirement]]] = {item_id: None for item_id in ids}
        if not ids:
            return resolved

        links = self.db.execute(
            select(RecipeLink)
            .where(RecipeLink.menu_item_id.in_(ids))
            .order_by(RecipeLink.menu_item_id, RecipeLink.ingredient_id)
        ).scalars().all()
        for link in links:
            requirements = resolved[link.menu_item_id]
            if requirements is None:
                requirements = resolved[link.menu_item_id] = []
            requirements.append(RecipeRequirement(link.ingredient_id, link.quantity_required))
        return resolved
