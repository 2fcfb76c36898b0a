"""Ingredient stock routes - restock deliveries and low-stock listing."""

from typing import List

from fastapi import APIRouter

from app.core.rbac import RequireAdmin, RequireStaff
from app.db.session import DbSession
from app.schemas.inventory import IngredientResponse, RestockRequest
from app.services.stock_ledger import StockLedger

router = APIRouter()


@router.get("/low-stock", response_model=List[IngredientResponse])
def list_low_stock(db: DbSession, _staff: RequireStaff):
    """Ingredients at or below their reorder threshold."""
    return StockLedger(db).low_stock()


@router.post("/{ingredient_id}/restock", response_model=IngredientResponse)
def restock_ingredient(
    db: DbSession,
    _admin: RequireAdmin,
    ingredient_id: int,
    payload: RestockRequest,
):
    """Record a delivery against an ingredient's stock."""
    return StockLedger(db).restock(ingredient_id, payload.amount)
