"""Ingredient stock and kitchen switch schemas."""

from decimal import Decimal

from pydantic import BaseModel, Field

from app.models.ingredient import IngredientUnit


class IngredientResponse(BaseModel):
    id: int
    name: str
    current_stock: float
    unit: IngredientUnit
    low_stock_threshold: float

    model_config = {"from_attributes": True}


class RestockRequest(BaseModel):
    amount: Decimal = Field(gt=0)


class KitchenStatus(BaseModel):
    open: bool
