"""SQLAlchemy models."""

from app.models.customer import Customer
from app.models.ingredient import Ingredient, IngredientUnit
from app.models.inventory_log import InventoryLog
from app.models.menu import MenuItem, RecipeLink
from app.models.order import (
    Order,
    OrderItem,
    OrderSource,
    OrderStatus,
    OrderStatusEvent,
    OrderType,
    PaymentMethod,
)
from app.models.setting import Setting, KITCHEN_OPEN_KEY

__all__ = [
    "Customer",
    "Ingredient",
    "IngredientUnit",
    "InventoryLog",
    "MenuItem",
    "RecipeLink",
    "Order",
    "OrderItem",
    "OrderSource",
    "OrderStatus",
    "OrderStatusEvent",
    "OrderType",
    "PaymentMethod",
    "Setting",
    "KITCHEN_OPEN_KEY",
]
