# Services module

from app.services.availability import AvailabilityPolicy, ValidationMode, is_available
from app.services.duplicate_guard import DuplicateGuard
from app.services.loyalty_service import LoyaltyService, points_for
from app.services.order_service import OrderService
from app.services.order_status import OrderStatusMachine, is_done
from app.services.recipe_resolver import RecipeRequirement, RecipeResolver
from app.services.settings_service import SettingsService, StaticKitchenSettings
from app.services.stock_ledger import Deduction, StockLedger

__all__ = [
    "AvailabilityPolicy",
    "ValidationMode",
    "is_available",
    "DuplicateGuard",
    "LoyaltyService",
    "points_for",
    "OrderService",
    "OrderStatusMachine",
    "is_done",
    "RecipeRequirement",
    "RecipeResolver",
    "SettingsService",
    "StaticKitchenSettings",
    "Deduction",
    "StockLedger",
]
