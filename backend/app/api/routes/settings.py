"""Settings API routes - the global kitchen switch."""

from fastapi import APIRouter

from app.core.rbac import RequireAdmin
from app.db.session import DbSession
from app.schemas.inventory import KitchenStatus
from app.services.settings_service import SettingsService

router = APIRouter()


@router.get("/status", response_model=KitchenStatus)
def get_kitchen_status(db: DbSession):
    """Whether the kitchen is taking storefront and QR orders."""
    return KitchenStatus(open=SettingsService(db).is_kitchen_open())


@router.post("/status", response_model=KitchenStatus)
def set_kitchen_status(db: DbSession, _admin: RequireAdmin, payload: KitchenStatus):
    return KitchenStatus(open=SettingsService(db).set_kitchen_open(payload.open))
