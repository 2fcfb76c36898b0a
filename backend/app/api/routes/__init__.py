"""API routes."""

from fastapi import APIRouter

from app.api.routes import ingredients, orders, settings

api_router = APIRouter()

api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(ingredients.router, prefix="/ingredients", tags=["ingredients"])
