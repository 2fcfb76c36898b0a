"""Order routes - placement, polling, history, status changes and cancellation."""

import logging
from dataclasses import replace
from typing import List, Optional

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import JSONResponse

from app.core.rate_limit import limiter
from app.core.rbac import CurrentActor, RequireStaff
from app.db.session import DbSession
from app.schemas.order import (
    CancelOrderResponse,
    OrderResponse,
    OrderStatusResponse,
    OrderStatusUpdate,
    PlaceOrderRequest,
)
from app.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def place_order(
    request: Request,
    db: DbSession,
    actor: CurrentActor,
    payload: PlaceOrderRequest,
):
    """Place an order from the storefront, a table QR code or the POS."""
    if actor.session_id is None:
        actor = replace(actor, session_id=payload.session_id)
    return OrderService(db).place_order(payload, actor)


@router.post("/payment")
def create_payment():
    """Online payment is not wired up yet."""
    return JSONResponse(
        status_code=status.HTTP_501_NOT_IMPLEMENTED,
        content={"message": "Payment integration pending"},
    )


@router.get("/history", response_model=List[OrderResponse])
def get_order_history(
    db: DbSession,
    actor: CurrentActor,
    session_id: Optional[str] = Query(None, max_length=100),
):
    """Orders for the logged-in customer, or for a guest session."""
    return OrderService(db).history(session_id=session_id, customer_id=actor.customer_id)


@router.get("/current", response_model=Optional[OrderResponse])
def get_current_order(
    db: DbSession,
    actor: CurrentActor,
    session_id: Optional[str] = Query(None, max_length=100),
):
    """The newest order still in progress, or null."""
    return OrderService(db).current_order(session_id=session_id, customer_id=actor.customer_id)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(db: DbSession, order_id: int):
    return OrderService(db).get_order(order_id)


@router.get("/{order_id}/status", response_model=OrderStatusResponse)
def get_order_status(db: DbSession, order_id: int):
    """Lightweight status polling for the order tracking page."""
    return OrderService(db).get_status(order_id)


@router.put("/{order_id}", response_model=OrderResponse)
def update_order_status(
    db: DbSession,
    actor: RequireStaff,
    order_id: int,
    payload: OrderStatusUpdate,
):
    """Move an order along its lifecycle (kitchen display, cashier)."""
    return OrderService(db).update_status(order_id, payload.status, actor)


@router.patch("/{order_id}/cancel", response_model=CancelOrderResponse)
def cancel_order(
    db: DbSession,
    actor: CurrentActor,
    order_id: int,
    session_id: Optional[str] = Query(None, max_length=100),
):
    """Cancel an order.

    Guests prove ownership with the session id the order was placed under.
    """
    if session_id and actor.session_id is None:
        actor = replace(actor, session_id=session_id)
    order = OrderService(db).cancel_order(order_id, actor)
    return CancelOrderResponse(order=OrderResponse.model_validate(order))
