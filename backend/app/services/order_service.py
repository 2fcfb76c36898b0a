"""Order Service - places orders and reserves stock in one transaction.

Placing an order:
1. Kitchen switch (strict mode only)
2. Required fields
3. Customer identity (authenticated customer, staff-attached customer, or guest details)
4. Duplicate submission guard
5. For each cart line, in cart order:
   a. Menu item exists (all items are row-locked up front)
   b. Orderable now: in stock flag and time window (strict mode only)
   c. Recipe-backed: stage ingredient deductions, checking cumulative need
      against locked stock (strict mode only)
   d. Simple: stage a decrement of the item's own counter, same check
6. Apply staged decrements
7. Insert order, line items and the Pending status entry
8. Inventory log for ingredient deductions
9. Loyalty credit for a known customer
10. Commit, or roll back everything on any failure
11. Re-read the hydrated order

POS orders run in trusted mode: kitchen, time window and stock sufficiency
checks are skipped but deductions are still applied, so POS sales may drive
stock negative. Simple items still flip ``in_stock`` off at zero; recipe-backed
items never do from this path.
"""

import logging
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.exceptions import (
    InsufficientStock,
    InvalidRequest,
    ItemNotFound,
    OrderError,
    OrderNotFound,
    TransientStoreError,
    Unauthorized,
)
from app.core.rbac import Actor
from app.models.customer import Customer
from app.models.ingredient import quantize_stock
from app.models.menu import MenuItem
from app.models.order import Order, OrderItem, OrderSource, OrderStatus
from app.schemas.order import PlaceOrderRequest
from app.services.availability import (
    AvailabilityPolicy,
    KitchenSettings,
    ValidationMode,
    utc_clock,
)
from app.services.duplicate_guard import DuplicateGuard
from app.services.loyalty_service import LoyaltyService
from app.services.order_status import ACTIVE_STATUSES, OrderStatusMachine
from app.services.recipe_resolver import RecipeResolver
from app.services.settings_service import SettingsService
from app.services.stock_ledger import Deduction, StockLedger

logger = logging.getLogger(__name__)


class OrderService:
    """Order placement, status changes and order reads."""

    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utc_clock,
        kitchen: Optional[KitchenSettings] = None,
    ):
        self.db = db
        self.clock = clock
        self.kitchen = kitchen or SettingsService(db)
        self.ledger = StockLedger(db)
        self.resolver = RecipeResolver(db)
        self.status_machine = OrderStatusMachine(clock)

    # ===== TRANSACTIONS =====

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[None]:
        """Commit on success; roll back and classify the error on failure."""
        try:
            yield
            self.db.commit()
        except OrderError as e:
            self.db.rollback()
            logger.info(f"{operation} rejected: {e.kind}: {e.message}")
            raise
        except OperationalError as e:
            self.db.rollback()
            logger.warning(f"{operation} failed on a busy or unreachable store: {e}")
            raise TransientStoreError() from e
        except DBAPIError as e:
            self.db.rollback()
            if e.connection_invalidated:
                logger.warning(f"{operation} lost its database connection: {e}")
                raise TransientStoreError("Lost connection to the store, please retry.") from e
            logger.error(f"{operation} failed: {e}", exc_info=True)
            raise
        except Exception:
            self.db.rollback()
            logger.error(f"{operation} failed", exc_info=True)
            raise

    # ===== PLACEMENT =====

    def place_order(self, request: PlaceOrderRequest, actor: Optional[Actor] = None) -> Order:
        """Validate, reserve stock and persist an order atomically.

        Raises an ``OrderError`` subclass on any business-rule failure and
        ``TransientStoreError`` when the store is busy; in both cases nothing
        has been written. Besides the availability, stock and duplicate
        checks, ``Unauthorized`` is raised when a POS order comes from an
        actor without a staff role.
        """
        actor = actor or Actor.guest(request.session_id)
        mode = ValidationMode.for_source(request.source)
        policy = AvailabilityPolicy(mode, self.kitchen, self.clock)

        with self._transaction("Order placement"):
            order = self._place(request, actor, mode, policy)
            order_id = order.id

        logger.info(
            f"Order {order_id} placed: session={request.session_id} total={request.total_amount} "
            f"source={request.source.value} lines={len(request.items)}"
        )
        return self.get_order(order_id)

    def _place(
        self,
        request: PlaceOrderRequest,
        actor: Actor,
        mode: ValidationMode,
        policy: AvailabilityPolicy,
    ) -> Order:
        if request.source == OrderSource.POS and not actor.is_staff:
            raise Unauthorized("POS orders must be placed by staff")

        policy.ensure_kitchen_open()
        self._validate_required(request)

        now = self.clock()
        customer, guest_name, guest_phone = self._resolve_identity(request, actor)

        DuplicateGuard(self.db).check(request.session_id, request.total_amount, now)

        menu_items = self._load_menu_items(request)
        deductions, item_decrements = self._stage_stock(request, menu_items, mode, policy)

        self._apply_stock(deductions, item_decrements, mode)

        order = Order(
            session_id=request.session_id,
            customer_id=customer.id if customer else None,
            guest_name=guest_name,
            guest_phone=guest_phone,
            total_amount=request.total_amount,
            payment_method=request.payment_method,
            order_type=request.order_type,
            source=request.source,
            delivery_address=request.delivery_address,
            delivery_slot=request.delivery_slot,
            coupon_code=request.coupon_code,
            discount_amount=request.discount_amount,
            created_at=now,
            updated_at=now,
        )
        order.record_status(OrderStatus.PENDING, now)
        for line in request.items:
            menu_item = menu_items[line.menu_item_id]
            order.items.append(OrderItem(
                menu_item_id=menu_item.id,
                quantity=line.quantity,
                customizations=line.customizations,
                customization_text=line.customization_text,
                unit_price=(
                    line.unit_price_override
                    if line.unit_price_override is not None
                    else menu_item.price
                ),
            ))
        self.db.add(order)
        self.db.flush()

        if deductions:
            self.ledger.record_deductions(order.id, deductions)

        if customer is not None:
            LoyaltyService(self.db).credit(customer.id, request.total_amount)

        return order

    def _validate_required(self, request: PlaceOrderRequest) -> None:
        missing = []
        if not request.items:
            missing.append("items")
        if request.total_amount is None:
            missing.append("total_amount")
        if request.payment_method is None:
            missing.append("payment_method")
        if not request.session_id or not request.session_id.strip():
            missing.append("session_id")
        if missing:
            raise InvalidRequest(f"Missing required fields: {', '.join(missing)}")

    def _resolve_identity(
        self, request: PlaceOrderRequest, actor: Actor
    ) -> Tuple[Optional[Customer], Optional[str], Optional[str]]:
        """Return (customer, guest_name, guest_phone).

        A logged-in customer is credited as themselves. Staff may attach a
        customer to a POS/counter order. Anyone else is a guest; a guest who
        gives a phone number has their name and phone kept on the order.
        """
        customer_id = None
        if actor.customer_id is not None:
            customer_id = actor.customer_id
        elif actor.is_staff and request.customer_id is not None:
            customer_id = request.customer_id

        if customer_id is not None:
            customer = self.db.get(Customer, customer_id)
            if customer is not None:
                return customer, None, None
            logger.warning(f"Customer {customer_id} not found, placing order without loyalty credit")

        if request.guest_phone:
            return None, request.guest_name or "Guest", request.guest_phone
        return None, None, None

    def _load_menu_items(self, request: PlaceOrderRequest) -> Dict[int, MenuItem]:
        menu_items = self.ledger.lock_menu_items(line.menu_item_id for line in request.items)
        for line in request.items:
            if line.menu_item_id not in menu_items:
                raise ItemNotFound(line.menu_item_id)
        return menu_items

    def _stage_stock(
        self,
        request: PlaceOrderRequest,
        menu_items: Dict[int, MenuItem],
        mode: ValidationMode,
        policy: AvailabilityPolicy,
    ) -> Tuple[List[Deduction], Dict[int, int]]:
        """Check each line and stage the stock it consumes.

        Sufficiency is checked against the running total across the whole
        cart, so two lines drawing on the same ingredient cannot each pass
        against the full stock.
        """
        recipes = self.resolver.resolve_many(menu_items)
        ingredient_ids = {
            requirement.ingredient_id
            for requirements in recipes.values() if requirements
            for requirement in requirements
        }
        ingredients = self.ledger.lock_ingredients(ingredient_ids)
        now_hhmm = policy.current_hhmm()

        deductions: List[Deduction] = []
        needed: Dict[int, Decimal] = defaultdict(Decimal)
        item_decrements: Dict[int, int] = defaultdict(int)

        for line in request.items:
            menu_item = menu_items[line.menu_item_id]
            policy.ensure_orderable(menu_item, now_hhmm)

            requirements = recipes.get(menu_item.id)
            if requirements:
                for requirement in requirements:
                    ingredient = ingredients[requirement.ingredient_id]
                    amount = quantize_stock(requirement.quantity_required * line.quantity)
                    needed[ingredient.id] += amount
                    if mode.enforces_stock and ingredient.current_stock < needed[ingredient.id]:
                        raise InsufficientStock(
                            f"Insufficient {ingredient.name} for {menu_item.name}.",
                            name=ingredient.name,
                        )
                    deductions.append(Deduction(ingredient, amount, menu_item.name))
            else:
                item_decrements[menu_item.id] += line.quantity
                if mode.enforces_stock and menu_item.quantity < item_decrements[menu_item.id]:
                    raise InsufficientStock(f"{menu_item.name} is out of stock", name=menu_item.name)

        return deductions, dict(item_decrements)

    def _apply_stock(
        self,
        deductions: List[Deduction],
        item_decrements: Dict[int, int],
        mode: ValidationMode,
    ) -> None:
        """Apply staged decrements, one UPDATE per row, in ascending id order."""
        merged: Dict[int, Deduction] = {}
        for deduction in deductions:
            key = deduction.ingredient.id
            if key in merged:
                merged[key].amount += deduction.amount
            else:
                merged[key] = Deduction(deduction.ingredient, deduction.amount, deduction.menu_item_name)

        for ingredient_id in sorted(merged):
            self.ledger.deduct_ingredient(merged[ingredient_id], enforce=mode.enforces_stock)

        for menu_item_id in sorted(item_decrements):
            menu_item = self.db.get(MenuItem, menu_item_id)
            self.ledger.deduct_menu_item(menu_item, item_decrements[menu_item_id], enforce=mode.enforces_stock)

    # ===== STATUS =====

    def update_status(self, order_id: int, new_status: OrderStatus, actor: Actor) -> Order:
        with self._transaction(f"Status change for order {order_id}"):
            order = self._lock_order(order_id)
            self.status_machine.transition(order, new_status, actor)
        return self.get_order(order_id)

    def cancel_order(self, order_id: int, actor: Actor) -> Order:
        with self._transaction(f"Cancellation of order {order_id}"):
            order = self._lock_order(order_id)
            self.status_machine.cancel(order, actor)
        return self.get_order(order_id)

    def _lock_order(self, order_id: int) -> Order:
        order = self.db.execute(
            select(Order).where(Order.id == order_id).with_for_update()
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFound(order_id)
        return order

    # ===== READS =====

    def _hydrated(self):
        return select(Order).options(
            joinedload(Order.customer),
            selectinload(Order.items).joinedload(OrderItem.menu_item),
            selectinload(Order.status_history),
        )

    def get_order(self, order_id: int) -> Order:
        order = self.db.execute(
            self._hydrated().where(Order.id == order_id)
        ).unique().scalar_one_or_none()
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def get_status(self, order_id: int) -> Order:
        order = self.db.execute(
            select(Order).options(selectinload(Order.status_history)).where(Order.id == order_id)
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def _owner_filter(self, session_id: Optional[str], customer_id: Optional[int]):
        if customer_id is not None:
            return Order.customer_id == customer_id
        if session_id:
            return Order.session_id == session_id
        raise InvalidRequest("Session ID or Login required")

    def history(self, session_id: Optional[str] = None, customer_id: Optional[int] = None) -> List[Order]:
        """Orders for a customer or guest session, newest first."""
        condition = self._owner_filter(session_id, customer_id)
        return list(self.db.execute(
            self._hydrated().where(condition).order_by(Order.created_at.desc(), Order.id.desc())
        ).unique().scalars().all())

    def current_order(self, session_id: Optional[str] = None, customer_id: Optional[int] = None) -> Optional[Order]:
        """The newest order that is still in progress, if any."""
        condition = self._owner_filter(session_id, customer_id)
        return self.db.execute(
            self._hydrated()
            .where(condition, Order.status.in_(ACTIVE_STATUSES))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(1)
        ).unique().scalar_one_or_none()
