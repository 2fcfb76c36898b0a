"""Pytest configuration and fixtures."""

import os

# Settings are read once at import time; point the app at a throwaway database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-the-cafe-order-suite-0123456789")

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.rbac import ActorRole
from app.core.security import create_actor_token
from app.db.base import Base
from app.db.session import create_db_engine, get_db
from app.main import app
# Import all models to ensure they're registered with Base.metadata
from app.models import *
from app.schemas.order import CartLine, PlaceOrderRequest
from app.services.order_service import OrderService

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# 12:00 in Asia/Kolkata
NOON_IST = datetime(2024, 6, 1, 6, 30, tzinfo=timezone.utc)


class FrozenClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime = NOON_IST):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_db_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def file_engine(tmp_path):
    """File-backed SQLite engine for tests that need real concurrent connections."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'cafe.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiter during tests to avoid flaky failures
    from app.core.rate_limit import limiter as global_limiter
    global_limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    global_limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def order_service(db_session: Session, clock: FrozenClock) -> OrderService:
    """Order service on the test session with a frozen clock at noon local time."""
    return OrderService(db_session, clock=clock)


@pytest.fixture
def make_order_request():
    """Build a PlaceOrderRequest from (menu item, quantity) pairs."""
    def _make(lines, total, session_id="sess-1", payment_method="cash", **kwargs) -> PlaceOrderRequest:
        return PlaceOrderRequest(
            items=[CartLine(menu_item_id=item.id, quantity=qty) for item, qty in lines],
            total_amount=Decimal(str(total)),
            payment_method=payment_method,
            session_id=session_id,
            **kwargs,
        )
    return _make


# ===== AUTH =====

def make_token(role: ActorRole, subject: int) -> str:
    return create_actor_token(role.value, subject)


@pytest.fixture
def admin_headers() -> dict:
    return {"Authorization": f"Bearer {make_token(ActorRole.ADMIN, 1)}"}


@pytest.fixture
def cashier_headers() -> dict:
    return {"Authorization": f"Bearer {make_token(ActorRole.CASHIER, 2)}"}


@pytest.fixture
def kitchen_headers() -> dict:
    return {"Authorization": f"Bearer {make_token(ActorRole.KITCHEN, 3)}"}


@pytest.fixture
def customer_headers(customer: Customer) -> dict:
    return {"Authorization": f"Bearer {make_token(ActorRole.CUSTOMER, customer.id)}"}


# ===== CATALOGUE =====

def _save(db_session: Session, obj):
    db_session.add(obj)
    db_session.commit()
    db_session.refresh(obj)
    return obj


@pytest.fixture
def flour(db_session: Session) -> Ingredient:
    return _save(db_session, Ingredient(
        name="Flour",
        current_stock=Decimal("1000"),
        unit=IngredientUnit.GRAM,
        cost_per_unit=Decimal("0.05"),
        low_stock_threshold=Decimal("200"),
    ))


@pytest.fixture
def butter(db_session: Session) -> Ingredient:
    return _save(db_session, Ingredient(
        name="Butter",
        current_stock=Decimal("500"),
        unit=IngredientUnit.GRAM,
        cost_per_unit=Decimal("0.40"),
        low_stock_threshold=Decimal("100"),
    ))


@pytest.fixture
def bread(db_session: Session, flour: Ingredient) -> MenuItem:
    """Recipe-backed: 100 g flour per loaf."""
    item = MenuItem(name="Bread", price=Decimal("50.00"), category="Bakery")
    item.recipe_links.append(RecipeLink(ingredient_id=flour.id, quantity_required=Decimal("100")))
    return _save(db_session, item)


@pytest.fixture
def croissant(db_session: Session, flour: Ingredient, butter: Ingredient) -> MenuItem:
    """Recipe-backed: 50 g flour and 20 g butter each."""
    item = MenuItem(name="Croissant", price=Decimal("80.00"), category="Bakery")
    item.recipe_links.append(RecipeLink(ingredient_id=flour.id, quantity_required=Decimal("50")))
    item.recipe_links.append(RecipeLink(ingredient_id=butter.id, quantity_required=Decimal("20")))
    return _save(db_session, item)


@pytest.fixture
def cola(db_session: Session) -> MenuItem:
    """Simple item tracked by its own counter."""
    return _save(db_session, MenuItem(
        name="Cola", price=Decimal("40.00"), category="Drinks", quantity=5,
    ))


@pytest.fixture
def breakfast(db_session: Session) -> MenuItem:
    """Simple item only served 07:00-11:00."""
    return _save(db_session, MenuItem(
        name="Breakfast Combo",
        price=Decimal("150.00"),
        category="Combos",
        quantity=10,
        is_time_bound=True,
        available_start="07:00",
        available_end="11:00",
    ))


@pytest.fixture
def customer(db_session: Session) -> Customer:
    return _save(db_session, Customer(phone="9990001111", name="Asha"))


@pytest.fixture
def closed_kitchen(db_session: Session) -> Setting:
    return _save(db_session, Setting(key=KITCHEN_OPEN_KEY, value=False))
