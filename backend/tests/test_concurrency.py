"""Concurrent order placement against a shared file-backed database."""

import threading
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from app.core.exceptions import InsufficientStock
from app.core.rbac import Actor, ActorRole
from app.models.customer import Customer
from app.models.ingredient import Ingredient, IngredientUnit
from app.models.menu import MenuItem, RecipeLink
from app.models.order import Order
from app.schemas.order import CartLine, PlaceOrderRequest
from app.services.order_service import OrderService


@pytest.fixture
def file_sessions(file_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=file_engine)


@pytest.fixture
def seeded(file_sessions):
    """Bread needing 100 g flour per loaf; returns a factory for the flour level."""
    def _seed(flour_grams: str):
        db = file_sessions()
        try:
            flour = Ingredient(name="Flour", current_stock=Decimal(flour_grams), unit=IngredientUnit.GRAM)
            bread = MenuItem(name="Bread", price=Decimal("50"), category="Bakery")
            db.add_all([flour, bread])
            db.flush()
            db.add(RecipeLink(menu_item_id=bread.id, ingredient_id=flour.id, quantity_required=Decimal("100")))
            customer = Customer(phone="9000000001", name="Meera")
            db.add(customer)
            db.commit()
            return flour.id, bread.id, customer.id
        finally:
            db.close()
    return _seed


def _race(file_sessions, bread_id, contenders, actor_for=None):
    """Place one-loaf orders from several threads at once; return outcomes."""
    barrier = threading.Barrier(contenders)
    outcomes = []
    lock = threading.Lock()

    def worker(n):
        db = file_sessions()
        request = PlaceOrderRequest(
            items=[CartLine(menu_item_id=bread_id, quantity=1)],
            total_amount=Decimal("100"),
            payment_method="cash",
            session_id=f"sess-{n}",
        )
        actor = actor_for(n) if actor_for else Actor.guest(request.session_id)
        try:
            barrier.wait()
            OrderService(db).place_order(request, actor)
            result = "placed"
        except InsufficientStock:
            result = "insufficient"
        except Exception as e:
            result = e
        finally:
            db.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(contenders)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return outcomes


class TestConcurrentPlacement:
    def test_last_unit_goes_to_exactly_one_order(self, file_sessions, seeded):
        flour_id, bread_id, _ = seeded("100")

        outcomes = _race(file_sessions, bread_id, contenders=2)

        assert sorted(outcomes) == ["insufficient", "placed"]
        db = file_sessions()
        try:
            assert db.get(Ingredient, flour_id).current_stock == Decimal("0")
            assert db.query(Order).count() == 1
        finally:
            db.close()

    def test_stock_never_goes_negative_under_contention(self, file_sessions, seeded):
        flour_id, bread_id, _ = seeded("300")

        outcomes = _race(file_sessions, bread_id, contenders=6)

        assert outcomes.count("placed") == 3
        assert outcomes.count("insufficient") == 3
        db = file_sessions()
        try:
            assert db.get(Ingredient, flour_id).current_stock == Decimal("0")
            assert db.query(Order).count() == 3
        finally:
            db.close()

    def test_concurrent_orders_for_one_customer_keep_every_credit(self, file_sessions, seeded):
        _, bread_id, customer_id = seeded("10000")

        outcomes = _race(
            file_sessions, bread_id, contenders=4,
            actor_for=lambda n: Actor(role=ActorRole.CUSTOMER, customer_id=customer_id, session_id=f"sess-{n}"),
        )

        assert outcomes == ["placed"] * 4
        db = file_sessions()
        try:
            customer = db.get(Customer, customer_id)
            assert customer.visit_count == 4
            assert customer.loyalty_points == 4
            assert customer.total_spent == Decimal("400")
        finally:
            db.close()
