"""Tests for the order status machine."""

import pytest
from datetime import timedelta
from decimal import Decimal

from app.core.exceptions import InvalidStateTransition, OrderNotFound, Unauthorized
from app.core.rbac import Actor, ActorRole
from app.models.order import Order, OrderStatus, OrderStatusEvent, PaymentMethod
from app.services.order_status import ACTIVE_STATUSES, OrderStatusMachine, is_done

ADMIN = Actor(role=ActorRole.ADMIN, user_id=1)
CASHIER = Actor(role=ActorRole.CASHIER, user_id=2)
KITCHEN = Actor(role=ActorRole.KITCHEN, user_id=3)


@pytest.fixture
def pending_order(db_session, clock):
    order = Order(
        session_id="sess-owner",
        total_amount=Decimal("120"),
        payment_method=PaymentMethod.CASH,
        created_at=clock.now,
        updated_at=clock.now,
    )
    order.record_status(OrderStatus.PENDING, clock.now)
    db_session.add(order)
    db_session.commit()
    db_session.refresh(order)
    return order


@pytest.fixture
def machine(clock):
    return OrderStatusMachine(clock)


def _history(order):
    return [event.status for event in order.status_history]


class TestIsDone:
    @pytest.mark.parametrize("status", [
        OrderStatus.COMPLETED, OrderStatus.SERVED, OrderStatus.DELIVERED, OrderStatus.PAID,
    ])
    def test_done(self, status):
        assert is_done(status)

    @pytest.mark.parametrize("status", [
        OrderStatus.PENDING, OrderStatus.COOKING, OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED,
    ])
    def test_not_done(self, status):
        assert not is_done(status)

    def test_active_and_done_do_not_overlap(self):
        assert not any(is_done(s) for s in ACTIVE_STATUSES)


class TestTransition:
    def test_kitchen_moves_order_forward(self, machine, pending_order, clock):
        clock.advance(60)
        machine.transition(pending_order, OrderStatus.ACCEPTED, KITCHEN)
        clock.advance(60)
        machine.transition(pending_order, OrderStatus.COOKING, KITCHEN)

        assert pending_order.status == OrderStatus.COOKING
        assert _history(pending_order) == [OrderStatus.PENDING, OrderStatus.ACCEPTED, OrderStatus.COOKING]
        assert pending_order.status_history[-1].timestamp == clock.now

    def test_staff_may_skip_steps(self, machine, pending_order):
        machine.transition(pending_order, OrderStatus.READY, CASHIER)
        assert pending_order.status == OrderStatus.READY

    def test_delivery_branch(self, machine, pending_order):
        machine.transition(pending_order, OrderStatus.OUT_FOR_DELIVERY, KITCHEN)
        machine.transition(pending_order, OrderStatus.DELIVERED, KITCHEN)
        machine.transition(pending_order, OrderStatus.PAID, CASHIER)
        assert pending_order.status == OrderStatus.PAID

    def test_cannot_move_backwards(self, machine, pending_order):
        machine.transition(pending_order, OrderStatus.COOKING, KITCHEN)
        with pytest.raises(InvalidStateTransition):
            machine.transition(pending_order, OrderStatus.ACCEPTED, KITCHEN)

    def test_cannot_repeat_status(self, machine, pending_order):
        with pytest.raises(InvalidStateTransition):
            machine.transition(pending_order, OrderStatus.PENDING, KITCHEN)

    def test_cannot_switch_between_served_and_delivery(self, machine, pending_order):
        machine.transition(pending_order, OrderStatus.SERVED, KITCHEN)
        with pytest.raises(InvalidStateTransition):
            machine.transition(pending_order, OrderStatus.OUT_FOR_DELIVERY, KITCHEN)

    def test_served_order_cannot_be_delivered(self, machine, pending_order):
        machine.transition(pending_order, OrderStatus.SERVED, KITCHEN)
        with pytest.raises(InvalidStateTransition):
            machine.transition(pending_order, OrderStatus.DELIVERED, KITCHEN)
        assert _history(pending_order) == [OrderStatus.PENDING, OrderStatus.SERVED]

    def test_delivered_order_cannot_be_served(self, machine, pending_order):
        machine.transition(pending_order, OrderStatus.DELIVERED, KITCHEN)
        with pytest.raises(InvalidStateTransition):
            machine.transition(pending_order, OrderStatus.SERVED, KITCHEN)

    @pytest.mark.parametrize("role", [ActorRole.CUSTOMER, ActorRole.GUEST])
    def test_non_staff_cannot_change_status(self, machine, pending_order, role):
        actor = Actor(role=role, session_id="sess-owner")
        with pytest.raises(Unauthorized):
            machine.transition(pending_order, OrderStatus.ACCEPTED, actor)
        assert _history(pending_order) == [OrderStatus.PENDING]

    def test_cancelled_is_terminal(self, machine, pending_order):
        machine.cancel(pending_order, ADMIN)
        with pytest.raises(InvalidStateTransition):
            machine.transition(pending_order, OrderStatus.COOKING, KITCHEN)

    def test_transition_to_cancelled_goes_through_cancel(self, machine, pending_order):
        machine.transition(pending_order, OrderStatus.CANCELLED, CASHIER)
        assert pending_order.status == OrderStatus.CANCELLED


class TestCancel:
    def test_owner_session_cancels_pending(self, machine, pending_order):
        machine.cancel(pending_order, Actor.guest("sess-owner"))
        assert pending_order.status == OrderStatus.CANCELLED
        assert _history(pending_order) == [OrderStatus.PENDING, OrderStatus.CANCELLED]

    def test_cancelling_twice_fails(self, machine, pending_order):
        machine.cancel(pending_order, Actor.guest("sess-owner"))
        with pytest.raises(InvalidStateTransition):
            machine.cancel(pending_order, Actor.guest("sess-owner"))
        assert len(pending_order.status_history) == 2

    def test_owner_cannot_cancel_cooking_order(self, machine, pending_order):
        machine.transition(pending_order, OrderStatus.COOKING, KITCHEN)
        with pytest.raises(InvalidStateTransition) as exc_info:
            machine.cancel(pending_order, Actor.guest("sess-owner"))
        assert exc_info.value.message == "Only Pending orders can be cancelled"

    def test_stranger_cannot_cancel(self, machine, pending_order):
        with pytest.raises(Unauthorized):
            machine.cancel(pending_order, Actor.guest("sess-someone-else"))

    def test_guest_without_session_cannot_cancel(self, machine, pending_order):
        with pytest.raises(Unauthorized):
            machine.cancel(pending_order, Actor.guest())

    def test_kitchen_cannot_cancel(self, machine, pending_order):
        with pytest.raises(Unauthorized):
            machine.cancel(pending_order, KITCHEN)

    @pytest.mark.parametrize("actor", [ADMIN, CASHIER])
    def test_cashier_and_admin_cancel_any_active_order(self, machine, pending_order, actor):
        machine.transition(pending_order, OrderStatus.COOKING, KITCHEN)
        machine.cancel(pending_order, actor)
        assert pending_order.status == OrderStatus.CANCELLED

    def test_customer_owner_by_id(self, machine, pending_order, customer, db_session):
        pending_order.customer_id = customer.id
        db_session.commit()
        machine.cancel(pending_order, Actor(role=ActorRole.CUSTOMER, customer_id=customer.id))
        assert pending_order.status == OrderStatus.CANCELLED


class TestStatusPersistence:
    """Status changes through the order service lock, persist and append history."""

    def test_update_status_commits_history(self, order_service, pending_order, db_session, clock):
        clock.advance(30)
        order_service.update_status(pending_order.id, OrderStatus.ACCEPTED, KITCHEN)

        events = db_session.query(OrderStatusEvent).filter(
            OrderStatusEvent.order_id == pending_order.id
        ).order_by(OrderStatusEvent.id).all()
        assert [e.status for e in events] == [OrderStatus.PENDING, OrderStatus.ACCEPTED]
        assert events[1].timestamp.replace(tzinfo=None) == (clock.now).replace(tzinfo=None)

    def test_rejected_change_leaves_history_untouched(self, order_service, pending_order, db_session):
        with pytest.raises(Unauthorized):
            order_service.update_status(pending_order.id, OrderStatus.ACCEPTED, Actor.guest("sess-owner"))

        db_session.refresh(pending_order)
        assert pending_order.status == OrderStatus.PENDING
        assert len(pending_order.status_history) == 1

    def test_cancel_via_service(self, order_service, pending_order):
        order = order_service.cancel_order(pending_order.id, Actor.guest("sess-owner"))
        assert order.status == OrderStatus.CANCELLED
        assert [e.status for e in order.status_history] == [OrderStatus.PENDING, OrderStatus.CANCELLED]

    def test_unknown_order(self, order_service):
        with pytest.raises(OrderNotFound):
            order_service.cancel_order(9999, ADMIN)

    def test_history_timestamps_are_ordered(self, order_service, pending_order, clock):
        for status in (OrderStatus.ACCEPTED, OrderStatus.COOKING, OrderStatus.READY):
            clock.advance(timedelta(minutes=5).total_seconds())
            order_service.update_status(pending_order.id, status, KITCHEN)

        order = order_service.get_order(pending_order.id)
        stamps = [e.timestamp for e in order.status_history]
        assert stamps == sorted(stamps)
        assert order.status == OrderStatus.READY
