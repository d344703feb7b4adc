"""
Tests for OrderService: creation, state machine, pickup verification.
"""

import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError

from rest_api.models import Notification, Order, OrderStatusHistory
from rest_api.repositories import OrderRepository
from rest_api.services.domain import OrderService, SettingsService
from shared.config.constants import NotificationType, OrderStatus, SettingKeys
from shared.utils.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidItemError,
    InvalidTransitionError,
    NotFoundError,
    OrderTotalMismatchError,
    UnavailableError,
    ValidationError,
)
from shared.utils.schemas import OrderLineInput

from conftest import CUSTOMER_ID, OTHER_CUSTOMER_ID, STAFF_ID, ADMIN_ID


def _history(db_session, order_id):
    return db_session.execute(
        select(OrderStatusHistory)
        .where(OrderStatusHistory.order_id == order_id)
        .order_by(OrderStatusHistory.id)
    ).scalars().all()


class TestCreateOrder:
    """Order placement."""

    def test_total_is_sum_of_snapshotted_prices(self, db_session, place_order):
        order = place_order(burger=1, fries=1, latte=1)

        assert order.status == OrderStatus.PLACED
        assert order.total_cents == 1600
        assert sorted(i.unit_price_cents for i in order.items) == [350, 400, 850]
        assert len(order.pickup_code) == 4 and order.pickup_code.isdigit()

    def test_quantities_multiply(self, place_order):
        order = place_order(burger=2, fries=3)
        assert order.total_cents == 2 * 850 + 3 * 350
        assert order.item_count == 5

    def test_single_placed_history_entry(self, db_session, place_order):
        order = place_order()

        history = _history(db_session, order.id)
        assert len(history) == 1
        assert history[0].from_status is None
        assert history[0].to_status == OrderStatus.PLACED
        assert history[0].changed_by == CUSTOMER_ID
        assert history[0].note == "Order placed"

    def test_placed_notification_written(self, db_session, place_order):
        order = place_order()

        notification = db_session.scalar(
            select(Notification).where(Notification.order_id == order.id)
        )
        assert notification.type == NotificationType.ORDER_PLACED
        assert notification.user_id == CUSTOMER_ID
        assert notification.title == "Order Confirmed"

    def test_price_change_does_not_touch_existing_lines(self, db_session, place_order, menu_items):
        order = place_order(burger=1)
        menu_items["burger"].price_cents = 999
        db_session.commit()

        reloaded = OrderRepository(db_session).get(order.id)
        assert reloaded.items[0].unit_price_cents == 850
        assert reloaded.total_cents == 850

    def test_empty_order_rejected(self, db_session, customer):
        with pytest.raises(ValidationError):
            OrderService(db_session).create_order(CUSTOMER_ID, [])

    def test_zero_quantity_rejected(self, db_session, customer, menu_items):
        line = OrderLineInput.model_construct(menu_item_id=menu_items["burger"].id, quantity=0)
        with pytest.raises(ValidationError):
            OrderService(db_session).create_order(CUSTOMER_ID, [line])
        assert db_session.scalar(select(Order.id)) is None

    def test_unavailable_item_named_in_error(self, db_session, customer, menu_items):
        menu_items["latte"].available = False
        db_session.commit()
        lines = [
            OrderLineInput(menu_item_id=menu_items["burger"].id, quantity=1),
            OrderLineInput(menu_item_id=menu_items["latte"].id, quantity=1),
        ]

        with pytest.raises(InvalidItemError) as exc_info:
            OrderService(db_session).create_order(CUSTOMER_ID, lines)

        assert exc_info.value.item_id == menu_items["latte"].id
        assert db_session.scalar(select(Order.id)) is None

    def test_unknown_item_rejected(self, db_session, customer, menu_items):
        with pytest.raises(InvalidItemError):
            OrderService(db_session).create_order(
                CUSTOMER_ID, [OrderLineInput(menu_item_id=987654, quantity=1)]
            )

    def test_client_total_is_advisory(self, db_session, customer, menu_items):
        order = OrderService(db_session).create_order(
            CUSTOMER_ID,
            [OrderLineInput(menu_item_id=menu_items["burger"].id, quantity=1)],
            client_total_cents=1,
        )
        assert order.total_cents == 850

    def test_unprovisioned_owner_rejected(self, db_session, menu_items):
        with pytest.raises(NotFoundError):
            OrderService(db_session).create_order(
                "never-signed-in",
                [OrderLineInput(menu_item_id=menu_items["burger"].id, quantity=1)],
            )

    def test_capacity_guard(self, db_session, place_order, admin):
        SettingsService(db_session).set(ADMIN_ID, SettingKeys.MAX_CONCURRENT_ORDERS, 1)
        place_order()

        with pytest.raises(ConflictError):
            place_order()

    def test_capacity_zero_means_unlimited(self, db_session, place_order, admin):
        SettingsService(db_session).set(ADMIN_ID, SettingKeys.MAX_CONCURRENT_ORDERS, 0)
        for _ in range(3):
            place_order(fries=1)
        assert OrderRepository(db_session).count_active() == 3


class TestTransitions:
    """State machine enforcement."""

    def test_happy_path_to_completed(self, db_session, place_order, staff):
        order = place_order()
        service = OrderService(db_session)

        for status in ("confirmed", "preparing", "ready", "completed"):
            order = service.transition_status(order.id, status, STAFF_ID)
            assert order.status == status

        assert order.completed_at is not None
        history = _history(db_session, order.id)
        assert [(h.from_status, h.to_status) for h in history] == [
            (None, "placed"),
            ("placed", "confirmed"),
            ("confirmed", "preparing"),
            ("preparing", "ready"),
            ("ready", "completed"),
        ]

    def test_ready_notification_carries_code(self, db_session, ready_order):
        notification = db_session.scalar(
            select(Notification).where(
                Notification.order_id == ready_order.id,
                Notification.type == NotificationType.ORDER_READY,
            )
        )
        assert notification.title == "Your Order is Ready!"
        assert ready_order.pickup_code in notification.message

    def test_preparing_has_no_notification(self, db_session, place_order, staff):
        order = place_order()
        service = OrderService(db_session)
        service.transition_status(order.id, "confirmed", STAFF_ID)
        before = db_session.scalar(
            select(Notification.id).where(Notification.order_id == order.id).order_by(Notification.id.desc())
        )
        service.transition_status(order.id, "preparing", STAFF_ID)
        after = db_session.scalar(
            select(Notification.id).where(Notification.order_id == order.id).order_by(Notification.id.desc())
        )
        assert before == after

    def test_same_status_is_noop(self, db_session, place_order, staff):
        order = place_order()
        service = OrderService(db_session)
        service.transition_status(order.id, "confirmed", STAFF_ID)

        again = service.transition_status(order.id, "confirmed", STAFF_ID)

        assert again.status == "confirmed"
        assert len(_history(db_session, order.id)) == 2

    @pytest.mark.parametrize(
        "path,target",
        [
            ([], "ready"),
            ([], "completed"),
            (["confirmed"], "ready"),
            (["confirmed", "preparing"], "cancelled"),
            (["confirmed", "preparing", "ready"], "cancelled"),
            (["cancelled"], "confirmed"),
        ],
    )
    def test_illegal_edges_rejected(self, db_session, place_order, staff, path, target):
        order = place_order()
        service = OrderService(db_session)
        for status in path:
            service.transition_status(order.id, status, STAFF_ID)
        current = OrderRepository(db_session).get(order.id).status
        history_len = len(_history(db_session, order.id))

        with pytest.raises(InvalidTransitionError):
            service.transition_status(order.id, target, STAFF_ID)

        assert OrderRepository(db_session).get(order.id).status == current
        assert len(_history(db_session, order.id)) == history_len

    def test_completed_is_terminal(self, db_session, ready_order):
        service = OrderService(db_session)
        service.complete_pickup(ready_order.id, STAFF_ID)
        for target in ("placed", "ready", "cancelled"):
            with pytest.raises(InvalidTransitionError):
                service.transition_status(ready_order.id, target, STAFF_ID)

    def test_cancel_from_preparing_when_enabled(self, db_session, place_order, staff):
        order = place_order()
        service = OrderService(db_session, allow_cancel_from_preparing=True)
        service.transition_status(order.id, "confirmed", STAFF_ID)
        service.transition_status(order.id, "preparing", STAFF_ID)

        cancelled = service.cancel_order(order.id, STAFF_ID, reason="Out of buns")

        assert cancelled.status == "cancelled"
        assert _history(db_session, order.id)[-1].note == "Out of buns"

    def test_unknown_status_rejected(self, db_session, place_order, staff):
        order = place_order()
        with pytest.raises(ValidationError):
            OrderService(db_session).transition_status(order.id, "shipped", STAFF_ID)

    def test_missing_order(self, db_session, staff):
        with pytest.raises(NotFoundError):
            OrderService(db_session).transition_status(424242, "confirmed", STAFF_ID)

    def test_concurrent_transition_loses(self, db_session, place_order, staff, monkeypatch):
        """A writer that changes the order between read and update wins; we get 409."""
        order = place_order()
        original = OrderRepository.compare_and_set_status

        def racing(repo, order_id, expected, new_status):
            db_session.execute(
                update(Order).where(Order.id == order_id).values(status="cancelled")
            )
            db_session.commit()
            return original(repo, order_id, expected, new_status)

        monkeypatch.setattr(OrderRepository, "compare_and_set_status", racing)

        with pytest.raises(ConflictError):
            OrderService(db_session).transition_status(order.id, "confirmed", STAFF_ID)

        monkeypatch.undo()
        assert OrderRepository(db_session).get(order.id).status == "cancelled"
        assert [h.to_status for h in _history(db_session, order.id)] == ["placed"]

    def test_total_drift_detected(self, db_session, place_order, staff):
        order = place_order()
        db_session.execute(update(Order).where(Order.id == order.id).values(total_cents=1))
        db_session.commit()

        with pytest.raises(OrderTotalMismatchError):
            OrderService(db_session).transition_status(order.id, "confirmed", STAFF_ID)

        assert db_session.get(Order, order.id).status == "placed"
        assert [h.to_status for h in _history(db_session, order.id)] == ["placed"]
        confirmations = db_session.execute(
            select(Notification).where(
                Notification.order_id == order.id,
                Notification.type == NotificationType.ORDER_CONFIRMED,
            )
        ).scalars().all()
        assert confirmations == []


class TestTransitionAuthorization:
    """Who may move an order."""

    def test_customer_cannot_confirm(self, db_session, place_order):
        order = place_order()
        with pytest.raises(ForbiddenError):
            OrderService(db_session).transition_status(order.id, "confirmed", CUSTOMER_ID)

    def test_owner_cancels_placed(self, db_session, place_order):
        order = place_order()
        cancelled = OrderService(db_session).cancel_order(order.id, CUSTOMER_ID)
        assert cancelled.status == "cancelled"

    def test_owner_cancels_confirmed(self, db_session, place_order, staff):
        order = place_order()
        service = OrderService(db_session)
        service.transition_status(order.id, "confirmed", STAFF_ID)
        assert service.cancel_order(order.id, CUSTOMER_ID).status == "cancelled"

    def test_owner_cannot_cancel_while_preparing(self, db_session, place_order, staff):
        order = place_order()
        service = OrderService(db_session, allow_cancel_from_preparing=True)
        service.transition_status(order.id, "confirmed", STAFF_ID)
        service.transition_status(order.id, "preparing", STAFF_ID)

        with pytest.raises(ForbiddenError):
            service.cancel_order(order.id, CUSTOMER_ID)

        assert OrderRepository(db_session).get(order.id).status == "preparing"

    def test_other_customer_cannot_cancel(self, db_session, place_order, other_customer):
        order = place_order()
        with pytest.raises(ForbiddenError):
            OrderService(db_session).cancel_order(order.id, OTHER_CUSTOMER_ID)


class TestPickup:
    """Pickup verification at the counter."""

    def test_verify_then_complete(self, db_session, ready_order, staff):
        service = OrderService(db_session)

        found = service.verify_pickup(ready_order.pickup_code, actor_id=STAFF_ID)
        assert found.id == ready_order.id

        completed = service.complete_pickup(ready_order.id, STAFF_ID)
        assert completed.status == "completed"

        with pytest.raises(NotFoundError):
            service.verify_pickup(ready_order.pickup_code, actor_id=STAFF_ID)

    def test_not_ready_is_not_found(self, db_session, place_order, staff):
        order = place_order()
        with pytest.raises(NotFoundError):
            OrderService(db_session).verify_pickup(order.pickup_code, actor_id=STAFF_ID)

    @pytest.mark.parametrize("code", ["", "12", "12345", "abcd", "12a4", " 123"])
    def test_malformed_code_is_not_found(self, db_session, staff, code):
        with pytest.raises(NotFoundError):
            OrderService(db_session).verify_pickup(code, actor_id=STAFF_ID)

    def test_customer_cannot_verify(self, db_session, ready_order):
        with pytest.raises(ForbiddenError):
            OrderService(db_session).verify_pickup(ready_order.pickup_code, actor_id=CUSTOMER_ID)


class TestQueries:
    """Reads and access checks."""

    def test_owner_and_staff_can_read(self, db_session, place_order, staff):
        order = place_order()
        service = OrderService(db_session)
        assert service.get_order(order.id, CUSTOMER_ID).id == order.id
        assert service.get_order(order.id, STAFF_ID).id == order.id

    def test_other_customer_cannot_read(self, db_session, place_order, other_customer):
        order = place_order()
        with pytest.raises(ForbiddenError):
            OrderService(db_session).get_order(order.id, OTHER_CUSTOMER_ID)
        with pytest.raises(ForbiddenError):
            OrderService(db_session).get_history(order.id, OTHER_CUSTOMER_ID)

    def test_list_for_owner_newest_first(self, db_session, place_order, other_customer):
        first = place_order(burger=1)
        second = place_order(fries=1)
        place_order(OTHER_CUSTOMER_ID, latte=1)

        orders = OrderService(db_session).list_orders_for_owner(CUSTOMER_ID)

        assert [o.id for o in orders] == [second.id, first.id]

    def test_queue_priority_then_fifo(self, db_session, place_order, staff):
        service = OrderService(db_session)
        a = place_order(burger=1)
        b = place_order(fries=1)
        c = place_order(latte=1)
        d = place_order(burger=1)
        service.transition_status(a.id, "confirmed", STAFF_ID)
        service.transition_status(a.id, "preparing", STAFF_ID)
        service.transition_status(c.id, "confirmed", STAFF_ID)
        service.cancel_order(d.id, STAFF_ID)

        queue = service.list_queue(STAFF_ID)

        assert [o.id for o in queue] == [b.id, c.id, a.id]

    def test_queue_status_filter(self, db_session, place_order, staff):
        service = OrderService(db_session)
        a = place_order(burger=1)
        place_order(fries=1)
        service.transition_status(a.id, "confirmed", STAFF_ID)

        queue = service.list_queue(STAFF_ID, ["confirmed"])
        assert [o.id for o in queue] == [a.id]

        with pytest.raises(ValidationError):
            service.list_queue(STAFF_ID, ["completed"])

    def test_customer_cannot_see_queue(self, db_session, customer):
        with pytest.raises(ForbiddenError):
            OrderService(db_session).list_queue(CUSTOMER_ID)

    def test_history_is_chronological(self, db_session, ready_order):
        history = OrderService(db_session).get_history(ready_order.id, CUSTOMER_ID)
        assert [h.to_status for h in history] == ["placed", "confirmed", "preparing", "ready"]

    def test_system_entry_has_no_actor(self, db_session, place_order):
        order = place_order()
        OrderRepository(db_session).append_history(
            order_id=order.id,
            from_status=None,
            to_status="placed",
            changed_by=None,
            note="Imported",
        )
        db_session.commit()

        history = OrderService(db_session).get_history(order.id, CUSTOMER_ID)
        assert [h.changed_by for h in history] == [CUSTOMER_ID, None]


def _statement_timeout(*args, **kwargs):
    raise OperationalError(
        "SELECT orders.id FROM orders", {}, Exception("canceling statement due to statement timeout")
    )


class TestStorageTimeouts:
    """Read paths surface storage timeouts as retryable UnavailableError."""

    def test_get_order(self, db_session, place_order, staff, monkeypatch):
        order = place_order()
        monkeypatch.setattr(OrderRepository, "get", _statement_timeout)

        with pytest.raises(UnavailableError) as exc_info:
            OrderService(db_session).get_order(order.id, STAFF_ID)
        assert exc_info.value.headers["Retry-After"] == "2"

    def test_transition_reads_before_cas(self, db_session, place_order, staff, monkeypatch):
        order = place_order()
        monkeypatch.setattr(OrderRepository, "get", _statement_timeout)

        with pytest.raises(UnavailableError):
            OrderService(db_session).transition_status(order.id, "confirmed", STAFF_ID)

    def test_verify_pickup(self, db_session, ready_order, monkeypatch):
        monkeypatch.setattr(OrderRepository, "find_ready_by_code", _statement_timeout)
        with pytest.raises(UnavailableError):
            OrderService(db_session).verify_pickup(ready_order.pickup_code, STAFF_ID)

    def test_queue_and_history(self, db_session, ready_order, monkeypatch):
        monkeypatch.setattr(OrderRepository, "queue", _statement_timeout)
        monkeypatch.setattr(OrderRepository, "history", _statement_timeout)
        service = OrderService(db_session)

        with pytest.raises(UnavailableError):
            service.list_queue(STAFF_ID)
        with pytest.raises(UnavailableError):
            service.get_history(ready_order.id, STAFF_ID)

    def test_pool_timeout_on_capacity_check(self, db_session, customer, menu_items, monkeypatch):
        def pool_exhausted(self):
            raise PoolTimeoutError("QueuePool limit reached, connection timed out")

        monkeypatch.setattr(OrderRepository, "count_active", pool_exhausted)
        monkeypatch.setattr(SettingsService, "get_int", lambda self, key, default=0: 10)

        with pytest.raises(UnavailableError):
            OrderService(db_session).create_order(
                CUSTOMER_ID, [OrderLineInput(menu_item_id=menu_items["burger"].id, quantity=1)]
            )
