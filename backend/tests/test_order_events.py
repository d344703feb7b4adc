"""
Tests for post-commit order side effects: Redis publishing and push scheduling.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import redis.asyncio as redis

from rest_api.services.domain import OrderService
from rest_api.services.events import OrderChange, deliver_order_change, dispatch_order_change
from shared.config.settings import settings
from shared.infrastructure.events import (
    ORDER_PLACED,
    ORDER_STATUS_CHANGED,
    Event,
    get_event_circuit_breaker,
    publish_order_event,
)

from conftest import CUSTOMER_ID, STAFF_ID

EVENTS_MODULE = "rest_api.services.events.order_events"


def _change(**overrides):
    values = dict(
        event_type=ORDER_STATUS_CHANGED,
        order_id=7,
        owner_id=CUSTOMER_ID,
        status="ready",
        pickup_code="0420",
        previous_status="preparing",
        actor_id=STAFF_ID,
        notification_ids=(11,),
    )
    values.update(overrides)
    return OrderChange(**values)


class TestDispatch:

    def test_nothing_scheduled_when_disabled(self):
        background = MagicMock()
        dispatch_order_change(_change(), background)
        background.add_task.assert_not_called()

    def test_scheduled_on_background_tasks(self, monkeypatch):
        monkeypatch.setattr(settings, "realtime_enabled", True)
        background = MagicMock()
        change = _change()

        dispatch_order_change(change, background)

        background.add_task.assert_called_once_with(deliver_order_change, change)

    def test_push_only_needs_notifications(self, monkeypatch):
        monkeypatch.setattr(settings, "push_enabled", True)
        background = MagicMock()

        dispatch_order_change(_change(notification_ids=()), background)

        background.add_task.assert_not_called()

    def test_order_service_schedules_after_commit(self, db_session, place_order, staff, monkeypatch):
        order = place_order()
        monkeypatch.setattr(settings, "realtime_enabled", True)
        background = MagicMock()

        OrderService(db_session, background_tasks=background).transition_status(
            order.id, "confirmed", STAFF_ID
        )

        (func, change), _ = background.add_task.call_args
        assert func is deliver_order_change
        assert change.event_type == ORDER_STATUS_CHANGED
        assert (change.previous_status, change.status) == ("placed", "confirmed")
        assert len(change.notification_ids) == 1

    def test_placed_change_snapshot(self, place_order):
        order = place_order()
        change = OrderChange.placed(order, (3,))
        assert change.event_type == ORDER_PLACED
        assert change.actor_id == CUSTOMER_ID
        assert change.pickup_code == order.pickup_code
        assert change.previous_status is None


class TestDeliver:

    @pytest.mark.asyncio
    async def test_publishes_when_realtime_enabled(self, monkeypatch):
        monkeypatch.setattr(settings, "realtime_enabled", True)
        client = object()
        with patch(f"{EVENTS_MODULE}.get_redis_pool", AsyncMock(return_value=client)), \
                patch(f"{EVENTS_MODULE}.publish_order_event", AsyncMock()) as publish:
            await deliver_order_change(_change())

        publish.assert_awaited_once()
        args, kwargs = publish.call_args
        assert args == (client,)
        assert kwargs["order_id"] == 7
        assert kwargs["previous_status"] == "preparing"
        assert kwargs["pickup_code"] == "0420"

    @pytest.mark.asyncio
    async def test_redis_failure_does_not_raise(self, monkeypatch):
        monkeypatch.setattr(settings, "realtime_enabled", True)
        failing = AsyncMock(side_effect=redis.ConnectionError("down"))
        with patch(f"{EVENTS_MODULE}.get_redis_pool", failing):
            await deliver_order_change(_change())

    @pytest.mark.asyncio
    async def test_push_delivered_for_notifications(self, monkeypatch):
        monkeypatch.setattr(settings, "push_enabled", True)
        dispatcher = MagicMock()
        dispatcher.deliver = AsyncMock(return_value=1)
        with patch(f"{EVENTS_MODULE}.PushDispatcher", return_value=dispatcher):
            await deliver_order_change(_change(notification_ids=(11, 12)))

        dispatcher.deliver.assert_awaited_once_with((11, 12))

    @pytest.mark.asyncio
    async def test_push_failure_does_not_raise(self, monkeypatch):
        monkeypatch.setattr(settings, "push_enabled", True)
        dispatcher = MagicMock()
        dispatcher.deliver = AsyncMock(side_effect=RuntimeError("provider exploded"))
        with patch(f"{EVENTS_MODULE}.PushDispatcher", return_value=dispatcher):
            await deliver_order_change(_change())


class TestPublishOrderEvent:

    @pytest.fixture(autouse=True)
    def closed_breaker(self):
        get_event_circuit_breaker().reset()
        yield
        get_event_circuit_breaker().reset()

    @pytest.mark.asyncio
    async def test_owner_and_staff_channels(self):
        client = MagicMock()
        client.publish = AsyncMock(return_value=1)

        await publish_order_event(
            client,
            event_type=ORDER_STATUS_CHANGED,
            order_id=7,
            owner_id=CUSTOMER_ID,
            status="ready",
            previous_status="preparing",
            pickup_code="0420",
            actor_id=STAFF_ID,
        )

        published = {call.args[0]: Event.from_json(call.args[1]) for call in client.publish.call_args_list}
        assert set(published) == {f"user:{CUSTOMER_ID}", "staff:orders"}
        assert published[f"user:{CUSTOMER_ID}"].entity["pickup_code"] == "0420"
        assert "pickup_code" not in published["staff:orders"].entity
        assert published["staff:orders"].actor == {"identity_id": STAFF_ID}

    @pytest.mark.asyncio
    async def test_one_channel_failing_does_not_block_the_other(self, monkeypatch):
        monkeypatch.setattr(settings, "redis_publish_max_retries", 1)
        client = MagicMock()
        client.publish = AsyncMock(side_effect=[redis.ConnectionError("down"), 1])

        await publish_order_event(
            client, event_type=ORDER_PLACED, order_id=7, owner_id=CUSTOMER_ID, status="placed"
        )

        assert client.publish.await_count == 2
        payload = json.loads(client.publish.call_args_list[1].args[1])
        assert payload["type"] == ORDER_PLACED

    def test_event_rejects_unknown_status(self):
        with pytest.raises(ValueError):
            Event(type=ORDER_PLACED, order_id=1, owner_id=CUSTOMER_ID, status="shipped")
