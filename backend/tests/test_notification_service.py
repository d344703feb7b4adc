"""
Tests for NotificationService and notification templates.
"""

import pytest
from sqlalchemy import select

from rest_api.models import PushToken
from rest_api.services.domain import NotificationService, order_reference, render_order_notification
from shared.config.constants import NotificationType
from shared.utils.exceptions import ValidationError

from conftest import CUSTOMER_ID, OTHER_CUSTOMER_ID


def _system(db_session, user_id, title="Hello"):
    notification = NotificationService(db_session).enqueue(user_id, NotificationType.SYSTEM_MESSAGE, title, "Body")
    db_session.commit()
    return notification


class TestTemplates:

    def test_reference_is_zero_padded(self):
        assert order_reference(42) == "000042"
        assert order_reference(1234567) == "1234567"

    def test_ready_message_contains_code(self, place_order):
        order = place_order()
        title, message = render_order_notification(order, NotificationType.ORDER_READY)
        assert title == "Your Order is Ready!"
        assert order.pickup_code in message
        assert order_reference(order.id) in message

    def test_unknown_type_has_no_template(self, place_order):
        with pytest.raises(ValueError):
            render_order_notification(place_order(), NotificationType.SYSTEM_MESSAGE)


class TestNotifications:

    def test_unknown_type_rejected(self, db_session, customer):
        with pytest.raises(ValidationError):
            NotificationService(db_session).enqueue(CUSTOMER_ID, "promo", "t", "m")

    def test_list_newest_first(self, db_session, customer):
        service = NotificationService(db_session)
        first = _system(db_session, CUSTOMER_ID, "first")
        second = _system(db_session, CUSTOMER_ID, "second")

        listed = service.list_for_user(CUSTOMER_ID)

        assert [n.id for n in listed] == [second.id, first.id]

    def test_mark_read_is_idempotent(self, db_session, customer):
        service = NotificationService(db_session)
        _system(db_session, CUSTOMER_ID)
        _system(db_session, CUSTOMER_ID)

        assert service.unread_count(CUSTOMER_ID) == 2
        assert service.mark_read(CUSTOMER_ID) == 2
        assert service.mark_read(CUSTOMER_ID) == 0
        assert service.unread_count(CUSTOMER_ID) == 0
        assert service.list_for_user(CUSTOMER_ID, unread_only=True) == []

    def test_mark_read_selected_ids(self, db_session, customer):
        service = NotificationService(db_session)
        first = _system(db_session, CUSTOMER_ID)
        _system(db_session, CUSTOMER_ID)

        assert service.mark_read(CUSTOMER_ID, [first.id]) == 1
        assert service.unread_count(CUSTOMER_ID) == 1

    def test_cannot_mark_someone_elses(self, db_session, customer, other_customer):
        service = NotificationService(db_session)
        theirs = _system(db_session, OTHER_CUSTOMER_ID)

        assert service.mark_read(CUSTOMER_ID, [theirs.id]) == 0
        assert service.unread_count(OTHER_CUSTOMER_ID) == 1


class TestPushTokens:

    def test_register_and_remove(self, db_session, customer):
        service = NotificationService(db_session)
        service.register_token(CUSTOMER_ID, "ExponentPushToken[abc]", "ios")

        assert service.remove_token(CUSTOMER_ID, "ExponentPushToken[abc]") is True
        assert service.remove_token(CUSTOMER_ID, "ExponentPushToken[abc]") is False

    def test_token_moves_to_new_user(self, db_session, customer, other_customer):
        service = NotificationService(db_session)
        service.register_token(CUSTOMER_ID, "ExponentPushToken[shared]", "android")
        service.register_token(OTHER_CUSTOMER_ID, "ExponentPushToken[shared]", "ios")

        tokens = db_session.execute(select(PushToken)).scalars().all()
        assert len(tokens) == 1
        assert tokens[0].user_id == OTHER_CUSTOMER_ID
        assert tokens[0].platform == "ios"

    def test_cannot_remove_other_users_token(self, db_session, customer, other_customer):
        service = NotificationService(db_session)
        service.register_token(OTHER_CUSTOMER_ID, "ExponentPushToken[theirs]", "ios")
        assert service.remove_token(CUSTOMER_ID, "ExponentPushToken[theirs]") is False

    def test_unknown_platform_rejected(self, db_session, customer):
        with pytest.raises(ValidationError):
            NotificationService(db_session).register_token(CUSTOMER_ID, "tok", "windows")
