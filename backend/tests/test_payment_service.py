"""
Tests for PaymentService.
"""

import pytest

from rest_api.services.domain import PaymentService
from shared.utils.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)

from conftest import CUSTOMER_ID, OTHER_CUSTOMER_ID, STAFF_ID


class TestRecordPayment:

    def test_owner_records_pending_payment(self, db_session, place_order):
        order = place_order()

        payment = PaymentService(db_session).record_payment(
            order.id, CUSTOMER_ID, 1600, "credit_card", provider_transaction_id="tx-1"
        )

        assert payment.status == "pending"
        assert payment.amount_cents == 1600
        assert payment.processed_at is None

    def test_amount_within_tolerance(self, db_session, place_order):
        order = place_order()
        payment = PaymentService(db_session).record_payment(order.id, CUSTOMER_ID, 1605, "debit_card")
        assert payment.amount_cents == 1605

    @pytest.mark.parametrize("amount", [1594, 1606, 0])
    def test_amount_mismatch_rejected(self, db_session, place_order, amount):
        order = place_order()
        with pytest.raises(ValidationError):
            PaymentService(db_session).record_payment(order.id, CUSTOMER_ID, amount, "credit_card")

    def test_unknown_method_rejected(self, db_session, place_order):
        order = place_order()
        with pytest.raises(ValidationError):
            PaymentService(db_session).record_payment(order.id, CUSTOMER_ID, 1600, "cash")

    def test_other_customer_forbidden(self, db_session, place_order, other_customer):
        order = place_order()
        with pytest.raises(ForbiddenError):
            PaymentService(db_session).record_payment(order.id, OTHER_CUSTOMER_ID, 1600, "credit_card")

    def test_second_payment_conflicts(self, db_session, place_order):
        order = place_order()
        service = PaymentService(db_session)
        service.record_payment(order.id, CUSTOMER_ID, 1600, "credit_card")

        with pytest.raises(ConflictError):
            service.record_payment(order.id, CUSTOMER_ID, 1600, "credit_card")

    def test_reused_transaction_id_conflicts(self, db_session, place_order):
        first = place_order()
        second = place_order()
        service = PaymentService(db_session)
        service.record_payment(first.id, CUSTOMER_ID, 1600, "mobile_payment", provider_transaction_id="tx-9")

        with pytest.raises(ConflictError):
            service.record_payment(second.id, CUSTOMER_ID, 1600, "mobile_payment", provider_transaction_id="tx-9")

    def test_missing_order(self, db_session, customer):
        with pytest.raises(NotFoundError):
            PaymentService(db_session).record_payment(31337, CUSTOMER_ID, 100, "credit_card")


class TestPaymentStatus:

    @pytest.fixture
    def payment(self, db_session, place_order):
        order = place_order()
        return PaymentService(db_session).record_payment(order.id, CUSTOMER_ID, 1600, "credit_card")

    def test_staff_completes_payment(self, db_session, payment, staff):
        service = PaymentService(db_session)
        service.update_payment_status(payment.id, STAFF_ID, "processing")
        completed = service.update_payment_status(payment.id, STAFF_ID, "completed")

        assert completed.status == "completed"
        assert completed.processed_at is not None

    def test_refund_after_completion(self, db_session, payment, staff):
        service = PaymentService(db_session)
        service.update_payment_status(payment.id, STAFF_ID, "completed")
        assert service.update_payment_status(payment.id, STAFF_ID, "refunded").status == "refunded"

    @pytest.mark.parametrize("target", ["refunded", "pending"])
    def test_illegal_payment_transition(self, db_session, payment, staff, target):
        with pytest.raises(InvalidTransitionError):
            PaymentService(db_session).update_payment_status(payment.id, STAFF_ID, target)

    def test_failed_is_terminal(self, db_session, payment, staff):
        service = PaymentService(db_session)
        service.update_payment_status(payment.id, STAFF_ID, "failed")
        with pytest.raises(InvalidTransitionError):
            service.update_payment_status(payment.id, STAFF_ID, "completed")

    def test_customer_cannot_update(self, db_session, payment):
        with pytest.raises(ForbiddenError):
            PaymentService(db_session).update_payment_status(payment.id, CUSTOMER_ID, "completed")

    def test_get_for_order(self, db_session, payment, other_customer):
        service = PaymentService(db_session)
        assert service.get_for_order(payment.order_id, CUSTOMER_ID).id == payment.id
        with pytest.raises(ForbiddenError):
            service.get_for_order(payment.order_id, OTHER_CUSTOMER_ID)
