"""
Tests for PaymentService.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from grant_kernel.exceptions import (
    CapabilityDeniedError,
    InvalidStatusError,
    MissingFieldError,
    RecordNotFoundError,
)
from grant_modules.payments.models import PaymentDocuments, PaymentMethod, PaymentStatus


@pytest.fixture
def payment(payment_service, admin, engagement):
    return payment_service.create_payment(
        admin, engagement.id, "PAY-001", "300", PaymentMethod.TRANSFER,
        bank_reference="VIR-2024-17",
    )


class TestCreatePayment:

    def test_inherits_engagement_links(self, payment, engagement, deterministic_clock):
        assert payment.grant_id == engagement.grant_id
        assert payment.budget_line_id == engagement.budget_line_id
        assert payment.sub_budget_line_id == engagement.sub_budget_line_id
        assert payment.status is PaymentStatus.PENDING
        assert payment.date == deterministic_clock.today()
        assert payment.supplier == "Sahel Fournitures"

    def test_unknown_engagement(self, payment_service, admin):
        with pytest.raises(RecordNotFoundError):
            payment_service.create_payment(admin, uuid4(), "PAY-X", "10", "transfer")

    def test_check_requires_number(self, payment_service, admin, engagement):
        with pytest.raises(MissingFieldError) as exc_info:
            payment_service.create_payment(admin, engagement.id, "PAY-X", "10", "check")
        assert exc_info.value.field_name == "check_number"

    def test_documents_stored(self, payment_service, admin, engagement):
        created = payment_service.create_payment(
            admin, engagement.id, "PAY-2", "100", "cash",
            documents=PaymentDocuments(
                invoice_number=" FAC-9 ", invoice_amount="100", service_acceptance=True,
            ),
        )
        assert created.documents.invoice_number == "FAC-9"
        assert created.documents.invoice_amount == Decimal("100")
        assert created.documents.service_acceptance

    def test_viewer_denied(self, payment_service, viewer, engagement):
        with pytest.raises(CapabilityDeniedError):
            payment_service.create_payment(viewer, engagement.id, "PAY-X", "10", "cash")


class TestUpdatePayment:

    def test_switch_to_check_needs_number(self, payment_service, admin, payment):
        with pytest.raises(MissingFieldError):
            payment_service.update_payment(admin, payment.id, payment_method="check")
        assert payment_service.get_payment(payment.id).payment_method is PaymentMethod.TRANSFER

    def test_switch_to_check_with_number(self, payment_service, admin, payment):
        updated = payment_service.update_payment(
            admin, payment.id, payment_method="check", check_number="CHQ-0042",
        )
        assert updated.payment_method is PaymentMethod.CHECK
        assert updated.check_number == "CHQ-0042"


class TestMarkCashed:

    def test_marks_cashed(self, payment_service, admin, payment, captured_logs):
        cashed = payment_service.mark_cashed(admin, payment.id, cashed_date=date(2024, 4, 2))
        assert cashed.is_cashed
        assert cashed.cashed_date == date(2024, 4, 2)
        assert any(r["message"] == "payment_cashed" for r in captured_logs())

    def test_idempotent(self, payment_service, admin, payment):
        first = payment_service.mark_cashed(admin, payment.id)
        again = payment_service.mark_cashed(admin, payment.id, cashed_date=date(2030, 1, 1))
        assert again.cashed_date == first.cashed_date

    def test_rejected_payment_cannot_be_cashed(self, payment_service, admin, payment):
        payment_service.update_payment(admin, payment.id, status="rejected")
        with pytest.raises(InvalidStatusError):
            payment_service.mark_cashed(admin, payment.id)


class TestQueries:

    def test_list_by_engagement(self, payment_service, admin, engagement, payment):
        payment_service.create_payment(admin, engagement.id, "PAY-000", "5", "cash")
        numbers = [p.payment_number for p in payment_service.list_payments(engagement_id=engagement.id)]
        assert numbers == ["PAY-000", "PAY-001"]
        assert payment_service.list_payments(grant_id=uuid4()) == []

    def test_delete(self, payment_service, admin, payment):
        payment_service.delete_payment(admin, payment.id)
        with pytest.raises(RecordNotFoundError):
            payment_service.get_payment(payment.id)
