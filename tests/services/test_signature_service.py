"""
Tests for SignatureService: signing the approval chain of stored records.
"""

from uuid import uuid4

import pytest

from grant_engines.approval import (
    REASON_ALREADY_SIGNED,
    REASON_SUPERVISORS_PENDING,
    REASON_UNRECOGNIZED_PROFESSION,
    REASON_WRONG_SLOT,
    is_fully_approved,
)
from grant_kernel.domain.approval import ApprovalSlot
from grant_kernel.domain.entity_kind import EntityKind
from grant_kernel.exceptions import (
    CapabilityDeniedError,
    RecordNotFoundError,
    SigningNotAllowedError,
)
from grant_modules.payments.models import PaymentMethod
from grant_services.approval_service import SignatureService


@pytest.fixture
def signatures(session, deterministic_clock):
    return SignatureService(session, deterministic_clock)


class TestSigning:

    def test_full_chain(
        self, signatures, engagement_service, engagement,
        coordinator, accountant, national_coordinator, deterministic_clock,
    ):
        signatures.sign(coordinator, EntityKind.ENGAGEMENT, engagement.id, "supervisor1")
        signatures.sign(accountant, "engagement", engagement.id, ApprovalSlot.SUPERVISOR2)
        final = signatures.sign(
            national_coordinator, EntityKind.ENGAGEMENT, engagement.id, "finalApproval",
            observation="  Conforme  ",
        )
        assert is_fully_approved(final)
        stored = engagement_service.get_engagement(engagement.id).approvals
        assert stored == final
        signature = stored.get(ApprovalSlot.FINAL_APPROVAL)
        assert signature.name == "Fatou Ndiaye"
        assert signature.date == deterministic_clock.today()
        assert signature.observation == "Conforme"

    def test_supervisors_sign_in_any_order(self, signatures, engagement, coordinator, accountant):
        signatures.sign(accountant, EntityKind.ENGAGEMENT, engagement.id, "supervisor2")
        approvals = signatures.sign(coordinator, EntityKind.ENGAGEMENT, engagement.id, "supervisor1")
        assert set(approvals.signed_slots) == {ApprovalSlot.SUPERVISOR1, ApprovalSlot.SUPERVISOR2}

    def test_final_before_supervisors_refused(
        self, signatures, engagement_service, engagement, coordinator, national_coordinator, captured_logs,
    ):
        signatures.sign(coordinator, EntityKind.ENGAGEMENT, engagement.id, "supervisor1")
        with pytest.raises(SigningNotAllowedError) as exc_info:
            signatures.sign(national_coordinator, EntityKind.ENGAGEMENT, engagement.id, "finalApproval")
        assert exc_info.value.reason == REASON_SUPERVISORS_PENDING
        approvals = engagement_service.get_engagement(engagement.id).approvals
        assert not approvals.is_signed(ApprovalSlot.FINAL_APPROVAL)

        refused = [r for r in captured_logs() if r["message"] == "signature_refused"]
        assert refused[0]["reason"] == REASON_SUPERVISORS_PENDING
        assert refused[0]["record_id"] == str(engagement.id)

    def test_slot_is_write_once(self, signatures, engagement, coordinator):
        signatures.sign(coordinator, EntityKind.ENGAGEMENT, engagement.id, "supervisor1")
        with pytest.raises(SigningNotAllowedError) as exc_info:
            signatures.sign(coordinator, EntityKind.ENGAGEMENT, engagement.id, "supervisor1")
        assert exc_info.value.reason == REASON_ALREADY_SIGNED

    def test_wrong_slot_for_profession(self, signatures, engagement, accountant):
        with pytest.raises(SigningNotAllowedError) as exc_info:
            signatures.sign(accountant, EntityKind.ENGAGEMENT, engagement.id, "supervisor1")
        assert exc_info.value.reason == REASON_WRONG_SLOT

    def test_actor_without_profession(self, signatures, engagement, admin):
        with pytest.raises(SigningNotAllowedError) as exc_info:
            signatures.sign(admin, EntityKind.ENGAGEMENT, engagement.id, "supervisor1")
        assert exc_info.value.reason == REASON_UNRECOGNIZED_PROFESSION

    def test_sign_capability_required(self, signatures, engagement, viewer):
        with pytest.raises(CapabilityDeniedError) as exc_info:
            signatures.sign(viewer, EntityKind.ENGAGEMENT, engagement.id, "supervisor2")
        assert exc_info.value.action == "sign"

    def test_unknown_record(self, signatures, coordinator):
        with pytest.raises(RecordNotFoundError):
            signatures.sign(coordinator, EntityKind.PAYMENT, uuid4(), "supervisor1")

    def test_payment_signed(self, signatures, payment_service, admin, engagement, coordinator):
        payment = payment_service.create_payment(admin, engagement.id, "PAY-1", "100", PaymentMethod.CASH)
        signatures.sign(coordinator, EntityKind.PAYMENT, payment.id, "supervisor1")
        assert payment_service.get_payment(payment.id).approvals.is_signed(ApprovalSlot.SUPERVISOR1)

    def test_change_listener_notified(self, session, deterministic_clock, engagement, coordinator):
        seen = []
        service = SignatureService(session, deterministic_clock, on_change=seen.append)
        service.sign(coordinator, EntityKind.ENGAGEMENT, engagement.id, "supervisor1")
        assert seen == ["engagement"]


class TestSignableSlots:

    def test_slots_follow_chain(self, signatures, engagement, coordinator, accountant, national_coordinator):
        assert signatures.signable_slots(coordinator, EntityKind.ENGAGEMENT, engagement.id) == (
            ApprovalSlot.SUPERVISOR1,
        )
        assert signatures.signable_slots(national_coordinator, EntityKind.ENGAGEMENT, engagement.id) == ()
        signatures.sign(coordinator, EntityKind.ENGAGEMENT, engagement.id, "supervisor1")
        signatures.sign(accountant, EntityKind.ENGAGEMENT, engagement.id, "supervisor2")
        assert signatures.signable_slots(national_coordinator, EntityKind.ENGAGEMENT, engagement.id) == (
            ApprovalSlot.FINAL_APPROVAL,
        )

    def test_no_sign_capability(self, signatures, engagement, viewer):
        assert signatures.signable_slots(viewer, EntityKind.ENGAGEMENT, engagement.id) == ()
