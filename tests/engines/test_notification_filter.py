"""
Tests for the pending-signature notification filter.
"""

from dataclasses import dataclass, field
from datetime import date
from uuid import UUID, uuid4

import pytest

from grant_engines.notifications import (
    NotificationSnapshot,
    build_snapshot,
    is_pending_for_viewer,
    pending_for_viewer,
)
from grant_kernel.domain.approval import ApprovalSlot, ApprovalState, Profession, SlotSignature
from grant_kernel.domain.entity_kind import EntityKind

COORDINATOR = Profession.GRANT_COORDINATOR.value
ACCOUNTANT = Profession.ACCOUNTANT.value
NATIONAL = Profession.NATIONAL_COORDINATOR.value

GRANT_A = UUID("00000000-0000-4000-c000-00000000000a")
GRANT_B = UUID("00000000-0000-4000-c000-00000000000b")


@dataclass(frozen=True)
class Record:
    grant_id: UUID
    approvals: ApprovalState = field(default_factory=ApprovalState)
    id: UUID = field(default_factory=uuid4)


def approvals_with(*slots: ApprovalSlot) -> ApprovalState:
    approvals = ApprovalState()
    for slot in slots:
        approvals = approvals.with_slot(slot, SlotSignature("X", date(2024, 1, 1)))
    return approvals


class TestIsPendingForViewer:

    def test_supervisor_pending_until_own_slot_signed(self):
        assert is_pending_for_viewer(ApprovalState(), COORDINATOR)
        assert is_pending_for_viewer(approvals_with(ApprovalSlot.SUPERVISOR2), COORDINATOR)
        assert not is_pending_for_viewer(approvals_with(ApprovalSlot.SUPERVISOR1), COORDINATOR)

    def test_accountant(self):
        assert is_pending_for_viewer(approvals_with(ApprovalSlot.SUPERVISOR1), ACCOUNTANT)
        assert not is_pending_for_viewer(approvals_with(ApprovalSlot.SUPERVISOR2), ACCOUNTANT)

    @pytest.mark.parametrize("slots, expected", [
        ((), False),
        ((ApprovalSlot.SUPERVISOR1,), False),
        ((ApprovalSlot.SUPERVISOR2,), False),
        ((ApprovalSlot.SUPERVISOR1, ApprovalSlot.SUPERVISOR2), True),
        (tuple(ApprovalSlot), False),
    ])
    def test_national_coordinator_waits_for_both_supervisors(self, slots, expected):
        assert is_pending_for_viewer(approvals_with(*slots), NATIONAL) is expected

    def test_unrecognized_profession_sees_nothing(self):
        assert not is_pending_for_viewer(ApprovalState(), "Stagiaire")
        assert not is_pending_for_viewer(ApprovalState(), None)


class TestPendingForViewer:

    def test_grant_scope_applied(self):
        records = [Record(GRANT_A), Record(GRANT_B), Record(GRANT_A)]
        assert len(pending_for_viewer(records, COORDINATOR)) == 3
        scoped = pending_for_viewer(records, COORDINATOR, grant_scope=GRANT_A)
        assert [r.grant_id for r in scoped] == [GRANT_A, GRANT_A]

    def test_preserves_input_order(self):
        records = [Record(GRANT_A) for _ in range(4)]
        assert pending_for_viewer(records, ACCOUNTANT) == records


class TestBuildSnapshot:

    def test_counts_per_kind(self):
        signed_by_coordinator = approvals_with(ApprovalSlot.SUPERVISOR1)
        snapshot = build_snapshot(
            {
                EntityKind.ENGAGEMENT: [Record(GRANT_A), Record(GRANT_A, signed_by_coordinator)],
                EntityKind.PAYMENT: [Record(GRANT_A)],
                EntityKind.PREFINANCING: [],
                EntityKind.EMPLOYEE_LOAN: [Record(GRANT_B)],
            },
            COORDINATOR,
            grant_scope=GRANT_A,
        )
        assert snapshot == NotificationSnapshot(engagements=1, payments=1, prefinancings=0, employee_loans=0)
        assert snapshot.total == 2
        assert snapshot.has_any
        assert snapshot.count_for(EntityKind.PAYMENT) == 1

    def test_missing_kinds_count_zero(self):
        snapshot = build_snapshot({EntityKind.PAYMENT: [Record(GRANT_A)]}, ACCOUNTANT)
        assert snapshot.payments == 1
        assert snapshot.engagements == 0
        assert snapshot.employee_loans == 0

    def test_empty_snapshot(self):
        assert not NotificationSnapshot().has_any
        assert NotificationSnapshot().total == 0
