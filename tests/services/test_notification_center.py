"""
Tests for NotificationCenter: per-viewer pending signature counts.
"""

import pytest

from grant_engines.notifications import NotificationSnapshot
from grant_kernel.domain.approval import Profession
from grant_kernel.domain.entity_kind import EntityKind
from grant_modules.employee_loans.models import Employee, RepaymentSchedule
from grant_services.approval_service import SignatureService
from grant_services.notification_service import NotificationCenter


@pytest.fixture
def center(session):
    return NotificationCenter(session)


@pytest.fixture
def signatures(session, deterministic_clock):
    return SignatureService(session, deterministic_clock)


class TestSnapshot:

    def test_unrecognized_viewer_sees_nothing(self, center, engagement):
        assert center.refresh() == NotificationSnapshot()
        assert center.set_viewer("Chauffeur").total == 0

    def test_supervisor_sees_unsigned_records(self, center, engagement, prefinancing_service, admin, grant):
        prefinancing_service.create_prefinancing(admin, grant.id, "PRE-1", "50", "other_accounts")
        snapshot = center.set_viewer(Profession.GRANT_COORDINATOR)
        assert snapshot.engagements == 1
        assert snapshot.prefinancings == 1
        assert snapshot.total == 2
        assert snapshot.count_for(EntityKind.PAYMENT) == 0

    def test_final_approver_waits_for_supervisors(
        self, center, signatures, engagement, coordinator, accountant,
    ):
        assert center.set_viewer(Profession.NATIONAL_COORDINATOR).engagements == 0
        signatures.sign(coordinator, EntityKind.ENGAGEMENT, engagement.id, "supervisor1")
        signatures.sign(accountant, EntityKind.ENGAGEMENT, engagement.id, "supervisor2")
        assert center.refresh().engagements == 1

    def test_grant_scope(self, center, loan_service, admin, grant, create_grant):
        other = create_grant()
        schedule = RepaymentSchedule(installment_amount=100, number_of_installments=1)
        loan_service.create_loan(admin, grant.id, "L-1", Employee("A", "E1"), "100", schedule)
        loan_service.create_loan(admin, other.id, "L-2", Employee("B", "E2"), "100", schedule)

        center.set_viewer(Profession.ACCOUNTANT)
        assert center.snapshot.employee_loans == 2
        assert center.set_scope(other.id).employee_loans == 1
        assert [l.loan_number for l in center.pending("employee_loan")] == ["L-2"]


class TestSubscriptions:

    def test_published_only_on_change(self, center, engagement):
        received = []
        center.subscribe(received.append)
        center.set_viewer(Profession.GRANT_COORDINATOR)
        center.refresh()
        assert [s.engagements for s in received] == [1]

    def test_unsubscribe(self, center, engagement):
        received = []
        unsubscribe = center.subscribe(received.append)
        unsubscribe()
        center.set_viewer(Profession.GRANT_COORDINATOR)
        assert received == []

    def test_record_change_triggers_refresh(
        self, session, deterministic_clock, center, engagement, coordinator,
    ):
        signing = SignatureService(session, deterministic_clock, on_change=center.on_records_changed)
        center.set_viewer(Profession.GRANT_COORDINATOR)
        received = []
        center.subscribe(received.append)

        signing.sign(coordinator, EntityKind.ENGAGEMENT, engagement.id, "supervisor1")

        assert [s.engagements for s in received] == [0]

    def test_non_signed_kinds_ignored(self, center, engagement):
        received = []
        center.subscribe(received.append)
        center.on_records_changed("budget_line")
        assert received == []
