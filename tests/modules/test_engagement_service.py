"""
Tests for EngagementService and the engaged-amount rollup it drives.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from grant_kernel.domain.approval import ApprovalState
from grant_kernel.exceptions import (
    CapabilityDeniedError,
    InvalidAmountError,
    InvalidStatusError,
    ParentMismatchError,
    RecordNotFoundError,
)
from grant_modules.engagements.models import EngagementStatus


def amounts(budget_service, budget_line, sub_line):
    line = budget_service.get_budget_line(budget_line.id)
    sub = budget_service.get_sub_budget_line(sub_line.id)
    return (
        (line.engaged_amount, line.available_amount),
        (sub.engaged_amount, sub.available_amount),
    )


class TestEngagementLifecycle:

    def test_create_engages_amount(self, engagement, budget_service, budget_line, sub_line):
        assert engagement.status is EngagementStatus.PENDING
        assert engagement.approvals == ApprovalState()
        assert amounts(budget_service, budget_line, sub_line) == (
            (Decimal("300"), Decimal("700")),
            (Decimal("300"), Decimal("700")),
        )

    def test_amend_applies_difference(
        self, engagement_service, budget_service, admin, engagement, budget_line, sub_line,
    ):
        engagement_service.update_engagement(admin, engagement.id, amount="500")
        assert amounts(budget_service, budget_line, sub_line) == (
            (Decimal("500"), Decimal("500")),
            (Decimal("500"), Decimal("500")),
        )

    def test_rejection_releases_amount(
        self, engagement_service, budget_service, admin, engagement, budget_line, sub_line,
    ):
        updated = engagement_service.update_engagement(admin, engagement.id, status="rejected")
        assert updated.status is EngagementStatus.REJECTED
        assert amounts(budget_service, budget_line, sub_line)[1] == (Decimal("0"), Decimal("1000"))

    def test_delete_releases_amount(
        self, engagement_service, budget_service, admin, engagement, budget_line, sub_line,
    ):
        engagement_service.delete_engagement(admin, engagement.id)
        assert engagement_service.list_engagements() == []
        assert amounts(budget_service, budget_line, sub_line)[0] == (Decimal("0"), Decimal("1000"))

    def test_deleting_rejected_engagement_changes_nothing(
        self, engagement_service, budget_service, admin, engagement, budget_line, sub_line,
    ):
        engagement_service.update_engagement(admin, engagement.id, status="rejected")
        engagement_service.delete_engagement(admin, engagement.id)
        assert amounts(budget_service, budget_line, sub_line)[1] == (Decimal("0"), Decimal("1000"))

    def test_over_commitment_goes_negative(
        self, engagement_service, budget_service, admin, grant, budget_line, sub_line,
    ):
        engagement_service.create_engagement(
            admin, grant.id, budget_line.id, sub_line.id, "ENG-BIG", "1200",
        )
        assert amounts(budget_service, budget_line, sub_line)[1] == (Decimal("1200"), Decimal("-200"))
        assert budget_service.summarize_grant(grant.id).is_over_committed

    def test_reset_approvals(self, engagement_service, admin, engagement):
        updated = engagement_service.update_engagement(
            admin, engagement.id, reset_approvals=True, description="Revised",
        )
        assert updated.description == "Revised"
        assert updated.approvals == ApprovalState()

    def test_created_logged(self, engagement_service, admin, grant, budget_line, sub_line, captured_logs):
        engagement_service.create_engagement(
            admin, grant.id, budget_line.id, sub_line.id, "ENG-9", "40",
        )
        created = [r for r in captured_logs() if r["message"] == "engagement_created"]
        assert created[0]["amount"] == "40"


class TestEngagementValidation:

    def test_non_positive_amount(self, engagement_service, admin, grant, budget_line, sub_line):
        with pytest.raises(InvalidAmountError):
            engagement_service.create_engagement(
                admin, grant.id, budget_line.id, sub_line.id, "ENG-0", "0",
            )

    def test_unknown_status(self, engagement_service, admin, engagement):
        with pytest.raises(InvalidStatusError):
            engagement_service.update_engagement(admin, engagement.id, status="cancelled")

    def test_sub_line_of_other_line(
        self, engagement_service, budget_service, admin, grant, budget_line, sub_line,
    ):
        other = budget_service.add_budget_line(admin, grant.id, "BL-02", "Other", "500")
        with pytest.raises(ParentMismatchError):
            engagement_service.create_engagement(
                admin, grant.id, other.id, sub_line.id, "ENG-X", "10",
            )
        assert budget_service.get_budget_line(other.id).engaged_amount == Decimal("0")

    def test_line_of_other_grant(
        self, engagement_service, admin, create_grant, budget_line, sub_line,
    ):
        other_grant = create_grant()
        with pytest.raises(ParentMismatchError):
            engagement_service.create_engagement(
                admin, other_grant.id, budget_line.id, sub_line.id, "ENG-X", "10",
            )

    def test_unknown_sub_line(self, engagement_service, admin, grant, budget_line):
        with pytest.raises(RecordNotFoundError):
            engagement_service.create_engagement(
                admin, grant.id, budget_line.id, uuid4(), "ENG-X", "10",
            )

    def test_viewer_denied(
        self, engagement_service, budget_service, viewer, grant, budget_line, sub_line,
    ):
        with pytest.raises(CapabilityDeniedError):
            engagement_service.create_engagement(
                viewer, grant.id, budget_line.id, sub_line.id, "ENG-X", "10",
            )
        assert amounts(budget_service, budget_line, sub_line)[1] == (Decimal("0"), Decimal("1000"))
