"""
Engagement Module Service (``grant_modules.engagements.service``).

Responsibility
--------------
Create, amend and delete engagements (financial commitments against a
sub-budget line) and keep the engaged / available amounts of the sub-line
and its budget line in step through ``BudgetService``.

Architecture position
---------------------
**Modules layer** -- ``EngagementService`` is the sole public entry point
for engagements.  Signing goes through ``grant_services.SignatureService``.

Invariants enforced
-------------------
* Each public method owns the transaction boundary; the engagement write
  and its rollup commit together or not at all.
* Creation contributes the engagement amount; amendment applies
  ``new - old``; deletion removes the current contribution.  A rejected
  engagement contributes 0.
* New engagements start with an empty approval state; approvals are only
  reset by an explicit ``reset_approvals=True`` edit.

Failure modes
-------------
* ``CapabilityDeniedError`` -- actor lacks an engagements capability.
* ``RecordNotFoundError`` -- unknown grant / line / sub-line on creation.
* ``ParentMismatchError`` -- the sub-line is not under the line, or the
  line is not under the grant.
* Validation errors for blank numbers and non-positive amounts.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from grant_config.schema import RollupStrategy
from grant_engines.rollup import engaged_contribution
from grant_kernel.db.repository import Repository
from grant_kernel.domain.approval import ApprovalState
from grant_kernel.domain.clock import Clock, SystemClock
from grant_kernel.domain.entity_kind import EntityKind
from grant_kernel.domain.permissions import Actor
from grant_kernel.exceptions import ParentMismatchError
from grant_kernel.logging_config import get_logger
from grant_modules._helpers import (
    ChangeListener,
    notify,
    parse_status,
    reject_unknown_fields,
    require_capability,
    require_positive_amount,
    require_text,
)
from grant_modules.budget.orm import BudgetLineModel, SubBudgetLineModel
from grant_modules.budget.service import BudgetService
from grant_modules.engagements.models import Engagement, EngagementStatus
from grant_modules.engagements.orm import EngagementModel
from grant_modules.grants.orm import GrantModel

logger = get_logger("modules.engagements.service")

MODULE = EntityKind.ENGAGEMENT.module
ENTITY = EntityKind.ENGAGEMENT.value

_UPDATABLE = frozenset({
    "engagement_number", "amount", "date", "status", "description",
    "supplier", "quote_reference", "invoice_number",
})


class EngagementService:
    """
    Engagements and their engaged-amount rollup.

    Guarantees
    ----------
    * The rollup uses the ``BudgetService`` passed in (or one built on the
      same session), so both writes share one transaction.
    * Clock is injectable for deterministic testing.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        budget_service: BudgetService | None = None,
        rollup_strategy: RollupStrategy = RollupStrategy.INCREMENTAL,
        on_change: ChangeListener | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._budget = budget_service or BudgetService(
            session, clock=self._clock, rollup_strategy=rollup_strategy,
        )
        self._on_change = on_change
        self._engagements = Repository(session, EngagementModel, ENTITY)

    def create_engagement(
        self,
        actor: Actor,
        grant_id: UUID,
        budget_line_id: UUID,
        sub_budget_line_id: UUID,
        engagement_number: str,
        amount: Decimal | str | int,
        engagement_date: date | None = None,
        description: str = "",
        supplier: str = "",
        quote_reference: str = "",
        invoice_number: str = "",
    ) -> Engagement:
        """Commit ``amount`` against a sub-line; engaged amounts move by ``amount``."""
        require_capability(actor, MODULE, "create")
        number = require_text(ENTITY, "engagement_number", engagement_number)
        value = require_positive_amount("amount", amount)

        try:
            self._check_parents(grant_id, budget_line_id, sub_budget_line_id)
            model = EngagementModel(
                id=uuid4(),
                grant_id=grant_id,
                budget_line_id=budget_line_id,
                sub_budget_line_id=sub_budget_line_id,
                engagement_number=number,
                amount=value,
                date=engagement_date or self._clock.today(),
                status=EngagementStatus.PENDING.value,
                description=(description or "").strip(),
                supplier=(supplier or "").strip(),
                quote_reference=(quote_reference or "").strip(),
                invoice_number=(invoice_number or "").strip(),
                created_by_id=actor.id,
            )
            model.set_approvals(ApprovalState())
            self._engagements.add(model)
            self._budget.apply_engagement_change(
                budget_line_id, sub_budget_line_id, Decimal("0"), value,
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("engagement_created", extra={
            "engagement_id": str(model.id),
            "grant_id": str(grant_id),
            "sub_budget_line_id": str(sub_budget_line_id),
            "amount": str(value),
        })
        notify(self._on_change, ENTITY)
        return model.to_dto()

    def update_engagement(
        self,
        actor: Actor,
        engagement_id: UUID,
        *,
        reset_approvals: bool = False,
        **changes,
    ) -> Engagement:
        """Amend an engagement; amount or rejection changes roll up as a delta."""
        require_capability(actor, MODULE, "edit")
        reject_unknown_fields(ENTITY, changes, _UPDATABLE)
        if "amount" in changes:
            changes["amount"] = require_positive_amount("amount", changes["amount"])
        if "engagement_number" in changes:
            changes["engagement_number"] = require_text(
                ENTITY, "engagement_number", changes["engagement_number"],
            )
        if "status" in changes:
            changes["status"] = parse_status(ENTITY, EngagementStatus, changes["status"]).value

        try:
            model = self._engagements.require(engagement_id)
            old = engaged_contribution(model.amount, model.status)
            for field_name, value in changes.items():
                setattr(model, field_name, value)
            if reset_approvals:
                model.set_approvals(ApprovalState())
            model.updated_by_id = actor.id
            self._session.flush()
            new = engaged_contribution(model.amount, model.status)
            self._budget.apply_engagement_change(
                model.budget_line_id, model.sub_budget_line_id, old, new,
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("engagement_updated", extra={
            "engagement_id": str(engagement_id),
            "fields": sorted(changes),
            "approvals_reset": reset_approvals,
            "contribution_delta": str(new - old),
        })
        notify(self._on_change, ENTITY)
        return model.to_dto()

    def delete_engagement(self, actor: Actor, engagement_id: UUID) -> None:
        """Delete an engagement and remove its contribution from its lines."""
        require_capability(actor, MODULE, "delete")
        try:
            model = self._engagements.require(engagement_id)
            contribution = engaged_contribution(model.amount, model.status)
            budget_line_id = model.budget_line_id
            sub_budget_line_id = model.sub_budget_line_id
            self._engagements.delete(engagement_id)
            self._budget.apply_engagement_change(
                budget_line_id, sub_budget_line_id, contribution, Decimal("0"),
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("engagement_deleted", extra={
            "engagement_id": str(engagement_id),
            "released_amount": str(contribution),
        })
        notify(self._on_change, ENTITY)

    def get_engagement(self, engagement_id: UUID) -> Engagement:
        return self._engagements.require(engagement_id).to_dto()

    def list_engagements(self, grant_id: UUID | None = None) -> list[Engagement]:
        filters = {"grant_id": grant_id} if grant_id is not None else {}
        rows = self._engagements.get_all(
            order_by=(EngagementModel.engagement_number,), **filters,
        )
        return [m.to_dto() for m in rows]

    def _check_parents(
        self,
        grant_id: UUID,
        budget_line_id: UUID,
        sub_budget_line_id: UUID,
    ) -> None:
        Repository(self._session, GrantModel, "grant").require(grant_id)
        line = Repository(self._session, BudgetLineModel, "budget_line").require(budget_line_id)
        sub_line = Repository(
            self._session, SubBudgetLineModel, "sub_budget_line",
        ).require(sub_budget_line_id)
        if line.grant_id != grant_id:
            raise ParentMismatchError("budget_line", str(line.id), "grant", str(grant_id))
        if sub_line.budget_line_id != line.id:
            raise ParentMismatchError(
                "sub_budget_line", str(sub_line.id), "budget_line", str(line.id),
            )
