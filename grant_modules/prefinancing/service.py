"""
Prefinancing Module Service (``grant_modules.prefinancing.service``).

Responsibility
--------------
Create, edit and delete prefinancings and record their repayments.  A
prefinancing becomes ``repaid`` once its repayments reach the principal.

Architecture position
---------------------
**Modules layer** -- ``PrefinancingService`` is the sole public entry point
for prefinancings.  Ledger arithmetic is ``grant_engines.repayment``.

Invariants enforced
-------------------
* Each public method owns the transaction boundary.
* Repayment rows are append-only and carry a fresh UUID string id.
* Over-repayment follows the configured ``OverRepaymentPolicy``.

Failure modes
-------------
* ``CapabilityDeniedError`` -- actor lacks a prefinancing capability.
* ``RecordNotFoundError`` -- unknown grant or prefinancing.
* ``InvalidAmountError`` -- non-positive principal or repayment.
* ``OverRepaymentError`` -- repayment beyond the principal under
  ``reject`` (or nothing left under ``clamp``).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from grant_engines.repayment import OverRepaymentPolicy, RepaymentSummary, summarize
from grant_kernel.db.repository import Repository
from grant_kernel.domain.approval import ApprovalState
from grant_kernel.domain.clock import Clock, SystemClock
from grant_kernel.domain.entity_kind import EntityKind
from grant_kernel.domain.permissions import Actor
from grant_kernel.logging_config import get_logger
from grant_modules._helpers import (
    ChangeListener,
    notify,
    parse_status,
    reject_unknown_fields,
    require_capability,
    require_date_order,
    require_positive_amount,
    require_text,
)
from grant_modules._repayments import record_repayment
from grant_modules.grants.orm import GrantModel
from grant_modules.prefinancing.models import (
    Prefinancing,
    PrefinancingExpense,
    PrefinancingPurpose,
    PrefinancingStatus,
)
from grant_modules.prefinancing.orm import PrefinancingModel

logger = get_logger("modules.prefinancing.service")

MODULE = EntityKind.PREFINANCING.module
ENTITY = EntityKind.PREFINANCING.value

_UPDATABLE = frozenset({
    "prefinancing_number", "amount", "date", "expected_repayment_date",
    "purpose", "target_bank_account", "target_grant_id", "status",
    "description", "budget_line_id", "sub_budget_line_id",
})


class PrefinancingService:
    """
    Prefinancings and their repayment ledger.

    Guarantees
    ----------
    * ``add_repayment`` never edits an existing ledger row.
    * Clock is injectable for deterministic testing.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        over_repayment_policy: OverRepaymentPolicy = OverRepaymentPolicy.REJECT,
        on_change: ChangeListener | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._policy = over_repayment_policy
        self._on_change = on_change
        self._prefinancings = Repository(session, PrefinancingModel, ENTITY)

    def create_prefinancing(
        self,
        actor: Actor,
        grant_id: UUID,
        prefinancing_number: str,
        amount: Decimal | str | int,
        purpose: PrefinancingPurpose | str,
        prefinancing_date: date | None = None,
        expected_repayment_date: date | None = None,
        budget_line_id: UUID | None = None,
        sub_budget_line_id: UUID | None = None,
        target_bank_account: str = "",
        target_grant_id: UUID | None = None,
        description: str = "",
        expenses: tuple[PrefinancingExpense, ...] = (),
    ) -> Prefinancing:
        require_capability(actor, MODULE, "create")
        number = require_text(ENTITY, "prefinancing_number", prefinancing_number)
        value = require_positive_amount("amount", amount)
        kind = parse_status(ENTITY, PrefinancingPurpose, purpose)
        start = prefinancing_date or self._clock.today()
        require_date_order(ENTITY, start, expected_repayment_date, "date", "expected_repayment_date")
        cleaned_expenses = [_clean_expense(e).to_dict() for e in expenses]

        try:
            Repository(self._session, GrantModel, "grant").require(grant_id)
            model = PrefinancingModel(
                id=uuid4(),
                grant_id=grant_id,
                budget_line_id=budget_line_id,
                sub_budget_line_id=sub_budget_line_id,
                prefinancing_number=number,
                amount=value,
                date=start,
                expected_repayment_date=expected_repayment_date,
                purpose=kind.value,
                target_bank_account=(target_bank_account or "").strip(),
                target_grant_id=target_grant_id,
                status=PrefinancingStatus.PENDING.value,
                description=(description or "").strip(),
                expenses=cleaned_expenses,
                repayments=[],
                created_by_id=actor.id,
            )
            model.set_approvals(ApprovalState())
            self._prefinancings.add(model)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("prefinancing_created", extra={
            "prefinancing_id": str(model.id),
            "grant_id": str(grant_id),
            "amount": str(value),
            "purpose": kind.value,
        })
        notify(self._on_change, ENTITY)
        return model.to_dto()

    def update_prefinancing(
        self,
        actor: Actor,
        prefinancing_id: UUID,
        *,
        reset_approvals: bool = False,
        expenses: tuple[PrefinancingExpense, ...] | None = None,
        **changes,
    ) -> Prefinancing:
        require_capability(actor, MODULE, "edit")
        reject_unknown_fields(ENTITY, changes, _UPDATABLE)
        if "prefinancing_number" in changes:
            changes["prefinancing_number"] = require_text(
                ENTITY, "prefinancing_number", changes["prefinancing_number"],
            )
        if "amount" in changes:
            changes["amount"] = require_positive_amount("amount", changes["amount"])
        if "purpose" in changes:
            changes["purpose"] = parse_status(ENTITY, PrefinancingPurpose, changes["purpose"]).value
        if "status" in changes:
            changes["status"] = parse_status(ENTITY, PrefinancingStatus, changes["status"]).value

        try:
            model = self._prefinancings.require(prefinancing_id)
            for field_name, value in changes.items():
                setattr(model, field_name, value)
            require_date_order(
                ENTITY, model.date, model.expected_repayment_date, "date", "expected_repayment_date",
            )
            if expenses is not None:
                model.expenses = [_clean_expense(e).to_dict() for e in expenses]
            if reset_approvals:
                model.set_approvals(ApprovalState())
            model.updated_by_id = actor.id
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("prefinancing_updated", extra={
            "prefinancing_id": str(prefinancing_id),
            "fields": sorted(changes),
            "approvals_reset": reset_approvals,
        })
        notify(self._on_change, ENTITY)
        return model.to_dto()

    # =========================================================================
    # Repayments
    # =========================================================================

    def add_repayment(
        self,
        actor: Actor,
        prefinancing_id: UUID,
        amount: Decimal | str | int,
        repayment_date: date | None = None,
        reference: str = "",
    ) -> Prefinancing:
        """Append a repayment; status becomes ``repaid`` once fully repaid."""
        require_capability(actor, MODULE, "edit")
        try:
            model = self._prefinancings.require(prefinancing_id)
            outcome = record_repayment(
                model,
                entity_type=ENTITY,
                terminal_status=PrefinancingStatus.REPAID.value,
                entry_date=repayment_date or self._clock.today(),
                amount=amount,
                reference=reference,
                policy=self._policy,
            )
            model.updated_by_id = actor.id
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("prefinancing_repayment_added", extra={
            "prefinancing_id": str(prefinancing_id),
            "amount": str(outcome.appended.amount),
            "total_repaid": str(outcome.summary.total_repaid),
            "remaining": str(outcome.summary.remaining),
            "status": outcome.status,
        })
        notify(self._on_change, ENTITY)
        return model.to_dto()

    def repayment_summary(self, prefinancing_id: UUID) -> RepaymentSummary:
        model = self._prefinancings.require(prefinancing_id)
        return summarize(model.amount, model.get_repayments())

    # =========================================================================
    # Deletion and queries
    # =========================================================================

    def delete_prefinancing(self, actor: Actor, prefinancing_id: UUID) -> None:
        require_capability(actor, MODULE, "delete")
        try:
            self._prefinancings.delete(prefinancing_id)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("prefinancing_deleted", extra={"prefinancing_id": str(prefinancing_id)})
        notify(self._on_change, ENTITY)

    def get_prefinancing(self, prefinancing_id: UUID) -> Prefinancing:
        return self._prefinancings.require(prefinancing_id).to_dto()

    def list_prefinancings(self, grant_id: UUID | None = None) -> list[Prefinancing]:
        filters = {"grant_id": grant_id} if grant_id is not None else {}
        rows = self._prefinancings.get_all(
            order_by=(PrefinancingModel.prefinancing_number,), **filters,
        )
        return [m.to_dto() for m in rows]


def _clean_expense(expense: PrefinancingExpense) -> PrefinancingExpense:
    return PrefinancingExpense(
        supplier=require_text("prefinancing_expense", "supplier", expense.supplier),
        amount=require_positive_amount("amount", expense.amount),
        invoice_number=(expense.invoice_number or "").strip(),
        description=(expense.description or "").strip(),
    )
