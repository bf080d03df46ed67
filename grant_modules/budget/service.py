"""
Budget Module Service (``grant_modules.budget.service``).

Responsibility
--------------
Budget line and sub-budget line maintenance plus every derived-amount
rollup over them:

* engaged / available maintenance when engagements are created, amended or
  deleted (delta based or recomputed, per ``RollupStrategy``);
* the bottom-up planned pass (sub-lines -> budget line -> grant) after
  every line or sub-line mutation;
* the manual full repair of engaged amounts;
* per-grant budget summaries.

Architecture position
---------------------
**Modules layer** -- ``BudgetService`` is the sole public entry point for
budget lines.  Arithmetic is delegated to ``grant_engines.rollup``.

Invariants enforced
-------------------
* Each public method owns the transaction boundary (``commit`` on success,
  ``rollback`` on failure or exception).  ``apply_engagement_change`` is the
  exception: it runs inside the calling service's transaction.
* ``available == notified - engaged`` on every line and sub-line after every
  settled mutation, including edits of ``notified_amount``.
* The planned pass only rewrites parents whose value changes.

Failure modes
-------------
* ``CapabilityDeniedError`` -- actor lacks a budget_planning capability.
* ``RecordNotFoundError`` -- unknown grant / line / sub-line on input.
* A rollup target that disappeared is skipped and logged as
  ``rollup_target_missing``; the rest of the operation completes.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from grant_config.schema import RollupStrategy
from grant_engines.rollup import (
    BudgetSummary,
    apply_engaged_delta,
    changed_planned_totals,
    engaged_contribution,
    recompute_engaged,
    summarize_lines,
)
from grant_kernel.db.repository import Repository
from grant_kernel.domain.clock import Clock, SystemClock
from grant_kernel.domain.permissions import Actor
from grant_kernel.exceptions import RollupTargetNotFoundError
from grant_kernel.logging_config import get_logger
from grant_modules._helpers import (
    ChangeListener,
    notify,
    reject_unknown_fields,
    require_capability,
    require_non_negative_amount,
    require_text,
)
from grant_modules.budget.models import (
    BudgetLine,
    EngagedRepairResult,
    PlannedRollupResult,
    SubBudgetLine,
)
from grant_modules.budget.orm import BudgetLineModel, SubBudgetLineModel
from grant_modules.engagements.orm import EngagementModel
from grant_modules.grants.orm import GrantModel

logger = get_logger("modules.budget.service")

MODULE = "budget_planning"

_LINE_FIELDS = frozenset({"code", "name", "description", "color", "notified_amount"})
_SUB_LINE_FIELDS = frozenset({"code", "name", "description", "notified_amount", "planned_amount"})

ZERO = Decimal("0")


class BudgetService:
    """
    Budget lines, sub-budget lines and their rollups.

    Contract
    --------
    * Mutating methods take the acting ``Actor`` and check the
      ``budget_planning`` capability before touching the store.
    * Read methods return frozen DTOs.

    Guarantees
    ----------
    * Engaged rollups and the record write that caused them commit together.
    * Clock is injectable for deterministic testing.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        rollup_strategy: RollupStrategy = RollupStrategy.INCREMENTAL,
        on_change: ChangeListener | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._strategy = rollup_strategy
        self._on_change = on_change
        self._grants = Repository(session, GrantModel, "grant")
        self._lines = Repository(session, BudgetLineModel, "budget_line")
        self._sub_lines = Repository(session, SubBudgetLineModel, "sub_budget_line")

    @property
    def rollup_strategy(self) -> RollupStrategy:
        return self._strategy

    # =========================================================================
    # Budget lines
    # =========================================================================

    def add_budget_line(
        self,
        actor: Actor,
        grant_id: UUID,
        code: str,
        name: str,
        notified_amount: Decimal | str | int,
        description: str = "",
        color: str = "",
    ) -> BudgetLine:
        require_capability(actor, MODULE, "create")
        notified = require_non_negative_amount("notified_amount", notified_amount)
        model = BudgetLineModel(
            id=uuid4(),
            grant_id=grant_id,
            code=require_text("budget_line", "code", code),
            name=require_text("budget_line", "name", name),
            description=(description or "").strip(),
            color=(color or "").strip(),
            notified_amount=notified,
            engaged_amount=ZERO,
            available_amount=notified,
            planned_amount=ZERO,
            created_by_id=actor.id,
        )
        try:
            self._grants.require(grant_id)
            self._lines.add(model)
            self._run_planned_pass()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("budget_line_created", extra={
            "grant_id": str(grant_id),
            "budget_line_id": str(model.id),
            "notified_amount": str(notified),
        })
        notify(self._on_change, "budget_line")
        return model.to_dto()

    def update_budget_line(self, actor: Actor, budget_line_id: UUID, **changes) -> BudgetLine:
        """Edit a line; changing ``notified_amount`` re-derives ``available_amount``."""
        require_capability(actor, MODULE, "edit")
        changes = self._clean_changes("budget_line", changes, _LINE_FIELDS)
        try:
            model = self._lines.require(budget_line_id)
            for field_name, value in changes.items():
                setattr(model, field_name, value)
            model.available_amount = model.notified_amount - model.engaged_amount
            model.updated_by_id = actor.id
            self._session.flush()
            self._run_planned_pass()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("budget_line_updated", extra={
            "budget_line_id": str(budget_line_id),
            "fields": sorted(changes),
        })
        notify(self._on_change, "budget_line")
        return model.to_dto()

    def delete_budget_line(self, actor: Actor, budget_line_id: UUID) -> None:
        """Delete a line and all of its sub-lines."""
        require_capability(actor, MODULE, "delete")
        try:
            model = self._lines.require(budget_line_id)
            sub_line_count = len(model.sub_lines)
            self._lines.delete(budget_line_id)
            self._run_planned_pass()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("budget_line_deleted", extra={
            "budget_line_id": str(budget_line_id),
            "sub_lines_deleted": sub_line_count,
        })
        notify(self._on_change, "budget_line")

    def get_budget_line(self, budget_line_id: UUID) -> BudgetLine:
        return self._lines.require(budget_line_id).to_dto()

    def list_budget_lines(self, grant_id: UUID | None = None) -> list[BudgetLine]:
        filters = {"grant_id": grant_id} if grant_id is not None else {}
        rows = self._lines.get_all(order_by=(BudgetLineModel.code,), **filters)
        return [m.to_dto() for m in rows]

    # =========================================================================
    # Sub-budget lines
    # =========================================================================

    def add_sub_budget_line(
        self,
        actor: Actor,
        budget_line_id: UUID,
        code: str,
        name: str,
        notified_amount: Decimal | str | int,
        planned_amount: Decimal | str | int | None = None,
        description: str = "",
    ) -> SubBudgetLine:
        """Add a sub-line; ``planned_amount`` defaults to the notified amount."""
        require_capability(actor, MODULE, "create")
        notified = require_non_negative_amount("notified_amount", notified_amount)
        planned = (
            notified if planned_amount is None
            else require_non_negative_amount("planned_amount", planned_amount)
        )
        try:
            line = self._lines.require(budget_line_id)
            model = SubBudgetLineModel(
                id=uuid4(),
                grant_id=line.grant_id,
                budget_line_id=line.id,
                budget_line=line,
                code=require_text("sub_budget_line", "code", code),
                name=require_text("sub_budget_line", "name", name),
                description=(description or "").strip(),
                notified_amount=notified,
                engaged_amount=ZERO,
                available_amount=notified,
                planned_amount=planned,
                created_by_id=actor.id,
            )
            self._sub_lines.add(model)
            self._run_planned_pass()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("sub_budget_line_created", extra={
            "budget_line_id": str(budget_line_id),
            "sub_budget_line_id": str(model.id),
            "notified_amount": str(notified),
            "planned_amount": str(planned),
        })
        notify(self._on_change, "sub_budget_line")
        return model.to_dto()

    def update_sub_budget_line(self, actor: Actor, sub_line_id: UUID, **changes) -> SubBudgetLine:
        require_capability(actor, MODULE, "edit")
        changes = self._clean_changes("sub_budget_line", changes, _SUB_LINE_FIELDS)
        try:
            model = self._sub_lines.require(sub_line_id)
            for field_name, value in changes.items():
                setattr(model, field_name, value)
            model.available_amount = model.notified_amount - model.engaged_amount
            model.updated_by_id = actor.id
            self._session.flush()
            self._run_planned_pass()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("sub_budget_line_updated", extra={
            "sub_budget_line_id": str(sub_line_id),
            "fields": sorted(changes),
        })
        notify(self._on_change, "sub_budget_line")
        return model.to_dto()

    def delete_sub_budget_line(self, actor: Actor, sub_line_id: UUID) -> None:
        require_capability(actor, MODULE, "delete")
        try:
            model = self._sub_lines.require(sub_line_id)
            line = model.budget_line
            self._sub_lines.delete(sub_line_id)
            self._session.expire(line, ["sub_lines"])
            self._run_planned_pass()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("sub_budget_line_deleted", extra={"sub_budget_line_id": str(sub_line_id)})
        notify(self._on_change, "sub_budget_line")

    def get_sub_budget_line(self, sub_line_id: UUID) -> SubBudgetLine:
        return self._sub_lines.require(sub_line_id).to_dto()

    def list_sub_budget_lines(
        self,
        budget_line_id: UUID | None = None,
        grant_id: UUID | None = None,
    ) -> list[SubBudgetLine]:
        filters: dict[str, UUID] = {}
        if budget_line_id is not None:
            filters["budget_line_id"] = budget_line_id
        if grant_id is not None:
            filters["grant_id"] = grant_id
        rows = self._sub_lines.get_all(order_by=(SubBudgetLineModel.code,), **filters)
        return [m.to_dto() for m in rows]

    # =========================================================================
    # Planned rollup
    # =========================================================================

    def recompute_planned_amounts(self) -> PlannedRollupResult:
        """Run the planned pass on demand; a settled store reports no changes."""
        try:
            result = self._run_planned_pass()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        if result.changed:
            notify(self._on_change, "budget_line")
        return result

    def _run_planned_pass(self) -> PlannedRollupResult:
        lines = self._lines.get_all()
        line_changes = changed_planned_totals(
            {line.id: line.planned_amount for line in lines},
            ((sub.budget_line_id, sub.planned_amount) for sub in self._sub_lines.get_all()),
        )
        for line in lines:
            if line.id in line_changes:
                line.planned_amount = line_changes[line.id]

        grants = self._grants.get_all()
        grant_changes = changed_planned_totals(
            {grant.id: grant.planned_amount for grant in grants},
            ((line.grant_id, line.planned_amount) for line in lines),
        )
        for grant in grants:
            if grant.id in grant_changes:
                grant.planned_amount = grant_changes[grant.id]

        self._session.flush()
        result = PlannedRollupResult(
            changed_budget_line_ids=tuple(line_changes),
            changed_grant_ids=tuple(grant_changes),
        )
        if result.changed:
            logger.debug("planned_rollup_applied", extra={
                "budget_lines_changed": len(line_changes),
                "grants_changed": len(grant_changes),
            })
        return result

    # =========================================================================
    # Engaged rollup
    # =========================================================================

    def apply_engagement_change(
        self,
        budget_line_id: UUID,
        sub_budget_line_id: UUID,
        old_contribution: Decimal,
        new_contribution: Decimal,
    ) -> None:
        """Move engaged/available for one engagement write.

        Runs inside the caller's transaction: flushes, never commits.
        Creation passes ``old_contribution=0``, deletion passes
        ``new_contribution=0``.
        """
        if self._strategy is RollupStrategy.RECOMPUTE:
            self._recompute_targets(budget_line_id, sub_budget_line_id)
            return

        delta = new_contribution - old_contribution
        if delta == ZERO:
            return
        for target in self._targets(budget_line_id, sub_budget_line_id):
            amounts = apply_engaged_delta(target.notified_amount, target.engaged_amount, delta)
            target.engaged_amount = amounts.engaged
            target.available_amount = amounts.available
        self._session.flush()
        logger.debug("engaged_delta_applied", extra={
            "budget_line_id": str(budget_line_id),
            "sub_budget_line_id": str(sub_budget_line_id),
            "delta": str(delta),
        })

    def recompute_engaged_amounts(self) -> EngagedRepairResult:
        """Full repair: rebuild every engaged/available pair from the engagements."""
        try:
            changed_sub = self._recompute_all(
                self._sub_lines.get_all(), EngagementModel.sub_budget_line_id,
            )
            changed_lines = self._recompute_all(
                self._lines.get_all(), EngagementModel.budget_line_id,
            )
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        result = EngagedRepairResult(
            changed_sub_line_ids=tuple(changed_sub),
            changed_budget_line_ids=tuple(changed_lines),
        )
        log = logger.warning if result.changed else logger.info
        log("engaged_amounts_recomputed", extra={
            "sub_lines_corrected": len(changed_sub),
            "budget_lines_corrected": len(changed_lines),
        })
        if result.changed:
            notify(self._on_change, "budget_line")
        return result

    def _recompute_targets(self, budget_line_id: UUID, sub_budget_line_id: UUID) -> None:
        self._session.flush()
        for target in self._targets(budget_line_id, sub_budget_line_id):
            column = (
                EngagementModel.sub_budget_line_id
                if isinstance(target, SubBudgetLineModel)
                else EngagementModel.budget_line_id
            )
            self._recompute_one(target, column)
        self._session.flush()

    def _recompute_all(self, targets: Iterable, column) -> list[UUID]:
        return [target.id for target in targets if self._recompute_one(target, column)]

    def _recompute_one(self, target, column) -> bool:
        rows = self._session.execute(
            select(EngagementModel.amount, EngagementModel.status).where(column == target.id)
        ).all()
        amounts = recompute_engaged(
            target.notified_amount,
            (engaged_contribution(amount, status) for amount, status in rows),
        )
        if amounts.engaged == target.engaged_amount and amounts.available == target.available_amount:
            return False
        target.engaged_amount = amounts.engaged
        target.available_amount = amounts.available
        return True

    def _targets(self, budget_line_id: UUID, sub_budget_line_id: UUID) -> list:
        found = []
        for repo, record_id in (
            (self._sub_lines, sub_budget_line_id),
            (self._lines, budget_line_id),
        ):
            try:
                found.append(self._require_target(repo, record_id))
            except RollupTargetNotFoundError as exc:
                logger.warning("rollup_target_missing", extra={
                    "target_type": exc.entity_type,
                    "target_id": exc.record_id,
                    "error_code": exc.code,
                })
        return found

    @staticmethod
    def _require_target(repo: Repository, record_id: UUID):
        target = repo.get(record_id)
        if target is None:
            raise RollupTargetNotFoundError(repo.entity_type, str(record_id))
        return target

    # =========================================================================
    # Summaries
    # =========================================================================

    def summarize_grant(self, grant_id: UUID) -> BudgetSummary:
        self._grants.require(grant_id)
        return summarize_lines(self._lines.get_all(grant_id=grant_id))

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _clean_changes(entity_type: str, changes: dict, allowed: frozenset[str]) -> dict:
        reject_unknown_fields(entity_type, changes, allowed)
        cleaned = dict(changes)
        for field_name in ("code", "name"):
            if field_name in cleaned:
                cleaned[field_name] = require_text(entity_type, field_name, cleaned[field_name])
        for field_name in ("notified_amount", "planned_amount"):
            if field_name in cleaned:
                cleaned[field_name] = require_non_negative_amount(field_name, cleaned[field_name])
        for field_name in ("description", "color"):
            if field_name in cleaned:
                cleaned[field_name] = (cleaned[field_name] or "").strip()
        return cleaned
