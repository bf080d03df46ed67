"""
Budget Domain Models (``grant_modules.budget.models``).

Responsibility
--------------
Frozen dataclass value objects for budget lines, sub-budget lines and the
results of the rollup passes run over them.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
``BudgetService`` and returned to callers.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``available_amount == notified_amount - engaged_amount`` on every DTO
  produced from a settled row.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class BudgetLine:
    """A budget category under a grant."""
    id: UUID
    grant_id: UUID
    code: str
    name: str
    notified_amount: Decimal
    engaged_amount: Decimal = Decimal("0")
    available_amount: Decimal = Decimal("0")
    planned_amount: Decimal = Decimal("0")
    description: str = ""
    color: str = ""


@dataclass(frozen=True)
class SubBudgetLine:
    """A budget sub-category; engagements are committed against it."""
    id: UUID
    grant_id: UUID
    budget_line_id: UUID
    code: str
    name: str
    notified_amount: Decimal
    engaged_amount: Decimal = Decimal("0")
    available_amount: Decimal = Decimal("0")
    planned_amount: Decimal = Decimal("0")
    description: str = ""


@dataclass(frozen=True)
class PlannedRollupResult:
    """Parents rewritten by one planned pass (empty when already settled)."""
    changed_budget_line_ids: tuple[UUID, ...] = ()
    changed_grant_ids: tuple[UUID, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.changed_budget_line_ids or self.changed_grant_ids)


@dataclass(frozen=True)
class EngagedRepairResult:
    """Lines whose engaged/available amounts a full recompute corrected."""
    changed_sub_line_ids: tuple[UUID, ...] = ()
    changed_budget_line_ids: tuple[UUID, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.changed_sub_line_ids or self.changed_budget_line_ids)
