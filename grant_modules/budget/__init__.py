"""
Budget Module (``grant_modules.budget``).

Responsibility
--------------
Budget lines and sub-budget lines under a grant, and the derived amounts
maintained over them: engaged / available from engagements, planned from
sub-lines up to the grant.

Architecture position
---------------------
**Modules layer** -- DTOs, ORM models and the ``BudgetService`` facade.
Rollup arithmetic lives in ``grant_engines.rollup``.

Invariants enforced
-------------------
* ``available == notified - engaged`` after every settled mutation.
* The planned pass is idempotent.
* No orphaned sub-lines: deleting a line deletes its sub-lines.
"""

from grant_modules.budget.models import (
    BudgetLine,
    EngagedRepairResult,
    PlannedRollupResult,
    SubBudgetLine,
)

__all__ = [
    "BudgetLine",
    "EngagedRepairResult",
    "PlannedRollupResult",
    "SubBudgetLine",
]
