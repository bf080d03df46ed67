"""
grant_engines.rollup -- Derived budget amounts.

Responsibility:
    Pure arithmetic behind the sub-line -> budget line -> grant cascade:
    engaged/available maintenance (delta based or recomputed from the
    commitment set), the bottom-up planned-amount pass, and per-grant
    budget summaries.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  ``BudgetService`` loads
    the rows, calls these functions and writes back only what changed.

Invariants enforced:
    - available == notified - engaged for every value produced here.
    - A rejected engagement contributes 0 to engaged amounts.
    - The planned pass is idempotent: a second run over its own output
      reports no changes.
    - Parents with no children roll up to 0.

Failure modes:
    - None.  Negative available amounts (over-commitment) are reported,
      not refused.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from grant_engines.tracer import traced_engine

ZERO = Decimal("0")
REJECTED_STATUS = "rejected"


@dataclass(frozen=True)
class EngagedAmounts:
    """The engaged/available pair of one sub-line or budget line."""

    notified: Decimal
    engaged: Decimal
    available: Decimal

    @classmethod
    def derive(cls, notified: Decimal, engaged: Decimal) -> EngagedAmounts:
        return cls(notified=notified, engaged=engaged, available=notified - engaged)


def engaged_contribution(amount: Decimal, status: str | None) -> Decimal:
    """What an engagement adds to its lines' engaged amount."""
    if status == REJECTED_STATUS:
        return ZERO
    return amount


def apply_engaged_delta(
    notified: Decimal,
    engaged: Decimal,
    delta: Decimal,
) -> EngagedAmounts:
    """Incremental update: ``engaged += delta`` then re-derive available."""
    return EngagedAmounts.derive(notified, engaged + delta)


@traced_engine("rollup.engaged", "1.0")
def recompute_engaged(
    notified: Decimal,
    contributions: Iterable[Decimal],
) -> EngagedAmounts:
    """Full recomputation from the contributions of every child commitment."""
    return EngagedAmounts.derive(notified, sum(contributions, ZERO))


@traced_engine("rollup.planned", "1.0")
def changed_planned_totals(
    current: Mapping[Hashable, Decimal],
    children: Iterable[tuple[Hashable, Decimal]],
) -> dict[Hashable, Decimal]:
    """One level of the planned pass.

    Args:
        current: parent id -> its stored planned amount, for every parent.
        children: (parent id, child planned amount) pairs.  Pairs naming a
            parent absent from ``current`` are ignored.

    Returns:
        parent id -> new planned amount, only for parents whose value changes.
    """
    totals: dict[Hashable, Decimal] = {parent_id: ZERO for parent_id in current}
    for parent_id, planned in children:
        if parent_id in totals:
            totals[parent_id] += planned or ZERO
    return {
        parent_id: total
        for parent_id, total in totals.items()
        if current[parent_id] != total
    }


class SummarizableLine(Protocol):
    notified_amount: Decimal
    engaged_amount: Decimal
    available_amount: Decimal
    planned_amount: Decimal


@dataclass(frozen=True)
class BudgetSummary:
    """Totals over a set of budget lines."""

    line_count: int
    notified: Decimal
    engaged: Decimal
    available: Decimal
    planned: Decimal
    engagement_rate: Decimal

    @property
    def is_over_committed(self) -> bool:
        return self.available < ZERO


def summarize_lines(lines: Iterable[SummarizableLine]) -> BudgetSummary:
    """Sum the amounts of ``lines``; engagement rate is engaged/notified in percent."""
    line_list = list(lines)
    notified = sum((l.notified_amount for l in line_list), ZERO)
    engaged = sum((l.engaged_amount for l in line_list), ZERO)
    available = sum((l.available_amount for l in line_list), ZERO)
    planned = sum((l.planned_amount for l in line_list), ZERO)
    rate = ZERO
    if notified:
        rate = (engaged / notified * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return BudgetSummary(
        line_count=len(line_list),
        notified=notified,
        engaged=engaged,
        available=available,
        planned=planned,
        engagement_rate=rate,
    )
