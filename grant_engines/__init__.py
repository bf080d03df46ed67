"""
Module: grant_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines: the
    three-slot approval chain, the pending-signature filter, the amount
    rollup and the repayment ledger.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import grant_kernel.domain and grant_kernel.exceptions.
    MUST NOT import grant_modules or grant_services.

Invariants enforced:
    - Purity: engines never read the clock; dates are passed in.
    - Decimal-only arithmetic for every amount.
    - Determinism: identical inputs always produce identical outputs.
"""

from grant_engines.approval import (
    SigningCheck,
    apply_signature,
    can_sign,
    check_signing,
    is_fully_approved,
    missing_slots,
    signable_slots,
    slot_for_profession,
)
from grant_engines.notifications import (
    NotificationSnapshot,
    build_snapshot,
    is_pending_for_viewer,
    pending_for_viewer,
)
from grant_engines.repayment import (
    OverRepaymentPolicy,
    RepaymentEntry,
    RepaymentOutcome,
    RepaymentSummary,
    append_repayment,
    summarize,
)
from grant_engines.rollup import (
    BudgetSummary,
    EngagedAmounts,
    apply_engaged_delta,
    changed_planned_totals,
    engaged_contribution,
    recompute_engaged,
    summarize_lines,
)
from grant_engines.tracer import traced_engine

__all__ = [
    # approval
    "SigningCheck",
    "apply_signature",
    "can_sign",
    "check_signing",
    "is_fully_approved",
    "missing_slots",
    "signable_slots",
    "slot_for_profession",
    # notifications
    "NotificationSnapshot",
    "build_snapshot",
    "is_pending_for_viewer",
    "pending_for_viewer",
    # repayment
    "OverRepaymentPolicy",
    "RepaymentEntry",
    "RepaymentOutcome",
    "RepaymentSummary",
    "append_repayment",
    "summarize",
    # rollup
    "BudgetSummary",
    "EngagedAmounts",
    "apply_engaged_delta",
    "changed_planned_totals",
    "engaged_contribution",
    "recompute_engaged",
    "summarize_lines",
    # tracing
    "traced_engine",
]
