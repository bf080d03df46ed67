"""
Repayment recording shared by prefinancings and employee loans.

Both record kinds keep an append-only ledger in ``RepayableMixin.repayments``
and move to a terminal status once fully repaid.  The arithmetic and the
over-repayment policy live in ``grant_engines.repayment``; this module
applies an outcome to a row and logs it.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import uuid4

from grant_engines.repayment import (
    OverRepaymentPolicy,
    RepaymentOutcome,
    append_repayment,
)
from grant_kernel.logging_config import get_logger
from grant_modules._helpers import to_decimal

logger = get_logger("modules.repayments")


def record_repayment(
    model,
    *,
    entity_type: str,
    terminal_status: str,
    entry_date: date,
    amount: Decimal | str | int,
    reference: str,
    policy: OverRepaymentPolicy,
) -> RepaymentOutcome:
    """Append one repayment to ``model`` (a RepayableMixin row). Caller commits."""
    outcome = append_repayment(
        principal=model.amount,
        entries=model.get_repayments(),
        status=model.status,
        terminal_status=terminal_status,
        entry_id=str(uuid4()),
        entry_date=entry_date,
        amount=to_decimal("amount", amount),
        reference=(reference or "").strip(),
        policy=policy,
        record_id=str(model.id),
    )
    previous_status = model.status
    model.set_repayments(outcome.entries)
    model.status = outcome.status

    if outcome.was_clamped:
        logger.info("repayment_clamped", extra={
            "entity_type": entity_type,
            "record_id": str(model.id),
            "requested_amount": str(outcome.requested_amount),
            "applied_amount": str(outcome.appended.amount),
        })
    if outcome.summary.over_repaid:
        logger.warning("repayment_exceeds_principal", extra={
            "entity_type": entity_type,
            "record_id": str(model.id),
            "principal": str(outcome.summary.principal),
            "total_repaid": str(outcome.summary.total_repaid),
        })
    if outcome.status != previous_status:
        logger.info("repayment_completed", extra={
            "entity_type": entity_type,
            "record_id": str(model.id),
            "status": outcome.status,
        })
    return outcome
