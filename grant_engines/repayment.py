"""
grant_engines.repayment -- Append-only repayment ledger.

Responsibility:
    Validate and append a repayment to a prefinancing or employee loan
    ledger, derive total / remaining / progress, and decide the terminal
    status transition.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Entry ids and dates are
    supplied by the caller (``PrefinancingService`` / ``EmployeeLoanService``).

Invariants enforced:
    - Existing entries are never edited or removed; appending returns a new
      tuple.
    - Status becomes the terminal value once total_repaid >= principal and
      is otherwise left exactly as it was.
    - Amounts must be strictly positive.
    - Over-repayment follows the configured policy: reject, clamp to the
      remaining balance, or allow and flag.

Failure modes:
    - InvalidAmountError for a zero/negative amount.
    - OverRepaymentError under ``reject`` when the entry would exceed the
      principal, and under ``clamp`` when nothing remains to repay.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from grant_engines.tracer import traced_engine
from grant_kernel.exceptions import InvalidAmountError, OverRepaymentError

ZERO = Decimal("0")


class OverRepaymentPolicy(str, Enum):
    REJECT = "reject"
    CLAMP = "clamp"
    ALLOW = "allow"


@dataclass(frozen=True)
class RepaymentEntry:
    """One immutable ledger row."""

    id: str
    date: date
    amount: Decimal
    reference: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "amount": str(self.amount),
            "reference": self.reference,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RepaymentEntry:
        raw_date = data["date"]
        return cls(
            id=str(data["id"]),
            date=raw_date if isinstance(raw_date, date) else date.fromisoformat(str(raw_date)),
            amount=Decimal(str(data["amount"])),
            reference=data.get("reference") or "",
        )


@dataclass(frozen=True)
class RepaymentSummary:
    principal: Decimal
    total_repaid: Decimal
    remaining: Decimal
    progress_percent: Decimal
    entry_count: int

    @property
    def is_complete(self) -> bool:
        return self.total_repaid >= self.principal

    @property
    def over_repaid(self) -> bool:
        return self.total_repaid > self.principal


@dataclass(frozen=True)
class RepaymentOutcome:
    """Result of appending one repayment."""

    entries: tuple[RepaymentEntry, ...]
    status: str
    summary: RepaymentSummary
    appended: RepaymentEntry
    requested_amount: Decimal

    @property
    def was_clamped(self) -> bool:
        return self.appended.amount != self.requested_amount


def summarize(principal: Decimal, entries: Iterable[RepaymentEntry]) -> RepaymentSummary:
    entry_list = list(entries)
    total = sum((e.amount for e in entry_list), ZERO)
    progress = ZERO
    if principal > ZERO:
        progress = (total / principal * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return RepaymentSummary(
        principal=principal,
        total_repaid=total,
        remaining=principal - total,
        progress_percent=progress,
        entry_count=len(entry_list),
    )


@traced_engine("repayment", "1.0", fingerprint_fields=("principal", "amount", "policy"))
def append_repayment(
    *,
    principal: Decimal,
    entries: Sequence[RepaymentEntry],
    status: str,
    terminal_status: str,
    entry_id: str,
    entry_date: date,
    amount: Decimal,
    reference: str = "",
    policy: OverRepaymentPolicy = OverRepaymentPolicy.REJECT,
    record_id: str = "",
) -> RepaymentOutcome:
    """Append one repayment and derive the resulting status."""
    if amount is None or amount <= ZERO:
        raise InvalidAmountError("amount", amount)

    before = summarize(principal, entries)
    applied = amount
    if before.total_repaid + amount > principal:
        if policy is OverRepaymentPolicy.REJECT:
            raise OverRepaymentError(record_id, principal, before.total_repaid, amount)
        if policy is OverRepaymentPolicy.CLAMP:
            if before.remaining <= ZERO:
                raise OverRepaymentError(record_id, principal, before.total_repaid, amount)
            applied = before.remaining

    entry = RepaymentEntry(id=entry_id, date=entry_date, amount=applied, reference=reference)
    new_entries = tuple(entries) + (entry,)
    after = summarize(principal, new_entries)
    return RepaymentOutcome(
        entries=new_entries,
        status=terminal_status if after.is_complete else status,
        summary=after,
        appended=entry,
        requested_amount=amount,
    )
