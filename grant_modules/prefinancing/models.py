"""
Prefinancing Domain Models (``grant_modules.prefinancing.models``).

Responsibility
--------------
Frozen value objects for prefinancings: advances drawn on a grant (for
specific expenses, for other accounts or between grants) and repaid
through an append-only ledger.

Invariants enforced
-------------------
* ``amount`` is the principal the ledger is measured against.
* ``repayments`` is append-only; rows are never edited.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from grant_engines.repayment import RepaymentEntry, RepaymentSummary, summarize
from grant_kernel.domain.approval import ApprovalState


class PrefinancingStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    REPAID = "repaid"
    REJECTED = "rejected"


class PrefinancingPurpose(Enum):
    SPECIFIC_EXPENSES = "specific_expenses"
    OTHER_ACCOUNTS = "other_accounts"
    BETWEEN_GRANTS = "between_grants"


@dataclass(frozen=True)
class PrefinancingExpense:
    supplier: str
    amount: Decimal
    invoice_number: str = ""
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "supplier": self.supplier,
            "invoiceNumber": self.invoice_number,
            "amount": str(self.amount),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PrefinancingExpense:
        return cls(
            supplier=data.get("supplier") or "",
            amount=Decimal(str(data.get("amount", "0"))),
            invoice_number=data.get("invoiceNumber") or "",
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class Prefinancing:
    id: UUID
    grant_id: UUID
    prefinancing_number: str
    amount: Decimal
    date: date
    purpose: PrefinancingPurpose
    status: PrefinancingStatus = PrefinancingStatus.PENDING
    budget_line_id: UUID | None = None
    sub_budget_line_id: UUID | None = None
    expected_repayment_date: date | None = None
    target_bank_account: str = ""
    target_grant_id: UUID | None = None
    description: str = ""
    expenses: tuple[PrefinancingExpense, ...] = ()
    repayments: tuple[RepaymentEntry, ...] = ()
    approvals: ApprovalState = field(default_factory=ApprovalState)

    @property
    def repayment_summary(self) -> RepaymentSummary:
        return summarize(self.amount, self.repayments)

    @property
    def expenses_total(self) -> Decimal:
        return sum((e.amount for e in self.expenses), Decimal("0"))
