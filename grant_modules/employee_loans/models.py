"""
Employee Loan Domain Models (``grant_modules.employee_loans.models``).

Frozen value objects for loans granted to employees out of a grant, with
an agreed instalment schedule and an append-only repayment ledger.
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


class LoanStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    ACTIVE = "active"
    COMPLETED = "completed"
    REJECTED = "rejected"


class RepaymentFrequency(Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


@dataclass(frozen=True)
class Employee:
    name: str
    employee_id: str


@dataclass(frozen=True)
class RepaymentSchedule:
    installment_amount: Decimal
    number_of_installments: int
    frequency: RepaymentFrequency = RepaymentFrequency.MONTHLY

    @property
    def scheduled_total(self) -> Decimal:
        return self.installment_amount * self.number_of_installments

    def to_dict(self) -> dict[str, Any]:
        return {
            "installmentAmount": str(self.installment_amount),
            "numberOfInstallments": self.number_of_installments,
            "frequency": self.frequency.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RepaymentSchedule:
        return cls(
            installment_amount=Decimal(str(data["installmentAmount"])),
            number_of_installments=int(data["numberOfInstallments"]),
            frequency=RepaymentFrequency(data.get("frequency", "monthly")),
        )


@dataclass(frozen=True)
class EmployeeLoan:
    id: UUID
    grant_id: UUID
    loan_number: str
    employee: Employee
    amount: Decimal
    date: date
    repayment_schedule: RepaymentSchedule
    status: LoanStatus = LoanStatus.PENDING
    budget_line_id: UUID | None = None
    sub_budget_line_id: UUID | None = None
    expected_repayment_date: date | None = None
    description: str = ""
    repayments: tuple[RepaymentEntry, ...] = ()
    approvals: ApprovalState = field(default_factory=ApprovalState)

    @property
    def repayment_summary(self) -> RepaymentSummary:
        return summarize(self.amount, self.repayments)
