"""
SQLAlchemy ORM persistence models for the Employee Loans module.

Responsibility
--------------
Persist employee loans with their approval state, instalment schedule and
repayment ledger.

Invariants enforced
-------------------
* ``amount`` uses Decimal (Numeric(38,9)).
* The schedule is stored as JSON; the employee is flattened into columns.
"""

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from grant_kernel.db.base import TrackedBase, UUIDString
from grant_modules._approvable import ApprovableMixin, RepayableMixin


class EmployeeLoanModel(ApprovableMixin, RepayableMixin, TrackedBase):
    """
    A loan to an employee, repaid through the repayment ledger.

    Maps to the ``EmployeeLoan`` DTO in ``grant_modules.employee_loans.models``.
    """

    __tablename__ = "employee_loans"

    __table_args__ = (
        Index("idx_employee_loan_grant", "grant_id"),
        Index("idx_employee_loan_employee", "employee_id"),
        Index("idx_employee_loan_number", "loan_number", unique=True),
    )

    grant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    budget_line_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    sub_budget_line_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    loan_number: Mapped[str] = mapped_column(String(50), nullable=False)
    employee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    employee_id: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal]
    date: Mapped[date]
    expected_repayment_date: Mapped[date | None] = mapped_column(nullable=True)
    repayment_schedule: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def to_dto(self):
        from grant_modules.employee_loans.models import (
            Employee,
            EmployeeLoan,
            LoanStatus,
            RepaymentSchedule,
        )

        return EmployeeLoan(
            id=self.id,
            grant_id=self.grant_id,
            loan_number=self.loan_number,
            employee=Employee(name=self.employee_name, employee_id=self.employee_id),
            amount=self.amount,
            date=self.date,
            repayment_schedule=RepaymentSchedule.from_dict(self.repayment_schedule),
            status=LoanStatus(self.status),
            budget_line_id=self.budget_line_id,
            sub_budget_line_id=self.sub_budget_line_id,
            expected_repayment_date=self.expected_repayment_date,
            description=self.description,
            repayments=self.get_repayments(),
            approvals=self.get_approvals(),
        )

    def __repr__(self) -> str:
        return f"<EmployeeLoanModel {self.loan_number} {self.employee_name} [{self.status}]>"
