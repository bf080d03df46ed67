"""
SQLAlchemy ORM persistence models for the Prefinancing module.

Responsibility
--------------
Persist prefinancings with their approval state, expense list and
repayment ledger (JSON columns).

Invariants enforced
-------------------
* ``amount`` uses Decimal (Numeric(38,9)).
* Budget line / sub-line references are optional plain ids.
"""

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from grant_kernel.db.base import TrackedBase, UUIDString
from grant_modules._approvable import ApprovableMixin, RepayableMixin


class PrefinancingModel(ApprovableMixin, RepayableMixin, TrackedBase):
    """
    An advance drawn on a grant, repaid through the repayment ledger.

    Maps to the ``Prefinancing`` DTO in ``grant_modules.prefinancing.models``.
    """

    __tablename__ = "prefinancings"

    __table_args__ = (
        Index("idx_prefinancing_grant", "grant_id"),
        Index("idx_prefinancing_number", "prefinancing_number", unique=True),
    )

    grant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    budget_line_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    sub_budget_line_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    prefinancing_number: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal]
    date: Mapped[date]
    expected_repayment_date: Mapped[date | None] = mapped_column(nullable=True)
    purpose: Mapped[str] = mapped_column(String(30), nullable=False)
    target_bank_account: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    target_grant_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    expenses: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    def to_dto(self):
        from grant_modules.prefinancing.models import (
            Prefinancing,
            PrefinancingExpense,
            PrefinancingPurpose,
            PrefinancingStatus,
        )

        return Prefinancing(
            id=self.id,
            grant_id=self.grant_id,
            prefinancing_number=self.prefinancing_number,
            amount=self.amount,
            date=self.date,
            purpose=PrefinancingPurpose(self.purpose),
            status=PrefinancingStatus(self.status),
            budget_line_id=self.budget_line_id,
            sub_budget_line_id=self.sub_budget_line_id,
            expected_repayment_date=self.expected_repayment_date,
            target_bank_account=self.target_bank_account,
            target_grant_id=self.target_grant_id,
            description=self.description,
            expenses=tuple(PrefinancingExpense.from_dict(e) for e in self.expenses or ()),
            repayments=self.get_repayments(),
            approvals=self.get_approvals(),
        )

    def __repr__(self) -> str:
        return f"<PrefinancingModel {self.prefinancing_number} {self.amount} [{self.status}]>"
