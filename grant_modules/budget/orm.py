"""
SQLAlchemy ORM persistence models for the Budget module.

Responsibility
--------------
Persist budget lines and sub-budget lines with their stored aggregate
amounts (notified, engaged, available, planned).

Architecture position
---------------------
**Modules layer** -- ORM models consumed by ``BudgetService``.  Inherits
from ``TrackedBase`` (kernel db layer).

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* A sub-line belongs to exactly one budget line and carries its grant id.
* Deleting a budget line deletes its sub-lines; deleting a grant deletes
  its budget lines.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grant_kernel.db.base import TrackedBase, UUIDString


class BudgetLineModel(TrackedBase):
    """
    A budget category under a grant.

    Maps to the ``BudgetLine`` DTO in ``grant_modules.budget.models``.
    """

    __tablename__ = "budget_lines"

    __table_args__ = (
        Index("idx_budget_line_grant", "grant_id"),
    )

    grant_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("grants.id", ondelete="CASCADE"), nullable=False,
    )
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    color: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    notified_amount: Mapped[Decimal]
    engaged_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    available_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    planned_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    sub_lines: Mapped[list["SubBudgetLineModel"]] = relationship(
        "SubBudgetLineModel",
        back_populates="budget_line",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dto(self):
        from grant_modules.budget.models import BudgetLine

        return BudgetLine(
            id=self.id,
            grant_id=self.grant_id,
            code=self.code,
            name=self.name,
            notified_amount=self.notified_amount,
            engaged_amount=self.engaged_amount,
            available_amount=self.available_amount,
            planned_amount=self.planned_amount,
            description=self.description,
            color=self.color,
        )

    def __repr__(self) -> str:
        return f"<BudgetLineModel {self.code} engaged={self.engaged_amount}/{self.notified_amount}>"


class SubBudgetLineModel(TrackedBase):
    """
    A budget sub-category.

    Maps to the ``SubBudgetLine`` DTO in ``grant_modules.budget.models``.
    """

    __tablename__ = "sub_budget_lines"

    __table_args__ = (
        Index("idx_sub_budget_line_line", "budget_line_id"),
        Index("idx_sub_budget_line_grant", "grant_id"),
    )

    grant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    budget_line_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("budget_lines.id", ondelete="CASCADE"), nullable=False,
    )
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    notified_amount: Mapped[Decimal]
    engaged_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    available_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    planned_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    budget_line: Mapped["BudgetLineModel"] = relationship(
        "BudgetLineModel", back_populates="sub_lines",
    )

    def to_dto(self):
        from grant_modules.budget.models import SubBudgetLine

        return SubBudgetLine(
            id=self.id,
            grant_id=self.grant_id,
            budget_line_id=self.budget_line_id,
            code=self.code,
            name=self.name,
            notified_amount=self.notified_amount,
            engaged_amount=self.engaged_amount,
            available_amount=self.available_amount,
            planned_amount=self.planned_amount,
            description=self.description,
        )

    def __repr__(self) -> str:
        return f"<SubBudgetLineModel {self.code} engaged={self.engaged_amount}/{self.notified_amount}>"
