"""
SQLAlchemy ORM persistence models for the Engagements module.

Responsibility
--------------
Persist engagements with their embedded approval state.

Architecture position
---------------------
**Modules layer** -- consumed by ``EngagementService``, ``BudgetService``
(engaged recompute) and the signature service.

Invariants enforced
-------------------
* ``amount`` uses Decimal (Numeric(38,9)).
* Grant / line / sub-line references are plain indexed ids: an engagement
  outlives the deletion of the budget structure it was committed against,
  and the rollup skips targets that no longer exist.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from grant_kernel.db.base import TrackedBase, UUIDString
from grant_modules._approvable import ApprovableMixin


class EngagementModel(ApprovableMixin, TrackedBase):
    """
    A financial commitment against a sub-budget line.

    Maps to the ``Engagement`` DTO in ``grant_modules.engagements.models``.
    """

    __tablename__ = "engagements"

    __table_args__ = (
        Index("idx_engagement_grant", "grant_id"),
        Index("idx_engagement_sub_line", "sub_budget_line_id"),
        Index("idx_engagement_line", "budget_line_id"),
        Index("idx_engagement_number", "engagement_number", unique=True),
    )

    grant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    budget_line_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    sub_budget_line_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    engagement_number: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal]
    date: Mapped[date]
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    supplier: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    quote_reference: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    invoice_number: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    def to_dto(self):
        from grant_modules.engagements.models import Engagement, EngagementStatus

        return Engagement(
            id=self.id,
            grant_id=self.grant_id,
            budget_line_id=self.budget_line_id,
            sub_budget_line_id=self.sub_budget_line_id,
            engagement_number=self.engagement_number,
            amount=self.amount,
            date=self.date,
            status=EngagementStatus(self.status),
            description=self.description,
            supplier=self.supplier,
            quote_reference=self.quote_reference,
            invoice_number=self.invoice_number,
            approvals=self.get_approvals(),
        )

    def __repr__(self) -> str:
        return f"<EngagementModel {self.engagement_number} {self.amount} [{self.status}]>"
