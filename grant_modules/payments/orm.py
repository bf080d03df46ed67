"""
SQLAlchemy ORM persistence models for the Payments module.

Responsibility
--------------
Persist payments with their embedded approval state and the flattened
supporting-document columns.

Architecture position
---------------------
**Modules layer** -- consumed by ``PaymentService`` and the signature
service.

Invariants enforced
-------------------
* ``amount`` and ``invoice_amount`` use Decimal (Numeric(38,9)).
* Engagement and budget references are plain indexed ids.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from grant_kernel.db.base import TrackedBase, UUIDString
from grant_modules._approvable import ApprovableMixin


class PaymentModel(ApprovableMixin, TrackedBase):
    """
    A payment issued against an engagement.

    Maps to the ``Payment`` DTO in ``grant_modules.payments.models``.
    """

    __tablename__ = "payments"

    __table_args__ = (
        Index("idx_payment_grant", "grant_id"),
        Index("idx_payment_engagement", "engagement_id"),
        Index("idx_payment_number", "payment_number", unique=True),
    )

    grant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    budget_line_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    sub_budget_line_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    engagement_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    payment_number: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal]
    date: Mapped[date]
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    supplier: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    check_number: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    bank_reference: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    cashed_date: Mapped[date | None] = mapped_column(nullable=True)

    invoice_number: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    invoice_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    quote_reference: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    delivery_note: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    purchase_order_number: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    service_acceptance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    control_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def to_dto(self):
        from grant_modules.payments.models import (
            Payment,
            PaymentDocuments,
            PaymentMethod,
            PaymentStatus,
        )

        return Payment(
            id=self.id,
            grant_id=self.grant_id,
            budget_line_id=self.budget_line_id,
            sub_budget_line_id=self.sub_budget_line_id,
            engagement_id=self.engagement_id,
            payment_number=self.payment_number,
            amount=self.amount,
            date=self.date,
            payment_method=PaymentMethod(self.payment_method),
            status=PaymentStatus(self.status),
            supplier=self.supplier,
            description=self.description,
            check_number=self.check_number,
            bank_reference=self.bank_reference,
            cashed_date=self.cashed_date,
            documents=PaymentDocuments(
                invoice_number=self.invoice_number,
                invoice_amount=self.invoice_amount,
                quote_reference=self.quote_reference,
                delivery_note=self.delivery_note,
                purchase_order_number=self.purchase_order_number,
                service_acceptance=self.service_acceptance,
                control_notes=self.control_notes,
            ),
            approvals=self.get_approvals(),
        )

    def __repr__(self) -> str:
        return f"<PaymentModel {self.payment_number} {self.amount} [{self.status}]>"
