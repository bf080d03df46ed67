"""
SQLAlchemy ORM persistence models for the Grants module.

Responsibility
--------------
Persist grants.  The optional bank account snapshot is stored flattened on
the grant row.

Architecture position
---------------------
**Modules layer** -- ORM models consumed by ``GrantService``.  Inherits
from ``TrackedBase`` (kernel db layer).

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* Enum fields stored as String(50).
* ``reference`` is unique.
* The snapshot is present iff ``bank_account_name`` is not NULL.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from grant_kernel.db.base import TrackedBase


class GrantModel(TrackedBase):
    """
    A funding award.

    Maps to the ``Grant`` DTO in ``grant_modules.grants.models``.
    """

    __tablename__ = "grants"

    __table_args__ = (
        Index("idx_grant_reference", "reference", unique=True),
        Index("idx_grant_status", "status"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    reference: Mapped[str] = mapped_column(String(100), nullable=False)
    granting_organization: Mapped[str] = mapped_column(String(255), nullable=False)
    year: Mapped[int]
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    total_amount: Mapped[Decimal]
    planned_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    start_date: Mapped[date]
    end_date: Mapped[date]
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Bank account snapshot
    bank_account_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bank_account_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bank_balance: Mapped[Decimal | None] = mapped_column(nullable=True)
    bank_last_update_date: Mapped[date | None] = mapped_column(nullable=True)

    @property
    def has_bank_account(self) -> bool:
        return self.bank_account_name is not None

    def to_dto(self):
        from grant_modules.grants.models import (
            Currency,
            Grant,
            GrantBankAccount,
            GrantStatus,
        )

        bank_account = None
        if self.has_bank_account:
            bank_account = GrantBankAccount(
                name=self.bank_account_name,
                account_number=self.bank_account_number or "",
                bank_name=self.bank_name or "",
                balance=self.bank_balance if self.bank_balance is not None else Decimal("0"),
                last_update_date=self.bank_last_update_date,
            )
        return Grant(
            id=self.id,
            name=self.name,
            reference=self.reference,
            granting_organization=self.granting_organization,
            year=self.year,
            currency=Currency(self.currency),
            total_amount=self.total_amount,
            planned_amount=self.planned_amount,
            start_date=self.start_date,
            end_date=self.end_date,
            status=GrantStatus(self.status),
            description=self.description,
            bank_account=bank_account,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "GrantModel":
        model = cls(
            id=dto.id,
            name=dto.name,
            reference=dto.reference,
            granting_organization=dto.granting_organization,
            year=dto.year,
            currency=dto.currency.value,
            total_amount=dto.total_amount,
            planned_amount=dto.planned_amount,
            start_date=dto.start_date,
            end_date=dto.end_date,
            status=dto.status.value,
            description=dto.description,
            created_by_id=created_by_id,
        )
        if dto.bank_account is not None:
            model.bank_account_name = dto.bank_account.name
            model.bank_account_number = dto.bank_account.account_number
            model.bank_name = dto.bank_account.bank_name
            model.bank_balance = dto.bank_account.balance
            model.bank_last_update_date = dto.bank_account.last_update_date
        return model

    def __repr__(self) -> str:
        return f"<GrantModel {self.reference} [{self.status}]>"
