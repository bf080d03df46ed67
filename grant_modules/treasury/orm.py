"""
SQLAlchemy ORM persistence models for the Treasury module.

Responsibility
--------------
Persist ledger bank accounts and their transactions.

Architecture position
---------------------
**Modules layer** -- ORM models consumed by ``TreasuryService`` and by
``GrantService`` for the grant-linked account.  Inherits from
``TrackedBase`` (kernel db layer).

Invariants enforced
-------------------
* Bank account ids are strings: ``"grant-<uuid>"`` for grant-linked
  accounts, a plain uuid string otherwise.
* At most one account per grant (unique ``grant_id``).
* Deleting an account deletes its transactions.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grant_kernel.db.base import TrackedBase, UUIDString


class BankAccountModel(TrackedBase):
    """
    A ledger bank account.

    Maps to the ``BankAccount`` DTO in ``grant_modules.treasury.models``.
    """

    __tablename__ = "bank_accounts"

    __table_args__ = (
        Index("idx_bank_account_grant", "grant_id", unique=True),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_number: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    bank_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    balance: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    last_update_date: Mapped[date | None] = mapped_column(nullable=True)
    grant_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    transactions: Mapped[list["BankTransactionModel"]] = relationship(
        "BankTransactionModel",
        back_populates="account",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="BankTransactionModel.date",
    )

    def to_dto(self):
        from grant_modules.treasury.models import BankAccount

        return BankAccount(
            id=self.id,
            name=self.name,
            account_number=self.account_number,
            bank_name=self.bank_name,
            balance=self.balance,
            last_update_date=self.last_update_date,
            grant_id=self.grant_id,
        )

    def __repr__(self) -> str:
        return f"<BankAccountModel {self.id} {self.balance}>"


class BankTransactionModel(TrackedBase):
    """
    A credit or debit on a bank account.

    Maps to the ``BankTransaction`` DTO in ``grant_modules.treasury.models``.
    """

    __tablename__ = "bank_transactions"

    __table_args__ = (
        Index("idx_bank_txn_account", "account_id"),
        Index("idx_bank_txn_date", "date"),
    )

    account_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("bank_accounts.id", ondelete="CASCADE"), nullable=False,
    )
    date: Mapped[date]
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    amount: Mapped[Decimal]
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    reference: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    account: Mapped["BankAccountModel"] = relationship(
        "BankAccountModel", back_populates="transactions",
    )

    def to_dto(self):
        from grant_modules.treasury.models import BankTransaction, TransactionType

        return BankTransaction(
            id=self.id,
            account_id=self.account_id,
            date=self.date,
            description=self.description,
            amount=self.amount,
            type=TransactionType(self.type),
            reference=self.reference,
        )

    def __repr__(self) -> str:
        return f"<BankTransactionModel {self.type} {self.amount} on {self.account_id}>"
