"""
Treasury Domain Models (``grant_modules.treasury.models``).

Responsibility
--------------
Frozen dataclass value objects for ledger bank accounts, their
transactions and mirror-drift findings.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* Transaction amounts are positive; ``type`` decides the sign applied to
  the balance.
* A grant-linked account carries ``grant_id`` and the id
  ``"grant-" + grant_id``.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


class TransactionType(Enum):
    CREDIT = "credit"
    DEBIT = "debit"


@dataclass(frozen=True)
class BankAccount:
    id: str
    name: str
    account_number: str
    bank_name: str
    balance: Decimal = Decimal("0")
    last_update_date: date | None = None
    grant_id: UUID | None = None

    @property
    def is_grant_linked(self) -> bool:
        return self.grant_id is not None


@dataclass(frozen=True)
class BankTransaction:
    id: UUID
    account_id: str
    date: date
    description: str
    amount: Decimal
    type: TransactionType
    reference: str = ""

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.type is TransactionType.CREDIT else -self.amount


@dataclass(frozen=True)
class MirrorDrift:
    """A grant snapshot and its ledger account disagree (or one is missing)."""
    grant_id: UUID
    account_id: str
    snapshot_balance: Decimal | None
    account_balance: Decimal | None

    @property
    def account_missing(self) -> bool:
        return self.account_balance is None
