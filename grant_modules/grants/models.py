"""
Grant Domain Models (``grant_modules.grants.models``).

Responsibility
--------------
Frozen dataclass value objects for grants and the embedded bank account
snapshot each grant may carry.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
``GrantService`` and returned to callers.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* The snapshot mirrors the ledger bank account whose id is
  ``linked_bank_account_id(grant.id)``.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


class GrantStatus(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    SUSPENDED = "suspended"


class Currency(Enum):
    EUR = "EUR"
    USD = "USD"
    XOF = "XOF"


LINKED_ACCOUNT_PREFIX = "grant-"


def linked_bank_account_id(grant_id: UUID) -> str:
    """Id of the ledger bank account mirrored by a grant's snapshot."""
    return f"{LINKED_ACCOUNT_PREFIX}{grant_id}"


@dataclass(frozen=True)
class GrantBankAccount:
    """Denormalized copy of the grant's linked bank account."""
    name: str
    account_number: str
    bank_name: str
    balance: Decimal = Decimal("0")
    last_update_date: date | None = None


@dataclass(frozen=True)
class Grant:
    """A funding award."""
    id: UUID
    name: str
    reference: str
    granting_organization: str
    year: int
    currency: Currency
    total_amount: Decimal
    start_date: date
    end_date: date
    status: GrantStatus = GrantStatus.PENDING
    planned_amount: Decimal = Decimal("0")
    description: str = ""
    bank_account: GrantBankAccount | None = None

    @property
    def linked_bank_account_id(self) -> str | None:
        if self.bank_account is None:
            return None
        return linked_bank_account_id(self.id)
