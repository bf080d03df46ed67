"""
Treasury Module (``grant_modules.treasury``).

Responsibility
--------------
Ledger bank accounts and their credit/debit transactions, including the
accounts linked to grants whose balance is mirrored into the grant's bank
snapshot.

Architecture position
---------------------
**Modules layer** -- DTOs, ORM models and the ``TreasuryService`` facade.
"""

from grant_modules.treasury.models import (
    BankAccount,
    BankTransaction,
    MirrorDrift,
    TransactionType,
)

__all__ = [
    "BankAccount",
    "BankTransaction",
    "MirrorDrift",
    "TransactionType",
]
