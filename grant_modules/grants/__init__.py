"""
Grants Module (``grant_modules.grants``).

Funding envelopes with a reference, a period, a total amount and an
optional bank account snapshot mirrored into the treasury ledger.
"""

from grant_modules.grants.models import (
    Currency,
    Grant,
    GrantBankAccount,
    GrantStatus,
    linked_bank_account_id,
)

__all__ = [
    "Currency",
    "Grant",
    "GrantBankAccount",
    "GrantStatus",
    "linked_bank_account_id",
]
