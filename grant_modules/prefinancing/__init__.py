"""
Prefinancing Module (``grant_modules.prefinancing``).

Advances drawn on a grant and repaid through an append-only ledger; each
carries a three-slot approval state.
"""

from grant_modules.prefinancing.models import (
    Prefinancing,
    PrefinancingExpense,
    PrefinancingPurpose,
    PrefinancingStatus,
)

__all__ = [
    "Prefinancing",
    "PrefinancingExpense",
    "PrefinancingPurpose",
    "PrefinancingStatus",
]
