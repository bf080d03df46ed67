"""
ORM mixins shared by the signed and repayable record kinds.

``ApprovableMixin`` stores one ApprovalState per row as a JSON column in the
``{"supervisor1": {...}, "supervisor2": {...}, "finalApproval": {...}}``
shape and implements the ``Approvable`` protocol the signature service
works against.  ``RepayableMixin`` stores the append-only repayment ledger
of prefinancings and employee loans.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON
from sqlalchemy.orm import Mapped, mapped_column

from grant_engines.repayment import RepaymentEntry
from grant_kernel.domain.approval import ApprovalState


class ApprovableMixin:
    """Adds the ``approvals`` column; rows are created with no slot signed."""

    approvals: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    def get_approvals(self) -> ApprovalState:
        return ApprovalState.from_dict(self.approvals)

    def set_approvals(self, approvals: ApprovalState) -> None:
        # Reassign so the JSON column is flagged dirty.
        self.approvals = approvals.to_dict()


class RepayableMixin:
    """Adds the ``repayments`` ledger column."""

    repayments: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    def get_repayments(self) -> tuple[RepaymentEntry, ...]:
        return tuple(RepaymentEntry.from_dict(row) for row in self.repayments or ())

    def set_repayments(self, entries: tuple[RepaymentEntry, ...]) -> None:
        self.repayments = [entry.to_dict() for entry in entries]
