"""
grant_engines.notifications -- Pending-signature derivation per viewer.

Responsibility:
    For a collection of signed records, a viewer profession and an optional
    grant scope, compute the records awaiting that viewer's signature, and
    fold the four per-kind counts into one NotificationSnapshot.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The snapshot is recomputed
    by ``grant_services.notification_service.NotificationCenter``; it is
    never persisted.

Invariants enforced:
    - supervisor1 viewer: pending iff supervisor1 is not signed.
    - supervisor2 viewer: pending iff supervisor2 is not signed.
    - finalApproval viewer: pending iff both supervisors signed and
      finalApproval is not.
    - Unrecognized professions see nothing pending.
    - The grant scope filter is applied before the predicate.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol, TypeVar
from uuid import UUID

from grant_engines.approval import slot_for_profession
from grant_kernel.domain.approval import (
    SUPERVISOR_SLOTS,
    ApprovalSlot,
    ApprovalState,
    Profession,
)
from grant_kernel.domain.entity_kind import EntityKind


class PendingCandidate(Protocol):
    """Shape the filter reads from a record DTO."""

    grant_id: UUID
    approvals: ApprovalState


RecordT = TypeVar("RecordT", bound=PendingCandidate)


def is_pending_for_viewer(
    approvals: ApprovalState,
    profession: Profession | str | None,
) -> bool:
    slot = slot_for_profession(profession)
    if slot is None:
        return False
    if slot is ApprovalSlot.FINAL_APPROVAL:
        return (
            all(approvals.is_signed(s) for s in SUPERVISOR_SLOTS)
            and not approvals.is_signed(ApprovalSlot.FINAL_APPROVAL)
        )
    return not approvals.is_signed(slot)


def pending_for_viewer(
    records: Iterable[RecordT],
    profession: Profession | str | None,
    grant_scope: UUID | None = None,
) -> list[RecordT]:
    """Records awaiting ``profession``'s signature, in input order."""
    if slot_for_profession(profession) is None:
        return []
    scoped = (
        r for r in records
        if grant_scope is None or r.grant_id == grant_scope
    )
    return [r for r in scoped if is_pending_for_viewer(r.approvals, profession)]


@dataclass(frozen=True)
class NotificationSnapshot:
    """Pending-signature counts for one viewer and scope."""

    engagements: int = 0
    payments: int = 0
    prefinancings: int = 0
    employee_loans: int = 0

    @property
    def total(self) -> int:
        return self.engagements + self.payments + self.prefinancings + self.employee_loans

    @property
    def has_any(self) -> bool:
        return self.total > 0

    def count_for(self, kind: EntityKind) -> int:
        return getattr(self, _SNAPSHOT_FIELDS[kind])


_SNAPSHOT_FIELDS = {
    EntityKind.ENGAGEMENT: "engagements",
    EntityKind.PAYMENT: "payments",
    EntityKind.PREFINANCING: "prefinancings",
    EntityKind.EMPLOYEE_LOAN: "employee_loans",
}


def build_snapshot(
    records_by_kind: Mapping[EntityKind, Sequence[PendingCandidate]],
    profession: Profession | str | None,
    grant_scope: UUID | None = None,
) -> NotificationSnapshot:
    """Count pending records of every kind; kinds not supplied count as 0."""
    counts = {
        _SNAPSHOT_FIELDS[kind]: len(pending_for_viewer(records, profession, grant_scope))
        for kind, records in records_by_kind.items()
    }
    return NotificationSnapshot(**counts)
