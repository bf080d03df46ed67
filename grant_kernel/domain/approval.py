"""
Approval domain types (``grant_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the three-slot signature workflow shared by
engagements, payments, prefinancings and employee loans: the slot and
profession enums, the profession-to-slot binding table, the per-slot
signature record and the immutable approval state.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, modules or services.

Invariants enforced
-------------------
* A slot is either absent (pending) or present with ``signature=True``.
  ``ApprovalState.from_dict`` drops stored slots whose signature flag is
  false, so the "present but unsigned" shape never reaches the engine.
* The profession-to-slot binding is a closed table keyed by the
  ``Profession`` enum; unknown profession labels parse to ``None``.
* ``ApprovalState`` is frozen; signing produces a new state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Any, Protocol


class ApprovalSlot(str, Enum):
    """The three sign-off positions on a record."""

    SUPERVISOR1 = "supervisor1"
    SUPERVISOR2 = "supervisor2"
    FINAL_APPROVAL = "finalApproval"

    @classmethod
    def parse(cls, value: ApprovalSlot | str | None) -> ApprovalSlot | None:
        """Return the slot for ``value`` or None when it names no slot."""
        if isinstance(value, ApprovalSlot):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class Profession(str, Enum):
    """Business roles allowed to sign.  Values are the stored labels."""

    GRANT_COORDINATOR = "Coordinateur de la Subvention"
    ACCOUNTANT = "Comptable"
    NATIONAL_COORDINATOR = "Coordonnateur National"

    @classmethod
    def parse(cls, label: Profession | str | None) -> Profession | None:
        """Map a profile's profession string onto the enum (None if unrecognized)."""
        if isinstance(label, Profession):
            return label
        if not label:
            return None
        try:
            return cls(label.strip())
        except ValueError:
            return None


PROFESSION_SLOT_BINDING: dict[Profession, ApprovalSlot] = {
    Profession.GRANT_COORDINATOR: ApprovalSlot.SUPERVISOR1,
    Profession.ACCOUNTANT: ApprovalSlot.SUPERVISOR2,
    Profession.NATIONAL_COORDINATOR: ApprovalSlot.FINAL_APPROVAL,
}

SUPERVISOR_SLOTS: tuple[ApprovalSlot, ...] = (
    ApprovalSlot.SUPERVISOR1,
    ApprovalSlot.SUPERVISOR2,
)


@dataclass(frozen=True)
class SlotSignature:
    """A finalized signature on one slot."""

    name: str
    date: date
    signature: bool = True
    observation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "date": self.date.isoformat(),
            "signature": self.signature,
        }
        if self.observation:
            data["observation"] = self.observation
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SlotSignature:
        raw_date = data.get("date")
        return cls(
            name=data.get("name", ""),
            date=raw_date if isinstance(raw_date, date) else date.fromisoformat(str(raw_date)),
            signature=bool(data.get("signature")),
            observation=data.get("observation") or None,
        )


@dataclass(frozen=True)
class ApprovalState:
    """Immutable snapshot of the three approval slots of one record."""

    supervisor1: SlotSignature | None = None
    supervisor2: SlotSignature | None = None
    final_approval: SlotSignature | None = None

    _FIELDS = {
        ApprovalSlot.SUPERVISOR1: "supervisor1",
        ApprovalSlot.SUPERVISOR2: "supervisor2",
        ApprovalSlot.FINAL_APPROVAL: "final_approval",
    }

    def get(self, slot: ApprovalSlot) -> SlotSignature | None:
        return getattr(self, self._FIELDS[slot])

    def is_signed(self, slot: ApprovalSlot) -> bool:
        entry = self.get(slot)
        return entry is not None and entry.signature

    def with_slot(self, slot: ApprovalSlot, signature: SlotSignature) -> ApprovalState:
        """Return a copy with ``slot`` set; every other slot unchanged."""
        return replace(self, **{self._FIELDS[slot]: signature})

    @property
    def signed_slots(self) -> tuple[ApprovalSlot, ...]:
        return tuple(slot for slot in ApprovalSlot if self.is_signed(slot))

    @property
    def is_empty(self) -> bool:
        return not self.signed_slots

    def to_dict(self) -> dict[str, Any]:
        """Storage shape: only signed slots are written, keyed by slot value."""
        return {
            slot.value: self.get(slot).to_dict()
            for slot in ApprovalSlot
            if self.is_signed(slot)
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ApprovalState:
        if not data:
            return cls()
        slots: dict[str, SlotSignature] = {}
        for slot, field_name in cls._FIELDS.items():
            raw = data.get(slot.value)
            # Unsigned placeholders from older rows count as absent
            if raw and raw.get("signature"):
                slots[field_name] = SlotSignature.from_dict(raw)
        return cls(**slots)


class Approvable(Protocol):
    """Anything that owns one ApprovalState (ORM models of the four signed kinds)."""

    def get_approvals(self) -> ApprovalState:
        ...

    def set_approvals(self, approvals: ApprovalState) -> None:
        ...
