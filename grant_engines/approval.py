"""
grant_engines.approval -- Pure three-slot signature chain.

Responsibility:
    Decide whether a profession may sign a given slot on a record's
    ApprovalState, and produce the new state once it does.  One engine
    serves engagements, payments, prefinancings and employee loans.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import grant_kernel.domain types and grant_kernel.exceptions.

Invariants enforced:
    - A profession signs only the slot bound to it in
      ``PROFESSION_SLOT_BINDING``; unrecognized professions sign nothing.
    - A signed slot is never signed again (no overwrite, no unsign).
    - ``finalApproval`` requires both supervisor slots signed; the two
      supervisor slots have no order between them.
    - ``apply_signature`` re-evaluates eligibility immediately before
      producing the new state and never touches other slots.

Failure modes:
    - SigningNotAllowedError from ``apply_signature`` when the check fails;
      the input state is left unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from grant_kernel.domain.approval import (
    PROFESSION_SLOT_BINDING,
    SUPERVISOR_SLOTS,
    ApprovalSlot,
    ApprovalState,
    Profession,
    SlotSignature,
)
from grant_kernel.exceptions import SigningNotAllowedError

REASON_UNKNOWN_SLOT = "unknown approval slot"
REASON_UNRECOGNIZED_PROFESSION = "profession is not allowed to sign"
REASON_WRONG_SLOT = "slot is not bound to this profession"
REASON_ALREADY_SIGNED = "slot is already signed"
REASON_SUPERVISORS_PENDING = "both supervisor signatures are required first"


@dataclass(frozen=True)
class SigningCheck:
    """Outcome of a signing eligibility check."""

    allowed: bool
    slot: ApprovalSlot | None
    reason: str = ""


def slot_for_profession(profession: Profession | str | None) -> ApprovalSlot | None:
    """The slot a profession is bound to, or None for unrecognized professions."""
    role = Profession.parse(profession)
    if role is None:
        return None
    return PROFESSION_SLOT_BINDING.get(role)


def check_signing(
    approvals: ApprovalState,
    profession: Profession | str | None,
    slot: ApprovalSlot | str | None,
) -> SigningCheck:
    """Evaluate every signing rule and report the first one that fails."""
    target = ApprovalSlot.parse(slot)
    if target is None:
        return SigningCheck(False, None, REASON_UNKNOWN_SLOT)

    bound = slot_for_profession(profession)
    if bound is None:
        return SigningCheck(False, target, REASON_UNRECOGNIZED_PROFESSION)
    if bound is not target:
        return SigningCheck(False, target, REASON_WRONG_SLOT)

    if approvals.is_signed(target):
        return SigningCheck(False, target, REASON_ALREADY_SIGNED)

    if target is ApprovalSlot.FINAL_APPROVAL and not all(
        approvals.is_signed(s) for s in SUPERVISOR_SLOTS
    ):
        return SigningCheck(False, target, REASON_SUPERVISORS_PENDING)

    return SigningCheck(True, target)


def can_sign(
    approvals: ApprovalState,
    profession: Profession | str | None,
    slot: ApprovalSlot | str | None,
) -> bool:
    return check_signing(approvals, profession, slot).allowed


def apply_signature(
    approvals: ApprovalState,
    slot: ApprovalSlot | str,
    signer_name: str,
    profession: Profession | str | None,
    today: date,
    observation: str | None = None,
    *,
    entity_type: str = "record",
    record_id: str = "",
) -> ApprovalState:
    """Return ``approvals`` with ``slot`` signed by ``signer_name`` on ``today``.

    Raises:
        SigningNotAllowedError: if ``check_signing`` refuses at call time.
    """
    check = check_signing(approvals, profession, slot)
    if not check.allowed:
        raise SigningNotAllowedError(
            entity_type=entity_type,
            record_id=record_id,
            slot=check.slot.value if check.slot else str(slot),
            profession=_profession_label(profession),
            reason=check.reason,
        )

    signature = SlotSignature(
        name=signer_name,
        date=today,
        signature=True,
        observation=(observation or "").strip() or None,
    )
    return approvals.with_slot(check.slot, signature)


def signable_slots(
    approvals: ApprovalState,
    profession: Profession | str | None,
) -> tuple[ApprovalSlot, ...]:
    """Slots the profession could sign right now (zero or one)."""
    return tuple(s for s in ApprovalSlot if can_sign(approvals, profession, s))


def is_fully_approved(approvals: ApprovalState) -> bool:
    return all(approvals.is_signed(s) for s in ApprovalSlot)


def missing_slots(approvals: ApprovalState) -> tuple[ApprovalSlot, ...]:
    return tuple(s for s in ApprovalSlot if not approvals.is_signed(s))


def _profession_label(profession: Profession | str | None) -> str | None:
    if isinstance(profession, Profession):
        return profession.value
    return profession or None
