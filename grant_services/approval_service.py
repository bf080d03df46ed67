"""
grant_services.approval_service -- Signing any approvable record.

Responsibility:
    Load an engagement, payment, prefinancing or employee loan, check the
    actor's ``sign`` capability on the record's module, re-check the
    approval chain at call time, record the signature and commit.

Architecture position:
    Services -- composes ``grant_engines.approval`` (pure chain rules) with
    the module ORM models.  The chain itself never touches the database.

Invariants enforced:
    - A slot is signed only by the profession bound to it.
    - finalApproval requires both supervisor slots signed.
    - A signed slot is never overwritten.
    - The check runs immediately before the write, on freshly loaded state.

Failure modes:
    - CapabilityDeniedError -- actor lacks ``sign`` on the record's module.
    - SigningNotAllowedError -- the chain refuses the signature; nothing is
      written.
    - RecordNotFoundError -- unknown record id.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from grant_engines.approval import apply_signature
from grant_engines.approval import signable_slots as _signable_slots
from grant_kernel.db.repository import Repository
from grant_kernel.domain.approval import ApprovalSlot, ApprovalState
from grant_kernel.domain.clock import Clock, SystemClock
from grant_kernel.domain.entity_kind import EntityKind
from grant_kernel.domain.permissions import Actor
from grant_kernel.exceptions import SigningNotAllowedError
from grant_kernel.logging_config import LogContext, get_logger
from grant_modules._helpers import ChangeListener, notify, require_capability
from grant_services._record_kinds import RECORD_MODELS

logger = get_logger("services.approval")


class SignatureService:
    """
    Applies signatures to the approval state of the four signed kinds.

    Guarantees:
        - The approval state is written and committed only when the chain
          accepts the signature.
        - Clock is injectable for deterministic testing.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        on_change: ChangeListener | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._on_change = on_change

    def sign(
        self,
        actor: Actor,
        kind: EntityKind | str,
        record_id: UUID,
        slot: ApprovalSlot | str,
        observation: str | None = None,
    ) -> ApprovalState:
        kind = EntityKind(kind)
        require_capability(actor, kind.module, "sign")

        with LogContext.bind(
            actor_id=str(actor.id), entity_type=kind.value, record_id=str(record_id),
        ):
            try:
                model = self._repository(kind).require(record_id)
                approvals = apply_signature(
                    model.get_approvals(),
                    slot,
                    signer_name=actor.name,
                    profession=actor.profession,
                    today=self._clock.today(),
                    observation=observation,
                    entity_type=kind.value,
                    record_id=str(record_id),
                )
                model.set_approvals(approvals)
                model.updated_by_id = actor.id
                self._session.flush()
                self._session.commit()
            except SigningNotAllowedError as exc:
                self._session.rollback()
                logger.warning("signature_refused", extra={
                    "slot": exc.slot,
                    "profession": exc.profession,
                    "reason": exc.reason,
                })
                raise
            except Exception:
                self._session.rollback()
                raise

            logger.info("signature_applied", extra={
                "slot": ApprovalSlot.parse(slot).value,
                "signer": actor.name,
                "signed_slots": [s.value for s in approvals.signed_slots],
            })

        notify(self._on_change, kind.value)
        return approvals

    def signable_slots(
        self,
        actor: Actor,
        kind: EntityKind | str,
        record_id: UUID,
    ) -> tuple[ApprovalSlot, ...]:
        """Slots ``actor`` could sign on the record right now."""
        kind = EntityKind(kind)
        if not actor.permissions.has_permission(kind.module, "sign"):
            return ()
        model = self._repository(kind).require(record_id)
        return _signable_slots(model.get_approvals(), actor.profession)

    def _repository(self, kind: EntityKind) -> Repository:
        return Repository(self._session, RECORD_MODELS[kind], kind.value)
