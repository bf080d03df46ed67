"""
Payment Module Service (``grant_modules.payments.service``).

Responsibility
--------------
Create, edit, cash and delete payments.  A payment is always issued
against an existing engagement; its grant, budget line and sub-line ids are
taken from that engagement.

Architecture position
---------------------
**Modules layer** -- ``PaymentService`` is the sole public entry point for
payments.  Signing goes through ``grant_services.SignatureService``.

Invariants enforced
-------------------
* Each public method owns the transaction boundary.
* A check payment carries a check number.
* ``mark_cashed`` is idempotent; a rejected payment cannot be cashed.

Failure modes
-------------
* ``CapabilityDeniedError`` -- actor lacks a payments capability.
* ``RecordNotFoundError`` -- unknown engagement or payment.
* ``MissingFieldError`` -- blank payment number, or check without number.
* ``InvalidStatusError`` -- unknown status / method, or cashing a rejected
  payment.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from grant_kernel.db.repository import Repository
from grant_kernel.domain.approval import ApprovalState
from grant_kernel.domain.clock import Clock, SystemClock
from grant_kernel.domain.entity_kind import EntityKind
from grant_kernel.domain.permissions import Actor
from grant_kernel.exceptions import InvalidStatusError, MissingFieldError
from grant_kernel.logging_config import get_logger
from grant_modules._helpers import (
    ChangeListener,
    notify,
    parse_status,
    reject_unknown_fields,
    require_capability,
    require_non_negative_amount,
    require_positive_amount,
    require_text,
)
from grant_modules.engagements.orm import EngagementModel
from grant_modules.payments.models import (
    Payment,
    PaymentDocuments,
    PaymentMethod,
    PaymentStatus,
)
from grant_modules.payments.orm import PaymentModel

logger = get_logger("modules.payments.service")

MODULE = EntityKind.PAYMENT.module
ENTITY = EntityKind.PAYMENT.value

_UPDATABLE = frozenset({
    "payment_number", "amount", "date", "payment_method", "status",
    "supplier", "description", "check_number", "bank_reference",
})


class PaymentService:
    """Payments issued against engagements."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        on_change: ChangeListener | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._on_change = on_change
        self._payments = Repository(session, PaymentModel, ENTITY)

    def create_payment(
        self,
        actor: Actor,
        engagement_id: UUID,
        payment_number: str,
        amount: Decimal | str | int,
        payment_method: PaymentMethod | str,
        payment_date: date | None = None,
        supplier: str = "",
        description: str = "",
        check_number: str = "",
        bank_reference: str = "",
        documents: PaymentDocuments | None = None,
    ) -> Payment:
        require_capability(actor, MODULE, "create")
        number = require_text(ENTITY, "payment_number", payment_number)
        value = require_positive_amount("amount", amount)
        method = parse_status(ENTITY, PaymentMethod, payment_method)
        check = (check_number or "").strip()
        _require_check_number(method, check)
        docs = _clean_documents(documents or PaymentDocuments())

        try:
            engagement = Repository(
                self._session, EngagementModel, EntityKind.ENGAGEMENT.value,
            ).require(engagement_id)
            model = PaymentModel(
                id=uuid4(),
                grant_id=engagement.grant_id,
                budget_line_id=engagement.budget_line_id,
                sub_budget_line_id=engagement.sub_budget_line_id,
                engagement_id=engagement.id,
                payment_number=number,
                amount=value,
                date=payment_date or self._clock.today(),
                payment_method=method.value,
                status=PaymentStatus.PENDING.value,
                supplier=(supplier or engagement.supplier or "").strip(),
                description=(description or "").strip(),
                check_number=check,
                bank_reference=(bank_reference or "").strip(),
                created_by_id=actor.id,
                **asdict(docs),
            )
            model.set_approvals(ApprovalState())
            self._payments.add(model)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("payment_created", extra={
            "payment_id": str(model.id),
            "engagement_id": str(engagement_id),
            "grant_id": str(model.grant_id),
            "amount": str(value),
            "payment_method": method.value,
        })
        notify(self._on_change, ENTITY)
        return model.to_dto()

    def update_payment(
        self,
        actor: Actor,
        payment_id: UUID,
        *,
        reset_approvals: bool = False,
        documents: PaymentDocuments | None = None,
        **changes,
    ) -> Payment:
        require_capability(actor, MODULE, "edit")
        reject_unknown_fields(ENTITY, changes, _UPDATABLE)
        if "payment_number" in changes:
            changes["payment_number"] = require_text(ENTITY, "payment_number", changes["payment_number"])
        if "amount" in changes:
            changes["amount"] = require_positive_amount("amount", changes["amount"])
        if "payment_method" in changes:
            changes["payment_method"] = parse_status(ENTITY, PaymentMethod, changes["payment_method"]).value
        if "status" in changes:
            changes["status"] = parse_status(ENTITY, PaymentStatus, changes["status"]).value

        try:
            model = self._payments.require(payment_id)
            for field_name, value in changes.items():
                setattr(model, field_name, value)
            if documents is not None:
                for field_name, value in asdict(_clean_documents(documents)).items():
                    setattr(model, field_name, value)
            _require_check_number(PaymentMethod(model.payment_method), model.check_number.strip())
            if reset_approvals:
                model.set_approvals(ApprovalState())
            model.updated_by_id = actor.id
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("payment_updated", extra={
            "payment_id": str(payment_id),
            "fields": sorted(changes),
            "documents_updated": documents is not None,
            "approvals_reset": reset_approvals,
        })
        notify(self._on_change, ENTITY)
        return model.to_dto()

    def mark_cashed(
        self,
        actor: Actor,
        payment_id: UUID,
        cashed_date: date | None = None,
    ) -> Payment:
        """Record that the payment has been cashed by its beneficiary."""
        require_capability(actor, MODULE, "edit")
        try:
            model = self._payments.require(payment_id)
            if model.status == PaymentStatus.CASHED.value:
                logger.debug("payment_already_cashed", extra={"payment_id": str(payment_id)})
                return model.to_dto()
            if model.status == PaymentStatus.REJECTED.value:
                raise InvalidStatusError(ENTITY, model.status)
            model.status = PaymentStatus.CASHED.value
            model.cashed_date = cashed_date or self._clock.today()
            model.updated_by_id = actor.id
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("payment_cashed", extra={
            "payment_id": str(payment_id),
            "cashed_date": model.cashed_date.isoformat(),
        })
        notify(self._on_change, ENTITY)
        return model.to_dto()

    def delete_payment(self, actor: Actor, payment_id: UUID) -> None:
        require_capability(actor, MODULE, "delete")
        try:
            self._payments.delete(payment_id)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("payment_deleted", extra={"payment_id": str(payment_id)})
        notify(self._on_change, ENTITY)

    def get_payment(self, payment_id: UUID) -> Payment:
        return self._payments.require(payment_id).to_dto()

    def list_payments(
        self,
        grant_id: UUID | None = None,
        engagement_id: UUID | None = None,
    ) -> list[Payment]:
        filters = {}
        if grant_id is not None:
            filters["grant_id"] = grant_id
        if engagement_id is not None:
            filters["engagement_id"] = engagement_id
        rows = self._payments.get_all(order_by=(PaymentModel.payment_number,), **filters)
        return [m.to_dto() for m in rows]


def _require_check_number(method: PaymentMethod, check_number: str) -> None:
    if method is PaymentMethod.CHECK and not check_number:
        raise MissingFieldError(ENTITY, "check_number")


def _clean_documents(documents: PaymentDocuments) -> PaymentDocuments:
    invoice_amount = documents.invoice_amount
    if invoice_amount is not None:
        invoice_amount = require_non_negative_amount("invoice_amount", invoice_amount)
    return PaymentDocuments(
        invoice_number=(documents.invoice_number or "").strip(),
        invoice_amount=invoice_amount,
        quote_reference=(documents.quote_reference or "").strip(),
        delivery_note=(documents.delivery_note or "").strip(),
        purchase_order_number=(documents.purchase_order_number or "").strip(),
        service_acceptance=bool(documents.service_acceptance),
        control_notes=(documents.control_notes or "").strip(),
    )
