"""
Grant Module Service (``grant_modules.grants.service``).

Responsibility
--------------
Create, edit and delete grants.  A grant created or edited with a bank
account gets a linked ledger account ``"grant-" + grant_id`` whose state is
mirrored with the grant's embedded snapshot; deleting a grant removes its
budget lines, their sub-lines and the linked account.

Architecture position
---------------------
**Modules layer** -- ``GrantService`` is the sole public entry point for
grants.  Mirroring goes through ``grant_modules._bank_mirror``.

Invariants enforced
-------------------
* Each public method owns the transaction boundary: the grant row and its
  linked account are written in one transaction (all-or-nothing).
* Grant snapshot balance == linked account balance after every write.
* ``end_date`` never precedes ``start_date``.

Failure modes
-------------
* ``CapabilityDeniedError`` -- actor lacks a grants capability.
* ``MissingFieldError`` / ``InvalidAmountError`` / ``InvalidStatusError`` /
  ``InvalidDateRangeError`` -- rejected before any store call.
* ``RecordNotFoundError`` -- unknown grant id.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from grant_kernel.db.repository import Repository
from grant_kernel.domain.clock import Clock, SystemClock
from grant_kernel.domain.permissions import Actor
from grant_kernel.logging_config import get_logger
from grant_modules._bank_mirror import sync_linked_account
from grant_modules._helpers import (
    ChangeListener,
    notify,
    parse_status,
    reject_unknown_fields,
    require_capability,
    require_date_order,
    require_non_negative_amount,
    require_text,
)
from grant_modules.budget.orm import BudgetLineModel
from grant_modules.grants.models import (
    Currency,
    Grant,
    GrantBankAccount,
    GrantStatus,
    linked_bank_account_id,
)
from grant_modules.grants.orm import GrantModel
from grant_modules.treasury.orm import BankAccountModel

logger = get_logger("modules.grants.service")

MODULE = "grants"
ENTITY = "grant"

_UPDATABLE = frozenset({
    "name", "reference", "granting_organization", "year", "currency",
    "total_amount", "start_date", "end_date", "status", "description",
})


class GrantService:
    """
    Grants and their linked bank accounts.

    Guarantees
    ----------
    * ``list_grants`` returns grants in creation order; the first one is the
      default active grant when no selection is saved.
    * Clock is injectable for deterministic testing.
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
        self._grants = Repository(session, GrantModel, ENTITY)

    def create_grant(
        self,
        actor: Actor,
        name: str,
        reference: str,
        granting_organization: str,
        year: int,
        currency: Currency | str,
        total_amount: Decimal | str | int,
        start_date: date,
        end_date: date,
        status: GrantStatus | str = GrantStatus.PENDING,
        description: str = "",
        bank_account: GrantBankAccount | None = None,
    ) -> Grant:
        require_capability(actor, MODULE, "create")
        require_date_order(ENTITY, start_date, end_date, "start_date", "end_date")
        dto = Grant(
            id=uuid4(),
            name=require_text(ENTITY, "name", name),
            reference=require_text(ENTITY, "reference", reference),
            granting_organization=require_text(ENTITY, "granting_organization", granting_organization),
            year=int(year),
            currency=parse_status(ENTITY, Currency, currency),
            total_amount=require_non_negative_amount("total_amount", total_amount),
            start_date=start_date,
            end_date=end_date,
            status=parse_status(ENTITY, GrantStatus, status),
            description=(description or "").strip(),
            bank_account=self._clean_bank_account(bank_account),
        )

        try:
            model = GrantModel.from_dto(dto, created_by_id=actor.id)
            self._grants.add(model)
            if model.has_bank_account:
                sync_linked_account(self._session, model, actor.id, self._clock.today())
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("grant_created", extra={
            "grant_id": str(model.id),
            "reference": model.reference,
            "total_amount": str(model.total_amount),
            "linked_account": model.has_bank_account,
        })
        notify(self._on_change, ENTITY)
        return model.to_dto()

    def update_grant(
        self,
        actor: Actor,
        grant_id: UUID,
        *,
        bank_account: GrantBankAccount | None = None,
        **changes,
    ) -> Grant:
        """Edit a grant; a supplied ``bank_account`` is mirrored into the ledger."""
        require_capability(actor, MODULE, "edit")
        reject_unknown_fields(ENTITY, changes, _UPDATABLE)
        changes = self._clean_changes(changes)
        account = self._clean_bank_account(bank_account)

        try:
            model = self._grants.require(grant_id)
            for field_name, value in changes.items():
                setattr(model, field_name, value)
            require_date_order(ENTITY, model.start_date, model.end_date, "start_date", "end_date")
            if account is not None:
                model.bank_account_name = account.name
                model.bank_account_number = account.account_number
                model.bank_name = account.bank_name
                model.bank_balance = account.balance
                sync_linked_account(self._session, model, actor.id, self._clock.today())
            model.updated_by_id = actor.id
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("grant_updated", extra={
            "grant_id": str(grant_id),
            "fields": sorted(changes),
            "bank_account_mirrored": account is not None,
        })
        notify(self._on_change, ENTITY)
        return model.to_dto()

    def delete_grant(self, actor: Actor, grant_id: UUID) -> None:
        """Delete a grant with its budget lines, sub-lines and linked account."""
        require_capability(actor, MODULE, "delete")
        try:
            self._grants.require(grant_id)
            lines = Repository(self._session, BudgetLineModel, "budget_line")
            removed_lines = lines.delete_many(lines.get_all(grant_id=grant_id))
            accounts = Repository(self._session, BankAccountModel, "bank_account")
            account_id = linked_bank_account_id(grant_id)
            removed_account = accounts.get(account_id) is not None
            if removed_account:
                accounts.delete(account_id)
            self._grants.delete(grant_id)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("grant_deleted", extra={
            "grant_id": str(grant_id),
            "budget_lines_deleted": removed_lines,
            "linked_account_deleted": removed_account,
        })
        notify(self._on_change, ENTITY)

    def get_grant(self, grant_id: UUID) -> Grant:
        return self._grants.require(grant_id).to_dto()

    def list_grants(self) -> list[Grant]:
        return [m.to_dto() for m in self._grants.get_all(order_by=(GrantModel.reference,))]

    # =========================================================================
    # Validation
    # =========================================================================

    @staticmethod
    def _clean_bank_account(account: GrantBankAccount | None) -> GrantBankAccount | None:
        if account is None:
            return None
        return GrantBankAccount(
            name=require_text("grant_bank_account", "name", account.name),
            account_number=(account.account_number or "").strip(),
            bank_name=(account.bank_name or "").strip(),
            balance=require_non_negative_amount("balance", account.balance),
            last_update_date=account.last_update_date,
        )

    @staticmethod
    def _clean_changes(changes: dict) -> dict:
        cleaned = dict(changes)
        for field_name in ("name", "reference", "granting_organization"):
            if field_name in cleaned:
                cleaned[field_name] = require_text(ENTITY, field_name, cleaned[field_name])
        if "total_amount" in cleaned:
            cleaned["total_amount"] = require_non_negative_amount("total_amount", cleaned["total_amount"])
        if "currency" in cleaned:
            cleaned["currency"] = parse_status(ENTITY, Currency, cleaned["currency"]).value
        if "status" in cleaned:
            cleaned["status"] = parse_status(ENTITY, GrantStatus, cleaned["status"]).value
        if "year" in cleaned:
            cleaned["year"] = int(cleaned["year"])
        if "description" in cleaned:
            cleaned["description"] = (cleaned["description"] or "").strip()
        return cleaned
