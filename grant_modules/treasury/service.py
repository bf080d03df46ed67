"""
Treasury Module Service (``grant_modules.treasury.service``).

Responsibility
--------------
Bank account maintenance and bank transaction entry.  Credits add to the
balance, debits subtract from it, and the account's ``last_update_date``
moves to today.  Grant-linked accounts mirror every change into their
grant's bank snapshot in the same transaction.

Architecture position
---------------------
**Modules layer** -- ``TreasuryService`` is the sole public entry point for
bank accounts and transactions.

Invariants enforced
-------------------
* Each public method owns the transaction boundary (``commit`` on success,
  ``rollback`` on failure).
* Grant snapshot balance == linked account balance after every write.
* Grant-linked accounts are never deleted directly; they go with their
  grant.

Failure modes
-------------
* ``CapabilityDeniedError`` -- actor lacks the bank_accounts /
  bank_transactions capability.
* ``LinkedBankAccountError`` -- direct delete of a grant-linked account.
* ``RecordNotFoundError`` -- unknown account id.
* Validation errors for blank names and non-positive amounts.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from grant_kernel.db.repository import Repository
from grant_kernel.domain.clock import Clock, SystemClock
from grant_kernel.domain.permissions import Actor
from grant_kernel.exceptions import LinkedBankAccountError
from grant_kernel.logging_config import get_logger
from grant_modules._bank_mirror import sync_grant_snapshot
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
from grant_modules.grants.models import linked_bank_account_id
from grant_modules.grants.orm import GrantModel
from grant_modules.treasury.models import (
    BankAccount,
    BankTransaction,
    MirrorDrift,
    TransactionType,
)
from grant_modules.treasury.orm import BankAccountModel, BankTransactionModel

logger = get_logger("modules.treasury.service")

ACCOUNT_MODULE = "bank_accounts"
TRANSACTION_MODULE = "bank_transactions"

_ACCOUNT_FIELDS = frozenset({"name", "account_number", "bank_name", "balance"})


class TreasuryService:
    """
    Bank accounts and transactions.

    Guarantees
    ----------
    * Balance changes and the grant snapshot mirror are committed together.
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
        self._accounts = Repository(session, BankAccountModel, "bank_account")
        self._transactions = Repository(session, BankTransactionModel, "bank_transaction")

    # =========================================================================
    # Bank accounts
    # =========================================================================

    def create_bank_account(
        self,
        actor: Actor,
        name: str,
        account_number: str = "",
        bank_name: str = "",
        balance: Decimal | str | int = Decimal("0"),
    ) -> BankAccount:
        """Create a stand-alone (not grant-linked) account."""
        require_capability(actor, ACCOUNT_MODULE, "create")
        model = BankAccountModel(
            id=str(uuid4()),
            name=require_text("bank_account", "name", name),
            account_number=(account_number or "").strip(),
            bank_name=(bank_name or "").strip(),
            balance=require_non_negative_amount("balance", balance),
            last_update_date=self._clock.today(),
            created_by_id=actor.id,
        )
        try:
            self._accounts.add(model)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("bank_account_created", extra={"account_id": model.id})
        notify(self._on_change, "bank_account")
        return model.to_dto()

    def update_bank_account(self, actor: Actor, account_id: str, **changes) -> BankAccount:
        """Edit an account; a manual balance edit is mirrored into its grant."""
        require_capability(actor, ACCOUNT_MODULE, "edit")
        reject_unknown_fields("bank_account", changes, _ACCOUNT_FIELDS)
        if "name" in changes:
            changes["name"] = require_text("bank_account", "name", changes["name"])
        if "balance" in changes:
            changes["balance"] = require_non_negative_amount("balance", changes["balance"])
        try:
            model = self._accounts.require(account_id)
            for field_name, value in changes.items():
                setattr(model, field_name, value)
            model.last_update_date = self._clock.today()
            model.updated_by_id = actor.id
            grant = sync_grant_snapshot(self._session, model)
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "bank_account_updated",
            extra={
                "account_id": account_id,
                "fields": sorted(changes),
                "grant_id": str(grant.id) if grant is not None else None,
            },
        )
        notify(self._on_change, "bank_account")
        return model.to_dto()

    def delete_bank_account(self, actor: Actor, account_id: str) -> None:
        require_capability(actor, ACCOUNT_MODULE, "delete")
        try:
            model = self._accounts.require(account_id)
            if model.grant_id is not None:
                raise LinkedBankAccountError(account_id)
            self._accounts.delete(account_id)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("bank_account_deleted", extra={"account_id": account_id})
        notify(self._on_change, "bank_account")

    def get_bank_account(self, account_id: str) -> BankAccount:
        return self._accounts.require(account_id).to_dto()

    def list_bank_accounts(self) -> list[BankAccount]:
        return [m.to_dto() for m in self._accounts.get_all()]

    # =========================================================================
    # Transactions
    # =========================================================================

    def add_transaction(
        self,
        actor: Actor,
        account_id: str,
        amount: Decimal | str | int,
        type: TransactionType | str,
        description: str = "",
        txn_date: date | None = None,
        reference: str = "",
    ) -> BankTransaction:
        """Record a credit or debit and move the account balance."""
        require_capability(actor, TRANSACTION_MODULE, "create")
        value = require_positive_amount("amount", amount)
        txn_type = parse_status("bank_transaction", TransactionType, type)
        today = self._clock.today()

        try:
            account = self._accounts.require(account_id)
            model = BankTransactionModel(
                id=uuid4(),
                account_id=account_id,
                date=txn_date or today,
                description=(description or "").strip(),
                amount=value,
                type=txn_type.value,
                reference=(reference or "").strip(),
                created_by_id=actor.id,
            )
            self._transactions.add(model)

            delta = value if txn_type is TransactionType.CREDIT else -value
            account.balance = account.balance + delta
            account.last_update_date = today
            account.updated_by_id = actor.id
            sync_grant_snapshot(self._session, account)
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "bank_transaction_recorded",
            extra={
                "account_id": account_id,
                "type": txn_type.value,
                "amount": str(value),
                "balance": str(account.balance),
            },
        )
        notify(self._on_change, "bank_transaction")
        return model.to_dto()

    def list_transactions(self, account_id: str | None = None) -> list[BankTransaction]:
        filters = {"account_id": account_id} if account_id is not None else {}
        return [m.to_dto() for m in self._transactions.get_all(**filters)]

    # =========================================================================
    # Consistency
    # =========================================================================

    def find_mirror_drift(self) -> list[MirrorDrift]:
        """Grants whose snapshot balance differs from (or lacks) the ledger account."""
        drift: list[MirrorDrift] = []
        accounts_by_grant: dict[UUID, BankAccountModel] = {
            a.grant_id: a for a in self._accounts.get_all() if a.grant_id is not None
        }
        for grant in Repository(self._session, GrantModel, "grant").get_all():
            if not grant.has_bank_account:
                continue
            account = accounts_by_grant.get(grant.id)
            account_balance = account.balance if account is not None else None
            if account_balance is None or account_balance != grant.bank_balance:
                drift.append(MirrorDrift(
                    grant_id=grant.id,
                    account_id=linked_bank_account_id(grant.id),
                    snapshot_balance=grant.bank_balance,
                    account_balance=account_balance,
                ))
        if drift:
            logger.warning("bank_mirror_drift_found", extra={"count": len(drift)})
        return drift
