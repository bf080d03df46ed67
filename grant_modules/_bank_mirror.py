"""
Grant bank snapshot <-> ledger bank account mirroring.

A grant may embed a bank account snapshot; the same account exists in the
treasury ledger under ``"grant-" + grant_id``.  Every balance-affecting
write on either side goes through these helpers so both views stay equal.

Architecture: Modules layer.  Used by ``GrantService`` and
``TreasuryService``; both own the surrounding transaction.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from grant_kernel.logging_config import get_logger
from grant_modules.grants.models import linked_bank_account_id
from grant_modules.grants.orm import GrantModel
from grant_modules.treasury.orm import BankAccountModel

logger = get_logger("modules.bank_mirror")


def copy_account_to_snapshot(account: BankAccountModel, grant: GrantModel) -> None:
    grant.bank_account_name = account.name
    grant.bank_account_number = account.account_number
    grant.bank_name = account.bank_name
    grant.bank_balance = account.balance
    grant.bank_last_update_date = account.last_update_date


def copy_snapshot_to_account(grant: GrantModel, account: BankAccountModel) -> None:
    account.name = grant.bank_account_name
    account.account_number = grant.bank_account_number or ""
    account.bank_name = grant.bank_name or ""
    account.balance = grant.bank_balance
    account.last_update_date = grant.bank_last_update_date


def sync_linked_account(session: Session, grant: GrantModel, actor_id, today: date) -> BankAccountModel:
    """Create or refresh the ledger account mirroring ``grant``'s snapshot."""
    account_id = linked_bank_account_id(grant.id)
    account = session.get(BankAccountModel, account_id)
    grant.bank_last_update_date = today
    if account is None:
        account = BankAccountModel(
            id=account_id,
            name=grant.bank_account_name,
            grant_id=grant.id,
            created_by_id=actor_id,
        )
        session.add(account)
        logger.info(
            "linked_bank_account_created",
            extra={"grant_id": str(grant.id), "account_id": account_id},
        )
    else:
        account.updated_by_id = actor_id
    copy_snapshot_to_account(grant, account)
    return account


def sync_grant_snapshot(session: Session, account: BankAccountModel) -> GrantModel | None:
    """Push a linked account's state into its grant; None for unlinked accounts."""
    if account.grant_id is None:
        return None
    grant = session.get(GrantModel, account.grant_id)
    if grant is None:
        logger.warning(
            "linked_grant_missing",
            extra={"account_id": account.id, "grant_id": str(account.grant_id)},
        )
        return None
    copy_account_to_snapshot(account, grant)
    return grant
