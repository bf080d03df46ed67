"""
Tests for GrantService and the grant <-> ledger bank account mirror.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from grant_kernel.exceptions import (
    CapabilityDeniedError,
    InvalidDateRangeError,
    InvalidStatusError,
    MissingFieldError,
    RecordNotFoundError,
)
from grant_modules.budget.orm import SubBudgetLineModel
from grant_modules.grants.models import Currency, GrantBankAccount, GrantStatus
from grant_modules.treasury.orm import BankAccountModel

ACCOUNT = GrantBankAccount(
    name="Compte projet", account_number="BF-0042", bank_name="Coris Bank", balance=Decimal("5000"),
)


class TestCreateGrant:

    def test_defaults(self, grant):
        assert grant.status is GrantStatus.PENDING
        assert grant.currency is Currency.XOF
        assert grant.planned_amount == Decimal("0")
        assert grant.bank_account is None
        assert grant.linked_bank_account_id is None

    def test_blank_name(self, create_grant):
        with pytest.raises(MissingFieldError):
            create_grant(name="  ")

    def test_unsupported_currency(self, create_grant):
        with pytest.raises(InvalidStatusError):
            create_grant(currency="GBP")

    def test_end_before_start(self, create_grant):
        with pytest.raises(InvalidDateRangeError):
            create_grant(start_date=date(2024, 6, 1), end_date=date(2024, 5, 1))

    def test_viewer_denied(self, grant_service, viewer):
        with pytest.raises(CapabilityDeniedError):
            grant_service.create_grant(
                viewer, "G", "R", "Org", 2024, "XOF", "10", date(2024, 1, 1), date(2024, 2, 1),
            )
        assert grant_service.list_grants() == []

    def test_listed_by_reference(self, grant_service, create_grant):
        create_grant(reference="B-2")
        create_grant(reference="A-1")
        assert [g.reference for g in grant_service.list_grants()] == ["A-1", "B-2"]


class TestLinkedBankAccount:

    def test_create_with_account_creates_ledger_account(
        self, create_grant, treasury_service, deterministic_clock,
    ):
        created = create_grant(bank_account=ACCOUNT)
        account = treasury_service.get_bank_account(created.linked_bank_account_id)
        assert account.id == f"grant-{created.id}"
        assert account.grant_id == created.id
        assert account.balance == Decimal("5000")
        assert account.last_update_date == deterministic_clock.today()
        assert created.bank_account.last_update_date == deterministic_clock.today()

    def test_adding_account_later(self, grant_service, treasury_service, admin, grant):
        updated = grant_service.update_grant(admin, grant.id, bank_account=ACCOUNT)
        assert updated.bank_account.balance == Decimal("5000")
        assert treasury_service.get_bank_account(updated.linked_bank_account_id).name == "Compte projet"

    def test_snapshot_edit_mirrors_into_ledger(self, grant_service, treasury_service, admin, create_grant):
        created = create_grant(bank_account=ACCOUNT)
        grant_service.update_grant(
            admin, created.id,
            bank_account=GrantBankAccount(
                name="Compte projet", account_number="BF-0042", bank_name="Coris Bank",
                balance=Decimal("7500"),
            ),
        )
        assert treasury_service.get_bank_account(created.linked_bank_account_id).balance == Decimal("7500")
        assert treasury_service.find_mirror_drift() == []


class TestUpdateAndDelete:

    def test_update_fields(self, grant_service, admin, grant):
        updated = grant_service.update_grant(admin, grant.id, status="active", name=" Renamed ")
        assert updated.status is GrantStatus.ACTIVE
        assert updated.name == "Renamed"

    def test_update_date_order_checked(self, grant_service, admin, grant):
        with pytest.raises(InvalidDateRangeError):
            grant_service.update_grant(admin, grant.id, end_date=date(2023, 1, 1))
        assert grant_service.get_grant(grant.id).end_date == date(2024, 12, 31)

    def test_delete_removes_lines_and_account(
        self, session, grant_service, budget_service, admin, create_grant,
    ):
        created = create_grant(bank_account=ACCOUNT)
        line = budget_service.add_budget_line(admin, created.id, "BL-01", "Line", "100")
        sub = budget_service.add_sub_budget_line(admin, line.id, "S-01", "Sub", "100")

        grant_service.delete_grant(admin, created.id)

        assert budget_service.list_budget_lines() == []
        assert session.get(SubBudgetLineModel, sub.id) is None
        assert session.get(BankAccountModel, created.linked_bank_account_id) is None
        with pytest.raises(RecordNotFoundError):
            grant_service.get_grant(created.id)

    def test_delete_unknown(self, grant_service, admin):
        with pytest.raises(RecordNotFoundError):
            grant_service.delete_grant(admin, uuid4())
