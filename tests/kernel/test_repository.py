"""
Tests for the generic Repository.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from grant_kernel.db.repository import Repository
from grant_kernel.exceptions import RecordNotFoundError
from grant_modules.grants.orm import GrantModel

ACTOR_ID = uuid4()


def grant_row(reference: str, status: str = "pending") -> GrantModel:
    return GrantModel(
        name=f"Grant {reference}",
        reference=reference,
        granting_organization="Fondation",
        year=2024,
        currency="XOF",
        total_amount=Decimal("1000"),
        start_date=date(2024, 1, 1),
        end_date=date(2024, 12, 31),
        status=status,
        created_by_id=ACTOR_ID,
    )


@pytest.fixture
def repo(session):
    return Repository(session, GrantModel, "grant")


class TestRepository:

    def test_add_assigns_id(self, repo):
        row = repo.add(grant_row("R-1"))
        assert row.id is not None
        assert repo.get(row.id) is row

    def test_get_unknown_returns_none(self, repo):
        assert repo.get(uuid4()) is None

    def test_require_unknown_raises(self, repo):
        missing = uuid4()
        with pytest.raises(RecordNotFoundError) as exc_info:
            repo.require(missing)
        assert exc_info.value.entity_type == "grant"
        assert exc_info.value.record_id == str(missing)

    def test_get_all_filters_and_orders(self, repo):
        repo.add(grant_row("R-3", status="active"))
        repo.add(grant_row("R-1", status="active"))
        repo.add(grant_row("R-2", status="closed"))
        active = repo.get_all(order_by=(GrantModel.reference,), status="active")
        assert [g.reference for g in active] == ["R-1", "R-3"]

    def test_update_touches_only_given_fields(self, repo):
        row = repo.add(grant_row("R-1"))
        repo.update(row.id, {"name": "Renamed"})
        assert row.name == "Renamed"
        assert row.reference == "R-1"

    def test_update_unknown_attribute(self, repo):
        row = repo.add(grant_row("R-1"))
        with pytest.raises(AttributeError):
            repo.update(row.id, {"colour": "blue"})

    def test_delete(self, repo):
        row = repo.add(grant_row("R-1"))
        repo.delete(row.id)
        assert repo.get(row.id) is None
        with pytest.raises(RecordNotFoundError):
            repo.delete(row.id)

    def test_delete_many(self, repo):
        rows = [repo.add(grant_row(f"R-{i}")) for i in range(3)]
        assert repo.delete_many(rows[:2]) == 2
        assert [g.reference for g in repo.get_all()] == ["R-2"]
