"""
Pytest fixtures for the Budget BASE test suite.

Provides:
- Structured log capture on the ``budget_base`` logger hierarchy
- A fresh in-memory SQLite database (tables created) per test
- A deterministic clock
- Actors for each signing profession plus a restricted one
- Factory fixtures for a grant with one budget line and one sub-line
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID

import pytest

from grant_kernel.db.engine import (
    create_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from grant_kernel.domain.approval import Profession
from grant_kernel.domain.clock import DeterministicClock
from grant_kernel.domain.permissions import Actor, RolePermissions
from grant_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"

ADMIN_ID = UUID("00000000-0000-4000-b000-000000000001")
COORDINATOR_ID = UUID("00000000-0000-4000-b000-000000000002")
ACCOUNTANT_ID = UUID("00000000-0000-4000-b000-000000000003")
NATIONAL_ID = UUID("00000000-0000-4000-b000-000000000004")
VIEWER_ID = UUID("00000000-0000-4000-b000-000000000005")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture budget_base logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ...):
            ...
            assert any(r["message"] == "engagement_created" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("budget_base")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def session():
    """A session on a fresh in-memory database."""
    init_engine_from_url(TEST_DATABASE_URL)
    create_tables()
    db_session = get_session()
    yield db_session
    db_session.close()
    reset_engine()


@pytest.fixture
def session_factory(session):
    """Factory bound to the same in-memory database as ``session``."""
    return get_session_factory()


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc))


# =============================================================================
# Actors
# =============================================================================


def make_actor(actor_id: UUID, name: str, profession: str = "", permissions=None) -> Actor:
    return Actor(
        id=actor_id,
        name=name,
        profession=profession,
        permissions=permissions if permissions is not None else RolePermissions.full_access(),
    )


@pytest.fixture
def admin():
    """Full access, no signing profession."""
    return make_actor(ADMIN_ID, "Admin")


@pytest.fixture
def coordinator():
    return make_actor(COORDINATOR_ID, "Awa Diallo", Profession.GRANT_COORDINATOR.value)


@pytest.fixture
def accountant():
    return make_actor(ACCOUNTANT_ID, "Moussa Traore", Profession.ACCOUNTANT.value)


@pytest.fixture
def national_coordinator():
    return make_actor(NATIONAL_ID, "Fatou Ndiaye", Profession.NATIONAL_COORDINATOR.value)


@pytest.fixture
def viewer():
    """Read-only actor: may view every module, change nothing."""
    permissions = RolePermissions.normalize(
        [{"module": m, "actions": ["view"]} for m in (
            "grants", "budget_planning", "engagements", "payments",
            "prefinancing", "employee_loans", "bank_accounts", "bank_transactions",
        )]
    )
    return make_actor(VIEWER_ID, "Viewer", Profession.ACCOUNTANT.value, permissions)


# =============================================================================
# Budget structure factories
# =============================================================================


@pytest.fixture
def grant_service(session, deterministic_clock):
    from grant_modules.grants.service import GrantService

    return GrantService(session, deterministic_clock)


@pytest.fixture
def budget_service(session, deterministic_clock):
    from grant_modules.budget.service import BudgetService

    return BudgetService(session, deterministic_clock)


@pytest.fixture
def create_grant(grant_service, admin):
    """Factory: create a grant with sensible defaults."""
    counter = {"n": 0}

    def _create(**overrides):
        counter["n"] += 1
        values = {
            "name": f"Grant {counter['n']}",
            "reference": f"GR-{counter['n']:03d}",
            "granting_organization": "Fondation Test",
            "year": 2024,
            "currency": "XOF",
            "total_amount": Decimal("100000"),
            "start_date": date(2024, 1, 1),
            "end_date": date(2024, 12, 31),
        }
        values.update(overrides)
        return grant_service.create_grant(admin, **values)

    return _create


@pytest.fixture
def grant(create_grant):
    return create_grant()


@pytest.fixture
def budget_line(budget_service, admin, grant):
    return budget_service.add_budget_line(
        admin, grant.id, code="BL-01", name="Personnel", notified_amount=Decimal("1000"),
    )


@pytest.fixture
def sub_line(budget_service, admin, budget_line):
    return budget_service.add_sub_budget_line(
        admin, budget_line.id, code="SBL-01", name="Salaires", notified_amount=Decimal("1000"),
    )


# =============================================================================
# Record services
# =============================================================================


@pytest.fixture
def engagement_service(session, deterministic_clock, budget_service):
    from grant_modules.engagements.service import EngagementService

    return EngagementService(session, deterministic_clock, budget_service=budget_service)


@pytest.fixture
def payment_service(session, deterministic_clock):
    from grant_modules.payments.service import PaymentService

    return PaymentService(session, deterministic_clock)


@pytest.fixture
def prefinancing_service(session, deterministic_clock):
    from grant_modules.prefinancing.service import PrefinancingService

    return PrefinancingService(session, deterministic_clock)


@pytest.fixture
def loan_service(session, deterministic_clock):
    from grant_modules.employee_loans.service import EmployeeLoanService

    return EmployeeLoanService(session, deterministic_clock)


@pytest.fixture
def treasury_service(session, deterministic_clock):
    from grant_modules.treasury.service import TreasuryService

    return TreasuryService(session, deterministic_clock)


@pytest.fixture
def engagement(engagement_service, admin, grant, budget_line, sub_line):
    """A pending 300 engagement against BL-01 / SBL-01."""
    return engagement_service.create_engagement(
        admin, grant.id, budget_line.id, sub_line.id,
        engagement_number="ENG-001", amount=Decimal("300"), supplier="Sahel Fournitures",
    )
