"""
grant_services.workspace -- Top-level controller for one signed-in user.

Responsibility:
    Construct every module service once on a shared session, wire their
    change listener to the notification center and the grant selection,
    and run the initial grant resolution.  The pending-signature badge
    counts records of every grant; per-grant lists are asked for explicitly.

Architecture position:
    Services -- the composition root.  ``open_workspace()`` is the only
    place that reads configuration, configures logging and initializes the
    engine; ``BudgetWorkspace`` itself takes everything it needs.

Invariants enforced:
    - All services share one Session and one Clock.
    - Every committed write of a signed record refreshes the notification
      snapshot; every grant write re-validates the active selection.
    - The notification snapshot is never narrowed to the active grant.

Failure modes:
    - Errors from the underlying services propagate unchanged.

Usage:
    workspace = open_workspace(actor)
    workspace.select_grant(grant_id)
    workspace.engagements.create_engagement(actor, ...)
    workspace.notifications.snapshot.total
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from grant_config import BudgetBaseConfig, get_active_config
from grant_config.loader import log_level_number
from grant_kernel.db.engine import (
    create_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
)
from grant_kernel.domain.clock import Clock, SystemClock
from grant_kernel.domain.entity_kind import EntityKind
from grant_kernel.domain.permissions import Actor
from grant_kernel.logging_config import configure_logging, get_logger
from grant_modules.budget.service import BudgetService
from grant_modules.employee_loans.service import EmployeeLoanService
from grant_modules.engagements.service import EngagementService
from grant_modules.grants.service import GrantService
from grant_modules.payments.service import PaymentService
from grant_modules.prefinancing.service import PrefinancingService
from grant_modules.treasury.service import TreasuryService
from grant_services.approval_service import SignatureService
from grant_services.grant_selection import (
    GrantSelectionPersistence,
    Scheduler,
    ThreadingScheduler,
)
from grant_services.notification_service import NotificationCenter
from grant_services.settings_store import JsonFileCache, SettingsStore

logger = get_logger("services.workspace")

GRANT_ENTITY = "grant"


class BudgetWorkspace:
    """
    Services for one actor, wired together.

    Contract:
        Receives a Session, the acting user, a configuration and a grant
        selection; call ``load()`` once before selecting grants.

    Non-goals:
        - Does NOT own the Session lifecycle beyond ``close()``.
    """

    def __init__(
        self,
        session: Session,
        actor: Actor,
        config: BudgetBaseConfig,
        selection: GrantSelectionPersistence,
        clock: Clock | None = None,
    ):
        self._session = session
        self._actor = actor
        self._config = config
        self._clock = clock or SystemClock()
        self.selection = selection

        self.notifications = NotificationCenter(session, viewer=actor.profession)
        listener = self._on_records_changed

        self.grants = GrantService(session, self._clock, on_change=listener)
        self.budget = BudgetService(
            session,
            self._clock,
            rollup_strategy=config.rollup.strategy,
            on_change=listener,
        )
        self.engagements = EngagementService(
            session,
            self._clock,
            budget_service=self.budget,
            on_change=listener,
        )
        self.payments = PaymentService(session, self._clock, on_change=listener)
        self.prefinancing = PrefinancingService(
            session,
            self._clock,
            over_repayment_policy=config.repayment.over_repayment_policy,
            on_change=listener,
        )
        self.employee_loans = EmployeeLoanService(
            session,
            self._clock,
            over_repayment_policy=config.repayment.over_repayment_policy,
            on_change=listener,
        )
        self.treasury = TreasuryService(session, self._clock, on_change=listener)
        self.signatures = SignatureService(session, self._clock, on_change=listener)

    @property
    def actor(self) -> Actor:
        return self._actor

    @property
    def active_grant_id(self) -> UUID | None:
        return self.selection.selected_grant_id

    def load(self) -> UUID | None:
        """Resolve the start-up grant and compute the first snapshot."""
        grant_ids = [g.id for g in self.grants.list_grants()]
        selected = self.selection.resolve_initial(grant_ids)
        self.notifications.refresh()
        logger.info("workspace_loaded", extra={
            "actor_id": str(self._actor.id),
            "grant_id": str(selected) if selected else None,
            "config_id": self._config.config_id,
        })
        return selected

    def select_grant(self, grant_id: UUID) -> None:
        self.selection.select(grant_id)

    def pending_for_active_grant(self, kind: EntityKind | str) -> list:
        """Records of ``kind`` on the active grant awaiting the actor's signature."""
        if self.active_grant_id is None:
            return []
        return self.notifications.pending(kind, grant_scope=self.active_grant_id)

    def set_actor(self, actor: Actor) -> None:
        """Switch the signed-in user; the snapshot follows the new profession."""
        self._actor = actor
        self.notifications.set_viewer(actor.profession)

    def close(self) -> None:
        self.selection.close()
        self._session.close()

    def _on_records_changed(self, entity_type: str) -> None:
        if entity_type == GRANT_ENTITY:
            grant_ids = [g.id for g in self.grants.list_grants()]
            self.selection.on_grants_changed(grant_ids)
            return
        self.notifications.on_records_changed(entity_type)


def open_workspace(
    actor: Actor,
    config: BudgetBaseConfig | None = None,
    *,
    scheduler: Scheduler | None = None,
    clock: Clock | None = None,
) -> BudgetWorkspace:
    """Configure logging and the database, then build and load a workspace."""
    config = config or get_active_config()
    configure_logging(level=log_level_number(config))
    init_engine_from_url(config.database.url, echo=config.database.echo)
    create_tables()

    clock = clock or SystemClock()
    selection = GrantSelectionPersistence(
        SettingsStore(get_session_factory()),
        JsonFileCache(
            config.selection.local_cache_path,
            ttl_seconds=config.selection.local_cache_ttl_seconds,
            clock=clock,
        ),
        scheduler=scheduler or ThreadingScheduler(),
        settings_key=config.selection.settings_key,
        debounce_seconds=config.selection.debounce_seconds,
    )
    workspace = BudgetWorkspace(get_session(), actor, config, selection, clock=clock)
    workspace.load()
    return workspace
