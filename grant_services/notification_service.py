"""
grant_services.notification_service -- Pending-signature counts per viewer.

Responsibility:
    Keep the NotificationSnapshot for the signed-in viewer (profession) and
    the active grant scope, recompute it whenever a signed record changes,
    and publish it to subscribers when it differs from the last one.

Architecture position:
    Services -- reads the four signed record kinds through the module ORM
    models and derives counts with ``grant_engines.notifications``.  The
    snapshot is never persisted.

Invariants enforced:
    - Subscribers are called only when the snapshot actually changes.
    - A viewer without a recognized profession sees an empty snapshot.

Failure modes:
    - StoreReadError from the repositories propagates to the caller.
    - Exceptions raised by a subscriber propagate out of refresh().
"""

from __future__ import annotations

from collections.abc import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from grant_engines.notifications import (
    NotificationSnapshot,
    build_snapshot,
    pending_for_viewer,
)
from grant_kernel.db.repository import Repository
from grant_kernel.domain.approval import Profession
from grant_kernel.domain.entity_kind import EntityKind
from grant_kernel.logging_config import get_logger
from grant_services._record_kinds import RECORD_MODELS

logger = get_logger("services.notifications")

Subscriber = Callable[[NotificationSnapshot], None]


class NotificationCenter:
    """
    Observable pending-signature snapshot.

    Contract:
        ``on_records_changed`` is the change listener the module services
        call after a committed write; the workspace wires it in.
    """

    def __init__(
        self,
        session: Session,
        viewer: Profession | str | None = None,
        grant_scope: UUID | None = None,
    ):
        self._session = session
        self._viewer = viewer
        self._grant_scope = grant_scope
        self._snapshot = NotificationSnapshot()
        self._subscribers: list[Subscriber] = []

    @property
    def snapshot(self) -> NotificationSnapshot:
        return self._snapshot

    @property
    def viewer(self) -> Profession | str | None:
        return self._viewer

    @property
    def grant_scope(self) -> UUID | None:
        return self._grant_scope

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def set_viewer(self, viewer: Profession | str | None) -> NotificationSnapshot:
        self._viewer = viewer
        return self.refresh()

    def set_scope(self, grant_scope: UUID | None) -> NotificationSnapshot:
        self._grant_scope = grant_scope
        return self.refresh()

    def pending(self, kind: EntityKind | str, grant_scope: UUID | None = None) -> list:
        """DTOs of ``kind`` awaiting the viewer's signature.

        ``grant_scope`` narrows the result to one grant; without it the
        center's own scope applies.
        """
        kind = EntityKind(kind)
        scope = grant_scope if grant_scope is not None else self._grant_scope
        return pending_for_viewer(self._load(kind), self._viewer, scope)

    def refresh(self) -> NotificationSnapshot:
        snapshot = build_snapshot(
            {kind: self._load(kind) for kind in EntityKind},
            self._viewer,
            self._grant_scope,
        )
        if snapshot == self._snapshot:
            return snapshot

        self._snapshot = snapshot
        logger.debug("notifications_changed", extra={
            "viewer": str(getattr(self._viewer, "value", self._viewer)),
            "grant_id": str(self._grant_scope) if self._grant_scope else None,
            "total": snapshot.total,
        })
        for callback in list(self._subscribers):
            callback(snapshot)
        return snapshot

    def on_records_changed(self, entity_type: str) -> None:
        if entity_type in {kind.value for kind in EntityKind}:
            self.refresh()

    def _load(self, kind: EntityKind) -> list:
        rows = Repository(self._session, RECORD_MODELS[kind], kind.value).get_all()
        return [row.to_dto() for row in rows]
