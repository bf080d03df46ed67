"""
grant_services.grant_selection -- Persisting the user's active grant.

Responsibility:
    Resolve the active grant at start-up (remote setting, then local cache,
    then the first loaded grant) and persist every explicit selection to
    the local cache and the remote settings store, followed by a debounced
    confirmation write.

Architecture position:
    Services -- consumes ``SettingsStore`` and ``JsonFileCache``; driven by
    ``grant_services.workspace.BudgetWorkspace``.

Invariants enforced:
    - State machine: UNINITIALIZED -> LOADING -> READY <-> SAVING.
    - The confirmation write never runs during initial load or while
      another save is in flight; such runs are skipped and logged.
    - A newer selection cancels any pending confirmation.
    - Fallback selections (first grant, grant deleted) are never persisted.
    - The local cache is written before the remote store, whatever the
      remote outcome.

Failure modes:
    - InvalidSelectionStateError -- select() before the initial load ends.
    - RecordNotFoundError -- select() of a grant that is not loaded.
    - SettingsWriteError -- the immediate remote write failed (the cache
      already holds the selection and the confirmation is still scheduled).
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

from grant_kernel.exceptions import (
    InvalidSelectionStateError,
    RecordNotFoundError,
    SettingsWriteError,
    StoreReadError,
)
from grant_kernel.logging_config import get_logger

logger = get_logger("services.grant_selection")


class SelectionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    SAVING = "saving"


class ScheduledTask(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs ``callback`` once after ``delay_seconds``."""

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> ScheduledTask: ...


class SettingsBackend(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...


class ThreadingScheduler:
    """Production scheduler backed by ``threading.Timer``."""

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay_seconds, callback)
        timer.daemon = True
        timer.start()
        return timer


@dataclass
class _ManualTask:
    delay_seconds: float
    callback: Callable[[], None]
    cancelled: bool = False
    done: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler that runs nothing until ``run_pending()`` is called."""

    def __init__(self):
        self._tasks: list[_ManualTask] = []

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> _ManualTask:
        task = _ManualTask(delay_seconds, callback)
        self._tasks.append(task)
        return task

    @property
    def pending_count(self) -> int:
        return sum(1 for t in self._tasks if not (t.cancelled or t.done))

    def run_pending(self) -> int:
        """Run every live task in scheduling order; returns how many ran."""
        ran = 0
        for task in list(self._tasks):
            if task.cancelled or task.done:
                continue
            task.done = True
            task.callback()
            ran += 1
        self._tasks = [t for t in self._tasks if not (t.cancelled or t.done)]
        return ran


class GrantSelectionPersistence:
    """
    The active grant and its persistence.

    Guarantees:
        - State transitions happen under one lock; settings I/O runs
          outside it.
        - ``selected_grant_id`` is always one of the loaded grants, or None
          when no grant exists.
    """

    def __init__(
        self,
        settings_store: SettingsBackend,
        local_cache: SettingsBackend,
        scheduler: Scheduler | None = None,
        settings_key: str = "selectedGrantId",
        debounce_seconds: float = 0.5,
    ):
        self._store = settings_store
        self._cache = local_cache
        self._scheduler = scheduler or ThreadingScheduler()
        self._key = settings_key
        self._debounce = debounce_seconds
        self._lock = threading.RLock()
        self._state = SelectionState.UNINITIALIZED
        self._grant_ids: list[UUID] = []
        self._selected: UUID | None = None
        self._pending: ScheduledTask | None = None
        self._generation = 0

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def selected_grant_id(self) -> UUID | None:
        return self._selected

    @property
    def is_initial_load(self) -> bool:
        return self._state in (SelectionState.UNINITIALIZED, SelectionState.LOADING)

    @property
    def is_saving(self) -> bool:
        return self._state is SelectionState.SAVING

    # =========================================================================
    # Initial resolution
    # =========================================================================

    def resolve_initial(self, grant_ids: Iterable[UUID]) -> UUID | None:
        """Pick the start-up grant among ``grant_ids`` (in display order)."""
        with self._lock:
            if self._state is SelectionState.SAVING:
                raise InvalidSelectionStateError(self._state.value, "resolve_initial")
            self._state = SelectionState.LOADING
            self._grant_ids = list(grant_ids)

        source = "default"
        saved = self._read_remote()
        if saved is not None:
            source = "remote"
        else:
            saved = self._cache.get(self._key)
            if saved is not None:
                source = "local_cache"

        with self._lock:
            candidate = _parse_id(saved)
            if candidate is not None and candidate in self._grant_ids:
                self._selected = candidate
            else:
                if saved is not None:
                    logger.info("saved_selection_discarded", extra={
                        "saved_grant_id": str(saved),
                        "source": source,
                    })
                source = "default" if self._grant_ids else "none"
                self._selected = self._grant_ids[0] if self._grant_ids else None
            self._state = SelectionState.READY

        logger.info("selection_resolved", extra={
            "grant_id": str(self._selected) if self._selected else None,
            "source": source,
            "grant_count": len(self._grant_ids),
        })
        return self._selected

    def _read_remote(self) -> Any | None:
        try:
            return self._store.get(self._key)
        except StoreReadError as exc:
            logger.warning("remote_selection_read_failed", extra={"error": str(exc)})
            return None

    # =========================================================================
    # Explicit selection
    # =========================================================================

    def select(self, grant_id: UUID | str) -> None:
        with self._lock:
            if self.is_initial_load:
                raise InvalidSelectionStateError(self._state.value, "select")
            requested = grant_id
            grant_id = _parse_id(requested)
            if grant_id is None or grant_id not in self._grant_ids:
                raise RecordNotFoundError("grant", str(requested))
            self._selected = grant_id
            self._cancel_pending()
            self._generation += 1
            generation = self._generation
            self._cache.set(self._key, str(grant_id))
            self._state = SelectionState.SAVING

        error: SettingsWriteError | None = None
        try:
            self._store.set(self._key, str(grant_id))
        except SettingsWriteError as exc:
            error = exc
            logger.warning("selection_remote_write_failed", extra={
                "grant_id": str(grant_id),
                "error": str(exc),
            })
        finally:
            with self._lock:
                self._state = SelectionState.READY
                self._pending = self._scheduler.schedule(
                    self._debounce, lambda: self._confirm(generation, grant_id),
                )

        logger.info("grant_selected", extra={
            "grant_id": str(grant_id),
            "remote_saved": error is None,
        })
        if error is not None:
            raise error

    def _confirm(self, generation: int, grant_id: UUID) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("selection_confirmation_stale", extra={"grant_id": str(grant_id)})
                return
            if self.is_initial_load or self.is_saving:
                logger.info("selection_confirmation_skipped", extra={
                    "grant_id": str(grant_id),
                    "state": self._state.value,
                })
                return
            self._pending = None
            self._state = SelectionState.SAVING

        try:
            self._store.set(self._key, str(grant_id))
        except SettingsWriteError as exc:
            logger.warning("selection_confirmation_failed", extra={
                "grant_id": str(grant_id),
                "error": str(exc),
            })
        else:
            logger.debug("selection_confirmed", extra={"grant_id": str(grant_id)})
        finally:
            with self._lock:
                self._state = SelectionState.READY

    # =========================================================================
    # Grant list changes
    # =========================================================================

    def on_grants_changed(self, grant_ids: Iterable[UUID]) -> UUID | None:
        """Track the loaded grants; fall back to the first one if ours is gone."""
        with self._lock:
            self._grant_ids = list(grant_ids)
            if self.is_initial_load:
                return self._selected
            if self._selected in self._grant_ids:
                return self._selected
            previous = self._selected
            self._cancel_pending()
            self._generation += 1
            self._selected = self._grant_ids[0] if self._grant_ids else None

        logger.info("selection_fell_back", extra={
            "previous_grant_id": str(previous) if previous else None,
            "grant_id": str(self._selected) if self._selected else None,
        })
        return self._selected

    def close(self) -> None:
        """Cancel any pending confirmation write."""
        with self._lock:
            self._cancel_pending()
            self._generation += 1

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None


def _parse_id(value: Any) -> UUID | None:
    if value is None or value == "":
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None
