"""
grant_services.settings_store -- Remote settings table and local JSON cache.

Responsibility:
    ``SettingsStore`` reads and upserts rows of the ``app_settings`` table,
    one short-lived session per call.  ``JsonFileCache`` is the local
    fallback: a JSON file of ``{key: {"value": ..., "storedAt": ts}}`` whose
    entries expire after a TTL.

Architecture position:
    Services -- the only place settings I/O happens.  Consumed by
    ``grant_services.grant_selection.GrantSelectionPersistence``.

Invariants enforced:
    - An expired or unreadable cache entry is removed and reported absent.
    - Cache writes are atomic (temp file + replace) and lock-protected.

Failure modes:
    - StoreReadError when the settings table cannot be read.
    - SettingsWriteError when the upsert fails (session rolled back).
    - OSError from the cache is logged and never raised; the cache is
      best-effort.
"""

from __future__ import annotations

import json
import os
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from grant_kernel.db.engine import session_scope
from grant_kernel.domain.clock import Clock, SystemClock
from grant_kernel.exceptions import SettingsWriteError, StoreReadError
from grant_kernel.logging_config import get_logger
from grant_services.orm import AppSettingModel

logger = get_logger("services.settings_store")

SessionFactory = Callable[[], Session]


class SettingsStore:
    """Key-value access to the ``app_settings`` table."""

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    def get(self, key: str) -> Any | None:
        session = self._session_factory()
        try:
            row = session.scalars(
                select(AppSettingModel).where(AppSettingModel.key == key)
            ).one_or_none()
            return row.value if row is not None else None
        except SQLAlchemyError as exc:
            raise StoreReadError("app_setting", str(exc)) from exc
        finally:
            session.close()

    def set(self, key: str, value: Any) -> None:
        try:
            with session_scope(self._session_factory) as session:
                row = session.scalars(
                    select(AppSettingModel).where(AppSettingModel.key == key)
                ).one_or_none()
                if row is None:
                    session.add(AppSettingModel(key=key, value=value))
                else:
                    row.value = value
        except SQLAlchemyError as exc:
            raise SettingsWriteError(key, str(exc)) from exc
        logger.debug("setting_saved", extra={"key": key})


class JsonFileCache:
    """
    Small TTL cache persisted to one JSON file.

    Guarantees:
        - get() never raises; anything unreadable counts as a miss.
        - Entries older than ``ttl_seconds`` are dropped on read.
    """

    def __init__(
        self,
        path: Path | str,
        ttl_seconds: int = 86400,
        clock: Clock | None = None,
    ):
        self._path = Path(path).expanduser()
        self._ttl_seconds = ttl_seconds
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Any | None:
        with self._lock:
            entries = self._read()
            entry = entries.get(key)
            if entry is None:
                return None
            stored_at = entry.get("storedAt") if isinstance(entry, dict) else None
            if not isinstance(stored_at, (int, float)) or "value" not in entry:
                logger.warning("local_cache_entry_corrupt", extra={"key": key})
                del entries[key]
                self._write(entries)
                return None
            if self._clock.timestamp() - stored_at > self._ttl_seconds:
                logger.info("local_cache_entry_expired", extra={"key": key})
                del entries[key]
                self._write(entries)
                return None
            return entry["value"]

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            entries = self._read()
            entries[key] = {"value": value, "storedAt": self._clock.timestamp()}
            self._write(entries)

    def remove(self, key: str) -> None:
        with self._lock:
            entries = self._read()
            if entries.pop(key, None) is not None:
                self._write(entries)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("local_cache_unreadable", extra={"path": str(self._path)})
            self._discard()
            return {}
        if not isinstance(data, dict):
            logger.warning("local_cache_unreadable", extra={"path": str(self._path)})
            self._discard()
            return {}
        return data

    def _write(self, entries: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(json.dumps(entries), encoding="utf-8")
            os.replace(tmp, self._path)
        except OSError as exc:
            logger.warning(
                "local_cache_write_failed",
                extra={"path": str(self._path), "error": str(exc)},
            )

    def _discard(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning(
                "local_cache_discard_failed",
                extra={"path": str(self._path), "error": str(exc)},
            )
