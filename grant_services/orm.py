"""
SQLAlchemy ORM persistence model for application settings.

Responsibility
--------------
``AppSettingModel`` is the ``app_settings`` key-value table read and
written by ``grant_services.settings_store.SettingsStore`` (the saved
active grant lives under ``selection.settings_key``).

Architecture position
---------------------
**Services layer** -- inherits from ``Base`` (kernel db layer).  Settings
are not authored by an actor, so ``TrackedBase`` does not apply.

Invariants enforced
-------------------
* ``key`` is unique; writes are upserts.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from grant_kernel.db.base import Base


class AppSettingModel(Base):
    """One application-wide setting."""

    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AppSettingModel {self.key}={self.value!r}>"
