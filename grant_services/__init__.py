"""
grant_services -- Cross-entity services and the workspace controller.

Responsibility:
    Stateful services that span record kinds: signing any approvable record,
    the pending-signature notification center, settings persistence and the
    active grant selection, and the ``BudgetWorkspace`` that wires the module
    services together for one user.

Architecture position:
    Services -- top layer.  May import from grant_modules, grant_engines,
    grant_config and grant_kernel; nothing imports from here except
    ``grant_modules._orm_registry`` (for the settings table).
"""

from grant_services.approval_service import SignatureService
from grant_services.grant_selection import (
    GrantSelectionPersistence,
    ManualScheduler,
    SelectionState,
    ThreadingScheduler,
)
from grant_services.notification_service import NotificationCenter
from grant_services.settings_store import JsonFileCache, SettingsStore
from grant_services.workspace import BudgetWorkspace, open_workspace

__all__ = [
    "BudgetWorkspace",
    "GrantSelectionPersistence",
    "JsonFileCache",
    "ManualScheduler",
    "NotificationCenter",
    "SelectionState",
    "SettingsStore",
    "SignatureService",
    "ThreadingScheduler",
    "open_workspace",
]
