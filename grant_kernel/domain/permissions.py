"""
Permission domain types (``grant_kernel.domain.permissions``).

Responsibility
--------------
Describes who is acting (``Actor``) and what they may do
(``RolePermissions``): a mapping from module name to allowed actions,
normalised from the ``[{module, actions}]`` rows stored on a role.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects, ZERO I/O.

Invariants enforced
-------------------
* ``MODULE_CATALOGUE`` is the closed list of modules and the actions each
  module supports; actions outside it are dropped on normalisation.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from uuid import UUID

from grant_kernel.domain.approval import Profession


@dataclass(frozen=True)
class ModuleDefinition:
    module: str
    label: str
    actions: tuple[str, ...]


MODULE_CATALOGUE: tuple[ModuleDefinition, ...] = (
    ModuleDefinition("dashboard", "Tableau de Bord", ("view", "export")),
    ModuleDefinition("grants", "Subventions", ("view", "create", "edit", "delete", "approve")),
    ModuleDefinition("budget_planning", "Planification", ("view", "create", "edit", "delete", "approve", "export")),
    ModuleDefinition("tracking", "Budgets", ("view", "create", "edit", "delete", "approve", "export")),
    ModuleDefinition("engagements", "Engagements", ("view", "create", "edit", "delete", "sign")),
    ModuleDefinition("payments", "Paiements", ("view", "create", "edit", "delete", "approve", "reconcile", "sign")),
    ModuleDefinition("treasury", "Trésorerie", ("view", "create", "edit", "delete", "reconcile")),
    ModuleDefinition("prefinancing", "Préfinancements", ("view", "create", "edit", "delete", "approve", "sign")),
    ModuleDefinition("employee_loans", "Prêts Employés", ("view", "create", "edit", "delete", "approve", "sign")),
    ModuleDefinition("reports", "Rapports", ("view", "create", "export")),
    ModuleDefinition("users", "Utilisateurs", ("view", "create", "edit", "delete")),
    ModuleDefinition("globalConfig", "Configuration", ("view", "create", "edit", "delete")),
    ModuleDefinition("profile", "Profil", ("view", "edit")),
    ModuleDefinition("bank_accounts", "Comptes Bancaires", ("view", "create", "edit", "delete", "reconcile")),
    ModuleDefinition("bank_transactions", "Transactions Bancaires", ("view", "create", "edit", "delete", "reconcile", "export")),
    ModuleDefinition("audit", "Audit", ("view", "export")),
)

_CATALOGUE_BY_MODULE = {definition.module: definition for definition in MODULE_CATALOGUE}


def available_actions(module: str) -> tuple[str, ...]:
    """All actions the catalogue defines for ``module`` (empty if unknown)."""
    definition = _CATALOGUE_BY_MODULE.get(module)
    return definition.actions if definition else ()


@dataclass(frozen=True)
class RolePermissions:
    """Module -> allowed actions."""

    grants: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "grants", MappingProxyType(dict(self.grants)))

    @classmethod
    def normalize(cls, rows: Iterable[Mapping[str, object]] | None) -> RolePermissions:
        """Build from stored ``[{"module": ..., "actions": [...]}]`` rows."""
        normalized: dict[str, frozenset[str]] = {}
        for row in rows or ():
            module = str(row.get("module", ""))
            known = set(available_actions(module))
            actions = row.get("actions") or ()
            normalized[module] = frozenset(a for a in actions if a in known)
        return cls(normalized)

    @classmethod
    def full_access(cls) -> RolePermissions:
        """Every action of every catalogued module (administrator role)."""
        return cls({d.module: frozenset(d.actions) for d in MODULE_CATALOGUE})

    def has_permission(self, module: str, action: str) -> bool:
        return action in self.grants.get(module, frozenset())

    def has_module_access(self, module: str) -> bool:
        return bool(self.grants.get(module))


@dataclass(frozen=True)
class Actor:
    """The signed-in user as seen by services."""

    id: UUID
    name: str
    profession: str = ""
    permissions: RolePermissions = field(default_factory=RolePermissions)

    @property
    def role(self) -> Profession | None:
        return Profession.parse(self.profession)
