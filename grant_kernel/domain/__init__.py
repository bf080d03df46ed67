"""
Pure domain layer.

This module contains pure value objects with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.  The clock is the one
injected exception.
"""

from grant_kernel.domain.approval import (
    PROFESSION_SLOT_BINDING,
    SUPERVISOR_SLOTS,
    Approvable,
    ApprovalSlot,
    ApprovalState,
    Profession,
    SlotSignature,
)
from grant_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from grant_kernel.domain.entity_kind import EntityKind
from grant_kernel.domain.permissions import (
    MODULE_CATALOGUE,
    Actor,
    ModuleDefinition,
    RolePermissions,
    available_actions,
)

__all__ = [
    "Approvable",
    "ApprovalSlot",
    "ApprovalState",
    "Profession",
    "PROFESSION_SLOT_BINDING",
    "SUPERVISOR_SLOTS",
    "SlotSignature",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "EntityKind",
    "MODULE_CATALOGUE",
    "Actor",
    "ModuleDefinition",
    "RolePermissions",
    "available_actions",
]
