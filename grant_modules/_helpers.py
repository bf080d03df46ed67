"""
Shared validation and capability helpers for module services.

Used by grant_modules/*/service.py so every service validates input and
checks capabilities the same way, before any persistence call.

Architecture: Modules layer.  Imports only from grant_kernel.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar

from grant_kernel.domain.permissions import Actor
from grant_kernel.exceptions import (
    CapabilityDeniedError,
    InvalidAmountError,
    InvalidDateRangeError,
    InvalidStatusError,
    MissingFieldError,
)
from grant_kernel.logging_config import get_logger

logger = get_logger("modules.helpers")

ChangeListener = Callable[[str], None]
"""Called with the entity type after a committed write."""

EnumT = TypeVar("EnumT", bound=Enum)

ZERO = Decimal("0")


def require_capability(actor: Actor, module: str, action: str) -> None:
    if not actor.permissions.has_permission(module, action):
        logger.warning(
            "capability_denied",
            extra={"actor_id": str(actor.id), "permission_module": module, "action": action},
        )
        raise CapabilityDeniedError(str(actor.id), module, action)


def require_text(entity_type: str, field_name: str, value: str | None) -> str:
    text = (value or "").strip()
    if not text:
        raise MissingFieldError(entity_type, field_name)
    return text


def to_decimal(field_name: str, value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(field_name, value)
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(field_name, value) from None
    if not amount.is_finite():
        raise InvalidAmountError(field_name, value)
    return amount


def require_positive_amount(field_name: str, value: Any) -> Decimal:
    amount = to_decimal(field_name, value)
    if amount <= ZERO:
        raise InvalidAmountError(field_name, value)
    return amount


def require_non_negative_amount(field_name: str, value: Any) -> Decimal:
    amount = to_decimal(field_name, value)
    if amount < ZERO:
        raise InvalidAmountError(field_name, value)
    return amount


def parse_status(entity_type: str, enum_cls: type[EnumT], value: EnumT | str) -> EnumT:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidStatusError(entity_type, str(value)) from None


def require_date_order(
    entity_type: str,
    start: date | None,
    end: date | None,
    start_field: str,
    end_field: str,
) -> None:
    if start is not None and end is not None and end < start:
        raise InvalidDateRangeError(entity_type, start_field, end_field)


def reject_unknown_fields(entity_type: str, changes: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = sorted(set(changes) - allowed)
    if unknown:
        raise TypeError(f"{entity_type}: cannot update field(s) {', '.join(unknown)}")


def notify(listener: ChangeListener | None, entity_type: str) -> None:
    if listener is not None:
        listener(entity_type)
