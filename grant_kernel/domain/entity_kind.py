"""
The four signed record kinds.

Every kind shares one approval chain and one notification predicate; the
enum carries the permission module each kind is guarded by and the
entity-type label used in logs and errors.
"""

from enum import Enum


class EntityKind(str, Enum):
    """Record kinds that carry an ApprovalState."""

    ENGAGEMENT = "engagement"
    PAYMENT = "payment"
    PREFINANCING = "prefinancing"
    EMPLOYEE_LOAN = "employee_loan"

    @property
    def module(self) -> str:
        """Permission catalogue module guarding this kind."""
        return _MODULES[self]


_MODULES = {
    EntityKind.ENGAGEMENT: "engagements",
    EntityKind.PAYMENT: "payments",
    EntityKind.PREFINANCING: "prefinancing",
    EntityKind.EMPLOYEE_LOAN: "employee_loans",
}
