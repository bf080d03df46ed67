"""
Engagement Domain Models (``grant_modules.engagements.models``).

Frozen value objects for financial commitments against a sub-budget line.
Each engagement owns one ApprovalState, created empty.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from grant_kernel.domain.approval import ApprovalState


class EngagementStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Engagement:
    id: UUID
    grant_id: UUID
    budget_line_id: UUID
    sub_budget_line_id: UUID
    engagement_number: str
    amount: Decimal
    date: date
    status: EngagementStatus = EngagementStatus.PENDING
    description: str = ""
    supplier: str = ""
    quote_reference: str = ""
    invoice_number: str = ""
    approvals: ApprovalState = field(default_factory=ApprovalState)
