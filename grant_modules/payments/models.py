"""
Payment Domain Models (``grant_modules.payments.models``).

Frozen value objects for payments made against an engagement.  Each
payment owns one ApprovalState, created empty.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from grant_kernel.domain.approval import ApprovalState


class PaymentStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    CASHED = "cashed"
    REJECTED = "rejected"


class PaymentMethod(Enum):
    CHECK = "check"
    TRANSFER = "transfer"
    CASH = "cash"


@dataclass(frozen=True)
class PaymentDocuments:
    """Supporting paperwork references attached to a payment."""

    invoice_number: str = ""
    invoice_amount: Decimal | None = None
    quote_reference: str = ""
    delivery_note: str = ""
    purchase_order_number: str = ""
    service_acceptance: bool = False
    control_notes: str = ""


@dataclass(frozen=True)
class Payment:
    id: UUID
    grant_id: UUID
    budget_line_id: UUID
    sub_budget_line_id: UUID
    engagement_id: UUID
    payment_number: str
    amount: Decimal
    date: date
    payment_method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    supplier: str = ""
    description: str = ""
    check_number: str = ""
    bank_reference: str = ""
    cashed_date: date | None = None
    documents: PaymentDocuments = field(default_factory=PaymentDocuments)
    approvals: ApprovalState = field(default_factory=ApprovalState)

    @property
    def is_cashed(self) -> bool:
        return self.status is PaymentStatus.CASHED
