"""
Payments Module (``grant_modules.payments``).

Payments issued against engagements, with their method (check, transfer
or cash), supporting documents, cashing date and three-slot approval state.
"""

from grant_modules.payments.models import (
    Payment,
    PaymentDocuments,
    PaymentMethod,
    PaymentStatus,
)

__all__ = ["Payment", "PaymentDocuments", "PaymentMethod", "PaymentStatus"]
