"""
ORM model per signed record kind.

The signature service and the notification center both resolve an
``EntityKind`` to its mapped class through ``RECORD_MODELS``.
"""

from grant_kernel.domain.entity_kind import EntityKind
from grant_modules.employee_loans.orm import EmployeeLoanModel
from grant_modules.engagements.orm import EngagementModel
from grant_modules.payments.orm import PaymentModel
from grant_modules.prefinancing.orm import PrefinancingModel

RECORD_MODELS = {
    EntityKind.ENGAGEMENT: EngagementModel,
    EntityKind.PAYMENT: PaymentModel,
    EntityKind.PREFINANCING: PrefinancingModel,
    EntityKind.EMPLOYEE_LOAN: EmployeeLoanModel,
}
