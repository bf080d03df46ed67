"""
Employee Loans Module (``grant_modules.employee_loans``).

Loans to employees out of a grant, with an instalment schedule, an
append-only repayment ledger and a three-slot approval state.
"""

from grant_modules.employee_loans.models import (
    Employee,
    EmployeeLoan,
    LoanStatus,
    RepaymentFrequency,
    RepaymentSchedule,
)

__all__ = [
    "Employee",
    "EmployeeLoan",
    "LoanStatus",
    "RepaymentFrequency",
    "RepaymentSchedule",
]
