"""
Employee Loan Module Service (``grant_modules.employee_loans.service``).

Responsibility
--------------
Create, edit and delete employee loans and record their repayments.  A
loan becomes ``completed`` once its repayments reach the principal.

Architecture position
---------------------
**Modules layer** -- ``EmployeeLoanService`` is the sole public entry point
for employee loans.  Ledger arithmetic is ``grant_engines.repayment``.

Invariants enforced
-------------------
* Each public method owns the transaction boundary.
* Repayment rows are append-only and carry a fresh UUID string id.
* Over-repayment follows the configured ``OverRepaymentPolicy``.

Failure modes
-------------
* ``CapabilityDeniedError`` -- actor lacks an employee_loans capability.
* ``RecordNotFoundError`` -- unknown grant or loan.
* ``MissingFieldError`` -- blank loan number or employee identity.
* ``InvalidAmountError`` -- non-positive principal, instalment or repayment.
* ``OverRepaymentError`` -- see ``PrefinancingService``.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from grant_engines.repayment import OverRepaymentPolicy, RepaymentSummary, summarize
from grant_kernel.db.repository import Repository
from grant_kernel.domain.approval import ApprovalState
from grant_kernel.domain.clock import Clock, SystemClock
from grant_kernel.domain.entity_kind import EntityKind
from grant_kernel.domain.permissions import Actor
from grant_kernel.exceptions import InvalidAmountError
from grant_kernel.logging_config import get_logger
from grant_modules._helpers import (
    ChangeListener,
    notify,
    parse_status,
    reject_unknown_fields,
    require_capability,
    require_date_order,
    require_positive_amount,
    require_text,
)
from grant_modules._repayments import record_repayment
from grant_modules.employee_loans.models import (
    Employee,
    EmployeeLoan,
    LoanStatus,
    RepaymentFrequency,
    RepaymentSchedule,
)
from grant_modules.employee_loans.orm import EmployeeLoanModel
from grant_modules.grants.orm import GrantModel

logger = get_logger("modules.employee_loans.service")

MODULE = EntityKind.EMPLOYEE_LOAN.module
ENTITY = EntityKind.EMPLOYEE_LOAN.value

_UPDATABLE = frozenset({
    "loan_number", "amount", "date", "expected_repayment_date", "status",
    "description", "budget_line_id", "sub_budget_line_id",
})


class EmployeeLoanService:
    """Employee loans and their repayment ledger."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        over_repayment_policy: OverRepaymentPolicy = OverRepaymentPolicy.REJECT,
        on_change: ChangeListener | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._policy = over_repayment_policy
        self._on_change = on_change
        self._loans = Repository(session, EmployeeLoanModel, ENTITY)

    def create_loan(
        self,
        actor: Actor,
        grant_id: UUID,
        loan_number: str,
        employee: Employee,
        amount: Decimal | str | int,
        repayment_schedule: RepaymentSchedule,
        loan_date: date | None = None,
        expected_repayment_date: date | None = None,
        budget_line_id: UUID | None = None,
        sub_budget_line_id: UUID | None = None,
        description: str = "",
    ) -> EmployeeLoan:
        require_capability(actor, MODULE, "create")
        number = require_text(ENTITY, "loan_number", loan_number)
        person = _clean_employee(employee)
        value = require_positive_amount("amount", amount)
        schedule = _clean_schedule(repayment_schedule)
        start = loan_date or self._clock.today()
        require_date_order(ENTITY, start, expected_repayment_date, "date", "expected_repayment_date")

        try:
            Repository(self._session, GrantModel, "grant").require(grant_id)
            model = EmployeeLoanModel(
                id=uuid4(),
                grant_id=grant_id,
                budget_line_id=budget_line_id,
                sub_budget_line_id=sub_budget_line_id,
                loan_number=number,
                employee_name=person.name,
                employee_id=person.employee_id,
                amount=value,
                date=start,
                expected_repayment_date=expected_repayment_date,
                repayment_schedule=schedule.to_dict(),
                status=LoanStatus.PENDING.value,
                description=(description or "").strip(),
                repayments=[],
                created_by_id=actor.id,
            )
            model.set_approvals(ApprovalState())
            self._loans.add(model)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        if schedule.scheduled_total != value:
            logger.warning("loan_schedule_mismatch", extra={
                "loan_id": str(model.id),
                "amount": str(value),
                "scheduled_total": str(schedule.scheduled_total),
            })
        logger.info("employee_loan_created", extra={
            "loan_id": str(model.id),
            "grant_id": str(grant_id),
            "employee_id": person.employee_id,
            "amount": str(value),
        })
        notify(self._on_change, ENTITY)
        return model.to_dto()

    def update_loan(
        self,
        actor: Actor,
        loan_id: UUID,
        *,
        reset_approvals: bool = False,
        employee: Employee | None = None,
        repayment_schedule: RepaymentSchedule | None = None,
        **changes,
    ) -> EmployeeLoan:
        require_capability(actor, MODULE, "edit")
        reject_unknown_fields(ENTITY, changes, _UPDATABLE)
        if "loan_number" in changes:
            changes["loan_number"] = require_text(ENTITY, "loan_number", changes["loan_number"])
        if "amount" in changes:
            changes["amount"] = require_positive_amount("amount", changes["amount"])
        if "status" in changes:
            changes["status"] = parse_status(ENTITY, LoanStatus, changes["status"]).value
        person = _clean_employee(employee) if employee is not None else None
        schedule = _clean_schedule(repayment_schedule) if repayment_schedule is not None else None

        try:
            model = self._loans.require(loan_id)
            for field_name, value in changes.items():
                setattr(model, field_name, value)
            require_date_order(
                ENTITY, model.date, model.expected_repayment_date, "date", "expected_repayment_date",
            )
            if person is not None:
                model.employee_name = person.name
                model.employee_id = person.employee_id
            if schedule is not None:
                model.repayment_schedule = schedule.to_dict()
            if reset_approvals:
                model.set_approvals(ApprovalState())
            model.updated_by_id = actor.id
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("employee_loan_updated", extra={
            "loan_id": str(loan_id),
            "fields": sorted(changes),
            "approvals_reset": reset_approvals,
        })
        notify(self._on_change, ENTITY)
        return model.to_dto()

    # =========================================================================
    # Repayments
    # =========================================================================

    def add_repayment(
        self,
        actor: Actor,
        loan_id: UUID,
        amount: Decimal | str | int,
        repayment_date: date | None = None,
        reference: str = "",
    ) -> EmployeeLoan:
        """Append a repayment; status becomes ``completed`` once fully repaid."""
        require_capability(actor, MODULE, "edit")
        try:
            model = self._loans.require(loan_id)
            outcome = record_repayment(
                model,
                entity_type=ENTITY,
                terminal_status=LoanStatus.COMPLETED.value,
                entry_date=repayment_date or self._clock.today(),
                amount=amount,
                reference=reference,
                policy=self._policy,
            )
            model.updated_by_id = actor.id
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("employee_loan_repayment_added", extra={
            "loan_id": str(loan_id),
            "amount": str(outcome.appended.amount),
            "total_repaid": str(outcome.summary.total_repaid),
            "remaining": str(outcome.summary.remaining),
            "status": outcome.status,
        })
        notify(self._on_change, ENTITY)
        return model.to_dto()

    def repayment_summary(self, loan_id: UUID) -> RepaymentSummary:
        model = self._loans.require(loan_id)
        return summarize(model.amount, model.get_repayments())

    def delete_loan(self, actor: Actor, loan_id: UUID) -> None:
        require_capability(actor, MODULE, "delete")
        try:
            self._loans.delete(loan_id)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("employee_loan_deleted", extra={"loan_id": str(loan_id)})
        notify(self._on_change, ENTITY)

    def get_loan(self, loan_id: UUID) -> EmployeeLoan:
        return self._loans.require(loan_id).to_dto()

    def list_loans(
        self,
        grant_id: UUID | None = None,
        employee_id: str | None = None,
    ) -> list[EmployeeLoan]:
        filters = {}
        if grant_id is not None:
            filters["grant_id"] = grant_id
        if employee_id is not None:
            filters["employee_id"] = employee_id
        rows = self._loans.get_all(order_by=(EmployeeLoanModel.loan_number,), **filters)
        return [m.to_dto() for m in rows]


def _clean_employee(employee: Employee) -> Employee:
    return Employee(
        name=require_text(ENTITY, "employee.name", employee.name),
        employee_id=require_text(ENTITY, "employee.employee_id", employee.employee_id),
    )


def _clean_schedule(schedule: RepaymentSchedule) -> RepaymentSchedule:
    count = int(schedule.number_of_installments)
    if count <= 0:
        raise InvalidAmountError("number_of_installments", schedule.number_of_installments)
    return RepaymentSchedule(
        installment_amount=require_positive_amount("installment_amount", schedule.installment_amount),
        number_of_installments=count,
        frequency=parse_status(ENTITY, RepaymentFrequency, schedule.frequency),
    )
