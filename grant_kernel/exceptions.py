"""
Typed Exception Hierarchy for Budget BASE.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers must never parse error messages to decide what happened. Every
error raised by the kernel, engines, modules or services:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)

Example:
    try:
        signatures.sign(EntityKind.PAYMENT, payment_id, actor, ApprovalSlot.FINAL_APPROVAL)
    except SigningNotAllowedError as e:
        warn_user(e.reason)                 # structured data
        api_response(code=e.code, slot=e.slot)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BudgetBaseError (base)
    |
    +-- PermissionDeniedError
    |   +-- SigningNotAllowedError
    |   +-- CapabilityDeniedError
    |
    +-- ValidationError
    |   +-- MissingFieldError
    |   +-- InvalidAmountError
    |   +-- InvalidStatusError
    |   +-- InvalidDateRangeError
    |   +-- OverRepaymentError
    |   +-- ParentMismatchError
    |   +-- LinkedBankAccountError
    |
    +-- PersistenceError
    |   +-- StoreReadError
    |   +-- StoreWriteError
    |   +-- SettingsWriteError
    |
    +-- NotFoundError
    |   +-- RecordNotFoundError
    |   +-- RollupTargetNotFoundError
    |
    +-- SelectionError
        +-- InvalidSelectionStateError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                     | When Raised
-------------|--------------------------|-------------------------------------------
Permission   | SIGNING_NOT_ALLOWED      | can_sign() false at the moment of signing
             | CAPABILITY_DENIED        | Actor lacks module/action capability
-------------|--------------------------|-------------------------------------------
Validation   | MISSING_FIELD            | Required field empty before submission
             | INVALID_AMOUNT           | Amount not positive / not a number
             | INVALID_STATUS           | Status value outside the entity's set
             | INVALID_DATE_RANGE       | End date before start date
             | OVER_REPAYMENT           | Repayment would exceed the principal
             | PARENT_MISMATCH          | Sub-line not under the given budget line
             | LINKED_BANK_ACCOUNT      | Direct delete of a grant-linked account
-------------|--------------------------|-------------------------------------------
Persistence  | STORE_READ_FAILED        | CRUD read failed
             | STORE_WRITE_FAILED       | CRUD write failed (session rolled back)
             | SETTINGS_WRITE_FAILED    | Remote settings write failed
-------------|--------------------------|-------------------------------------------
Not found    | RECORD_NOT_FOUND         | Referenced record does not exist
             | ROLLUP_TARGET_NOT_FOUND  | Rollup parent missing (logged, skipped)
-------------|--------------------------|-------------------------------------------
Selection    | INVALID_SELECTION_STATE  | Selection used before initial load

===============================================================================
HANDLING PATTERNS
===============================================================================

1. PermissionDeniedError -> user-visible warning, no state change.
2. ValidationError -> surfaced before any persistence call is attempted.
3. PersistenceError -> session already rolled back; local state unchanged.
4. RollupTargetNotFoundError -> caught inside the rollup, logged as a
   data-integrity warning; the rest of the operation completes.

None of these errors is fatal and none is retried automatically.
"""

from decimal import Decimal


class BudgetBaseError(Exception):
    """
    Base exception for all Budget BASE errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "BUDGET_BASE_ERROR"


# Permission-related exceptions


class PermissionDeniedError(BudgetBaseError):
    """Base exception for refused actions."""

    code: str = "PERMISSION_DENIED"


class SigningNotAllowedError(PermissionDeniedError):
    """The acting profession may not sign this slot on this record right now."""

    code: str = "SIGNING_NOT_ALLOWED"

    def __init__(
        self,
        entity_type: str,
        record_id: str,
        slot: str,
        profession: str | None,
        reason: str,
    ):
        self.entity_type = entity_type
        self.record_id = record_id
        self.slot = slot
        self.profession = profession
        self.reason = reason
        super().__init__(
            f"Cannot sign {slot} on {entity_type} {record_id}: {reason}"
        )


class CapabilityDeniedError(PermissionDeniedError):
    """Actor lacks the module/action capability for an operation."""

    code: str = "CAPABILITY_DENIED"

    def __init__(self, actor_id: str, module: str, action: str):
        self.actor_id = actor_id
        self.module = module
        self.action = action
        super().__init__(
            f"Actor {actor_id} is not allowed to {action} in {module}"
        )


# Validation-related exceptions


class ValidationError(BudgetBaseError):
    """Base exception for input rejected before persistence."""

    code: str = "VALIDATION_ERROR"


class MissingFieldError(ValidationError):
    """A required field is missing or blank."""

    code: str = "MISSING_FIELD"

    def __init__(self, entity_type: str, field_name: str):
        self.entity_type = entity_type
        self.field_name = field_name
        super().__init__(f"{entity_type}: field '{field_name}' is required")


class InvalidAmountError(ValidationError):
    """An amount is not a positive decimal."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field_name: str, amount: object):
        self.field_name = field_name
        self.amount = str(amount)
        super().__init__(f"Invalid amount for '{field_name}': {amount}")


class InvalidStatusError(ValidationError):
    """A status value is not part of the entity's lifecycle."""

    code: str = "INVALID_STATUS"

    def __init__(self, entity_type: str, status: str):
        self.entity_type = entity_type
        self.status = status
        super().__init__(f"Invalid status for {entity_type}: {status}")


class InvalidDateRangeError(ValidationError):
    """An end date precedes its start date."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, entity_type: str, start_field: str, end_field: str):
        self.entity_type = entity_type
        self.start_field = start_field
        self.end_field = end_field
        super().__init__(f"{entity_type}: {end_field} must not precede {start_field}")


class OverRepaymentError(ValidationError):
    """A repayment would take the ledger total above the principal."""

    code: str = "OVER_REPAYMENT"

    def __init__(
        self,
        record_id: str,
        principal: Decimal,
        total_repaid: Decimal,
        attempted: Decimal,
    ):
        self.record_id = record_id
        self.principal = principal
        self.total_repaid = total_repaid
        self.attempted = attempted
        super().__init__(
            f"Repayment of {attempted} on {record_id} exceeds principal "
            f"{principal} (already repaid {total_repaid})"
        )


class ParentMismatchError(ValidationError):
    """A child record references a parent that does not own it."""

    code: str = "PARENT_MISMATCH"

    def __init__(self, child_type: str, child_id: str, parent_type: str, parent_id: str):
        self.child_type = child_type
        self.child_id = child_id
        self.parent_type = parent_type
        self.parent_id = parent_id
        super().__init__(
            f"{child_type} {child_id} does not belong to {parent_type} {parent_id}"
        )


class LinkedBankAccountError(ValidationError):
    """Grant-linked bank accounts can only change through their grant."""

    code: str = "LINKED_BANK_ACCOUNT"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(
            f"Bank account {account_id} is linked to a grant; "
            "edit the grant to change it"
        )


# Persistence-related exceptions


class PersistenceError(BudgetBaseError):
    """Base exception for failed store calls."""

    code: str = "PERSISTENCE_ERROR"


class StoreReadError(PersistenceError):
    """Reading a collection or record failed."""

    code: str = "STORE_READ_FAILED"

    def __init__(self, entity_type: str, detail: str = ""):
        self.entity_type = entity_type
        self.detail = detail
        super().__init__(f"Failed to read {entity_type}: {detail}")


class StoreWriteError(PersistenceError):
    """A create/update/delete call failed; the session was rolled back."""

    code: str = "STORE_WRITE_FAILED"

    def __init__(self, entity_type: str, operation: str, record_id: str | None, detail: str = ""):
        self.entity_type = entity_type
        self.operation = operation
        self.record_id = record_id
        self.detail = detail
        super().__init__(
            f"Failed to {operation} {entity_type} {record_id or ''}: {detail}".rstrip()
        )


class SettingsWriteError(PersistenceError):
    """The remote key-value settings write failed."""

    code: str = "SETTINGS_WRITE_FAILED"

    def __init__(self, key: str, detail: str = ""):
        self.key = key
        self.detail = detail
        super().__init__(f"Failed to save setting '{key}': {detail}")


# Lookup-related exceptions


class NotFoundError(BudgetBaseError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class RecordNotFoundError(NotFoundError):
    """A referenced record does not exist."""

    code: str = "RECORD_NOT_FOUND"

    def __init__(self, entity_type: str, record_id: str):
        self.entity_type = entity_type
        self.record_id = record_id
        super().__init__(f"{entity_type} not found: {record_id}")


class RollupTargetNotFoundError(NotFoundError):
    """A parent targeted by an amount rollup step is missing."""

    code: str = "ROLLUP_TARGET_NOT_FOUND"

    def __init__(self, entity_type: str, record_id: str):
        self.entity_type = entity_type
        self.record_id = record_id
        super().__init__(f"Rollup target {entity_type} not found: {record_id}")


# Grant selection exceptions


class SelectionError(BudgetBaseError):
    """Base exception for active-grant selection errors."""

    code: str = "SELECTION_ERROR"


class InvalidSelectionStateError(SelectionError):
    """Operation not allowed in the current selection state."""

    code: str = "INVALID_SELECTION_STATE"

    def __init__(self, state: str, operation: str):
        self.state = state
        self.operation = operation
        super().__init__(f"Cannot {operation} while selection is {state}")
