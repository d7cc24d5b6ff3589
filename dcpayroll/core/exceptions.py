"""
Typed exceptions for the payroll engine.

Callers catch by type, never by message:

    PayrollError
    +-- ValidationError          fix the input and resubmit
    |   +-- TimeRangeError
    |   +-- PeriodSpanError
    |   +-- ResolutionMethodError
    |   +-- MissingRateCardError
    |   +-- ImportFileError
    +-- ConflictError            retry later, or the record already exists
    |   +-- DuplicatePeriodError
    |   +-- CalculationInProgressError
    |   +-- ConcurrentUpdateError
    +-- StateError               rejected before any write
    |   +-- InvalidTransitionError
    |   +-- PeriodLockedError
    |   +-- UnresolvedDiscrepanciesError
    +-- NotFoundError

Import row failures are not exceptions; they are collected into the
import summary.
"""
import uuid
from datetime import date


class PayrollError(Exception):
    code: str = "PAYROLL_ERROR"
    status_code: int = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ── Validation ────────────────────────────────────────────────────────────────

class ValidationError(PayrollError):
    code = "VALIDATION_ERROR"
    status_code = 422


class TimeRangeError(ValidationError):
    code = "INVALID_TIME_RANGE"


class PeriodSpanError(ValidationError):
    code = "INVALID_PERIOD_SPAN"

    def __init__(self, start_date: date, end_date: date):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"Wage period must span exactly 15 days "
            f"(got {start_date.isoformat()} – {end_date.isoformat()})"
        )


class ResolutionMethodError(ValidationError):
    code = "INVALID_RESOLUTION_METHOD"

    def __init__(self, method: str, discrepancy_type: str):
        self.method = method
        self.discrepancy_type = discrepancy_type
        super().__init__(f"Resolution method '{method}' is not valid for {discrepancy_type}")


class MissingRateCardError(ValidationError):
    code = "MISSING_RATE_CARD"

    def __init__(self, employee_numbers: list[str]):
        self.employee_numbers = employee_numbers
        super().__init__(
            "No income profile effective for workers with reported hours: "
            + ", ".join(employee_numbers)
        )


class ImportFileError(ValidationError):
    code = "INVALID_IMPORT_FILE"


# ── Conflict ──────────────────────────────────────────────────────────────────

class ConflictError(PayrollError):
    code = "CONFLICT"
    status_code = 409


class DuplicatePeriodError(ConflictError):
    code = "DUPLICATE_PERIOD"

    def __init__(self, period_code: str):
        self.period_code = period_code
        super().__init__(f"Wage period {period_code} already exists for this project")


class CalculationInProgressError(ConflictError):
    code = "CALCULATION_IN_PROGRESS"

    def __init__(self, period_id: uuid.UUID):
        self.period_id = period_id
        super().__init__(f"A calculation is already running for period {period_id}")


class ConcurrentUpdateError(ConflictError):
    code = "CONCURRENT_UPDATE"


# ── State ─────────────────────────────────────────────────────────────────────

class StateError(PayrollError):
    code = "INVALID_STATE"
    status_code = 409


class InvalidTransitionError(StateError):
    code = "INVALID_TRANSITION"

    def __init__(self, entity: str, current: str, action: str):
        self.entity = entity
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} {entity} in status '{current}'")


class PeriodLockedError(StateError):
    code = "PERIOD_LOCKED"

    def __init__(self, period_code: str):
        self.period_code = period_code
        super().__init__(f"Wage period {period_code} is locked")


class UnresolvedDiscrepanciesError(StateError):
    code = "UNRESOLVED_DISCREPANCIES"

    def __init__(self, period_code: str, pending: int):
        self.period_code = period_code
        self.pending = pending
        super().__init__(
            f"Wage period {period_code} has {pending} unresolved discrepancies"
        )


# ── Lookup ────────────────────────────────────────────────────────────────────

class NotFoundError(PayrollError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")
