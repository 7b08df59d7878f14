from typing import Dict, List, Optional


class PayrollError(Exception):
    """Base class for payroll engine errors"""


class CalculationError(PayrollError):
    """
    Raised when a compensation profile or rate table cannot be used for a
    calculation. ``errors`` maps every offending field to its message;
    ``field`` is the first of them.
    """

    def __init__(self, field: str, message: str, errors: Optional[Dict[str, str]] = None):
        self.errors = dict(errors) if errors else {field: message}
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")

    @classmethod
    def from_errors(cls, errors: Dict[str, str]) -> "CalculationError":
        field, message = next(iter(errors.items()))
        return cls(field, message, errors)


class BatchCalculationError(PayrollError):
    """One or more employees of a batch failed to calculate"""

    def __init__(self, failures: Dict[str, CalculationError]):
        self.failures = dict(failures)
        names = ', '.join(sorted(self.failures))
        super().__init__(f"Calculation failed for {len(self.failures)} employee(s): {names}")

    def messages(self) -> List[str]:
        return [
            f"{employee_id}: {error}"
            for employee_id, error in sorted(self.failures.items())
        ]


class AssemblyError(PayrollError):
    """Profile and calculation pairs that cannot form a declaration"""


class EncodingPreconditionError(PayrollError):
    """A declaration was handed to the encoder without passing validation"""


class InvalidTransitionError(PayrollError):
    """Declaration status change not allowed by the lifecycle table"""

    def __init__(self, status, event: str, reason: Optional[str] = None):
        self.status = status
        self.event = event
        detail = f" ({reason})" if reason else ""
        super().__init__(
            f"Cannot apply '{event}' to a declaration in status {getattr(status, 'value', status)}{detail}"
        )
