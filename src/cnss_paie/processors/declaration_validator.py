"""
Business-rule validation of an assembled CNSS declaration.

Every rule is checked and every failure reported; a declaration is only
encodable once ``validate`` returns a valid result for its exact content.
"""
import logging
import unicodedata
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from ..models.declaration import Declaration, DeclarationTotals
from ..models.employee import ContractType
from ..utils.formatters import ascii_upper
from ..utils.validators import (
    validate_affiliation_number, validate_cnss_number, validate_ice, validate_national_id,
)

logger = logging.getLogger(__name__)

TOTAL_TOLERANCE = Decimal("0.01")
MIN_YEAR = 2000
MAX_WORKED_DAYS = 31


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
    fingerprint: str = ""

    def to_dict(self):
        return {"valid": self.valid, "errors": list(self.errors)}


def validate(declaration: Declaration, today: Optional[date] = None) -> ValidationResult:
    """Check a declaration against the CNSS rules; raises only when no declaration is given"""
    if declaration is None:
        raise TypeError("validate() requires a declaration, got None")
    if not isinstance(declaration, Declaration):
        raise TypeError(f"validate() requires a Declaration, got {type(declaration).__name__}")

    today = today or date.today()
    errors: List[str] = []

    company = declaration.company
    if not validate_affiliation_number(company.affiliation_number):
        errors.append(
            f"Registration number must be exactly 8 digits, got {company.affiliation_number!r}"
        )
    if not validate_ice(company.ice):
        errors.append(f"ICE must be exactly 15 characters, got {company.ice!r}")

    period = declaration.period
    if not 1 <= period.month <= 12:
        errors.append(f"Month must be between 1 and 12, got {period.month}")
    if not MIN_YEAR <= period.year <= today.year + 1:
        errors.append(f"Year must be between {MIN_YEAR} and {today.year + 1}, got {period.year}")

    if not declaration.lines:
        errors.append("Declaration has no employee lines")

    seen = set()
    for line in declaration.lines:
        errors.extend(_line_errors(line, declaration.social_ceiling, today))
        if line.employee_id in seen:
            errors.append(f"Employee {line.employee_id} appears more than once")
        seen.add(line.employee_id)

    expected = DeclarationTotals.from_lines(declaration.lines)
    if declaration.totals.headcount != expected.headcount:
        errors.append(
            f"Total headcount is {declaration.totals.headcount}, lines give {expected.headcount}"
        )
    for (name, declared), (_, computed) in zip(declaration.totals.monetary_items(),
                                               expected.monetary_items()):
        if abs(declared - computed) > TOTAL_TOLERANCE:
            errors.append(f"Total {name} is {declared}, lines sum to {computed}")

    result = ValidationResult(
        valid=not errors,
        errors=errors,
        fingerprint=declaration.fingerprint(),
    )
    if errors:
        logger.warning(
            "Declaration %s/%s failed validation with %d error(s)",
            company.affiliation_number, period, len(errors),
        )
    return result


def _line_errors(line, ceiling: Decimal, today: date) -> List[str]:
    label = f"Employee {line.employee_id}"
    errors = []
    if not validate_cnss_number(line.social_security_number):
        errors.append(f"{label}: social security number must be 9 digits")
    if not validate_national_id(line.national_id):
        errors.append(f"{label}: national ID must be 5 to 10 characters")
    for name, value in (("last name", line.last_name), ("first name", line.first_name)):
        if not (value or "").strip():
            errors.append(f"{label}: {name} is empty")
        elif not _encodable(value):
            errors.append(f"{label}: {name} {value!r} cannot be written as printable ASCII")
    if line.national_id and not _encodable(line.national_id):
        errors.append(f"{label}: national ID {line.national_id!r} cannot be written as printable ASCII")
    if line.contract_type is ContractType.FREELANCE:
        errors.append(f"{label}: freelance contracts are not declared to the CNSS")
    if line.gross < 0:
        errors.append(f"{label}: gross salary is negative")
    if line.capped_gross > ceiling:
        errors.append(f"{label}: capped gross {line.capped_gross} exceeds the ceiling {ceiling}")
    if not 0 <= line.worked_days <= MAX_WORKED_DAYS:
        errors.append(f"{label}: worked days must be between 0 and {MAX_WORKED_DAYS}")
    if line.hire_date and line.hire_date > today:
        errors.append(f"{label}: hire date {line.hire_date} is in the future")
    if line.departure_date and line.hire_date and line.departure_date < line.hire_date:
        errors.append(f"{label}: departure date is before the hire date")
    return errors


def _encodable(text: str) -> bool:
    """True when accent folding keeps every character and leaves printable ASCII"""
    folded = ascii_upper(text)
    if len(folded) != len(_base_characters(text)):
        return False
    return all(" " <= char <= "~" for char in folded)


def _base_characters(text: str) -> str:
    return "".join(char for char in unicodedata.normalize("NFKD", text)
                   if not unicodedata.combining(char))
