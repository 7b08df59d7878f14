from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..exceptions import CalculationError


class MaritalStatus(str, Enum):
    SINGLE = "single"
    MARRIED = "married"
    DIVORCED = "divorced"
    WIDOWED = "widowed"

    @classmethod
    def parse(cls, value) -> "MaritalStatus":
        """Accept the enum, its value, or the payroll codes (CELIBATAIRE, MARIE, ...)"""
        if isinstance(value, cls):
            return value
        code = str(value or "").strip().lower()
        code = _MARITAL_ALIASES.get(code, code)
        try:
            return cls(code)
        except ValueError:
            raise CalculationError("marital_status", f"unknown marital status code {value!r}")


_MARITAL_ALIASES = {
    "celibataire": "single",
    "marie": "married",
    "divorce": "divorced",
    "veuf": "widowed",
}


class ContractType(str, Enum):
    PERMANENT = "permanent"
    FIXED_TERM = "fixed_term"
    INTERIM = "interim"
    INTERNSHIP = "internship"
    FREELANCE = "freelance"

    @property
    def bds_code(self) -> str:
        """One-character contract code of a B02 record"""
        try:
            return _CONTRACT_BDS_CODES[self]
        except KeyError:
            raise ValueError(f"{self.value} contracts are not declared to the CNSS")

    @classmethod
    def parse(cls, value) -> "ContractType":
        if isinstance(value, cls):
            return value
        code = str(value or "").strip().lower()
        code = _CONTRACT_ALIASES.get(code, code)
        try:
            return cls(code)
        except ValueError:
            raise CalculationError("contract_type", f"unknown contract type {value!r}")


_CONTRACT_BDS_CODES = {
    ContractType.PERMANENT: "1",
    ContractType.FIXED_TERM: "2",
    ContractType.INTERIM: "3",
    ContractType.INTERNSHIP: "4",
}

_CONTRACT_ALIASES = {
    "cdi": "permanent",
    "cdd": "fixed_term",
    "fixed-term": "fixed_term",
    "stage": "internship",
}


@dataclass(frozen=True)
class TaxableAllowances:
    """Taxable monthly allowances (primes et indemnités imposables)"""
    transport: Decimal = Decimal("0")
    meal: Decimal = Decimal("0")
    representation: Decimal = Decimal("0")
    travel: Decimal = Decimal("0")
    other: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.transport + self.meal + self.representation + self.travel + self.other

    def items(self):
        return (
            ("transport", self.transport),
            ("meal", self.meal),
            ("representation", self.representation),
            ("travel", self.travel),
            ("other", self.other),
        )


@dataclass(frozen=True)
class CompensationProfile:
    """
    Contractual and period data of one employee, as read from the employee
    store. Never mutated by the engine.

    ``overtime_hours`` holds one hour count per premium tier of the rate
    table (25%, 50%, 100%). ``dependent_children`` is an explicit input and
    is never inferred from age or marital status.
    """
    employee_id: str
    last_name: str
    first_name: str
    national_id: str
    social_security_number: str
    hire_date: date
    base_salary: Decimal
    marital_status: Any = MaritalStatus.SINGLE
    dependent_children: int = 0
    contract_type: Any = ContractType.PERMANENT
    birth_date: Optional[date] = None
    termination_date: Optional[date] = None
    on_unpaid_leave: bool = False
    worked_days: Optional[int] = None
    taxable_allowances: TaxableAllowances = field(default_factory=TaxableAllowances)
    non_taxable_allowances: Decimal = Decimal("0")
    supplementary_pension_rate: Decimal = Decimal("0")
    supplementary_pension_amount: Decimal = Decimal("0")
    mutual_insurance_rate: Decimal = Decimal("0")
    mutual_insurance_amount: Decimal = Decimal("0")
    overtime_hours: Tuple[Decimal, ...] = ()
    salary_advance: Decimal = Decimal("0")
    other_deductions: Decimal = Decimal("0")

    @property
    def full_name(self) -> str:
        return f"{self.last_name} {self.first_name}"

    def __str__(self):
        return f"CompensationProfile({self.employee_id}, {self.full_name})"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompensationProfile":
        """Build a profile from JSON-like data; conversion problems name the field"""
        errors = {}

        def money(key):
            return _to_decimal(data.get(key), key, errors)

        def day(key, required=False):
            raw = data.get(key)
            if raw in (None, ""):
                if required:
                    errors[key] = "required"
                return None
            if isinstance(raw, date):
                return raw
            try:
                return datetime.strptime(str(raw), "%Y-%m-%d").date()
            except ValueError:
                errors[key] = f"not a YYYY-MM-DD date: {raw!r}"
                return None

        def integer(key, default=None):
            raw = data.get(key, default)
            if raw is None:
                return None
            try:
                return int(raw)
            except (TypeError, ValueError):
                errors[key] = f"not an integer: {raw!r}"
                return default

        for key in ("employee_id", "last_name", "first_name", "base_salary"):
            if data.get(key) in (None, ""):
                errors[key] = "required"

        allowances = data.get("taxable_allowances") or {}
        taxable = TaxableAllowances(**{
            name: _to_decimal(allowances.get(name), f"taxable_allowances.{name}", errors)
            for name in ("transport", "meal", "representation", "travel", "other")
        })
        overtime = tuple(
            _to_decimal(hours, f"overtime_hours[{index}]", errors)
            for index, hours in enumerate(data.get("overtime_hours") or ())
        )

        profile = cls(
            employee_id=str(data.get("employee_id") or ""),
            last_name=str(data.get("last_name") or ""),
            first_name=str(data.get("first_name") or ""),
            national_id=str(data.get("national_id") or ""),
            social_security_number=str(data.get("social_security_number") or ""),
            hire_date=day("hire_date", required=True),
            base_salary=money("base_salary"),
            marital_status=data.get("marital_status", MaritalStatus.SINGLE.value),
            dependent_children=integer("dependent_children", 0),
            contract_type=data.get("contract_type", ContractType.PERMANENT.value),
            birth_date=day("birth_date"),
            termination_date=day("termination_date"),
            on_unpaid_leave=bool(data.get("on_unpaid_leave", False)),
            worked_days=integer("worked_days"),
            taxable_allowances=taxable,
            non_taxable_allowances=money("non_taxable_allowances"),
            supplementary_pension_rate=money("supplementary_pension_rate"),
            supplementary_pension_amount=money("supplementary_pension_amount"),
            mutual_insurance_rate=money("mutual_insurance_rate"),
            mutual_insurance_amount=money("mutual_insurance_amount"),
            overtime_hours=overtime,
            salary_advance=money("salary_advance"),
            other_deductions=money("other_deductions"),
        )
        if errors:
            raise CalculationError.from_errors(errors)
        return profile

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "last_name": self.last_name,
            "first_name": self.first_name,
            "national_id": self.national_id,
            "social_security_number": self.social_security_number,
            "hire_date": self.hire_date.isoformat() if self.hire_date else None,
            "base_salary": str(self.base_salary),
            "marital_status": getattr(self.marital_status, "value", self.marital_status),
            "dependent_children": self.dependent_children,
            "contract_type": getattr(self.contract_type, "value", self.contract_type),
            "birth_date": self.birth_date.isoformat() if self.birth_date else None,
            "termination_date": self.termination_date.isoformat() if self.termination_date else None,
            "on_unpaid_leave": self.on_unpaid_leave,
            "worked_days": self.worked_days,
            "taxable_allowances": {name: str(amount) for name, amount in self.taxable_allowances.items()},
            "non_taxable_allowances": str(self.non_taxable_allowances),
            "supplementary_pension_rate": str(self.supplementary_pension_rate),
            "supplementary_pension_amount": str(self.supplementary_pension_amount),
            "mutual_insurance_rate": str(self.mutual_insurance_rate),
            "mutual_insurance_amount": str(self.mutual_insurance_amount),
            "overtime_hours": [str(hours) for hours in self.overtime_hours],
            "salary_advance": str(self.salary_advance),
            "other_deductions": str(self.other_deductions),
        }


def _to_decimal(raw, key, errors) -> Decimal:
    if raw in (None, ""):
        return Decimal("0")
    try:
        return Decimal(str(raw))
    except (InvalidOperation, ValueError):
        errors[key] = f"not a number: {raw!r}"
        return Decimal("0")
