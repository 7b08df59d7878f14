import calendar
from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict

from ..exceptions import CalculationError


@dataclass(frozen=True, order=True)
class Period:
    """Monthly pay period"""
    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise CalculationError("period.month", f"month must be between 1 and 12, got {self.month}")

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    @property
    def yyyymm(self) -> str:
        return f"{self.year:04d}{self.month:02d}"

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def __str__(self):
        return f"{self.year}-{self.month:02d}"


@dataclass(frozen=True)
class PayrollCalculation:
    """
    Itemized result of one employee's payroll for one period.

    Amounts are stored rounded to the centime; they are derived from
    unrounded intermediates, so a total may differ by a centime from the
    sum of its rounded parts.
    """
    employee_id: str
    period: Period
    seniority_months: int
    seniority_rate: Decimal
    base_salary: Decimal
    seniority_bonus: Decimal
    taxable_allowances: Decimal
    non_taxable_allowances: Decimal
    overtime_pay: Decimal
    taxable_gross: Decimal
    total_gross: Decimal
    social_base: Decimal
    health_base: Decimal
    employee_social: Decimal
    employee_health: Decimal
    voluntary_deductions: Decimal
    professional_expenses: Decimal
    net_taxable_income: Decimal
    gross_income_tax: Decimal
    family_credit: Decimal
    net_income_tax: Decimal
    post_tax_deductions: Decimal
    net_pay: Decimal
    employer_social: Decimal
    employer_health: Decimal
    employer_training: Decimal
    employer_contributions: Decimal
    total_employer_cost: Decimal

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["period"] = {"year": self.period.year, "month": self.period.month}
        for key, value in data.items():
            if isinstance(value, Decimal):
                data[key] = f"{value:.2f}" if key != "seniority_rate" else str(value)
        return data
