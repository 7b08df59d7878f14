from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from ..exceptions import CalculationError


@dataclass(frozen=True)
class TaxBracket:
    """Monthly income-tax bracket; ``upper`` is None for the open-ended top bracket"""
    lower: Decimal
    upper: Optional[Decimal]
    rate: Decimal


@dataclass(frozen=True)
class SeniorityTier:
    """Seniority bonus rate applying from ``min_months`` of service"""
    min_months: int
    rate: Decimal


@dataclass(frozen=True)
class RateTable:
    """
    Jurisdiction rate table for one effective date.

    All rates are fractions (0.0448 for 4.48%). Amounts are monthly, in MAD.
    """
    effective_from: date
    social_ceiling: Decimal
    social_employee_rate: Decimal
    social_employer_rate: Decimal
    health_employee_rate: Decimal
    health_employer_rate: Decimal
    training_tax_rate: Decimal
    family_allowance_rate: Decimal
    professional_expense_rate: Decimal
    professional_expense_cap: Decimal
    dependent_credit: Decimal
    max_dependents: int
    monthly_hours: Decimal
    overtime_premiums: Tuple[Decimal, ...]
    seniority_tiers: Tuple[SeniorityTier, ...]
    tax_brackets: Tuple[TaxBracket, ...]
    full_month_days: int = 26
    label: str = field(default="")

    @property
    def max_family_credit(self) -> Decimal:
        return self.dependent_credit * self.max_dependents

    def check(self):
        """Raise CalculationError when a required bracket or tier is missing"""
        brackets = self.tax_brackets
        if not brackets:
            raise CalculationError("tax_brackets", "rate table has no income-tax brackets")
        if brackets[0].lower != 0:
            raise CalculationError("tax_brackets", "first income-tax bracket must start at 0")
        for index, (current, following) in enumerate(zip(brackets, brackets[1:])):
            if current.upper is None:
                raise CalculationError(
                    "tax_brackets", f"bracket {index + 1} is open-ended but is not the last bracket"
                )
            if following.lower != current.upper:
                raise CalculationError(
                    "tax_brackets", f"missing bracket between {current.upper} and {following.lower}"
                )
        if brackets[-1].upper is not None:
            raise CalculationError("tax_brackets", "missing open-ended top bracket")
        if not self.seniority_tiers or self.seniority_tiers[0].min_months != 0:
            raise CalculationError("seniority_tiers", "seniority tiers must start at 0 months")
        for current, following in zip(self.seniority_tiers, self.seniority_tiers[1:]):
            if following.min_months <= current.min_months:
                raise CalculationError(
                    "seniority_tiers", f"tier at {following.min_months} months is out of order"
                )
        if len(self.overtime_premiums) == 0:
            raise CalculationError("overtime_premiums", "rate table has no overtime premium tiers")
        if self.monthly_hours <= 0:
            raise CalculationError("monthly_hours", "standard monthly hours must be positive")

    def seniority_rate(self, months: int) -> Decimal:
        rate = Decimal("0")
        for tier in self.seniority_tiers:
            if months >= tier.min_months:
                rate = tier.rate
        return rate


# Barème 2024
RATES_2024 = RateTable(
    effective_from=date(2024, 1, 1),
    social_ceiling=Decimal("6000"),
    social_employee_rate=Decimal("0.0448"),
    social_employer_rate=Decimal("0.0898"),
    health_employee_rate=Decimal("0.0226"),
    health_employer_rate=Decimal("0.0411"),
    training_tax_rate=Decimal("0.016"),
    family_allowance_rate=Decimal("0.06"),
    professional_expense_rate=Decimal("0.20"),
    professional_expense_cap=Decimal("2500"),
    dependent_credit=Decimal("30"),
    max_dependents=6,
    monthly_hours=Decimal("191"),
    overtime_premiums=(Decimal("0.25"), Decimal("0.50"), Decimal("1.00")),
    seniority_tiers=(
        SeniorityTier(0, Decimal("0")),
        SeniorityTier(25, Decimal("0.05")),
        SeniorityTier(61, Decimal("0.10")),
        SeniorityTier(145, Decimal("0.15")),
        SeniorityTier(241, Decimal("0.20")),
        SeniorityTier(301, Decimal("0.25")),
    ),
    tax_brackets=(
        TaxBracket(Decimal("0"), Decimal("2500"), Decimal("0")),
        TaxBracket(Decimal("2500"), Decimal("4166.67"), Decimal("0.10")),
        TaxBracket(Decimal("4166.67"), Decimal("5000"), Decimal("0.20")),
        TaxBracket(Decimal("5000"), Decimal("6666.67"), Decimal("0.30")),
        TaxBracket(Decimal("6666.67"), Decimal("15000"), Decimal("0.34")),
        TaxBracket(Decimal("15000"), None, Decimal("0.38")),
    ),
    label="Barème 2024",
)

DEFAULT_RATE_TABLES = (RATES_2024,)
