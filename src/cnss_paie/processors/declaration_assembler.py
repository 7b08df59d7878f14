import logging
from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple

from ..config.rates import RateTable
from ..exceptions import AssemblyError
from ..models.declaration import (
    CompanyRegistration, Declaration, DeclarationLine, Situation, build_declaration,
)
from ..models.employee import CompensationProfile, ContractType
from ..models.payroll import PayrollCalculation, Period
from ..utils.formatters import round_amount

logger = logging.getLogger(__name__)

ProfileCalculation = Tuple[CompensationProfile, PayrollCalculation]


def count_working_days(start: date, end: date) -> int:
    """Monday to Saturday days from ``start`` to ``end`` inclusive"""
    days = 0
    current = start
    while current <= end:
        if current.weekday() != 6:
            days += 1
        current += timedelta(days=1)
    return days


class DeclarationAssembler:
    """
    Build the monthly CNSS declaration from (profile, calculation) pairs.

    Lines carry copies of the values they were built from; the declaration
    comes out in DRAFT with totals summed from its lines.
    """

    def __init__(self, company: CompanyRegistration, rates: RateTable):
        self.company = company
        self.rates = rates

    def assemble(self, period: Period, pairs: Iterable[ProfileCalculation]) -> Declaration:
        lines: List[DeclarationLine] = []
        for profile, calculation in pairs:
            line = self.build_line(period, profile, calculation)
            if line is not None:
                lines.append(line)

        declaration = build_declaration(
            self.company, period, lines,
            social_ceiling=self.rates.social_ceiling,
            family_allowance_rate=self.rates.family_allowance_rate,
        )
        logger.info(
            "Assembled declaration %s/%s with %d line(s), gross %s",
            self.company.affiliation_number, period,
            declaration.totals.headcount, declaration.totals.total_gross,
        )
        return declaration

    def build_line(self, period: Period, profile: CompensationProfile,
                   calculation: PayrollCalculation) -> Optional[DeclarationLine]:
        """Line for one employee, or None when the employee is not declared"""
        if calculation.employee_id != profile.employee_id:
            raise AssemblyError(
                f"Calculation for {calculation.employee_id} paired with profile {profile.employee_id}"
            )
        if calculation.period != period:
            raise AssemblyError(
                f"Calculation for {profile.employee_id} is for {calculation.period}, not {period}"
            )

        contract = ContractType.parse(profile.contract_type)
        if contract is ContractType.FREELANCE:
            logger.info("Excluding %s from CNSS declaration %s: freelance contract",
                        profile.employee_id, period)
            return None
        if profile.termination_date and profile.termination_date < period.start:
            logger.info("Excluding %s from CNSS declaration %s: departed on %s",
                        profile.employee_id, period, profile.termination_date)
            return None

        departure = profile.termination_date if (
            profile.termination_date and period.contains(profile.termination_date)
        ) else None
        if departure:
            situation = Situation.DEPARTED
        elif profile.on_unpaid_leave:
            situation = Situation.ON_UNPAID_LEAVE
        else:
            situation = Situation.ACTIVE

        gross = calculation.total_gross
        return DeclarationLine(
            employee_id=profile.employee_id,
            social_security_number=profile.social_security_number,
            national_id=profile.national_id,
            last_name=profile.last_name,
            first_name=profile.first_name,
            birth_date=profile.birth_date,
            hire_date=profile.hire_date,
            departure_date=departure,
            worked_days=self.worked_days(period, profile, departure),
            gross=gross,
            capped_gross=min(gross, self.rates.social_ceiling),
            employee_contribution=calculation.employee_social,
            employer_contribution=calculation.employer_social,
            family_allowance=round_amount(gross * self.rates.family_allowance_rate),
            training_tax=calculation.employer_training,
            situation=situation,
            contract_type=contract,
        )

    def worked_days(self, period: Period, profile: CompensationProfile,
                    departure: Optional[date]) -> int:
        if profile.worked_days is not None:
            return profile.worked_days
        if profile.on_unpaid_leave:
            raise AssemblyError(
                f"{profile.employee_id} is on unpaid leave in {period}; worked days must be given"
            )

        full_month = self.rates.full_month_days
        hired_in_period = profile.hire_date and profile.hire_date > period.start
        if not departure and not hired_in_period:
            return full_month
        first = profile.hire_date if hired_in_period else period.start
        last = departure or period.end
        return min(count_working_days(first, last), full_month)


def assemble(company: CompanyRegistration, period: Period,
             pairs: Iterable[ProfileCalculation], rates: RateTable) -> Declaration:
    return DeclarationAssembler(company, rates).assemble(period, pairs)
