"""
Period pipeline: calculate every employee, assemble, validate.

Calculations fan out over a thread pool and are joined before anything is
assembled. A failing employee fails the whole batch, so callers never see a
declaration built from part of the workforce.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from ..config.rates import RateTable
from ..config.settings import PAYROLL_WORKERS
from ..exceptions import BatchCalculationError, CalculationError
from ..models.declaration import CompanyRegistration, Declaration
from ..models.employee import CompensationProfile
from ..models.payroll import PayrollCalculation, Period
from ..models.workflow import mark_validated
from .declaration_assembler import DeclarationAssembler
from .declaration_validator import ValidationResult, validate
from .salary_calculator import SalaryCalculator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedDeclaration:
    declaration: Declaration
    validation: ValidationResult
    calculations: Tuple[Tuple[CompensationProfile, PayrollCalculation], ...]

    @property
    def valid(self) -> bool:
        return self.validation.valid


def calculate_batch(profiles: Iterable[CompensationProfile], period: Period, rates: RateTable,
                    max_workers: Optional[int] = None) -> List[Tuple[CompensationProfile, PayrollCalculation]]:
    """Calculate all profiles; results keep the input order"""
    profiles = list(profiles)
    calculator = SalaryCalculator(rates)
    workers = max_workers or PAYROLL_WORKERS

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [(profile, executor.submit(calculator.calculate, profile, period))
                   for profile in profiles]

    results = []
    failures: Dict[str, CalculationError] = {}
    for profile, future in futures:
        try:
            results.append((profile, future.result()))
        except CalculationError as e:
            failures[profile.employee_id] = e

    if failures:
        logger.error("Payroll batch %s failed for %d of %d employee(s)",
                     period, len(failures), len(profiles))
        raise BatchCalculationError(failures)

    logger.info("Calculated payroll %s for %d employee(s)", period, len(results))
    return results


def prepare_declaration(company: CompanyRegistration, period: Period,
                        profiles: Iterable[CompensationProfile], rates: RateTable,
                        max_workers: Optional[int] = None,
                        today: Optional[date] = None) -> PreparedDeclaration:
    """
    Run calculate, assemble and validate for one period.

    The declaration comes back VALIDATED when validation passes and stays
    DRAFT otherwise, with the errors in ``validation``.
    """
    pairs = calculate_batch(profiles, period, rates, max_workers)
    declaration = DeclarationAssembler(company, rates).assemble(period, pairs)
    result = validate(declaration, today=today)
    if result.valid:
        declaration = mark_validated(declaration, result, on=today)
    return PreparedDeclaration(declaration=declaration, validation=result, calculations=tuple(pairs))
