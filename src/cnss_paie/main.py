import argparse
import logging
import sys
from datetime import date

from .config import settings
from .database.db import init_db, SessionLocal
from .database.repository import PayrollRepository
from .exceptions import AssemblyError, BatchCalculationError
from .models.declaration import CompanyRegistration
from .models.payroll import Period
from .processors import (
    CNSSWorkbookGenerator, PayslipGenerator, prepare_declaration, write_bds, write_csv,
)
from .sources.mock_profiles import MockProfileSource
from .sources.rate_provider import RateTableCache, RateTableProvider
from .utils.formatters import format_currency

logger = logging.getLogger(__name__)


def company_from_settings() -> CompanyRegistration:
    return CompanyRegistration(
        affiliation_number=settings.CNSS_AFFILIATION_NUMBER,
        ice=settings.COMPANY_ICE,
        name=settings.COMPANY_NAME,
        address=settings.COMPANY_ADDRESS,
        city=settings.COMPANY_CITY,
        postal_code=settings.COMPANY_POSTAL_CODE,
    )


def parse_args(argv=None):
    today = date.today()
    parser = argparse.ArgumentParser(
        prog="cnss-paie",
        description="Calculate a month of payroll and produce the CNSS declaration files",
    )
    parser.add_argument("--year", type=int, default=today.year)
    parser.add_argument("--month", type=int, default=today.month)
    parser.add_argument("--workers", type=int, default=settings.PAYROLL_WORKERS,
                        help="threads used for the payroll calculations")
    parser.add_argument("--no-payslips", action="store_true", help="skip the xlsx payslips")
    return parser.parse_args(argv)


def run(year: int, month: int, workers: int = settings.PAYROLL_WORKERS,
        payslips: bool = True) -> int:
    """Run the monthly pipeline; returns the process exit code"""
    period = Period(year, month)
    provider = RateTableProvider(
        cache=RateTableCache(settings.RATE_TABLE_CACHE_TTL, settings.RATE_TABLE_CACHE_SIZE)
    )
    rates = provider.for_period(period)
    profiles = MockProfileSource().get_profiles(period)
    logger.info("Processing %d profile(s) for %s", len(profiles), period)

    try:
        prepared = prepare_declaration(company_from_settings(), period, profiles, rates,
                                       max_workers=workers)
    except BatchCalculationError as e:
        logger.error("Payroll calculation failed: %s", e)
        for message in e.messages():
            print(f"  ✗ {message}")
        return 1
    except AssemblyError as e:
        logger.error("Declaration assembly failed: %s", e)
        print(f"  ✗ {e}")
        return 1

    declaration = prepared.declaration
    files = {}
    db = SessionLocal()
    try:
        repo = PayrollRepository(db)
        for profile, calculation in prepared.calculations:
            repo.save_calculation(calculation)
            if payslips:
                PayslipGenerator().generate(profile, calculation)

        if prepared.valid:
            files['bds'] = str(write_bds(declaration))
        files['csv'] = str(write_csv(declaration))
        files['workbook'] = CNSSWorkbookGenerator().generate(declaration)
        record = repo.save_declaration(declaration, prepared.validation, files)
    finally:
        db.close()

    totals = declaration.totals
    print("=" * 60)
    print(f"CNSS declaration {period} (#{record.id}) - {declaration.status.value}")
    print("=" * 60)
    print(f"Employees declared: {totals.headcount}")
    print(f"Gross:              {format_currency(totals.total_gross)}")
    print(f"Capped gross:       {format_currency(totals.total_capped_gross)}")
    print(f"Total due:          {format_currency(totals.grand_total)}")
    if not prepared.valid:
        print("\nValidation errors:")
        for error in prepared.validation.errors:
            print(f"  ✗ {error}")
    for kind, path in files.items():
        print(f"{kind:>9}: {path}")
    print("=" * 60)
    return 0 if prepared.valid else 2


def main(argv=None):
    """Main entry point for the CNSS payroll run"""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    args = parse_args(argv)

    logger.info("Starting CNSS payroll run")
    logger.info("Initializing database...")
    init_db()

    return run(args.year, args.month, args.workers, payslips=not args.no_payslips)


if __name__ == "__main__":
    sys.exit(main())
