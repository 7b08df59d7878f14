import json
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from .models import DeclarationDB, DeclarationSubmissionDB, PayrollCalculationDB
from ..models.declaration import Declaration
from ..models.payroll import PayrollCalculation

logger = logging.getLogger(__name__)


class PayrollRepository:
    """Repository for payroll data operations"""

    def __init__(self, db_session: Session):
        self.db = db_session

    # ========== Payroll Calculation Operations ==========

    def save_calculation(self, calculation: PayrollCalculation) -> PayrollCalculationDB:
        """Save a calculation; the previous one for the same period is superseded, not deleted"""
        period = calculation.period
        previous = self.get_current_calculation(calculation.employee_id, period.year, period.month)
        if previous:
            previous.is_current = False
            previous.superseded_at = datetime.utcnow()
            logger.info("Superseding calculation %s of %s for %s",
                        previous.id, calculation.employee_id, period)

        record = PayrollCalculationDB(
            employee_id=calculation.employee_id,
            year=period.year,
            month=period.month,
            taxable_gross=float(calculation.taxable_gross),
            total_gross=float(calculation.total_gross),
            employee_social=float(calculation.employee_social),
            employee_health=float(calculation.employee_health),
            net_income_tax=float(calculation.net_income_tax),
            net_pay=float(calculation.net_pay),
            employer_contributions=float(calculation.employer_contributions),
            total_employer_cost=float(calculation.total_employer_cost),
            data_json=json.dumps(calculation.to_dict()),
            is_current=True,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def get_current_calculation(self, employee_id: str, year: int, month: int) -> Optional[PayrollCalculationDB]:
        """Get the calculation in force for an employee and period"""
        return self.db.query(PayrollCalculationDB).filter(
            and_(
                PayrollCalculationDB.employee_id == employee_id,
                PayrollCalculationDB.year == year,
                PayrollCalculationDB.month == month,
                PayrollCalculationDB.is_current.is_(True)
            )
        ).first()

    def get_calculation_history(self, employee_id: str, year: int, month: int) -> List[PayrollCalculationDB]:
        """All calculations of an employee for a period, oldest first"""
        return self.db.query(PayrollCalculationDB).filter(
            and_(
                PayrollCalculationDB.employee_id == employee_id,
                PayrollCalculationDB.year == year,
                PayrollCalculationDB.month == month
            )
        ).order_by(PayrollCalculationDB.id).all()

    def get_monthly_calculations(self, year: int, month: int) -> List[PayrollCalculationDB]:
        """Current calculations of everyone for a specific month"""
        return self.db.query(PayrollCalculationDB).filter(
            and_(
                PayrollCalculationDB.year == year,
                PayrollCalculationDB.month == month,
                PayrollCalculationDB.is_current.is_(True)
            )
        ).order_by(PayrollCalculationDB.employee_id).all()

    # ========== Declaration Operations ==========

    def save_declaration(self, declaration: Declaration, validation=None,
                         files: Optional[Dict[str, str]] = None) -> DeclarationDB:
        """Store a declaration snapshot with its validation result and generated files"""
        files = files or {}
        record = DeclarationDB(
            affiliation_number=declaration.company.affiliation_number,
            year=declaration.period.year,
            month=declaration.period.month,
            data_json="{}",
        )
        self._copy_declaration(record, declaration)
        if validation is not None:
            record.validation_json = json.dumps(validation.to_dict())
        record.bds_file_path = files.get('bds')
        record.csv_file_path = files.get('csv')
        record.workbook_file_path = files.get('workbook')

        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def update_declaration(self, declaration_id: int, declaration: Declaration) -> Optional[DeclarationDB]:
        """Replace the stored snapshot after a status change"""
        record = self.get_declaration(declaration_id)
        if record:
            self._copy_declaration(record, declaration)
            self.db.commit()
            self.db.refresh(record)
        return record

    def get_declaration(self, declaration_id: int) -> Optional[DeclarationDB]:
        """Get declaration by ID"""
        return self.db.query(DeclarationDB).filter_by(id=declaration_id).first()

    def load_declaration(self, declaration_id: int) -> Optional[Declaration]:
        record = self.get_declaration(declaration_id)
        if not record:
            return None
        return Declaration.from_dict(json.loads(record.data_json))

    def list_declarations(self, year: Optional[int] = None, month: Optional[int] = None) -> List[DeclarationDB]:
        """Get declarations, newest period first"""
        query = self.db.query(DeclarationDB)
        if year:
            query = query.filter_by(year=year)
        if month:
            query = query.filter_by(month=month)
        return query.order_by(DeclarationDB.year.desc(), DeclarationDB.month.desc(),
                              DeclarationDB.id.desc()).all()

    # ========== Submission Operations ==========

    def record_submission(self, declaration_id: int, status: str,
                          reference_number: Optional[str] = None,
                          response_data: Optional[dict] = None) -> DeclarationSubmissionDB:
        """Save a transmission log entry"""
        submission = DeclarationSubmissionDB(
            declaration_id=declaration_id,
            status=status,
            reference_number=reference_number,
            response_json=json.dumps(response_data) if response_data else None
        )
        self.db.add(submission)
        self.db.commit()
        self.db.refresh(submission)
        return submission

    def get_submissions(self, declaration_id: int) -> List[DeclarationSubmissionDB]:
        return self.db.query(DeclarationSubmissionDB).filter_by(
            declaration_id=declaration_id
        ).order_by(DeclarationSubmissionDB.id).all()

    # ========== Helper Methods ==========

    def _copy_declaration(self, record: DeclarationDB, declaration: Declaration):
        totals = declaration.totals
        record.status = declaration.status.value
        record.validated_on = declaration.validated_on
        record.headcount = totals.headcount
        record.total_gross = float(totals.total_gross)
        record.total_capped_gross = float(totals.total_capped_gross)
        record.grand_total = float(totals.grand_total)
        record.data_json = json.dumps(declaration.to_dict())
