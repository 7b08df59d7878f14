from sqlalchemy import Boolean, Column, Integer, String, Date, Numeric, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from .db import Base


class PayrollCalculationDB(Base):
    """
    One payroll calculation of one employee for one period.

    Recalculating a period adds a row and marks the previous one superseded;
    rows are never deleted.
    """
    __tablename__ = "payroll_calculations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(String(50), nullable=False, index=True)

    # Period information
    year = Column(Integer, nullable=False, index=True)
    month = Column(Integer, nullable=False, index=True)

    # Key amounts
    taxable_gross = Column(Numeric(12, 2), nullable=False)
    total_gross = Column(Numeric(12, 2), nullable=False)
    employee_social = Column(Numeric(12, 2), default=0)
    employee_health = Column(Numeric(12, 2), default=0)
    net_income_tax = Column(Numeric(12, 2), default=0)
    net_pay = Column(Numeric(12, 2), nullable=False)
    employer_contributions = Column(Numeric(12, 2), default=0)
    total_employer_cost = Column(Numeric(12, 2), nullable=False)

    # Full itemized calculation as JSON
    data_json = Column(Text, nullable=False)

    # Audit trail
    is_current = Column(Boolean, nullable=False, default=True, index=True)
    superseded_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return (f"<PayrollCalculation(id={self.id}, employee={self.employee_id}, "
                f"period={self.year}-{self.month:02d}, current={self.is_current})>")


class DeclarationDB(Base):
    """Monthly CNSS declaration of one employer"""
    __tablename__ = "declarations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    affiliation_number = Column(String(8), nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    month = Column(Integer, nullable=False, index=True)

    status = Column(String(20), nullable=False, default='DRAFT')  # DRAFT, VALIDATED, SUBMITTED, ACCEPTED, REJECTED
    validated_on = Column(Date)

    # Totals
    headcount = Column(Integer, default=0)
    total_gross = Column(Numeric(14, 2), default=0)
    total_capped_gross = Column(Numeric(14, 2), default=0)
    grand_total = Column(Numeric(14, 2), default=0)

    # Snapshot of the declaration (lines and totals) and its last validation
    data_json = Column(Text, nullable=False)
    validation_json = Column(Text)

    # Generated files
    bds_file_path = Column(String(500))
    csv_file_path = Column(String(500))
    workbook_file_path = Column(String(500))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    submissions = relationship("DeclarationSubmissionDB", back_populates="declaration",
                               cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Declaration(id={self.id}, period={self.year}-{self.month:02d}, status={self.status})>"


class DeclarationSubmissionDB(Base):
    """Track declaration transmissions to the CNSS"""
    __tablename__ = "declaration_submissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    declaration_id = Column(Integer, ForeignKey('declarations.id'), nullable=False)

    # Submission details
    submission_date = Column(DateTime, default=datetime.utcnow)
    status = Column(String(20), default='SUBMITTED')  # SUBMITTED, ACCEPTED, REJECTED
    reference_number = Column(String(100))

    # Response data
    response_json = Column(Text)

    declaration = relationship("DeclarationDB", back_populates="submissions")

    def __repr__(self):
        return f"<DeclarationSubmission(id={self.id}, declaration={self.declaration_id}, status={self.status})>"
