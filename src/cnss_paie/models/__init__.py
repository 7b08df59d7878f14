from .employee import CompensationProfile, ContractType, MaritalStatus, TaxableAllowances
from .payroll import PayrollCalculation, Period
from .declaration import (
    CompanyRegistration,
    Declaration,
    DeclarationLine,
    DeclarationStatus,
    DeclarationTotals,
    Situation,
    build_declaration,
    with_line,
    without_line,
)

__all__ = [
    'CompensationProfile',
    'ContractType',
    'MaritalStatus',
    'TaxableAllowances',
    'PayrollCalculation',
    'Period',
    'CompanyRegistration',
    'Declaration',
    'DeclarationLine',
    'DeclarationStatus',
    'DeclarationTotals',
    'Situation',
    'build_declaration',
    'with_line',
    'without_line',
]
