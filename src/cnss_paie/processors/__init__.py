from .salary_calculator import SalaryCalculator, calculate, months_between
from .declaration_assembler import DeclarationAssembler, assemble
from .declaration_validator import ValidationResult, validate
from .bds_encoder import bds_filename, encode_bds, parse_bds, validate_bds, write_bds
from .csv_exporter import export_csv, write_csv
from .payroll_batch import PreparedDeclaration, calculate_batch, prepare_declaration
from .payslip_generator import PayslipGenerator
from .cnss_workbook_generator import CNSSWorkbookGenerator


__all__ = [
    'SalaryCalculator',
    'calculate',
    'months_between',
    'DeclarationAssembler',
    'assemble',
    'ValidationResult',
    'validate',
    'bds_filename',
    'encode_bds',
    'parse_bds',
    'validate_bds',
    'write_bds',
    'export_csv',
    'write_csv',
    'PreparedDeclaration',
    'calculate_batch',
    'prepare_declaration',
    'PayslipGenerator',
    'CNSSWorkbookGenerator'
]
