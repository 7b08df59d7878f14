"""Moroccan payroll calculation and CNSS BDS declaration engine"""

__version__ = "0.1.0"

from .processors import assemble, calculate, encode_bds, export_csv, validate

__all__ = [
    'assemble',
    'calculate',
    'encode_bds',
    'export_csv',
    'validate'
]
