from .db import engine, SessionLocal, Base, get_db, init_db
from .models import (
    PayrollCalculationDB,
    DeclarationDB,
    DeclarationSubmissionDB
)
from .repository import PayrollRepository

__all__ = [
    'engine',
    'SessionLocal',
    'Base',
    'get_db',
    'init_db',
    'PayrollCalculationDB',
    'DeclarationDB',
    'DeclarationSubmissionDB',
    'PayrollRepository'
]
