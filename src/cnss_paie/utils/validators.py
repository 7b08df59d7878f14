import re
from decimal import Decimal

_DIGITS = re.compile(r'^[0-9]+$')


def validate_affiliation_number(number: str) -> bool:
    """CNSS employer affiliation number: exactly 8 digits"""
    return bool(number) and len(number) == 8 and bool(_DIGITS.match(number))


def validate_ice(ice: str) -> bool:
    """Identifiant Commun de l'Entreprise: exactly 15 characters"""
    return bool(ice) and len(ice) == 15


def validate_cnss_number(number: str) -> bool:
    """Employee social-security (immatriculation) number: exactly 9 digits"""
    return bool(number) and len(number) == 9 and bool(_DIGITS.match(number))


def validate_national_id(cin: str) -> bool:
    """Carte d'identité nationale: 5 to 10 characters"""
    return bool(cin) and 5 <= len(cin) <= 10


def validate_rate(rate: Decimal) -> bool:
    """Validate a fractional rate is within reasonable bounds"""
    return Decimal('0') <= rate <= Decimal('1')
