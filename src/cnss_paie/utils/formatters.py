import unicodedata
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

CENT = Decimal("0.01")


def round_amount(amount: Decimal) -> Decimal:
    """Round a monetary amount to the centime, half up"""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def to_centimes(amount: Decimal) -> int:
    """Amount in dirhams to an integer number of centimes"""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_currency(amount: Decimal, symbol: str = "DH") -> str:
    """Format currency amount"""
    return f"{amount:,.2f} {symbol}"


def format_percentage(rate: Decimal) -> str:
    """Format a fractional rate as a percentage"""
    return f"{rate * 100:.2f}%"


def format_date_cnss(d: Optional[date]) -> str:
    """YYYYMMDD, or an empty string when the date is unknown"""
    return d.strftime("%Y%m%d") if d else ""


def format_date_french(d: date) -> str:
    return d.strftime("%d/%m/%Y")


def ascii_upper(text: str) -> str:
    """Upper-case and strip accents (Mégane -> MEGANE)"""
    decomposed = unicodedata.normalize("NFKD", text or "")
    return decomposed.encode("ascii", "ignore").decode("ascii").upper()


def numeric_field(value, width: int) -> str:
    """Right-justified, zero-padded; overflow keeps the rightmost digits"""
    text = str(value)
    return text.rjust(width, "0")[-width:]


def text_field(value, width: int) -> str:
    """Left-justified, space-padded; overflow keeps the leftmost characters"""
    text = "" if value is None else str(value)
    return text.ljust(width)[:width]
