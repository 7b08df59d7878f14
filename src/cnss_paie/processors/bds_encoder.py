"""
CNSS BDS (Bordereau de Déclaration des Salaires) fixed-width file.

Every record is RECORD_LENGTH characters: a 3-character tag, a 6-digit
sequence number, the fields of ``LAYOUTS`` and space filler. Numeric fields
are right-justified and zero-padded, text fields left-justified and
space-padded. Amounts are written in centimes. Records are joined with CRLF
and the document has no trailing separator.
"""
import logging
from collections import namedtuple
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

from ..config.settings import OUTPUT_DIR
from ..exceptions import EncodingPreconditionError
from ..models.declaration import Declaration, DeclarationLine, DeclarationStatus
from ..models.payroll import Period
from ..utils.formatters import (
    ascii_upper, format_date_cnss, numeric_field, text_field, to_centimes,
)
from .declaration_validator import ValidationResult

logger = logging.getLogger(__name__)

RECORD_LENGTH = 260
RECORD_SEPARATOR = "\r\n"
TAG_WIDTH = 3
SEQUENCE_WIDTH = 6
DECLARATION_TYPE = "1"

NUMERIC = "N"
TEXT = "A"
DIGITS = "D"

Field = namedtuple("Field", ["name", "width", "kind"])

_HEADER = (
    Field("registration", 8, DIGITS),
    Field("period", 6, DIGITS),
)

_AMOUNT_TOTALS = (
    "total_gross",
    "total_capped_gross",
    "total_employee_contributions",
    "total_employer_contributions",
    "total_family_allowance",
    "total_training_tax",
    "grand_total",
)

LAYOUTS: Dict[str, tuple] = {
    "B00": _HEADER + (
        Field("declaration_type", 1, DIGITS),
        Field("filing_date", 8, TEXT),
        Field("ice", 15, TEXT),
    ),
    "B01": _HEADER + (Field("headcount", 6, NUMERIC),) + tuple(
        Field(name, 12, NUMERIC) for name in _AMOUNT_TOTALS
    ),
    "B02": _HEADER + (
        Field("social_security_number", 9, DIGITS),
        Field("national_id", 10, TEXT),
        Field("last_name", 30, TEXT),
        Field("first_name", 20, TEXT),
        Field("birth_date", 8, TEXT),
        Field("worked_days", 3, NUMERIC),
        Field("gross", 12, NUMERIC),
        Field("capped_gross", 12, NUMERIC),
        Field("hire_date", 8, TEXT),
        Field("departure_date", 8, TEXT),
        Field("situation", 1, DIGITS),
        Field("contract_type", 1, DIGITS),
    ),
    "B03": _HEADER + (
        Field("family_allowance_rate", 4, NUMERIC),
        Field("family_allowance", 12, NUMERIC),
    ),
    "B06": _HEADER + (
        Field("record_count", 8, NUMERIC),
    ),
}

ENCODABLE_STATUSES = (
    DeclarationStatus.VALIDATED,
    DeclarationStatus.SUBMITTED,
    DeclarationStatus.ACCEPTED,
)


def _format_record(tag: str, sequence: int, values: Dict[str, object]) -> str:
    parts = [tag, numeric_field(sequence, SEQUENCE_WIDTH)]
    for column in LAYOUTS[tag]:
        value = values.get(column.name, "")
        if column.kind in (NUMERIC, DIGITS):
            parts.append(numeric_field(value, column.width))
        else:
            parts.append(text_field(value, column.width))
    return "".join(parts).ljust(RECORD_LENGTH)


def _employee_values(line: DeclarationLine) -> Dict[str, object]:
    return {
        "social_security_number": line.social_security_number,
        "national_id": ascii_upper(line.national_id),
        "last_name": ascii_upper(line.last_name),
        "first_name": ascii_upper(line.first_name),
        "birth_date": format_date_cnss(line.birth_date),
        "worked_days": line.worked_days,
        "gross": to_centimes(line.gross),
        "capped_gross": to_centimes(line.capped_gross),
        "hire_date": format_date_cnss(line.hire_date),
        "departure_date": format_date_cnss(line.departure_date),
        "situation": line.situation.bds_code,
        "contract_type": line.contract_type.bds_code,
    }


def encode_bds(declaration: Declaration, filing_date: Optional[date] = None) -> str:
    """
    Encode a validated declaration as a BDS document.

    The filing date defaults to the day the declaration was validated, so the
    same declaration always encodes to the same text.
    """
    if declaration.status not in ENCODABLE_STATUSES:
        raise EncodingPreconditionError(
            f"Declaration {declaration.company.affiliation_number}/{declaration.period} "
            f"is {declaration.status.value}; only validated declarations can be encoded"
        )
    filing_date = filing_date or declaration.validated_on
    if filing_date is None:
        raise EncodingPreconditionError("Validated declaration carries no validation date")

    header = {
        "registration": declaration.company.affiliation_number,
        "period": declaration.period.yyyymm,
    }
    totals = declaration.totals
    records: List[str] = []

    def add(tag, values):
        records.append(_format_record(tag, len(records) + 1, dict(header, **values)))

    add("B00", {
        "declaration_type": DECLARATION_TYPE,
        "filing_date": format_date_cnss(filing_date),
        "ice": declaration.company.ice,
    })
    b01 = {"headcount": totals.headcount}
    b01.update({name: to_centimes(amount) for name, amount in totals.monetary_items()})
    add("B01", b01)
    for line in declaration.lines:
        add("B02", _employee_values(line))
    add("B03", {
        "family_allowance_rate": to_centimes(declaration.family_allowance_rate * 100),
        "family_allowance": to_centimes(totals.total_family_allowance),
    })
    add("B06", {"record_count": len(records) + 1})

    logger.info(
        "Encoded BDS for %s/%s: %d record(s)",
        declaration.company.affiliation_number, declaration.period, len(records),
    )
    return RECORD_SEPARATOR.join(records)


def parse_record(record: str) -> Dict[str, object]:
    """Decode one record; amounts and counts become ints, text fields are stripped"""
    tag = record[:TAG_WIDTH]
    if tag not in LAYOUTS:
        raise ValueError(f"Unknown BDS record type {tag!r}")
    position = TAG_WIDTH
    decoded: Dict[str, object] = {
        "tag": tag,
        "sequence": int(record[position:position + SEQUENCE_WIDTH]),
    }
    position += SEQUENCE_WIDTH
    for column in LAYOUTS[tag]:
        raw = record[position:position + column.width]
        if column.kind == NUMERIC:
            decoded[column.name] = int(raw)
        elif column.kind == DIGITS:
            if not raw.isdigit():
                raise ValueError(f"{tag} field {column.name} is not numeric: {raw!r}")
            decoded[column.name] = raw
        else:
            decoded[column.name] = raw.rstrip()
        position += column.width
    return decoded


def parse_bds(text: str) -> List[Dict[str, object]]:
    return [parse_record(record) for record in text.split(RECORD_SEPARATOR)]


def validate_bds(text: str) -> ValidationResult:
    """Structural and cross-total checks of an encoded BDS document"""
    errors: List[str] = []
    records = text.split(RECORD_SEPARATOR) if text else []
    if not records:
        return ValidationResult(valid=False, errors=["Document is empty"])

    for index, record in enumerate(records, start=1):
        if len(record) != RECORD_LENGTH:
            errors.append(f"Record {index} is {len(record)} characters, expected {RECORD_LENGTH}")

    tags = [record[:TAG_WIDTH] for record in records]
    if (len(tags) < 4 or tags[0] != "B00" or tags[1] != "B01"
            or tags[-2] != "B03" or tags[-1] != "B06"
            or any(tag != "B02" for tag in tags[2:-2])):
        errors.append(f"Records must run B00, B01, B02..., B03, B06; got {' '.join(tags)}")

    try:
        parsed = parse_bds(text)
    except ValueError as e:
        errors.append(f"Unreadable record: {e}")
        return ValidationResult(valid=False, errors=errors)

    for expected, record in enumerate(parsed, start=1):
        if record["sequence"] != expected:
            errors.append(f"Record {expected} has sequence number {record['sequence']}")

    by_tag: Dict[str, List[dict]] = {}
    for record in parsed:
        by_tag.setdefault(record["tag"], []).append(record)
    employees = by_tag.get("B02", [])

    if by_tag.get("B06"):
        count = by_tag["B06"][-1]["record_count"]
        if count != len(parsed):
            errors.append(f"B06 announces {count} records, document has {len(parsed)}")
    if by_tag.get("B01"):
        summary = by_tag["B01"][0]
        if summary["headcount"] != len(employees):
            errors.append(
                f"B01 headcount is {summary['headcount']}, document has {len(employees)} B02 records"
            )
        for total, name in (("total_gross", "gross"), ("total_capped_gross", "capped_gross")):
            computed = sum(record[name] for record in employees)
            if summary[total] != computed:
                errors.append(f"B01 {total} is {summary[total]}, B02 records sum to {computed}")

    return ValidationResult(valid=not errors, errors=errors)


def bds_filename(affiliation_number: str, period: Period) -> str:
    return f"AFFEBDS_{affiliation_number}_{period.yyyymm}.txt"


def write_bds(declaration: Declaration, output_dir: Optional[Path] = None,
              filing_date: Optional[date] = None) -> Path:
    """Encode ``declaration`` into ``OUTPUT_DIR/bds`` and return the file path"""
    output_dir = Path(output_dir) if output_dir else OUTPUT_DIR / "bds"
    output_dir.mkdir(parents=True, exist_ok=True)
    filepath = output_dir / bds_filename(declaration.company.affiliation_number, declaration.period)
    content = encode_bds(declaration, filing_date)
    with open(filepath, "w", encoding="ascii", errors="replace", newline="") as handle:
        handle.write(content)
    logger.info("BDS written to %s", filepath)
    return filepath
