import csv
import io
import logging
from pathlib import Path
from typing import Optional

from ..config.settings import OUTPUT_DIR
from ..models.declaration import Declaration

logger = logging.getLogger(__name__)

COLUMNS = [
    "employee_id",
    "social_security_number",
    "national_id",
    "last_name",
    "first_name",
    "worked_days",
    "gross",
    "capped_gross",
    "employee_contribution",
    "employer_contribution",
    "family_allowance",
    "training_tax",
    "situation",
    "contract_type",
]

# Line column -> totals attribute
MONETARY_COLUMNS = {
    "gross": "total_gross",
    "capped_gross": "total_capped_gross",
    "employee_contribution": "total_employee_contributions",
    "employer_contribution": "total_employer_contributions",
    "family_allowance": "total_family_allowance",
    "training_tax": "total_training_tax",
}

TOTALS_LABEL = "TOTALS"


def export_csv(declaration: Declaration) -> str:
    """One row per declaration line followed by a TOTALS row of the monetary columns"""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=COLUMNS)
    writer.writeheader()

    for line in declaration.lines:
        row = {
            "employee_id": line.employee_id,
            "social_security_number": line.social_security_number,
            "national_id": line.national_id,
            "last_name": line.last_name,
            "first_name": line.first_name,
            "worked_days": line.worked_days,
            "situation": line.situation.value,
            "contract_type": line.contract_type.value,
        }
        for column in MONETARY_COLUMNS:
            row[column] = f"{getattr(line, column):.2f}"
        writer.writerow(row)

    totals = {"employee_id": TOTALS_LABEL}
    for column, attribute in MONETARY_COLUMNS.items():
        totals[column] = f"{getattr(declaration.totals, attribute):.2f}"
    writer.writerow(totals)

    return buffer.getvalue()


def write_csv(declaration: Declaration, output_dir: Optional[Path] = None) -> Path:
    output_dir = Path(output_dir) if output_dir else OUTPUT_DIR / "csv"
    output_dir.mkdir(parents=True, exist_ok=True)
    filepath = output_dir / (
        f"CNSS_{declaration.company.affiliation_number}_{declaration.period.yyyymm}.csv"
    )
    with open(filepath, "w", encoding="utf-8", newline="") as handle:
        handle.write(export_csv(declaration))
    logger.info("CSV written to %s", filepath)
    return filepath
