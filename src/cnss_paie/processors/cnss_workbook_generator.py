import openpyxl
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from pathlib import Path
from typing import Optional

from ..config import settings
from ..models.declaration import Declaration
from ..utils.formatters import format_date_french


class CNSSWorkbookGenerator:
    """Generate the monthly "État CNSS" sheet of a declaration"""

    COLUMNS = [
        ("Matricule", 12),
        ("N° CNSS", 12),
        ("CIN", 12),
        ("Nom", 22),
        ("Prénom", 18),
        ("Jours", 8),
        ("Brut", 14),
        ("Plafonné", 14),
        ("CNSS salariale", 14),
        ("CNSS patronale", 14),
        ("Allocations familiales", 14),
        ("Formation professionnelle", 14),
        ("Situation", 16),
    ]

    def __init__(self, output_dir: Optional[Path] = None):
        self.output_dir = Path(output_dir) if output_dir else settings.OUTPUT_DIR / "cnss"
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate(self, declaration: Declaration) -> str:
        """Generate the declaration workbook and return its path"""
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = f"CNSS {declaration.period}"

        bold_font = Font(bold=True)
        header_fill = PatternFill(start_color="B4C7E7", end_color="B4C7E7", fill_type="solid")
        yellow_fill = PatternFill(start_color="FFFF00", end_color="FFFF00", fill_type="solid")
        thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

        company = declaration.company
        ws['A1'] = "ETAT CNSS"
        ws['A1'].font = Font(bold=True, size=14)
        ws['A2'] = f"{company.name} - Affiliation {company.affiliation_number} - ICE {company.ice}"
        ws['A3'] = f"Période {declaration.period}"
        ws['E3'] = f"Statut {declaration.status.value}"
        if declaration.validated_on:
            ws['H3'] = f"Validée le {format_date_french(declaration.validated_on)}"

        row = 5
        for col, (title, width) in enumerate(self.COLUMNS, start=1):
            cell = ws.cell(row=row, column=col, value=title)
            cell.font = bold_font
            cell.fill = header_fill
            cell.border = thin_border
            cell.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
            ws.column_dimensions[cell.column_letter].width = width
        row += 1

        for line in declaration.lines:
            values = [
                line.employee_id,
                line.social_security_number,
                line.national_id,
                line.last_name,
                line.first_name,
                line.worked_days,
                float(line.gross),
                float(line.capped_gross),
                float(line.employee_contribution),
                float(line.employer_contribution),
                float(line.family_allowance),
                float(line.training_tax),
                line.situation.value,
            ]
            for col, value in enumerate(values, start=1):
                ws.cell(row=row, column=col, value=value).border = thin_border
            row += 1

        totals = declaration.totals
        total_values = {
            1: "TOTAL",
            6: totals.headcount,
            7: float(totals.total_gross),
            8: float(totals.total_capped_gross),
            9: float(totals.total_employee_contributions),
            10: float(totals.total_employer_contributions),
            11: float(totals.total_family_allowance),
            12: float(totals.total_training_tax),
        }
        for col, value in total_values.items():
            cell = ws.cell(row=row, column=col, value=value)
            cell.font = bold_font
            cell.fill = yellow_fill
            cell.border = thin_border
        row += 2

        ws.cell(row=row, column=1, value="Total à payer").font = bold_font
        ws.cell(row=row, column=7, value=float(totals.grand_total)).font = bold_font

        filename = f"CNSS_{company.affiliation_number}_{declaration.period.yyyymm}.xlsx"
        filepath = self.output_dir / filename

        wb.save(filepath)

        return str(filepath)
