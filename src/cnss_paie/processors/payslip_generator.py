import openpyxl
from openpyxl.styles import Font, Border, Side
from pathlib import Path
from typing import Optional

from ..config import settings
from ..models.employee import CompensationProfile
from ..models.payroll import PayrollCalculation
from ..utils.formatters import format_date_french, format_percentage


class PayslipGenerator:
    """Generate individual bulletin de paie Excel files"""

    def __init__(self, output_dir: Optional[Path] = None):
        self.output_dir = Path(output_dir) if output_dir else settings.OUTPUT_DIR / "payslips"
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate(self, profile: CompensationProfile, calculation: PayrollCalculation) -> str:
        """Generate payslip Excel file"""

        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Bulletin de paie"

        ws.column_dimensions['A'].width = 38
        ws.column_dimensions['B'].width = 16
        ws.column_dimensions['C'].width = 14
        ws.column_dimensions['D'].width = 16

        header_font = Font(bold=True, size=12)
        bold_font = Font(bold=True)
        thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

        period = calculation.period

        # Header section
        row = 1
        ws.merge_cells(f'A{row}:D{row}')
        ws[f'A{row}'] = "BULLETIN DE PAIE"
        ws[f'A{row}'].font = header_font

        row = 2
        ws[f'A{row}'] = f"{settings.COMPANY_NAME}, {settings.COMPANY_ADDRESS}, {settings.COMPANY_CITY}"
        ws[f'C{row}'] = "Période"
        ws[f'D{row}'] = f"{format_date_french(period.start)} - {format_date_french(period.end)}"

        row = 3
        ws[f'A{row}'] = f"N° CNSS employeur: {settings.CNSS_AFFILIATION_NUMBER}"
        ws[f'C{row}'] = "Matricule"
        ws[f'D{row}'] = profile.employee_id

        row = 5
        ws[f'A{row}'] = profile.full_name
        ws[f'C{row}'] = "N° CNSS"
        ws[f'D{row}'] = profile.social_security_number

        row = 6
        ws[f'A{row}'] = f"CIN: {profile.national_id}"
        ws[f'C{row}'] = "Embauche"
        ws[f'D{row}'] = format_date_french(profile.hire_date)

        row = 7
        ws[f'A{row}'] = f"Ancienneté: {calculation.seniority_months} mois"
        ws[f'C{row}'] = "Taux"
        ws[f'D{row}'] = format_percentage(calculation.seniority_rate)

        # Salary details table
        row = 9
        for column, title in zip("ABCD", ("Rubrique", "Base", "Taux", "Montant")):
            ws[f'{column}{row}'] = title
            ws[f'{column}{row}'].font = bold_font
            ws[f'{column}{row}'].border = thin_border
        row += 1

        gains = [
            ("Salaire de base", None, None, calculation.base_salary),
            ("Prime d'ancienneté", calculation.base_salary, calculation.seniority_rate,
             calculation.seniority_bonus),
            ("Heures supplémentaires", None, None, calculation.overtime_pay),
            ("Indemnités imposables", None, None, calculation.taxable_allowances),
        ]
        for label, base, rate, amount in gains:
            row = self._write_item(ws, row, label, base, rate, amount)

        ws[f'A{row}'] = "SALAIRE BRUT IMPOSABLE"
        ws[f'A{row}'].font = bold_font
        ws[f'D{row}'] = float(calculation.taxable_gross)
        ws[f'D{row}'].font = bold_font
        row += 2

        # Deductions
        deductions = [
            ("CNSS", calculation.social_base, None, calculation.employee_social),
            ("AMO", calculation.health_base, None, calculation.employee_health),
            ("Retraite complémentaire / mutuelle", None, None, calculation.voluntary_deductions),
            ("Frais professionnels", None, None, calculation.professional_expenses),
            ("Net imposable", None, None, calculation.net_taxable_income),
            ("IR brut", None, None, calculation.gross_income_tax),
            ("Charges de famille", None, None, calculation.family_credit),
            ("IR net", None, None, calculation.net_income_tax),
            ("Avances et retenues", None, None, calculation.post_tax_deductions),
            ("Indemnités non imposables", None, None, calculation.non_taxable_allowances),
        ]
        for label, base, rate, amount in deductions:
            row = self._write_item(ws, row, label, base, rate, amount)
        row += 1

        # Net payment
        ws[f'A{row}'] = "NET A PAYER"
        ws[f'A{row}'].font = Font(bold=True, size=14)
        ws[f'D{row}'] = f"{calculation.net_pay:.2f} DH"
        ws[f'D{row}'].font = Font(bold=True, size=14)
        row += 2

        # Employer side
        ws[f'A{row}'] = "CHARGES PATRONALES"
        ws[f'A{row}'].font = bold_font
        row += 1
        for label, amount in (
            ("CNSS patronale", calculation.employer_social),
            ("AMO patronale", calculation.employer_health),
            ("Taxe de formation professionnelle", calculation.employer_training),
            ("Coût total employeur", calculation.total_employer_cost),
        ):
            row = self._write_item(ws, row, label, None, None, amount)

        filename = f"{profile.employee_id}_{period.year}_{period.month:02d}_bulletin.xlsx"
        filepath = self.output_dir / filename

        wb.save(filepath)

        return str(filepath)

    def _write_item(self, ws, row, label, base, rate, amount):
        ws[f'A{row}'] = label
        ws[f'B{row}'] = float(base) if base else ""
        ws[f'C{row}'] = format_percentage(rate) if rate else ""
        ws[f'D{row}'] = float(amount)
        return row + 1
