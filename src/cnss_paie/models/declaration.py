import hashlib
import json
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from ..exceptions import AssemblyError, InvalidTransitionError
from .employee import ContractType
from .payroll import Period


class DeclarationStatus(str, Enum):
    DRAFT = "DRAFT"
    VALIDATED = "VALIDATED"
    SUBMITTED = "SUBMITTED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class Situation(str, Enum):
    """Employee situation within the declared period"""
    ACTIVE = "ACTIVE"
    DEPARTED = "DEPARTED"
    ON_UNPAID_LEAVE = "ON_UNPAID_LEAVE"

    @property
    def bds_code(self) -> str:
        return _SITUATION_BDS_CODES[self]


_SITUATION_BDS_CODES = {
    Situation.ACTIVE: "3",
    Situation.DEPARTED: "2",
    Situation.ON_UNPAID_LEAVE: "4",
}


@dataclass(frozen=True)
class CompanyRegistration:
    """Employer block of a declaration (numéro d'affiliation, ICE)"""
    affiliation_number: str
    ice: str
    name: str = ""
    address: str = ""
    city: str = ""
    postal_code: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "affiliation_number": self.affiliation_number,
            "ice": self.ice,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "postal_code": self.postal_code,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "CompanyRegistration":
        return cls(
            affiliation_number=data["affiliation_number"],
            ice=data["ice"],
            name=data.get("name", ""),
            address=data.get("address", ""),
            city=data.get("city", ""),
            postal_code=data.get("postal_code", ""),
        )


@dataclass(frozen=True)
class DeclarationLine:
    """
    One employee of a declaration. Values are copied from the profile and
    calculation that produced them, so later edits to the employee do not
    reach an assembled declaration.
    """
    employee_id: str
    social_security_number: str
    national_id: str
    last_name: str
    first_name: str
    birth_date: Optional[date]
    hire_date: Optional[date]
    departure_date: Optional[date]
    worked_days: int
    gross: Decimal
    capped_gross: Decimal
    employee_contribution: Decimal
    employer_contribution: Decimal
    family_allowance: Decimal
    training_tax: Decimal
    situation: Situation
    contract_type: ContractType

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "social_security_number": self.social_security_number,
            "national_id": self.national_id,
            "last_name": self.last_name,
            "first_name": self.first_name,
            "birth_date": self.birth_date.isoformat() if self.birth_date else None,
            "hire_date": self.hire_date.isoformat() if self.hire_date else None,
            "departure_date": self.departure_date.isoformat() if self.departure_date else None,
            "worked_days": self.worked_days,
            "gross": f"{self.gross:.2f}",
            "capped_gross": f"{self.capped_gross:.2f}",
            "employee_contribution": f"{self.employee_contribution:.2f}",
            "employer_contribution": f"{self.employer_contribution:.2f}",
            "family_allowance": f"{self.family_allowance:.2f}",
            "training_tax": f"{self.training_tax:.2f}",
            "situation": self.situation.value,
            "contract_type": self.contract_type.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeclarationLine":
        return cls(
            employee_id=data["employee_id"],
            social_security_number=data["social_security_number"],
            national_id=data["national_id"],
            last_name=data["last_name"],
            first_name=data["first_name"],
            birth_date=_iso_date(data.get("birth_date")),
            hire_date=_iso_date(data.get("hire_date")),
            departure_date=_iso_date(data.get("departure_date")),
            worked_days=int(data["worked_days"]),
            gross=Decimal(data["gross"]),
            capped_gross=Decimal(data["capped_gross"]),
            employee_contribution=Decimal(data["employee_contribution"]),
            employer_contribution=Decimal(data["employer_contribution"]),
            family_allowance=Decimal(data["family_allowance"]),
            training_tax=Decimal(data["training_tax"]),
            situation=Situation(data["situation"]),
            contract_type=ContractType(data["contract_type"]),
        )


@dataclass(frozen=True)
class DeclarationTotals:
    headcount: int = 0
    total_gross: Decimal = Decimal("0")
    total_capped_gross: Decimal = Decimal("0")
    total_employee_contributions: Decimal = Decimal("0")
    total_employer_contributions: Decimal = Decimal("0")
    total_family_allowance: Decimal = Decimal("0")
    total_training_tax: Decimal = Decimal("0")

    @property
    def grand_total(self) -> Decimal:
        return (
            self.total_employee_contributions
            + self.total_employer_contributions
            + self.total_family_allowance
            + self.total_training_tax
        )

    @classmethod
    def from_lines(cls, lines: Iterable[DeclarationLine]) -> "DeclarationTotals":
        lines = list(lines)
        return cls(
            headcount=len(lines),
            total_gross=sum((line.gross for line in lines), Decimal("0")),
            total_capped_gross=sum((line.capped_gross for line in lines), Decimal("0")),
            total_employee_contributions=sum((line.employee_contribution for line in lines), Decimal("0")),
            total_employer_contributions=sum((line.employer_contribution for line in lines), Decimal("0")),
            total_family_allowance=sum((line.family_allowance for line in lines), Decimal("0")),
            total_training_tax=sum((line.training_tax for line in lines), Decimal("0")),
        )

    def monetary_items(self) -> Tuple[Tuple[str, Decimal], ...]:
        return (
            ("total_gross", self.total_gross),
            ("total_capped_gross", self.total_capped_gross),
            ("total_employee_contributions", self.total_employee_contributions),
            ("total_employer_contributions", self.total_employer_contributions),
            ("total_family_allowance", self.total_family_allowance),
            ("total_training_tax", self.total_training_tax),
            ("grand_total", self.grand_total),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {"headcount": self.headcount}
        data.update({name: f"{amount:.2f}" for name, amount in self.monetary_items()})
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeclarationTotals":
        # grand_total is derived
        return cls(
            headcount=int(data["headcount"]),
            total_gross=Decimal(data["total_gross"]),
            total_capped_gross=Decimal(data["total_capped_gross"]),
            total_employee_contributions=Decimal(data["total_employee_contributions"]),
            total_employer_contributions=Decimal(data["total_employer_contributions"]),
            total_family_allowance=Decimal(data["total_family_allowance"]),
            total_training_tax=Decimal(data["total_training_tax"]),
        )


@dataclass(frozen=True)
class Declaration:
    """
    Monthly CNSS declaration (bordereau) for one employer.

    Lines are kept sorted by employee id and the totals are always derived
    from them; use ``with_line``/``without_line`` to change the line set.
    """
    company: CompanyRegistration
    period: Period
    social_ceiling: Decimal
    family_allowance_rate: Decimal
    lines: Tuple[DeclarationLine, ...] = ()
    totals: DeclarationTotals = field(default_factory=DeclarationTotals)
    status: DeclarationStatus = DeclarationStatus.DRAFT
    validated_on: Optional[date] = None

    @property
    def is_frozen(self) -> bool:
        return self.status in (DeclarationStatus.SUBMITTED, DeclarationStatus.ACCEPTED)

    def fingerprint(self) -> str:
        """Content hash of everything the encoder writes, status excluded"""
        content = self.to_dict()
        del content["status"], content["validated_on"]
        payload = json.dumps(content, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "company": self.company.to_dict(),
            "period": {"year": self.period.year, "month": self.period.month},
            "status": self.status.value,
            "validated_on": self.validated_on.isoformat() if self.validated_on else None,
            "social_ceiling": f"{self.social_ceiling:.2f}",
            "family_allowance_rate": str(self.family_allowance_rate),
            "lines": [line.to_dict() for line in self.lines],
            "totals": self.totals.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Declaration":
        """Rebuild a stored declaration exactly, totals included"""
        return cls(
            company=CompanyRegistration.from_dict(data["company"]),
            period=Period(int(data["period"]["year"]), int(data["period"]["month"])),
            social_ceiling=Decimal(data["social_ceiling"]),
            family_allowance_rate=Decimal(data["family_allowance_rate"]),
            lines=tuple(DeclarationLine.from_dict(line) for line in data["lines"]),
            totals=DeclarationTotals.from_dict(data["totals"]),
            status=DeclarationStatus(data["status"]),
            validated_on=_iso_date(data.get("validated_on")),
        )


def build_declaration(company: CompanyRegistration, period: Period, lines: Iterable[DeclarationLine],
                      social_ceiling: Decimal, family_allowance_rate: Decimal) -> Declaration:
    """Create a DRAFT declaration whose totals are the sum of ``lines``"""
    ordered = tuple(sorted(lines, key=lambda line: line.employee_id))
    return Declaration(
        company=company,
        period=period,
        social_ceiling=social_ceiling,
        family_allowance_rate=family_allowance_rate,
        lines=ordered,
        totals=DeclarationTotals.from_lines(ordered),
    )


def with_line(declaration: Declaration, line: DeclarationLine) -> Declaration:
    """Return a copy of a DRAFT declaration with ``line`` added and totals recomputed"""
    _require_draft(declaration)
    if line.contract_type is ContractType.FREELANCE:
        raise AssemblyError(f"{line.employee_id} has a freelance contract and cannot be declared")
    lines = tuple(sorted(declaration.lines + (line,), key=lambda item: item.employee_id))
    return replace(declaration, lines=lines, totals=DeclarationTotals.from_lines(lines))


def without_line(declaration: Declaration, employee_id: str) -> Declaration:
    """Return a copy of a DRAFT declaration without ``employee_id``'s line"""
    _require_draft(declaration)
    lines = tuple(line for line in declaration.lines if line.employee_id != employee_id)
    if len(lines) == len(declaration.lines):
        raise KeyError(employee_id)
    return replace(declaration, lines=lines, totals=DeclarationTotals.from_lines(lines))


def _iso_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _require_draft(declaration: Declaration):
    if declaration.status is not DeclarationStatus.DRAFT:
        raise InvalidTransitionError(declaration.status, "edit lines",
                                     "only DRAFT declarations can change; re-assemble instead")
