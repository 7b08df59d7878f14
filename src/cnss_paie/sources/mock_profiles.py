from typing import Any, Dict, List

from ..models.employee import CompensationProfile
from ..models.payroll import Period


class MockProfileSource:
    """Mock of the employee store that supplies compensation profiles"""

    # Sample employee data
    MOCK_EMPLOYEES: List[Dict[str, Any]] = [
        {
            "employee_id": "E001",
            "last_name": "Benali",
            "first_name": "Youssef",
            "national_id": "BE123456",
            "social_security_number": "123456789",
            "birth_date": "1988-04-12",
            "hire_date": "2022-02-15",
            "base_salary": "10000.00",
            "marital_status": "single",
            "dependent_children": 0,
            "contract_type": "permanent",
        },
        {
            "employee_id": "E002",
            "last_name": "El Amrani",
            "first_name": "Salma",
            "national_id": "BK654321",
            "social_security_number": "234567891",
            "birth_date": "1979-11-03",
            "hire_date": "2012-09-01",
            "base_salary": "18500.00",
            "marital_status": "married",
            "dependent_children": 3,
            "contract_type": "permanent",
            "taxable_allowances": {"transport": "500.00", "representation": "1000.00"},
            "non_taxable_allowances": "300.00",
            "supplementary_pension_rate": "0.03",
            "mutual_insurance_amount": "150.00",
        },
        {
            "employee_id": "E003",
            "last_name": "Ouazzani",
            "first_name": "Mehdi",
            "national_id": "C456789",
            "social_security_number": "345678912",
            "birth_date": "1995-07-21",
            "hire_date": "2024-03-01",
            "base_salary": "6500.00",
            "marital_status": "married",
            "dependent_children": 1,
            "contract_type": "fixed_term",
            "overtime_hours": ["8", "4", "0"],
            "salary_advance": "500.00",
        },
        {
            "employee_id": "E004",
            "last_name": "Tazi",
            "first_name": "Hélène",
            "national_id": "D987654",
            "social_security_number": "456789123",
            "birth_date": "2001-01-30",
            "hire_date": "2025-01-06",
            "base_salary": "3200.00",
            "contract_type": "internship",
            "taxable_allowances": {"meal": "300.00"},
        },
        {
            "employee_id": "E005",
            "last_name": "Berrada",
            "first_name": "Karim",
            "national_id": "BH112233",
            "social_security_number": "567891234",
            "birth_date": "1984-06-15",
            "hire_date": "2023-05-02",
            "base_salary": "15000.00",
            "contract_type": "freelance",
        },
    ]

    def get_profiles(self, period: Period) -> List[CompensationProfile]:
        """Get profiles of everyone employed during the period"""
        profiles = []

        for emp in self.MOCK_EMPLOYEES:
            profile = CompensationProfile.from_dict(emp)
            if profile.hire_date > period.end:
                continue
            if profile.termination_date and profile.termination_date < period.start:
                continue
            profiles.append(profile)

        return profiles

    def get_profile(self, employee_id: str, period: Period) -> CompensationProfile:
        """Get the profile of a specific employee"""
        employee = next((e for e in self.MOCK_EMPLOYEES if e['employee_id'] == employee_id), None)

        if not employee:
            raise ValueError(f"Employee {employee_id} not found")

        profile = CompensationProfile.from_dict(employee)
        if profile.hire_date > period.end:
            raise ValueError(f"Employee {employee_id} is not hired yet in {period}")
        return profile
