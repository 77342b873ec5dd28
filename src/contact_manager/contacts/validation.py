"""
Business validation rules applied to contacts before they are persisted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Protocol

MAX_NAME_LENGTH = 100
MIN_PHONE_LENGTH = 5
MAX_PHONE_LENGTH = 20
MAX_AGE_YEARS = 150
MAX_SALARY = Decimal("10000000")

PHONE_PATTERN = re.compile(r"^\+?[0-9\s\-()]+$")


class ContactLike(Protocol):
    name: str
    date_of_birth: date
    phone: str
    salary: Decimal


def calculate_age(date_of_birth: date, today: Optional[date] = None) -> int:
    """Return the age in whole years, counting this year's birthday only once reached."""
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


@dataclass
class ValidationResult:
    """
    Mutable validation result.

    - default is_valid=True
    - add_error() flips is_valid=False and appends {"field": ..., "message": ...}
    - errors property returns a copy
    """

    is_valid: bool = True
    _errors: List[Dict[str, str]] = field(default_factory=list, repr=False)

    def add_error(self, field: str, message: str) -> None:
        self.is_valid = False
        self._errors.append({"field": field, "message": message})

    @property
    def errors(self) -> List[Dict[str, str]]:
        return list(self._errors)

    def summary(self) -> str:
        return "; ".join(f"{e['field']}: {e['message']}" for e in self._errors)


class ContactValidator:
    def __init__(self, today: Optional[date] = None) -> None:
        self._today = today

    def validate(self, contact: ContactLike) -> ValidationResult:
        result = ValidationResult()
        today = self._today or date.today()

        self._validate_name(contact.name, result)
        self._validate_date_of_birth(contact.date_of_birth, today, result)
        self._validate_phone(contact.phone, result)
        self._validate_salary(contact.salary, result)

        return result

    @staticmethod
    def _is_blank(value: Optional[str]) -> bool:
        return value is None or value.strip() == ""

    def _validate_name(self, name: Optional[str], result: ValidationResult) -> None:
        if self._is_blank(name):
            result.add_error("name", "Name is required")
        elif len(name) > MAX_NAME_LENGTH:  # type: ignore[arg-type]
            result.add_error("name", f"Name must be at most {MAX_NAME_LENGTH} characters")

    def _validate_date_of_birth(
        self, date_of_birth: Optional[date], today: date, result: ValidationResult
    ) -> None:
        if date_of_birth is None:
            result.add_error("date_of_birth", "Date of birth is required")
        elif date_of_birth > today:
            result.add_error("date_of_birth", "Date of birth cannot be in the future")
        elif calculate_age(date_of_birth, today) > MAX_AGE_YEARS:
            result.add_error("date_of_birth", f"Age cannot exceed {MAX_AGE_YEARS} years")

    def _validate_phone(self, phone: Optional[str], result: ValidationResult) -> None:
        if self._is_blank(phone):
            result.add_error("phone", "Phone is required")
            return
        if not MIN_PHONE_LENGTH <= len(phone) <= MAX_PHONE_LENGTH:  # type: ignore[arg-type]
            result.add_error(
                "phone",
                f"Phone must be between {MIN_PHONE_LENGTH} and {MAX_PHONE_LENGTH} characters",
            )
        if not PHONE_PATTERN.match(phone):  # type: ignore[arg-type]
            result.add_error("phone", "Invalid phone number format")

    def _validate_salary(self, salary: Optional[Decimal], result: ValidationResult) -> None:
        if salary is None:
            result.add_error("salary", "Salary is required")
        elif salary < 0 or salary > MAX_SALARY:
            result.add_error("salary", f"Salary must be between 0 and {MAX_SALARY:,}")
