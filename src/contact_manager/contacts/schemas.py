"""
Pydantic schemas for contact management.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from contact_manager.contacts.validation import (
    MAX_SALARY,
    PHONE_PATTERN,
    calculate_age,
)


class ContactCsvRecord(BaseModel):
    """Raw CSV row, every cell kept as the trimmed source text."""

    name: str = ""
    date_of_birth: str = ""
    married: str = ""
    phone: str = ""
    salary: str = ""


class ContactBase(BaseModel):
    """Base contact schema with common fields."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Contact full name",
    )
    date_of_birth: date = Field(
        ...,
        description="Date of birth (must not be in the future)",
    )
    married: bool = Field(
        default=False,
        description="Marital status",
    )
    phone: str = Field(
        ...,
        min_length=5,
        max_length=20,
        pattern=PHONE_PATTERN.pattern,
        description="Phone number, digits with optional +, spaces, dashes, parentheses",
    )
    salary: Decimal = Field(
        ...,
        ge=0,
        le=MAX_SALARY,
        decimal_places=2,
        description="Salary amount",
    )


class ContactCreateRequest(ContactBase):
    """Schema for creating a contact."""

    pass


class ContactUpdateRequest(ContactBase):
    """Schema for updating a contact."""

    id: int = Field(..., ge=1, description="Contact ID, must match the path")


class ContactResponse(BaseModel):
    """Schema for contact response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    date_of_birth: date
    married: bool
    phone: str
    salary: Decimal

    @computed_field  # type: ignore[prop-decorator]
    @property
    def age(self) -> int:
        return calculate_age(self.date_of_birth)


class ContactListResponse(BaseModel):
    """Schema for contact list response."""

    items: list[ContactResponse]
    total: int


class ContactOperationResponse(BaseModel):
    """Outcome of a mutating contact operation."""

    success: bool
    message: str
    contact: ContactResponse | None = None


class CSVUploadResponse(BaseModel):
    """Schema for CSV upload response."""

    rows_read: int = Field(..., ge=0, description="Data rows found in the file")
    imported: int = Field(..., ge=0, description="Contacts stored in the database")
    skipped: int = Field(..., ge=0, description="Rows dropped by parsing or validation")
    message: str = Field(..., description="Human readable summary")


class ContactStatisticsResponse(BaseModel):
    """Aggregate statistics over all stored contacts."""

    total_contacts: int = 0
    married_contacts: int = 0
    single_contacts: int = 0
    married_percentage: float = 0.0
    average_salary: float = 0.0
    min_salary: Decimal = Decimal("0")
    max_salary: Decimal = Decimal("0")
    average_age: float = 0.0
