"""
Pydantic schemas for the Student API.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from student_registry.core.config import get_config
from student_registry.models import LEVELS, AgeGroup, Gender, StudentStatus

PHONE_PATTERN = r"^0\d{9}$"
OPTIONAL_PHONE_PATTERN = r"^(0\d{9})?$"


def _check_level(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in LEVELS:
        raise ValueError(f"Unknown level: {value}")
    return value


def _check_sheikh(value: Optional[str]) -> Optional[str]:
    if value and value not in get_config().school.sheikhs:
        raise ValueError(f"Unknown sheikh: {value}")
    return value


def _check_birth_date(value: Optional[date]) -> Optional[date]:
    if value is not None and value > date.today():
        raise ValueError("Birth date cannot be in the future")
    return value


class StudentBase(BaseModel):
    """Base student schema (the fields a registrar fills in)."""

    full_name: str = Field(..., min_length=2)
    gender: Gender
    birth_date: date
    level: str
    guardian_name: str = Field(..., min_length=2)
    phone1: str = Field(..., pattern=PHONE_PATTERN)
    phone2: Optional[str] = Field("", pattern=OPTIONAL_PHONE_PATTERN)
    address: str = Field(..., min_length=5)
    status: StudentStatus
    page_number: int = Field(0, ge=0)
    assigned_sheikh: Optional[str] = None
    note: Optional[str] = ""

    @field_validator("level")
    @classmethod
    def validate_level(cls, value):
        return _check_level(value)

    @field_validator("assigned_sheikh")
    @classmethod
    def validate_sheikh(cls, value):
        return _check_sheikh(value)

    @field_validator("birth_date")
    @classmethod
    def validate_birth_date(cls, value):
        return _check_birth_date(value)


class StudentCreate(StudentBase):
    """Schema for registering a student."""

    pass


class StudentUpdate(BaseModel):
    """Schema for editing a student; only the fields sent are changed."""

    full_name: Optional[str] = Field(None, min_length=2)
    gender: Optional[Gender] = None
    birth_date: Optional[date] = None
    level: Optional[str] = None
    guardian_name: Optional[str] = Field(None, min_length=2)
    phone1: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    phone2: Optional[str] = Field(None, pattern=OPTIONAL_PHONE_PATTERN)
    address: Optional[str] = Field(None, min_length=5)
    status: Optional[StudentStatus] = None
    page_number: Optional[int] = Field(None, ge=0)
    assigned_sheikh: Optional[str] = None
    note: Optional[str] = None

    @field_validator("level")
    @classmethod
    def validate_level(cls, value):
        return _check_level(value)

    @field_validator("assigned_sheikh")
    @classmethod
    def validate_sheikh(cls, value):
        return _check_sheikh(value)

    @field_validator("birth_date")
    @classmethod
    def validate_birth_date(cls, value):
        return _check_birth_date(value)


class StudentResponse(BaseModel):
    """Student response schema."""

    id: str
    full_name: str
    gender: Gender
    birth_date: date
    age: int
    age_group: AgeGroup
    level: str
    guardian_name: str
    phone1: str
    phone2: Optional[str] = ""
    address: str
    registration_date: datetime
    status: StudentStatus
    page_number: int = 0
    reminder_points: int = 0
    assigned_sheikh: Optional[str] = None
    note: Optional[str] = ""

    class Config:
        from_attributes = True


class CohortChange(BaseModel):
    """One student's reassignment in a cohort batch."""

    id: str
    status: Optional[StudentStatus] = None
    assigned_sheikh: Optional[str] = None

    @field_validator("assigned_sheikh")
    @classmethod
    def validate_sheikh(cls, value):
        return _check_sheikh(value)


class CohortApplyRequest(BaseModel):
    """A batch of reassignments applied together."""

    changes: List[CohortChange] = Field(..., min_length=1)


class PointsRequest(BaseModel):
    """Reminder points to add; defaults to the configured increment."""

    delta: Optional[int] = Field(None, ge=1)


class PointsResponse(BaseModel):
    """Reminder point total after an increment."""

    id: str
    full_name: str
    reminder_points: int
    has_priority: bool


class PointsSearchResponse(BaseModel):
    """Result of looking a student up by name or phone."""

    found: bool
    student: Optional[StudentResponse] = None
    has_priority: bool = False


class ChoiceResponse(BaseModel):
    """An enum value with its Arabic label."""

    value: str
    label: str


class RosterResponse(BaseModel):
    """Closed lists used by registration and cohort forms."""

    levels: List[str]
    sheikhs: List[str]
    genders: List[ChoiceResponse]
    statuses: List[ChoiceResponse]
    points_increment: int
    priority_threshold: int
