"""
Pydantic schemas for imports, reports and the dashboard.
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from student_registry.models import AgeGroup, Gender, StudentStatus
from student_registry.schemas.student import StudentResponse


class ImportedStudent(BaseModel):
    """A normalized spreadsheet row, not yet stored."""

    full_name: str
    gender: Gender
    birth_date: date
    age: int
    age_group: AgeGroup
    level: str
    guardian_name: str
    phone1: str
    phone2: str = ""
    address: str
    status: StudentStatus
    page_number: int = 0
    note: str = ""
    registration_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class RowErrorResponse(BaseModel):
    """A rejected data row."""

    row_number: int
    full_name: str
    message: str

    class Config:
        from_attributes = True


class ImportErrorResponse(BaseModel):
    """Body of a rejected import (HTTP 422)."""

    message: str
    missing_headers: List[str] = Field(default_factory=list)
    errors: List[RowErrorResponse] = Field(default_factory=list)


class ImportPreviewResponse(BaseModel):
    """What an import would store; the first rows are repeated for display."""

    total: int
    preview: List[ImportedStudent]
    records: List[ImportedStudent]


class ImportCommitResponse(BaseModel):
    """Result of a stored import."""

    imported: int
    ids: List[str]


class LevelCount(BaseModel):
    level: str
    count: int


class PeriodCount(BaseModel):
    period: str
    count: int


class DashboardResponse(BaseModel):
    """Overview figures for the home screen."""

    total: int
    status_counts: Dict[str, int]
    level_distribution: List[LevelCount]
    weekly: List[PeriodCount]
    monthly: List[PeriodCount]
    latest: List[StudentResponse]


class ReportResponse(BaseModel):
    """Registrations within a reporting period."""

    period: str
    count: int
    students: List[StudentResponse]
