"""
Schemas package initialization.
"""

from student_registry.schemas.student import (
    StudentBase,
    StudentCreate,
    StudentUpdate,
    StudentResponse,
    CohortChange,
    CohortApplyRequest,
    PointsRequest,
    PointsResponse,
    PointsSearchResponse,
    ChoiceResponse,
    RosterResponse,
)

from student_registry.schemas.reports import (
    ImportedStudent,
    RowErrorResponse,
    ImportErrorResponse,
    ImportPreviewResponse,
    ImportCommitResponse,
    LevelCount,
    PeriodCount,
    DashboardResponse,
    ReportResponse,
)

__all__ = [
    # Student
    "StudentBase",
    "StudentCreate",
    "StudentUpdate",
    "StudentResponse",
    "CohortChange",
    "CohortApplyRequest",
    "PointsRequest",
    "PointsResponse",
    "PointsSearchResponse",
    "ChoiceResponse",
    "RosterResponse",
    # Imports and reports
    "ImportedStudent",
    "RowErrorResponse",
    "ImportErrorResponse",
    "ImportPreviewResponse",
    "ImportCommitResponse",
    "LevelCount",
    "PeriodCount",
    "DashboardResponse",
    "ReportResponse",
]
