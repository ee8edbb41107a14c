"""
API route for the dashboard overview.
"""

from fastapi import APIRouter, Depends

from student_registry.api.deps import get_directory
from student_registry.schemas import DashboardResponse, StudentResponse
from student_registry.services.aggregates import (
    latest,
    level_distribution,
    monthly_registrations,
    status_counts,
    weekly_registrations,
)
from student_registry.services.directory import StudentDirectory

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

LATEST_COUNT = 5


@router.get("", response_model=DashboardResponse)
def get_dashboard(directory: StudentDirectory = Depends(get_directory)):
    """Totals, distributions and the latest registrations."""
    students = directory.list_all()
    return DashboardResponse(
        total=len(students),
        status_counts=status_counts(students),
        level_distribution=level_distribution(students),
        weekly=weekly_registrations(students),
        monthly=monthly_registrations(students),
        latest=[StudentResponse.model_validate(s) for s in latest(students, LATEST_COUNT)],
    )
