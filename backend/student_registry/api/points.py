"""
API routes for the reminder-points desk.
"""

from fastapi import APIRouter, Depends, Query

from student_registry.api.deps import get_directory
from student_registry.core.config import get_config
from student_registry.schemas import PointsSearchResponse, StudentResponse
from student_registry.services.aggregates import has_priority
from student_registry.services.directory import StudentDirectory

router = APIRouter(prefix="/points", tags=["Points"])


@router.get("/search", response_model=PointsSearchResponse)
def search_student(
    q: str = Query(..., min_length=1, description="Exact full name or first phone number"),
    directory: StudentDirectory = Depends(get_directory),
):
    """Look a student up by exact name, then by phone."""
    student = directory.find_one(q)
    if student is None:
        return PointsSearchResponse(found=False)
    return PointsSearchResponse(
        found=True,
        student=StudentResponse.model_validate(student),
        has_priority=has_priority(student, get_config().school.priority_threshold),
    )
