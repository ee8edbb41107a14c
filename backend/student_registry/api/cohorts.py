"""
API routes for cohort planning: pick waiting students and reassign them in one batch.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from student_registry.api.deps import get_directory
from student_registry.core.logging import get_logger
from student_registry.schemas import CohortApplyRequest, StudentResponse
from student_registry.services.aggregates import DEFAULT_COHORT_STATUSES, filter_cohort
from student_registry.services.directory import StudentDirectory, StudentNotFoundError

logger = get_logger()

router = APIRouter(prefix="/cohorts", tags=["Cohorts"])


@router.get("", response_model=List[StudentResponse])
def list_cohort(
    levels: Optional[List[str]] = Query(None, description="Levels to include (all when omitted)"),
    statuses: Optional[List[str]] = Query(None, description="Statuses to include"),
    directory: StudentDirectory = Depends(get_directory),
):
    """
    Cohort candidates, oldest registration first.

    Without statuses, students who were postponed, rejected or moved to
    another school are listed.
    """
    return filter_cohort(
        directory.list_all(),
        levels=levels,
        statuses=statuses or DEFAULT_COHORT_STATUSES,
    )


@router.post("/apply", response_model=List[StudentResponse])
def apply_cohort(payload: CohortApplyRequest, directory: StudentDirectory = Depends(get_directory)):
    """Apply status and sheikh changes together; an unknown id rejects the whole batch."""
    items = []
    for change in payload.changes:
        fields = change.model_dump(exclude_unset=True, exclude={"id"})
        if fields.get("status", "") is None:
            raise HTTPException(status_code=400, detail="Status cannot be empty")
        if "assigned_sheikh" in fields:
            fields["assigned_sheikh"] = fields["assigned_sheikh"] or None
        items.append({"id": change.id, "fields": fields})

    try:
        students = directory.bulk_update(items)
    except StudentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info(f"Cohort applied to {len(students)} students")
    return students
