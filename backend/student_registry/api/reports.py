"""
API routes for registration reports and their Excel export.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from student_registry.api.deps import get_directory
from student_registry.core.datetime_utils import format_day
from student_registry.core.logging import get_logger
from student_registry.schemas import ReportResponse, StudentResponse
from student_registry.services.aggregates import filter_by_registration
from student_registry.services.directory import StudentDirectory
from student_registry.services.workbook import XLSX_CONTENT_TYPE, get_workbook_service

logger = get_logger()

router = APIRouter(prefix="/reports", tags=["Reports"])

PERIOD_PATTERN = "^(day|range|month|year)$"


class ReportQuery:
    """Query parameters shared by the report and its export."""

    def __init__(
        self,
        period: str = Query("month", pattern=PERIOD_PATTERN),
        day: Optional[date] = Query(None, description="For period=day"),
        start: Optional[date] = Query(None, description="For period=range (inclusive)"),
        end: Optional[date] = Query(None, description="For period=range (inclusive)"),
        month: Optional[int] = Query(None, ge=1, le=12, description="For period=month"),
        year: Optional[int] = Query(None, ge=1900, description="For period=month or year"),
    ):
        self.period = period
        self.day = day
        self.start = start
        self.end = end
        self.month = month
        self.year = year

    def select(self, records):
        try:
            return filter_by_registration(
                records,
                self.period,
                day=self.day,
                start=self.start,
                end=self.end,
                month=self.month,
                year=self.year,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=ReportResponse)
def get_report(
    query: ReportQuery = Depends(),
    directory: StudentDirectory = Depends(get_directory),
):
    """Students registered within the requested period, newest first."""
    students = query.select(directory.list_all())
    return ReportResponse(
        period=query.period,
        count=len(students),
        students=[StudentResponse.model_validate(s) for s in students],
    )


@router.get("/export")
def export_report(
    query: ReportQuery = Depends(),
    directory: StudentDirectory = Depends(get_directory),
):
    """The same selection as an .xlsx download."""
    students = query.select(directory.list_all())
    content = get_workbook_service().export_students(students)
    filename = f"student_report_{format_day(date.today())}.xlsx"
    logger.info(f"Report export: {len(students)} students, period {query.period}")
    return Response(
        content=content,
        media_type=XLSX_CONTENT_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Content-Length": str(len(content)),
        },
    )
