"""
API routes for spreadsheet import.
"""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from student_registry.api.deps import get_directory, import_error
from student_registry.core.logging import get_logger
from student_registry.core.security import UserContext, get_current_user
from student_registry.schemas import (
    ImportCommitResponse,
    ImportedStudent,
    ImportPreviewResponse,
)
from student_registry.services.directory import StudentDirectory
from student_registry.services.normalizer import (
    ImportResult,
    ImportValidationError,
    normalize_worksheet,
)
from student_registry.services.workbook import XLSX_CONTENT_TYPE, get_workbook_service

logger = get_logger()

router = APIRouter(prefix="/import", tags=["Import"])

PREVIEW_SIZE = 5
TEMPLATE_FILENAME = "student_import_template.xlsx"


async def _normalize_upload(file: UploadFile) -> ImportResult:
    workbook_service = get_workbook_service()
    if not workbook_service.is_supported_upload(file.filename, file.content_type):
        raise HTTPException(status_code=400, detail="Unsupported file format. Supported: XLSX")

    content = await file.read()
    try:
        rows = workbook_service.read_rows(content)
        result = normalize_worksheet(rows)
        result.raise_for_errors()
    except ImportValidationError as e:
        logger.warning(f"Import of {file.filename} rejected: {e.message}")
        raise import_error(e)
    return result


@router.get("/template")
def download_template(user: UserContext = Depends(get_current_user)):
    """Empty import sheet with the expected headers and one example row."""
    content = get_workbook_service().build_template()
    return Response(
        content=content,
        media_type=XLSX_CONTENT_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"',
            "Content-Length": str(len(content)),
        },
    )


@router.post("/preview", response_model=ImportPreviewResponse)
async def preview_import(
    file: UploadFile = File(...),
    user: UserContext = Depends(get_current_user),
):
    """Validate an upload without storing it."""
    result = await _normalize_upload(file)
    records = [ImportedStudent.model_validate(record) for record in result.records]
    return ImportPreviewResponse(
        total=len(records),
        preview=records[:PREVIEW_SIZE],
        records=records,
    )


@router.post("", response_model=ImportCommitResponse, status_code=201)
async def commit_import(
    file: UploadFile = File(...),
    directory: StudentDirectory = Depends(get_directory),
):
    """Validate an upload and store every row in one transaction."""
    result = await _normalize_upload(file)
    students = directory.create_many([record.to_record() for record in result.records])
    logger.info(f"Imported {len(students)} students from {file.filename}")
    return ImportCommitResponse(
        imported=len(students),
        ids=[student.id for student in students],
    )
