"""
Shared route dependencies.
"""

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from student_registry.core.database import get_db
from student_registry.core.security import UserContext, get_current_user
from student_registry.schemas import ImportErrorResponse, RowErrorResponse
from student_registry.services.directory import StudentDirectory
from student_registry.services.normalizer import ImportValidationError


def get_directory(
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> StudentDirectory:
    """Directory scoped to the requesting user."""
    return StudentDirectory(db, user)


def import_error(e: ImportValidationError) -> HTTPException:
    """422 carrying the missing headers and rejected rows."""
    body = ImportErrorResponse(
        message=e.message,
        missing_headers=e.missing_headers,
        errors=[RowErrorResponse.model_validate(error) for error in e.errors],
    )
    return HTTPException(status_code=422, detail=body.model_dump())
