"""
Services package initialization.
"""

from student_registry.services.change_feed import ChangeFeed, Subscription, get_change_feed
from student_registry.services.directory import (
    StorageError,
    StudentDirectory,
    StudentNotFoundError,
)
from student_registry.services.normalizer import (
    ImportResult,
    ImportValidationError,
    normalize_worksheet,
)
from student_registry.services.workbook import WorkbookService, get_workbook_service

__all__ = [
    "ChangeFeed",
    "Subscription",
    "get_change_feed",
    "StorageError",
    "StudentDirectory",
    "StudentNotFoundError",
    "ImportResult",
    "ImportValidationError",
    "normalize_worksheet",
    "WorkbookService",
    "get_workbook_service",
]
