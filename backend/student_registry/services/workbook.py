"""
Excel workbook service: reading import sheets, building the import template,
exporting student reports.
"""

import io
from typing import Any, Iterable, List, Optional, Tuple
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from student_registry.core.datetime_utils import format_day
from student_registry.core.logging import get_logger
from student_registry.models import Gender, StudentStatus
from student_registry.services.normalizer import (
    REQUIRED_HEADERS,
    ImportValidationError,
)

logger = get_logger()

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

TEMPLATE_SHEET_TITLE = "نموذج الطلبة"
TEMPLATE_EXAMPLE_ROW = [
    "محمد عبدالله",
    Gender.MALE.label,
    "15/05/2010",
    "5 ابتدائي",
    "عبدالله أحمد",
    "0123456789",
    "0987654321",
    "تقسيم الوادي",
    StudentStatus.JOINED.label,
    50,
    "طالب مجتهد",
]

REPORT_SHEET_TITLE = "التقارير"
REPORT_COLUMNS = [
    "الاسم الكامل",
    "الجنس",
    "تاريخ الميلاد",
    "العمر",
    "المستوى الدراسي",
    "اسم الولي",
    "رقم الهاتف 1",
    "رقم الهاتف 2",
    "مقر السكن",
    "رقم الصفحة",
    "تاريخ التسجيل",
    "الحالة",
    "الشيخ المسؤول",
    "نقاط التذكير",
    "الملاحظات",
]


def _get(record, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name)


def _label(enum_type, value) -> str:
    if value is None:
        return "-"
    return enum_type(value).label


class WorkbookService:
    """Reads and writes .xlsx files with openpyxl."""

    def is_supported_upload(self, filename: Optional[str], content_type: Optional[str]) -> bool:
        """Only .xlsx uploads are accepted."""
        if filename and filename.lower().endswith(".xlsx"):
            return True
        return content_type == XLSX_CONTENT_TYPE

    def read_rows(self, content: bytes) -> List[Tuple[Any, ...]]:
        """
        Read the first worksheet as a list of raw value rows.

        Raises:
            ImportValidationError: if the bytes are not a readable workbook.
        """
        try:
            workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, BadZipFile, KeyError, ValueError, OSError) as e:
            logger.warning(f"Unreadable workbook upload: {e}")
            raise ImportValidationError(
                "An error occurred while reading the file. Make sure it is not damaged and is a valid .xlsx workbook."
            ) from e
        try:
            sheet = workbook.worksheets[0]
            rows = [tuple(row) for row in sheet.iter_rows(values_only=True)]
        finally:
            workbook.close()
        logger.debug(f"Read {len(rows)} rows from workbook sheet {sheet.title!r}")
        return rows

    def _save(self, workbook: Workbook) -> bytes:
        buffer = io.BytesIO()
        workbook.save(buffer)
        content = buffer.getvalue()
        buffer.close()
        return content

    def build_template(self) -> bytes:
        """Import template: the required header row plus one example row, right-to-left."""
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = TEMPLATE_SHEET_TITLE
        sheet.sheet_view.rightToLeft = True
        sheet.append(REQUIRED_HEADERS)
        sheet.append(TEMPLATE_EXAMPLE_ROW)
        return self._save(workbook)

    def export_students(self, records: Iterable) -> bytes:
        """One row per student with the report columns, right-to-left."""
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = REPORT_SHEET_TITLE
        sheet.sheet_view.rightToLeft = True
        sheet.append(REPORT_COLUMNS)

        count = 0
        for record in records:
            sheet.append(
                [
                    _get(record, "full_name"),
                    _label(Gender, _get(record, "gender")),
                    format_day(_get(record, "birth_date")),
                    _get(record, "age"),
                    _get(record, "level"),
                    _get(record, "guardian_name"),
                    _get(record, "phone1"),
                    _get(record, "phone2") or "-",
                    _get(record, "address"),
                    _get(record, "page_number"),
                    format_day(_get(record, "registration_date")),
                    _label(StudentStatus, _get(record, "status")),
                    _get(record, "assigned_sheikh") or "-",
                    _get(record, "reminder_points") or 0,
                    _get(record, "note") or "-",
                ]
            )
            count += 1

        logger.info(f"Exported {count} students to workbook")
        return self._save(workbook)


# Global workbook service instance
_workbook_service: Optional[WorkbookService] = None


def get_workbook_service() -> WorkbookService:
    """Get the global workbook service instance."""
    global _workbook_service
    if _workbook_service is None:
        _workbook_service = WorkbookService()
    return _workbook_service
