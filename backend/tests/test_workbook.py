"""
Unit tests for the Excel workbook service
"""

import io
from datetime import date, datetime

import pytest
from openpyxl import Workbook, load_workbook

from student_registry.models import AgeGroup, Gender, StudentStatus
from student_registry.services.normalizer import (
    REQUIRED_HEADERS,
    ImportValidationError,
    normalize_worksheet,
)
from student_registry.services.workbook import (
    REPORT_COLUMNS,
    TEMPLATE_EXAMPLE_ROW,
    WorkbookService,
)


def _xlsx(rows):
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class TestWorkbookService:
    """Test reading and writing workbooks."""

    def test_supported_upload(self):
        service = WorkbookService()
        assert service.is_supported_upload("students.XLSX", None)
        assert service.is_supported_upload(
            "upload", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert not service.is_supported_upload("students.csv", "text/csv")

    def test_read_rows(self):
        service = WorkbookService()
        rows = service.read_rows(_xlsx([["a", "b"], [1, None]]))
        assert rows == [("a", "b"), (1, None)]

    def test_read_rows_rejects_garbage(self):
        with pytest.raises(ImportValidationError):
            WorkbookService().read_rows(b"this is not a workbook")

    def test_date_cells_come_back_as_datetimes(self, sheet_row):
        row = sheet_row(birth_date=datetime(2011, 4, 2))
        rows = WorkbookService().read_rows(_xlsx([REQUIRED_HEADERS, row]))
        result = normalize_worksheet(rows, today=date(2024, 6, 1))
        assert result.records[0].birth_date == date(2011, 4, 2)

    def test_template_round_trips_through_normalizer(self):
        service = WorkbookService()
        content = service.build_template()

        sheet = load_workbook(io.BytesIO(content)).active
        assert sheet.sheet_view.rightToLeft
        assert [c.value for c in sheet[1]] == REQUIRED_HEADERS

        result = normalize_worksheet(service.read_rows(content), today=date(2024, 6, 1))
        assert result.ok
        assert len(result.records) == 1
        assert result.records[0].full_name == TEMPLATE_EXAMPLE_ROW[0]

    def test_export_students(self):
        record = {
            "full_name": "خالد",
            "gender": Gender.MALE,
            "birth_date": date(2012, 3, 4),
            "age": 12,
            "age_group": AgeGroup.FROM_11_TO_13,
            "level": "1 متوسط",
            "guardian_name": "عمر",
            "phone1": "0555000000",
            "phone2": "",
            "address": "حي السلام",
            "page_number": 3,
            "registration_date": datetime(2024, 5, 6, 10, 30),
            "status": StudentStatus.REJECTED,
            "assigned_sheikh": None,
            "reminder_points": 15,
            "note": None,
        }
        content = WorkbookService().export_students([record])

        sheet = load_workbook(io.BytesIO(content)).active
        assert sheet.sheet_view.rightToLeft
        assert [c.value for c in sheet[1]] == REPORT_COLUMNS
        values = dict(zip(REPORT_COLUMNS, [c.value for c in sheet[2]]))
        assert values["الجنس"] == "ذكر"
        assert values["تاريخ الميلاد"] == "2012-03-04"
        assert values["تاريخ التسجيل"] == "2024-05-06"
        assert values["الحالة"] == "رُفِض"
        assert values["رقم الهاتف 2"] == "-"
        assert values["الشيخ المسؤول"] == "-"
        assert values["نقاط التذكير"] == 15
