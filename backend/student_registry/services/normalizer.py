"""
Spreadsheet row normalizer.

Turns a raw worksheet (a list of rows, the first one being the header row)
into validated student records. The function is pure: no I/O, no writes.
One bad row rejects the whole file; valid rows are only surfaced when
every row is clean.
"""

import re
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from student_registry.models import AgeGroup, Gender, StudentStatus, parse_level

HEADER_FULL_NAME = "الاسم الكامل"
HEADER_GENDER = "الجنس"
HEADER_BIRTH_DATE = "تاريخ الميلاد"
HEADER_LEVEL = "المستوى الدراسي"
HEADER_GUARDIAN = "اسم الولي"
HEADER_PHONE1 = "رقم الهاتف 1"
HEADER_PHONE2 = "رقم الهاتف 2"
HEADER_ADDRESS = "مقر السكن"
HEADER_STATUS = "الحالة"
HEADER_PAGE = "رقم الصفحة"
HEADER_NOTE = "ملاحظات"
HEADER_REGISTRATION_DATE = "تاريخ التسجيل"

REQUIRED_HEADERS = [
    HEADER_FULL_NAME,
    HEADER_GENDER,
    HEADER_BIRTH_DATE,
    HEADER_LEVEL,
    HEADER_GUARDIAN,
    HEADER_PHONE1,
    HEADER_PHONE2,
    HEADER_ADDRESS,
    HEADER_STATUS,
    HEADER_PAGE,
    HEADER_NOTE,
]

# Spreadsheet serial 25569 is 1970-01-01; counting from there absorbs the
# 1900 leap-year bug for every date after 1900-03-01.
SERIAL_UNIX_EPOCH = 25569
UNIX_EPOCH = datetime(1970, 1, 1)

_DATE_SEPARATORS = re.compile(r"[/.\-]")


class ImportValidationError(Exception):
    """Raised when an uploaded sheet cannot be imported; nothing is written."""

    def __init__(self, message: str, missing_headers=None, errors=None):
        super().__init__(message)
        self.message = message
        self.missing_headers = list(missing_headers or [])
        self.errors = list(errors or [])


@dataclass
class RowError:
    """A data row that was rejected."""

    row_number: int
    full_name: str
    message: str


@dataclass
class NormalizedStudent:
    """A validated row, ready for Directory.create_many."""

    full_name: str
    gender: Gender
    birth_date: date
    age: int
    age_group: AgeGroup
    level: str
    guardian_name: str
    phone1: str
    phone2: str
    address: str
    status: StudentStatus
    page_number: int
    note: str
    registration_date: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        record = asdict(self)
        if record["registration_date"] is None:
            del record["registration_date"]
        return record


@dataclass
class ImportResult:
    """Outcome of normalizing one worksheet."""

    records: List[NormalizedStudent] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)
    missing_headers: List[str] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.message is None

    def raise_for_errors(self) -> None:
        if not self.ok:
            raise ImportValidationError(
                self.message,
                missing_headers=self.missing_headers,
                errors=self.errors,
            )


# ---------------------------------------------------------------------------
# Derived fields
# ---------------------------------------------------------------------------


def calculate_age(birth_date: date, today: Optional[date] = None) -> int:
    """Whole years since birth_date; never negative."""
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return max(age, 0)


def age_group_for(age: int) -> AgeGroup:
    if age < 7:
        return AgeGroup.UNDER_7
    if age <= 10:
        return AgeGroup.FROM_7_TO_10
    if age <= 13:
        return AgeGroup.FROM_11_TO_13
    return AgeGroup.FROM_14


def derive_age_fields(birth_date: date, today: Optional[date] = None) -> Dict[str, Any]:
    """The age/age_group pair to store alongside birth_date."""
    age = calculate_age(birth_date, today)
    return {"age": age, "age_group": age_group_for(age)}


# ---------------------------------------------------------------------------
# Date parsing
# ---------------------------------------------------------------------------


def resolve_two_digit_year(year: int, today: Optional[date] = None) -> int:
    """Years above the current two-digit year belong to the 1900s."""
    current = (today or date.today()).year % 100
    return year + (1900 if year > current else 2000)


def _parse_serial(value: float) -> Optional[date]:
    try:
        return (UNIX_EPOCH + timedelta(days=value - SERIAL_UNIX_EPOCH)).date()
    except (OverflowError, ValueError):
        return None


def _parse_day_month_year(text: str, today: Optional[date]) -> Optional[date]:
    parts = _DATE_SEPARATORS.split(text)
    if len(parts) != 3:
        return None
    try:
        day, month, year = (int(part.strip()) for part in parts)
    except ValueError:
        return None
    if 0 <= year < 100:
        year = resolve_two_digit_year(year, today)
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_iso(text: str) -> Optional[date]:
    candidates = [text, text.replace("/", "-").replace(".", "-")]
    for candidate in candidates:
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(candidate).date()
        except ValueError:
            continue
    return None


def parse_date(value: Any, today: Optional[date] = None) -> Optional[date]:
    """
    Parse a birth/registration date cell.

    Accepted, in order: date/datetime values, spreadsheet serial numbers,
    D/M/Y strings (also with - or . separators), then ISO-style strings
    (Y-M-D, also with / or .). Returns None when the result is not a real
    calendar date.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return _parse_serial(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        return _parse_day_month_year(text, today) or _parse_iso(text)
    return None


# ---------------------------------------------------------------------------
# Cell coercion
# ---------------------------------------------------------------------------


def _is_empty(cell: Any) -> bool:
    return cell is None or (isinstance(cell, str) and not cell.strip())


def _text(cell: Any) -> str:
    if _is_empty(cell):
        return ""
    if isinstance(cell, float) and cell.is_integer():
        return str(int(cell))
    return str(cell).strip()


def _page_number(cell: Any) -> int:
    if _is_empty(cell) or isinstance(cell, bool):
        return 0
    try:
        number = int(float(str(cell).strip()))
    except (TypeError, ValueError):
        return 0
    return max(number, 0)


def _display(cell: Any) -> str:
    return "" if cell is None else str(cell)


# ---------------------------------------------------------------------------
# Rows and worksheets
# ---------------------------------------------------------------------------


def build_header_index(header_row: Sequence[Any]) -> Dict[str, int]:
    """Map trimmed header text to its column index (first occurrence wins)."""
    index: Dict[str, int] = {}
    for position, cell in enumerate(header_row):
        name = _text(cell)
        if name and name not in index:
            index[name] = position
    return index


def find_missing_headers(
    header_index: Dict[str, int], required_headers: Sequence[str] = REQUIRED_HEADERS
) -> List[str]:
    return [header for header in required_headers if header not in header_index]


def normalize_row(
    row: Sequence[Any],
    header_index: Dict[str, int],
    row_number: int,
    today: Optional[date] = None,
):
    """
    Normalize one data row.

    Returns None for rows that are skipped (blank, or no name), a RowError
    for rejected rows, otherwise a NormalizedStudent.
    """

    def cell(header: str) -> Any:
        position = header_index.get(header)
        if position is None or position >= len(row):
            return None
        return row[position]

    if all(_is_empty(value) for value in row):
        return None

    full_name = _text(cell(HEADER_FULL_NAME))
    if not full_name:
        return None

    raw_birth_date = cell(HEADER_BIRTH_DATE)
    birth_date = parse_date(raw_birth_date, today)
    if birth_date is None:
        return RowError(
            row_number,
            full_name,
            f"Invalid birth date. Value entered: '{_display(raw_birth_date)}'",
        )

    raw_gender = cell(HEADER_GENDER)
    gender = Gender.parse(raw_gender)
    if gender is None:
        return RowError(row_number, full_name, f"Invalid gender. Value entered: '{_display(raw_gender)}'")

    raw_level = cell(HEADER_LEVEL)
    level = parse_level(raw_level)
    if level is None:
        return RowError(row_number, full_name, f"Unknown level. Value entered: '{_display(raw_level)}'")

    raw_status = cell(HEADER_STATUS)
    status = StudentStatus.parse(raw_status)
    if status is None:
        return RowError(row_number, full_name, f"Unknown status. Value entered: '{_display(raw_status)}'")

    registration_date = None
    if HEADER_REGISTRATION_DATE in header_index:
        registered_on = parse_date(cell(HEADER_REGISTRATION_DATE), today)
        if registered_on is not None:
            registration_date = datetime(registered_on.year, registered_on.month, registered_on.day)

    age_fields = derive_age_fields(birth_date, today)
    return NormalizedStudent(
        full_name=full_name,
        gender=gender,
        birth_date=birth_date,
        age=age_fields["age"],
        age_group=age_fields["age_group"],
        level=level,
        guardian_name=_text(cell(HEADER_GUARDIAN)),
        phone1=_text(cell(HEADER_PHONE1)),
        phone2=_text(cell(HEADER_PHONE2)),
        address=_text(cell(HEADER_ADDRESS)),
        status=status,
        page_number=_page_number(cell(HEADER_PAGE)),
        note=_text(cell(HEADER_NOTE)),
        registration_date=registration_date,
    )


def normalize_worksheet(
    rows: Sequence[Sequence[Any]],
    required_headers: Sequence[str] = REQUIRED_HEADERS,
    today: Optional[date] = None,
) -> ImportResult:
    """
    Normalize a whole worksheet.

    Args:
        rows: Worksheet rows as sequences of cell values; rows[0] is the header row.
        required_headers: Header names that must all be present.
        today: Reference date for ages and two-digit years (defaults to today).

    Returns:
        ImportResult. records is non-empty only when there is no error at all.
    """
    if not rows:
        return ImportResult(message="The file is empty or contains no data.")

    header_index = build_header_index(rows[0])
    missing = find_missing_headers(header_index, required_headers)
    if missing:
        return ImportResult(
            missing_headers=missing,
            message="Incompatible file. The following columns are missing: " + ", ".join(missing),
        )

    records: List[NormalizedStudent] = []
    errors: List[RowError] = []
    # Worksheet row numbers are 1-based and the header is row 1
    for row_number, row in enumerate(rows[1:], start=2):
        outcome = normalize_row(row or (), header_index, row_number, today)
        if isinstance(outcome, RowError):
            errors.append(outcome)
        elif outcome is not None:
            records.append(outcome)

    if errors:
        first = errors[0]
        return ImportResult(
            errors=errors,
            message=(
                f"Found {len(errors)} record(s) with problems. "
                f'First example: student "{first.full_name}" (row {first.row_number}) - {first.message}. '
                "Please review the file and correct it (date example: 2000/02/24)."
            ),
        )

    if not records:
        return ImportResult(message="No valid records were found in the file.")

    return ImportResult(records=records)
