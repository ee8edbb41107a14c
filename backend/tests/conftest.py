"""
Test configuration and fixtures
"""

import pytest
import os
import tempfile
import sys
from datetime import date

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Point data and logs at a scratch directory before any application import
_base_dir = tempfile.mkdtemp(prefix="student_registry_tests_")
os.environ["DATA_DIR"] = os.path.join(_base_dir, "data")
os.environ["LOGS_DIR"] = os.path.join(_base_dir, "logs")
os.environ["STUDENT_REGISTRY_CONFIG"] = os.path.join(_base_dir, "missing-config.yaml")

from student_registry.core.database import drop_db, get_session_local, init_db  # noqa: E402
from student_registry.core.security import UserContext  # noqa: E402
from student_registry.models import AgeGroup, Gender, StudentStatus  # noqa: E402
from student_registry.services.change_feed import ChangeFeed  # noqa: E402
from student_registry.services.directory import StudentDirectory  # noqa: E402
from student_registry.services.normalizer import REQUIRED_HEADERS  # noqa: E402


@pytest.fixture(scope="function", autouse=True)
def setup_teardown():
    """Fresh tables for each test."""
    init_db()
    yield
    drop_db()


@pytest.fixture
def db():
    """Create a test database session."""
    SessionLocal = get_session_local()
    db = SessionLocal()
    yield db
    db.close()


@pytest.fixture
def feed():
    """A change feed private to the test."""
    return ChangeFeed()


@pytest.fixture
def user():
    return UserContext(user_id="user-a")


@pytest.fixture
def directory(db, user, feed):
    return StudentDirectory(db, user, feed=feed)


@pytest.fixture
def make_record():
    """Factory for a complete, valid student record."""

    def _make(**overrides):
        record = {
            "full_name": "محمد عبدالله",
            "gender": Gender.MALE,
            "birth_date": date(2014, 3, 1),
            "age": 10,
            "age_group": AgeGroup.FROM_7_TO_10,
            "level": "5 ابتدائي",
            "guardian_name": "عبدالله أحمد",
            "phone1": "0123456789",
            "phone2": "",
            "address": "حي النصر",
            "status": StudentStatus.JOINED,
            "page_number": 12,
            "assigned_sheikh": None,
            "note": "",
        }
        record.update(overrides)
        return record

    return _make


@pytest.fixture
def sheet_rows():
    """Factory for worksheet rows: the required header row plus data rows."""

    def _rows(*data_rows, headers=None):
        return [list(headers or REQUIRED_HEADERS)] + [list(row) for row in data_rows]

    return _rows


@pytest.fixture
def sheet_row():
    """Factory for one valid data row in REQUIRED_HEADERS order."""

    def _row(**overrides):
        values = {
            "full_name": "أحمد علي",
            "gender": "ذكر",
            "birth_date": "15/05/2010",
            "level": "5 ابتدائي",
            "guardian_name": "علي محمد",
            "phone1": "0555123456",
            "phone2": "",
            "address": "تقسيم الوادي",
            "status": "تم الانضمام",
            "page_number": 50,
            "note": "",
        }
        values.update(overrides)
        return list(values.values())

    return _row
