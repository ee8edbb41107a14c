"""
Student model and the closed value lists it draws from.
"""

import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import Column, Date, DateTime, Enum as SQLEnum, Integer, String, Text

from student_registry.core.database import Base
from student_registry.core.datetime_utils import utc_now


class LabeledEnum(str, Enum):
    """
    Enum whose members also carry the Arabic label used in spreadsheets
    and reports.
    """

    @property
    def label(self) -> str:
        return LABELS[self]

    @classmethod
    def parse(cls, raw):
        """Resolve an enum value, Arabic label or known alias; None if nothing matches."""
        if raw is None:
            return None
        text = str(raw).strip()
        for member in cls:
            if text == member.value or text == member.label:
                return member
        alias = ALIASES.get(text)
        return alias if isinstance(alias, cls) else None


class Gender(LabeledEnum):
    """Student gender."""

    MALE = "male"
    FEMALE = "female"


class AgeGroup(LabeledEnum):
    """Age bracket derived from age."""

    UNDER_7 = "under-7"
    FROM_7_TO_10 = "7-10"
    FROM_11_TO_13 = "11-13"
    FROM_14 = "14-plus"


class StudentStatus(LabeledEnum):
    """Registration status; drives cohort and report filters."""

    JOINED = "joined"
    POSTPONED = "postponed"
    MOVED = "moved-to-other-school"
    REJECTED = "rejected"


LABELS = {
    Gender.MALE: "ذكر",
    Gender.FEMALE: "أنثى",
    AgeGroup.UNDER_7: "أقل من 7",
    AgeGroup.FROM_7_TO_10: "من 7–10",
    AgeGroup.FROM_11_TO_13: "من 11–13",
    AgeGroup.FROM_14: "14+",
    StudentStatus.JOINED: "تم الانضمام",
    StudentStatus.POSTPONED: "مؤجل",
    StudentStatus.MOVED: "دخل لمدرسة أخرى",
    StudentStatus.REJECTED: "رُفِض",
}

# Spellings found in older sheets
ALIASES = {
    "مرفوض": StudentStatus.REJECTED,
    "رفض": StudentStatus.REJECTED,
}


LEVELS = [
    "تحضيري",
    "روضة",
    "1 ابتدائي",
    "2 ابتدائي",
    "3 ابتدائي",
    "4 ابتدائي",
    "5 ابتدائي",
    # Whole primary cycle, as recorded by the previous registry
    "5 سنوات ابتدائي",
    "1 متوسط",
    "2 متوسط",
    "3 متوسط",
    "4 متوسط",
    "1 ثانوي",
    "2 ثانوي",
    "3 ثانوي",
    "جامعي",
    "عامل",
    "غير متمدرس",
]


def _fold_level(text: str) -> str:
    return " ".join(text.replace("إ", "ا").replace("أ", "ا").split())


_LEVEL_LOOKUP = {_fold_level(level): level for level in LEVELS}


def parse_level(raw) -> Optional[str]:
    """Match a level against LEVELS, ignoring spacing and hamza variants."""
    if raw is None:
        return None
    return _LEVEL_LOOKUP.get(_fold_level(str(raw)))


class Student(Base):
    """
    Student model.

    Age and age_group are computed when the record is written and are not
    refreshed afterwards; a record read a year later still shows the age at
    its last save. registration_date is set once at creation (naive UTC).
    """

    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(128), nullable=False, index=True)
    full_name = Column(Text, nullable=False)
    gender = Column(SQLEnum(Gender), nullable=False)
    birth_date = Column(Date, nullable=False)
    age = Column(Integer, nullable=False, default=0)
    age_group = Column(SQLEnum(AgeGroup), nullable=False)
    level = Column(Text, nullable=False)
    guardian_name = Column(Text, nullable=False)
    phone1 = Column(String(32), nullable=False)
    phone2 = Column(String(32), nullable=True, default="")
    address = Column(Text, nullable=False)
    registration_date = Column(DateTime, nullable=False, default=utc_now, index=True)
    status = Column(SQLEnum(StudentStatus), nullable=False)
    page_number = Column(Integer, nullable=False, default=0)
    reminder_points = Column(Integer, nullable=False, default=0)
    assigned_sheikh = Column(Text, nullable=True)
    note = Column(Text, nullable=True, default="")

    def to_dict(self) -> dict:
        """Plain copy of every column, detached from the session."""
        return {column.name: getattr(self, column.name) for column in self.__table__.columns}

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, name={self.full_name!r})>"
