"""
Models package initialization.
"""

from student_registry.models.student import (
    LEVELS,
    AgeGroup,
    Gender,
    Student,
    StudentStatus,
    parse_level,
)

__all__ = [
    "LEVELS",
    "AgeGroup",
    "Gender",
    "Student",
    "StudentStatus",
    "parse_level",
]
