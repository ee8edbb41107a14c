"""
Student directory: the only sanctioned way to read and write student records.

Every operation is scoped to the UserContext the directory was built with.
Writes commit immediately and then push the owner's full, newest-first list
to the change feed.
"""

import uuid
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from student_registry.core.datetime_utils import to_storage_datetime, utc_now
from student_registry.core.logging import get_logger
from student_registry.core.security import UserContext
from student_registry.models import AgeGroup, Gender, Student, StudentStatus
from student_registry.services.change_feed import ChangeFeed, Subscription, get_change_feed

logger = get_logger()


class StudentNotFoundError(Exception):
    """Raised when one or more student ids do not exist for the current user."""

    def __init__(self, student_ids: Sequence[str]):
        self.student_ids = list(student_ids)
        if len(self.student_ids) == 1:
            message = f"Student not found: {self.student_ids[0]}"
        else:
            message = f"Students not found: {', '.join(self.student_ids)}"
        super().__init__(message)


class StorageError(Exception):
    """Raised when the backing store rejects a write; nothing was committed."""


# Fields a caller supplies when creating a record
RECORD_FIELDS = {
    "full_name",
    "gender",
    "birth_date",
    "age",
    "age_group",
    "level",
    "guardian_name",
    "phone1",
    "phone2",
    "address",
    "status",
    "page_number",
    "assigned_sheikh",
    "note",
}

REQUIRED_FIELDS = {
    "full_name",
    "gender",
    "birth_date",
    "age",
    "age_group",
    "level",
    "guardian_name",
    "phone1",
    "address",
    "status",
}

# registration_date, reminder_points, id and owner_id have their own rules
UPDATABLE_FIELDS = RECORD_FIELDS

_ENUM_FIELDS = {"gender": Gender, "age_group": AgeGroup, "status": StudentStatus}


def _clean_fields(fields: Mapping[str, Any], allowed: Iterable[str]) -> Dict[str, Any]:
    allowed = set(allowed)
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise ValueError(f"Fields cannot be written here: {', '.join(unknown)}")
    cleaned = {}
    for name, value in fields.items():
        enum_type = _ENUM_FIELDS.get(name)
        if enum_type is not None and value is not None and not isinstance(value, enum_type):
            value = enum_type(value)
        cleaned[name] = value
    return cleaned


class StudentDirectory:
    """
    CRUD, points and subscription surface over one user's student records.

    Args:
        db: SQLAlchemy session used for every statement.
        user: The authenticated user; all reads and writes are limited to
            records owned by user.user_id.
        feed: Change feed to publish to (defaults to the process-wide one).
    """

    def __init__(self, db: Session, user: UserContext, feed: Optional[ChangeFeed] = None):
        if user is None:
            raise ValueError("A user context is required")
        self.db = db
        self.user = user
        self.feed = feed or get_change_feed()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _query(self):
        return self.db.query(Student).filter(Student.owner_id == self.user.user_id)

    def list_all(self) -> List[Student]:
        """One-shot read of every record, newest registration first."""
        return (
            self._query()
            .order_by(Student.registration_date.desc(), Student.id)
            .all()
        )

    def snapshot(self) -> List[dict]:
        return [student.to_dict() for student in self.list_all()]

    def get(self, student_id: str) -> Student:
        student = self._query().filter(Student.id == student_id).first()
        if student is None:
            raise StudentNotFoundError([student_id])
        return student

    def find_one(self, query: str) -> Optional[Student]:
        """Exact match on full name, then on the first phone number."""
        query = (query or "").strip()
        if not query:
            return None
        student = self._query().filter(Student.full_name == query).first()
        if student is None:
            student = self._query().filter(Student.phone1 == query).first()
        return student

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, on_change: Callable[[List[dict]], None]) -> Subscription:
        """
        Register a live listener. The current list is delivered right away;
        afterwards the listener gets the full list after every write. Call
        the returned handle when the view goes away.
        """
        subscription = self.feed.subscribe(self.user.user_id, on_change)
        try:
            on_change(self.snapshot())
        except Exception:
            subscription.unsubscribe()
            raise
        return subscription

    def _notify(self) -> None:
        if not self.feed.has_listeners(self.user.user_id):
            return
        try:
            snapshot = self.snapshot()
        except SQLAlchemyError:
            logger.exception("Could not read snapshot for change listeners")
            return
        self.feed.publish(self.user.user_id, snapshot)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise StorageError(f"Could not {action}: {e}") from e

    def _execute(self, statement, action: str):
        try:
            return self.db.execute(statement)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise StorageError(f"Could not {action}: {e}") from e

    def _new_student(self, record: Mapping[str, Any], allow_registration_date: bool) -> Student:
        record = dict(record)
        registration_date = record.pop("registration_date", None) if allow_registration_date else None
        fields = _clean_fields(record, RECORD_FIELDS)
        missing = sorted(name for name in REQUIRED_FIELDS if fields.get(name) is None)
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")
        fields.setdefault("phone2", "")
        fields.setdefault("note", "")
        fields.setdefault("page_number", 0)
        return Student(
            id=str(uuid.uuid4()),
            owner_id=self.user.user_id,
            registration_date=to_storage_datetime(registration_date) if registration_date else utc_now(),
            reminder_points=0,
            **fields,
        )

    def create(self, record: Mapping[str, Any]) -> Student:
        """Store a new record with a fresh id and registration_date = now."""
        student = self._new_student(record, allow_registration_date=False)
        self.db.add(student)
        self._commit("create student")
        self.db.refresh(student)
        logger.info(f"Created student {student.id} for owner {self.user.user_id}")
        self._notify()
        return student

    def create_many(self, records: Sequence[Mapping[str, Any]]) -> List[Student]:
        """
        Insert records in one transaction: either all are stored or none.
        A record may carry an imported registration_date; otherwise now is used.
        """
        students = [self._new_student(record, allow_registration_date=True) for record in records]
        if not students:
            return []
        self.db.add_all(students)
        self._commit(f"create {len(students)} students")
        logger.info(f"Created {len(students)} students in one batch for owner {self.user.user_id}")
        self._notify()
        return students

    def update(self, student_id: str, fields: Mapping[str, Any]) -> Student:
        """
        Merge fields into an existing record. Derived fields are not
        recomputed here: a caller changing birth_date passes age and
        age_group too. An empty field set writes nothing.
        """
        cleaned = _clean_fields(fields, UPDATABLE_FIELDS)
        student = self.get(student_id)
        if not cleaned:
            return student
        for name, value in cleaned.items():
            setattr(student, name, value)
        self._commit("update student")
        logger.info(f"Updated student {student_id}: {', '.join(sorted(cleaned))}")
        self._notify()
        return student

    def bulk_update(self, items: Sequence[Mapping[str, Any]]) -> List[Student]:
        """
        Apply several partial updates as one batch.

        Args:
            items: Mappings of the form {"id": ..., "fields": {...}}.

        Raises:
            StudentNotFoundError: if any id is unknown; nothing is written.
        """
        changes = [(item["id"], _clean_fields(item.get("fields") or {}, UPDATABLE_FIELDS)) for item in items]
        if not changes:
            return []

        ids = list(dict.fromkeys(student_id for student_id, _ in changes))
        found = {
            student.id: student
            for student in self._query().filter(Student.id.in_(ids)).all()
        }
        missing = [student_id for student_id in ids if student_id not in found]
        if missing:
            logger.warning(f"Bulk update rejected, {len(missing)} unknown id(s)")
            raise StudentNotFoundError(missing)

        for student_id, fields in changes:
            for name, value in fields.items():
                setattr(found[student_id], name, value)
        self._commit(f"update {len(ids)} students")
        logger.info(f"Bulk updated {len(ids)} students for owner {self.user.user_id}")
        self._notify()
        return [found[student_id] for student_id in ids]

    def delete(self, student_id: str) -> None:
        """Remove a record permanently."""
        student = self.get(student_id)
        self.db.delete(student)
        self._commit("delete student")
        logger.info(f"Deleted student {student_id}")
        self._notify()

    # ------------------------------------------------------------------
    # Reminder points
    # ------------------------------------------------------------------

    def _points_filter(self, student_id: str):
        return (Student.id == student_id, Student.owner_id == self.user.user_id)

    def _read_points(self, student_id: str) -> int:
        points = (
            self.db.query(Student.reminder_points)
            .filter(*self._points_filter(student_id))
            .scalar()
        )
        if points is None:
            raise StudentNotFoundError([student_id])
        return points

    def _write_points(self, student_id: str, total: int) -> None:
        self._execute(
            update(Student)
            .where(*self._points_filter(student_id))
            .values(reminder_points=total)
            .execution_options(synchronize_session=False),
            "save reminder points",
        )
        self._commit("save reminder points")

    def add_points(self, student_id: str, delta: int, atomic: bool = False) -> int:
        """
        Add delta to a student's reminder points and return the new total.

        The default form reads the current total and writes back the sum in
        a second statement; two callers doing this at once can both read
        the same starting value, and one increment is lost. With atomic=True
        the addition happens inside a single UPDATE, which cannot lose an
        increment and returns the total it wrote.
        """
        if delta < 1:
            raise ValueError(f"Reminder points must increase by at least 1, got {delta}")

        if atomic:
            result = self._execute(
                update(Student)
                .where(*self._points_filter(student_id))
                .values(reminder_points=Student.reminder_points + delta)
                .returning(Student.reminder_points)
                .execution_options(synchronize_session=False),
                "save reminder points",
            )
            total = result.scalar_one_or_none()
            if total is None:
                self.db.rollback()
                raise StudentNotFoundError([student_id])
            self._commit("save reminder points")
        else:
            total = self._read_points(student_id) + delta
            self._write_points(student_id, total)

        # Loaded instances do not see Core UPDATEs
        self.db.expire_all()
        logger.info(f"Added {delta} reminder points to student {student_id}, total {total}")
        self._notify()
        return total

