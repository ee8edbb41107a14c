"""
Tests for the student directory: CRUD, bulk updates, points and subscriptions
"""

from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError

from student_registry.core.database import get_session_local
from student_registry.core.datetime_utils import utc_now
from student_registry.core.security import UserContext
from student_registry.models import Gender, Student, StudentStatus
from student_registry.services.directory import StorageError, StudentDirectory, StudentNotFoundError
from student_registry.services.normalizer import normalize_worksheet


class TestCreateAndRead:
    """Test creating and reading records."""

    def test_create_assigns_id_and_defaults(self, directory, make_record, db):
        before = utc_now()
        student = directory.create(make_record())

        assert student.id
        assert student.owner_id == "user-a"
        assert student.reminder_points == 0
        assert isinstance(student.registration_date, datetime)
        assert student.registration_date >= before

        stored = db.query(Student).filter(Student.id == student.id).first()
        assert stored is not None
        assert stored.full_name == "محمد عبدالله"

    def test_create_rejects_missing_required_field(self, directory, make_record):
        record = make_record()
        del record["guardian_name"]
        with pytest.raises(ValueError):
            directory.create(record)

    def test_create_rejects_unknown_field(self, directory, make_record):
        with pytest.raises(ValueError):
            directory.create(make_record(reminder_points=50))

    def test_list_is_newest_first(self, directory, make_record):
        directory.create_many(
            [
                make_record(full_name="قديم", registration_date=datetime(2023, 1, 1)),
                make_record(full_name="جديد", registration_date=datetime(2024, 1, 1)),
                make_record(full_name="وسط", registration_date=datetime(2023, 6, 1)),
            ]
        )
        assert [s.full_name for s in directory.list_all()] == ["جديد", "وسط", "قديم"]

    def test_subscribe_round_trip(self, directory, make_record):
        snapshots = []
        subscription = directory.subscribe(snapshots.append)
        created = directory.create(make_record(full_name="سالم"))

        assert snapshots[0] == []
        assert len(snapshots) == 2
        delivered = snapshots[-1][0]
        assert delivered["id"] == created.id
        assert delivered["full_name"] == "سالم"
        assert delivered["status"] == StudentStatus.JOINED
        subscription.unsubscribe()

    def test_imported_rows_reach_subscribers(self, directory, sheet_rows, sheet_row):
        result = normalize_worksheet(
            sheet_rows(sheet_row(full_name="أمين"), sheet_row(full_name="زينب", gender="أنثى")),
            today=date(2024, 6, 1),
        )
        snapshots = []
        directory.subscribe(snapshots.append)
        stored = directory.create_many([record.to_record() for record in result.records])

        latest = snapshots[-1]
        assert len(snapshots) == 2
        assert {s["id"] for s in latest} == {s.id for s in stored}
        by_name = {s["full_name"]: s for s in latest}
        assert by_name["زينب"]["gender"] == Gender.FEMALE
        for record in result.records:
            delivered = by_name[record.full_name]
            for name, value in record.to_record().items():
                assert delivered[name] == value, name
            assert delivered["reminder_points"] == 0

    def test_failing_first_delivery_leaves_no_listener(self, directory, feed):
        def broken(snapshot):
            raise RuntimeError("view went away")

        with pytest.raises(RuntimeError):
            directory.subscribe(broken)
        assert not feed.has_listeners("user-a")

    def test_unsubscribed_listener_gets_nothing(self, directory, make_record):
        snapshots = []
        subscription = directory.subscribe(snapshots.append)
        subscription()
        subscription.unsubscribe()
        directory.create(make_record())
        assert len(snapshots) == 1

    def test_find_one_by_name_then_phone(self, directory, make_record):
        student = directory.create(make_record(full_name="يوسف", phone1="0661000000"))

        assert directory.find_one("يوسف").id == student.id
        assert directory.find_one(" 0661000000 ").id == student.id
        assert directory.find_one("يوس") is None
        assert directory.find_one("") is None

    def test_records_are_scoped_to_owner(self, db, feed, directory, make_record):
        other = StudentDirectory(db, UserContext(user_id="user-b"), feed=feed)
        student = directory.create(make_record())

        assert other.list_all() == []
        assert other.find_one("محمد عبدالله") is None
        with pytest.raises(StudentNotFoundError):
            other.get(student.id)
        with pytest.raises(StudentNotFoundError):
            other.delete(student.id)


class TestUpdateAndDelete:
    """Test updates, bulk updates and deletes."""

    def test_update_merges_fields(self, directory, make_record):
        student = directory.create(make_record())
        updated = directory.update(student.id, {"note": "حافظ", "status": "postponed"})

        assert updated.note == "حافظ"
        assert updated.status == StudentStatus.POSTPONED
        assert updated.full_name == "محمد عبدالله"

    def test_empty_update_changes_nothing(self, directory, make_record):
        student = directory.create(make_record())
        before = directory.get(student.id).to_dict()
        notified = []
        directory.subscribe(notified.append)

        directory.update(student.id, {})

        assert directory.get(student.id).to_dict() == before
        assert len(notified) == 1

    def test_update_unknown_id(self, directory):
        with pytest.raises(StudentNotFoundError):
            directory.update("missing", {"note": "x"})

    def test_update_cannot_touch_points(self, directory, make_record):
        student = directory.create(make_record())
        with pytest.raises(ValueError):
            directory.update(student.id, {"reminder_points": 99})

    def test_bulk_update_applies_all(self, directory, make_record):
        students = directory.create_many([make_record(full_name=f"طالب {i}") for i in range(50)])
        items = [
            {"id": s.id, "fields": {"status": StudentStatus.JOINED, "assigned_sheikh": "الشيخ أحمد"}}
            for s in students
        ]
        updated = directory.bulk_update(items)

        assert len(updated) == 50
        assert all(s.assigned_sheikh == "الشيخ أحمد" for s in directory.list_all())

    def test_bulk_update_with_unknown_id_writes_nothing(self, directory, make_record):
        students = directory.create_many(
            [make_record(full_name=f"طالب {i}", status=StudentStatus.POSTPONED) for i in range(50)]
        )
        items = [{"id": s.id, "fields": {"status": StudentStatus.JOINED}} for s in students]
        items[25] = {"id": "does-not-exist", "fields": {"status": StudentStatus.JOINED}}

        with pytest.raises(StudentNotFoundError) as exc_info:
            directory.bulk_update(items)

        assert exc_info.value.student_ids == ["does-not-exist"]
        directory.db.expire_all()
        assert all(s.status == StudentStatus.POSTPONED for s in directory.list_all())

    def test_bulk_update_notifies_once(self, directory, make_record):
        students = directory.create_many([make_record(full_name=f"طالب {i}") for i in range(3)])
        notified = []
        directory.subscribe(notified.append)
        directory.bulk_update([{"id": s.id, "fields": {"note": "x"}} for s in students])
        assert len(notified) == 2

    def test_delete(self, directory, make_record):
        student = directory.create(make_record())
        directory.delete(student.id)

        assert directory.list_all() == []
        with pytest.raises(StudentNotFoundError):
            directory.delete(student.id)


class TestReminderPoints:
    """Test reminder point increments."""

    def test_sequential_increments(self, directory, make_record):
        student = directory.create(make_record())
        assert directory.add_points(student.id, 5) == 5
        assert directory.add_points(student.id, 5) == 10
        assert directory.get(student.id).reminder_points == 10

    def test_unknown_student(self, directory):
        with pytest.raises(StudentNotFoundError):
            directory.add_points("missing", 5)
        with pytest.raises(StudentNotFoundError):
            directory.add_points("missing", 5, atomic=True)

    @pytest.mark.parametrize("delta", [0, -5])
    def test_delta_must_be_positive(self, directory, make_record, delta):
        student = directory.create(make_record())
        with pytest.raises(ValueError):
            directory.add_points(student.id, delta)
        with pytest.raises(ValueError):
            directory.add_points(student.id, delta, atomic=True)
        assert directory.get(student.id).reminder_points == 0

    def test_read_then_write_can_lose_an_increment(self, directory, feed, user, monkeypatch, make_record):
        student = directory.create(make_record())
        other_db = get_session_local()()
        other = StudentDirectory(other_db, user, feed=feed)
        original_read = directory._read_points

        def read_then_interleave(sid):
            points = original_read(sid)
            other.add_points(sid, 5)
            return points

        monkeypatch.setattr(directory, "_read_points", read_then_interleave)
        try:
            directory.add_points(student.id, 5)
        finally:
            other_db.close()

        directory.db.expire_all()
        assert directory.get(student.id).reminder_points == 5

    def test_atomic_increment_keeps_both(self, directory, feed, user, monkeypatch, make_record):
        student = directory.create(make_record())
        other_db = get_session_local()()
        other = StudentDirectory(other_db, user, feed=feed)
        original_execute = directory._execute
        interleaved = []

        def interleave_then_execute(statement, action):
            if not interleaved:
                interleaved.append(other.add_points(student.id, 5, atomic=True))
            return original_execute(statement, action)

        monkeypatch.setattr(directory, "_execute", interleave_then_execute)
        try:
            total = directory.add_points(student.id, 5, atomic=True)
        finally:
            other_db.close()

        assert interleaved == [5]
        assert total == 10
        assert directory.get(student.id).reminder_points == 10


def _failing_commit():
    raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


class TestStorageFailures:
    """Test that a rejected commit surfaces as StorageError and keeps nothing."""

    def test_create(self, directory, make_record, monkeypatch):
        snapshots = []
        directory.subscribe(snapshots.append)
        monkeypatch.setattr(directory.db, "commit", _failing_commit)

        with pytest.raises(StorageError) as exc_info:
            directory.create(make_record())

        assert "disk I/O error" in str(exc_info.value)
        assert len(snapshots) == 1
        monkeypatch.undo()
        fresh = get_session_local()()
        try:
            assert fresh.query(Student).count() == 0
        finally:
            fresh.close()

    def test_update(self, directory, make_record, monkeypatch):
        student = directory.create(make_record())
        monkeypatch.setattr(directory.db, "commit", _failing_commit)

        with pytest.raises(StorageError):
            directory.update(student.id, {"note": "لن يحفظ"})

        monkeypatch.undo()
        directory.db.expire_all()
        assert directory.get(student.id).note == ""

    def test_bulk_update(self, directory, make_record, monkeypatch):
        students = directory.create_many([make_record(full_name=f"طالب {i}") for i in range(3)])
        monkeypatch.setattr(directory.db, "commit", _failing_commit)

        with pytest.raises(StorageError):
            directory.bulk_update(
                [{"id": s.id, "fields": {"status": StudentStatus.POSTPONED}} for s in students]
            )

        monkeypatch.undo()
        directory.db.expire_all()
        assert all(s.status == StudentStatus.JOINED for s in directory.list_all())
