"""
Derived views over a list of student records.

Everything here works on what the directory hands out (ORM objects or the
plain dicts of a subscription snapshot) and stores nothing.
"""

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from student_registry.models import LEVELS, Gender, StudentStatus


def _get(record, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name)


def _as_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def status_counts(records: Iterable) -> Dict[str, int]:
    """Number of records per status, every status present (zero when absent)."""
    counts = Counter(StudentStatus(_get(r, "status")).value for r in records)
    return {status.value: counts.get(status.value, 0) for status in StudentStatus}


def level_distribution(records: Iterable) -> List[Dict[str, Any]]:
    """Students per level, in the fixed level order; empty levels left out."""
    counts = Counter(_get(r, "level") for r in records)
    return [{"level": level, "count": counts[level]} for level in LEVELS if counts.get(level)]


def weekly_registrations(records: Iterable) -> List[Dict[str, Any]]:
    """Registrations bucketed by ISO calendar week, oldest first."""
    counts: Counter = Counter()
    for record in records:
        registered = _as_date(_get(record, "registration_date"))
        if registered is None:
            continue
        year, week, _ = registered.isocalendar()
        counts[f"{year}-W{week:02d}"] += 1
    return [{"period": period, "count": counts[period]} for period in sorted(counts)]


def monthly_registrations(records: Iterable) -> List[Dict[str, Any]]:
    """Registrations bucketed by calendar month, oldest first."""
    counts: Counter = Counter()
    for record in records:
        registered = _as_date(_get(record, "registration_date"))
        if registered is None:
            continue
        counts[registered.strftime("%Y-%m")] += 1
    return [{"period": period, "count": counts[period]} for period in sorted(counts)]


def filter_students(
    records: Iterable,
    level: Optional[str] = None,
    status: Optional[str] = None,
    gender: Optional[str] = None,
    sheikh: Optional[str] = None,
    search: Optional[str] = None,
) -> List:
    """
    Records matching every given filter.

    search is a case-insensitive substring match against full name,
    guardian name and page number.
    """
    needle = (search or "").strip().casefold()
    result = []
    for record in records:
        if level and _get(record, "level") != level:
            continue
        if status and StudentStatus(_get(record, "status")).value != status:
            continue
        if gender and Gender(_get(record, "gender")).value != gender:
            continue
        if sheikh and (_get(record, "assigned_sheikh") or "") != sheikh:
            continue
        if needle:
            haystack = [
                _get(record, "full_name") or "",
                _get(record, "guardian_name") or "",
                str(_get(record, "page_number") if _get(record, "page_number") is not None else ""),
            ]
            if not any(needle in text.casefold() for text in haystack):
                continue
        result.append(record)
    return result


DEFAULT_COHORT_STATUSES = [
    StudentStatus.POSTPONED.value,
    StudentStatus.REJECTED.value,
    StudentStatus.MOVED.value,
]


def filter_cohort(
    records: Iterable,
    levels: Optional[Sequence[str]] = None,
    statuses: Optional[Sequence[str]] = None,
) -> List:
    """Cohort candidates, oldest registration first. An empty selection matches everything."""
    levels = set(levels or [])
    statuses = set(statuses or [])
    selected = [
        record
        for record in records
        if (not levels or _get(record, "level") in levels)
        and (not statuses or StudentStatus(_get(record, "status")).value in statuses)
    ]
    return sorted(selected, key=lambda r: _get(r, "registration_date"))


def filter_by_registration(
    records: Iterable,
    period: str,
    day: Optional[date] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> List:
    """
    Records registered within a reporting period.

    Args:
        period: "day", "range" (inclusive start..end), "month" (1-12 with
            year) or "year".

    Returns:
        Matching records; empty when the period's parameters are missing.
    """
    if period == "day":
        if day is None:
            return []
        first, last = day, day
    elif period == "range":
        if start is None or end is None:
            return []
        first, last = start, end
    elif period == "month":
        if year is None or month is None:
            return []
        first = date(year, month, 1)
        last = date(year + month // 12, month % 12 + 1, 1) - timedelta(days=1)
    elif period == "year":
        if year is None:
            return []
        first, last = date(year, 1, 1), date(year, 12, 31)
    else:
        raise ValueError(f"Unknown report period: {period}")

    return [
        record
        for record in records
        if first <= _as_date(_get(record, "registration_date")) <= last
    ]


def latest(records: Sequence, n: int = 5) -> List:
    """The n most recent registrations."""
    return sorted(records, key=lambda r: _get(r, "registration_date"), reverse=True)[:n]


def has_priority(record, threshold: int) -> bool:
    """More than threshold reminder points gives priority for joining."""
    return (_get(record, "reminder_points") or 0) > threshold
