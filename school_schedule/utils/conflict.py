# school_schedule/utils/conflict.py
from datetime import date, datetime, time
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from school_schedule.models.schedule import Schedule

CLOCK_FORMAT = "%H:%M:%S"


class InvalidTimeError(ValueError):
    pass


def parse_clock(value: str) -> time:
    """
    "07:30:00" -> time(7, 30)
    Anything else ("7:30", "25:99:00", None) raises InvalidTimeError.
    """
    try:
        return datetime.strptime(value, CLOCK_FORMAT).time()
    except (TypeError, ValueError):
        raise InvalidTimeError(f"invalid time {value!r} (expected HH:MM:SS)") from None


def _ranges_overlap(s1: time, e1: time, s2: time, e2: time) -> bool:
    # half-open [start, end): back-to-back sessions do not clash
    return s1 < e2 and s2 < e1


def time_overlap(s1: str, e1: str, s2: str, e2: str) -> bool:
    return _ranges_overlap(parse_clock(s1), parse_clock(e1), parse_clock(s2), parse_clock(e2))


def find_conflict(
    rows: Iterable[Schedule],
    class_code: str,
    teacher_id: str,
    time_start: str,
    time_end: str,
    exclude_uuid: Optional[str] = None,
) -> Optional[Schedule]:
    """
    A row clashes when:
    1. it is on the same date (rows are already filtered by date)
    2. it shares the class OR the teacher
    3. its time range overlaps

    Returns the first clashing row, or None.
    """
    start = parse_clock(time_start)
    end = parse_clock(time_end)

    for row in rows:
        if exclude_uuid and row.uuid == exclude_uuid:
            continue
        if row.class_code != class_code and row.teacher_id != teacher_id:
            continue
        if _ranges_overlap(parse_clock(row.time_start), parse_clock(row.time_end), start, end):
            return row
    return None


def has_conflict(
    db: Session,
    date: date,
    class_code: str,
    teacher_id: str,
    time_start: str,
    time_end: str,
    exclude_uuid: Optional[str] = None,
) -> bool:
    rows = db.query(Schedule).filter(Schedule.date == date).all()
    return find_conflict(rows, class_code, teacher_id, time_start, time_end, exclude_uuid) is not None
