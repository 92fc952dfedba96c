import datetime as dt
from typing import List, Optional

import pandas as pd
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from school_schedule.database import get_db
from school_schedule.models.schedule import Schedule
from school_schedule.schemas.schedule import (
    ImportResultOut,
    ScheduleCreate,
    ScheduleOut,
    ScheduleUpdate,
    TeacherScheduleOut,
)
from school_schedule.utils.auth import require_api_key
from school_schedule.utils.conflict import InvalidTimeError, has_conflict, parse_clock
from school_schedule.utils.excel_export import (
    aggregate_teaching_load,
    make_filename,
    teaching_load_to_xlsx_bytes,
)
from school_schedule.utils.schedule_lock import schedule_locks

import logging
logger = logging.getLogger("school_schedule.schedules")


router = APIRouter(
    prefix="/api/schedules",
    tags=["Schedules"],
    dependencies=[Depends(require_api_key)],
)

IMPORT_SHEET = "Sheet1"
IMPORT_COLUMNS = [
    "class_code", "class_name", "subject_code", "teacher_id", "teacher_name",
    "date", "period_number", "time_start", "time_end",
]


def ensure_no_conflict(
    db: Session,
    *,
    date: dt.date,
    class_code: str,
    teacher_id: str,
    time_start: str,
    time_end: str,
    exclude_uuid: Optional[str] = None,
):
    try:
        conflict = has_conflict(db, date, class_code, teacher_id, time_start, time_end, exclude_uuid)
    except InvalidTimeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if conflict:
        logger.info(
            "conflict: date=%s class=%s teacher=%s %s-%s",
            date, class_code, teacher_id, time_start, time_end,
        )
        raise HTTPException(status_code=409, detail="schedule conflict detected")


def get_schedule_or_404(db: Session, schedule_uuid: str) -> Schedule:
    s = db.query(Schedule).filter(Schedule.uuid == schedule_uuid).first()
    if not s:
        raise HTTPException(status_code=404, detail="not found")
    return s


@router.post("", response_model=ScheduleOut, status_code=201)
def create_schedule(body: ScheduleCreate, db: Session = Depends(get_db)):
    with schedule_locks.hold(body.date, body.class_code, body.teacher_id):
        ensure_no_conflict(
            db,
            date=body.date,
            class_code=body.class_code,
            teacher_id=body.teacher_id,
            time_start=body.time_start,
            time_end=body.time_end,
        )
        s = Schedule(**body.model_dump())
        db.add(s)
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        db.refresh(s)

    logger.info("created schedule %s (%s, %s)", s.uuid, s.class_code, s.date)
    return ScheduleOut.model_validate(s)


@router.get("", response_model=List[ScheduleOut])
def list_schedules(db: Session = Depends(get_db)):
    rows = db.query(Schedule).order_by(Schedule.date.asc(), Schedule.time_start.asc()).all()
    return [ScheduleOut.model_validate(r) for r in rows]


@router.get("/student", response_model=List[ScheduleOut])
def student_schedule(
    db: Session = Depends(get_db),
    class_code: str = Query(..., min_length=1, description="class code"),
    date: dt.date = Query(..., description="YYYY-MM-DD"),
):
    rows = (
        db.query(Schedule)
        .filter(Schedule.class_code == class_code, Schedule.date == date)
        .order_by(Schedule.time_start.asc())
        .all()
    )
    return [ScheduleOut.model_validate(r) for r in rows]


@router.get("/teacher", response_model=TeacherScheduleOut)
def teacher_schedule(
    db: Session = Depends(get_db),
    teacher_id: str = Query(..., min_length=1, description="teacher identifier (NIK)"),
    start_date: dt.date = Query(..., description="YYYY-MM-DD, inclusive"),
    end_date: dt.date = Query(..., description="YYYY-MM-DD, inclusive"),
):
    rows = (
        db.query(Schedule)
        .filter(
            Schedule.teacher_id == teacher_id,
            Schedule.date >= start_date,
            Schedule.date <= end_date,
        )
        .order_by(Schedule.date.asc(), Schedule.time_start.asc())
        .all()
    )
    return TeacherScheduleOut(
        schedules=[ScheduleOut.model_validate(r) for r in rows],
        total_periods=len(rows),
    )


@router.get("/export")
def export_teaching_load(
    db: Session = Depends(get_db),
    start_date: dt.date = Query(..., description="YYYY-MM-DD, inclusive"),
    end_date: dt.date = Query(..., description="YYYY-MM-DD, inclusive"),
):
    """
    Teaching-period recap per teacher as .xlsx
    """
    rows = (
        db.query(Schedule)
        .filter(Schedule.date >= start_date, Schedule.date <= end_date)
        .all()
    )
    xlsx_bytes = teaching_load_to_xlsx_bytes(aggregate_teaching_load(rows))
    filename = make_filename("rekap_jp")

    return StreamingResponse(
        iter([xlsx_bytes]),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# excel import helpers
def to_str(v):
    if v is None or pd.isna(v):
        return None
    s = str(v).strip()
    return None if s == "" or s.lower() == "nan" else s


def to_int(v):
    if v is None or pd.isna(v):
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    # 3.0 is fine, 3.7 is not a period number
    return int(f) if f.is_integer() else None


def to_date(v) -> Optional[dt.date]:
    # date cells arrive as Timestamp/datetime, text cells as "YYYY-MM-DD"
    if v is None or pd.isna(v):
        return None
    if isinstance(v, dt.datetime):
        return v.date()
    if isinstance(v, dt.date):
        return v
    try:
        return dt.datetime.strptime(str(v).strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def to_clock(v) -> Optional[str]:
    # time cells arrive as datetime.time
    if isinstance(v, dt.datetime):
        v = v.time()
    if isinstance(v, dt.time):
        return v.strftime("%H:%M:%S")
    return to_str(v)


@router.post("/import", response_model=ImportResultOut)
def import_schedules(file: UploadFile = File(...), db: Session = Depends(get_db)):
    try:
        df = pd.read_excel(file.file, sheet_name=IMPORT_SHEET, header=None)
    except ValueError as e:
        # pandas raises ValueError for a missing worksheet as well
        if IMPORT_SHEET in str(e):
            raise HTTPException(status_code=400, detail=f"sheet {IMPORT_SHEET} not found")
        raise HTTPException(status_code=400, detail="invalid excel file")
    except Exception:
        logger.exception("cannot read uploaded workbook %s", file.filename)
        raise HTTPException(status_code=400, detail="invalid excel file")

    inserted = 0
    failures: List[str] = []
    n_cols = len(IMPORT_COLUMNS)

    for i, raw in enumerate(df.itertuples(index=False, name=None)):
        if i == 0:
            continue  # header
        row_no = i + 1
        cells = list(raw) + [None] * (n_cols - len(raw))

        filled = [c for c, v in enumerate(cells) if to_str(v) is not None]
        if not filled or filled[-1] < n_cols - 1:
            failures.append(f"row {row_no}: not enough columns")
            continue

        date = to_date(cells[5])
        if date is None:
            failures.append(f"row {row_no}: invalid date {to_str(cells[5])}")
            continue
        period_number = to_int(cells[6])
        if period_number is None:
            failures.append(f"row {row_no}: invalid period_number {to_str(cells[6])}")
            continue

        time_start = to_clock(cells[7])
        time_end = to_clock(cells[8])
        bad_time = None
        for name, value in (("time_start", time_start), ("time_end", time_end)):
            try:
                parse_clock(value)
            except InvalidTimeError:
                bad_time = f"row {row_no}: invalid {name} {value}"
                break
        if bad_time:
            failures.append(bad_time)
            continue

        data = dict(
            class_code=to_str(cells[0]) or "",
            class_name=to_str(cells[1]) or "",
            subject_code=to_str(cells[2]) or "",
            teacher_id=to_str(cells[3]) or "",
            teacher_name=to_str(cells[4]) or "",
            date=date,
            period_number=period_number,
            time_start=time_start,
            time_end=time_end,
        )

        with schedule_locks.hold(date, data["class_code"], data["teacher_id"]):
            try:
                conflict = has_conflict(
                    db, date, data["class_code"], data["teacher_id"], time_start, time_end
                )
            except (InvalidTimeError, SQLAlchemyError) as e:
                db.rollback()
                failures.append(f"row {row_no}: error checking conflict {e}")
                continue
            if conflict:
                failures.append(f"row {row_no}: conflict detected")
                continue

            db.add(Schedule(**data))
            try:
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                failures.append(f"row {row_no}: insert error {e}")
                continue
        inserted += 1

    logger.info("import %s: inserted=%d failed=%d", file.filename, inserted, len(failures))

    if not failures:
        return ImportResultOut(message=f"Upload succeeded, {inserted} rows added.", inserted=inserted)
    return ImportResultOut(
        message=f"Upload finished, {inserted} rows added, {len(failures)} rows failed.",
        inserted=inserted,
        failures=failures,
    )


@router.get("/{schedule_uuid}", response_model=ScheduleOut)
def get_schedule(schedule_uuid: str, db: Session = Depends(get_db)):
    return ScheduleOut.model_validate(get_schedule_or_404(db, schedule_uuid))


@router.put("/{schedule_uuid}", response_model=ScheduleOut)
def update_schedule(schedule_uuid: str, body: ScheduleUpdate, db: Session = Depends(get_db)):
    s = get_schedule_or_404(db, schedule_uuid)

    # only supplied fields change
    data = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}

    date = data.get("date", s.date)
    class_code = data.get("class_code", s.class_code)
    teacher_id = data.get("teacher_id", s.teacher_id)

    with schedule_locks.hold(date, class_code, teacher_id):
        ensure_no_conflict(
            db,
            date=date,
            class_code=class_code,
            teacher_id=teacher_id,
            time_start=data.get("time_start", s.time_start),
            time_end=data.get("time_end", s.time_end),
            exclude_uuid=s.uuid,
        )
        for k, v in data.items():
            setattr(s, k, v)
        s.updated_at = dt.datetime.utcnow()
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        db.refresh(s)

    logger.info("updated schedule %s fields=%s", s.uuid, sorted(data))
    return ScheduleOut.model_validate(s)


@router.delete("/{schedule_uuid}")
def delete_schedule(schedule_uuid: str, db: Session = Depends(get_db)):
    s = get_schedule_or_404(db, schedule_uuid)
    db.delete(s)
    db.commit()
    logger.info("deleted schedule %s", schedule_uuid)
    return {"message": "deleted"}
