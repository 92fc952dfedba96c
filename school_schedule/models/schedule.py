from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, Date, Index, Integer, String, TIMESTAMP
from school_schedule.database import Base


def _new_uuid() -> str:
    return str(uuid4())


class Schedule(Base):
    __tablename__ = "schedules"
    __table_args__ = (
        # conflict lookups read one date and match on class or teacher
        Index("ix_schedules_date_class_code", "date", "class_code"),
        Index("ix_schedules_date_teacher_id", "date", "teacher_id"),
    )

    id = Column(Integer, primary_key=True)
    uuid = Column(String(36), unique=True, index=True, nullable=False, default=_new_uuid)

    class_code = Column(String(50), nullable=False)
    class_name = Column(String(255), nullable=False)
    subject_code = Column(String(50), nullable=False)

    teacher_id = Column(String(50), nullable=False)
    teacher_name = Column(String(255), nullable=False)

    date = Column(Date, nullable=False)
    period_number = Column(Integer, nullable=False)
    time_start = Column(String(8), nullable=False)  # HH:MM:SS
    time_end = Column(String(8), nullable=False)

    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow, onupdate=datetime.utcnow)
