import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from school_schedule.utils.conflict import parse_clock


def _check_clock(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    parse_clock(v)  # InvalidTimeError is a ValueError -> 422
    return v


class ScheduleBase(BaseModel):
    class_code: str = Field(..., min_length=1)
    class_name: str = Field(..., min_length=1)
    subject_code: str = Field(..., min_length=1)
    teacher_id: str = Field(..., min_length=1)
    teacher_name: str = Field(..., min_length=1)
    date: dt.date
    period_number: int
    time_start: str = Field(..., description="HH:MM:SS")
    time_end: str = Field(..., description="HH:MM:SS")


class ScheduleCreate(ScheduleBase):
    @field_validator("time_start", "time_end")
    @classmethod
    def _validate_clock(cls, v):
        return _check_clock(v)


class ScheduleUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    class_code: Optional[str] = Field(None, min_length=1)
    class_name: Optional[str] = Field(None, min_length=1)
    subject_code: Optional[str] = Field(None, min_length=1)
    teacher_id: Optional[str] = Field(None, min_length=1)
    teacher_name: Optional[str] = Field(None, min_length=1)
    date: Optional[dt.date] = None
    period_number: Optional[int] = None
    time_start: Optional[str] = None
    time_end: Optional[str] = None

    @field_validator("time_start", "time_end")
    @classmethod
    def _validate_clock(cls, v):
        return _check_clock(v)


class ScheduleOut(ScheduleBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    uuid: str
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class TeacherScheduleOut(BaseModel):
    schedules: List[ScheduleOut]
    total_periods: int


class ImportResultOut(BaseModel):
    message: str
    inserted: int
    failures: List[str] = []
