from __future__ import annotations
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models import DayOfWeek


def _clean_ids(v: List[str]) -> List[str]:
    out = [s.strip() for s in v]
    if any(not s for s in out):
        raise ValueError("ids must be non-empty strings")
    return out


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None or not v.strip():
        return None
    return v.strip()


# ---------- Commands (единственная форма входа в сервисы реестра) ----------
class TermCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    start_date: date
    end_date: date
    is_active: bool = False
    is_archived: bool = False


class TermUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None
    is_archived: Optional[bool] = None

    @model_validator(mode="after")
    def _not_empty(self):
        if not self.model_fields_set:
            raise ValueError("No fields provided")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class SubjectIdsIn(BaseModel):
    subject_ids: List[str] = Field(min_length=1)

    _ids = field_validator("subject_ids")(_clean_ids)


class RegistrationIn(BaseModel):
    term_id: str = Field(min_length=1)
    student_ids: List[str] = Field(min_length=1)
    section_id: Optional[str] = None

    _ids = field_validator("student_ids")(_clean_ids)
    _section = field_validator("section_id")(_blank_to_none)


class UnregistrationIn(BaseModel):
    term_id: str = Field(min_length=1)
    student_ids: List[str] = Field(min_length=1)

    _ids = field_validator("student_ids")(_clean_ids)


class GradeIn(BaseModel):
    # ключ обязателен, null снимает оценку
    grade: Optional[float] = Field(..., ge=0, le=100)


class SectionIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class TimetableEntryIn(BaseModel):
    day_of_week: DayOfWeek
    period_id: str = Field(min_length=1)
    subject_id: str = Field(min_length=1)
    room_text: Optional[str] = Field(None, max_length=255)
    lecturer_text: Optional[str] = Field(None, max_length=255)

    _texts = field_validator("room_text", "lecturer_text")(_blank_to_none)


# ---------- Out ----------
class DepartmentRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    code: str


class StudentRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    registration_id: str
    full_name: str
    email: str


class SubjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    code: str
    units: int
    curriculum_semester: int
    departments: List[DepartmentRef] = []


class TermOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    start_date: date
    end_date: date
    is_active: bool
    is_archived: bool


class SectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    term_id: str
    name: str


class RegistrationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    term_id: str
    student_id: str
    section_id: Optional[str] = None
    registered_at: datetime
    student: StudentRef


class StudentSubjectOut(BaseModel):
    subject_id: str
    grade: Optional[float] = None
    name: str
    code: str
    units: int
    curriculum_semester: int


class PeriodRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _fmt(cls, v):
        return v.strftime("%H:%M") if hasattr(v, "strftime") else v


class SubjectRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    name: str


class TimetableEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    term_id: str
    day_of_week: DayOfWeek
    period_id: str
    subject_id: str
    room_text: Optional[str] = None
    lecturer_text: Optional[str] = None
    period: Optional[PeriodRef] = None
    subject: Optional[SubjectRef] = None
