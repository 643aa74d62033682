from __future__ import annotations
from datetime import time
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from blueprints.registry.schemas import DepartmentRef, StudentRef, SubjectOut

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def _require_any_field(model: BaseModel):
    if not model.model_fields_set:
        raise ValueError("No fields provided")
    return model


# ---------- Departments ----------
class DepartmentIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=50)
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def _code(cls, v: str) -> str:
        return v.strip().upper()


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    is_active: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def _code(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v

    _any = model_validator(mode="after")(_require_any_field)


class DepartmentOut(DepartmentRef):
    is_active: bool


# ---------- Students ----------
class StudentIn(BaseModel):
    registration_id: str = Field(min_length=1, max_length=64)
    full_name: str = Field(min_length=1, max_length=255)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    department_id: str = Field(min_length=1)
    mother_name: str = Field(min_length=1, max_length=255)
    phone: str = Field(min_length=3, max_length=64)
    password: str = Field(min_length=6, max_length=128)


class StudentUpdate(BaseModel):
    registration_id: Optional[str] = Field(None, min_length=1, max_length=64)
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    department_id: Optional[str] = Field(None, min_length=1)
    mother_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, min_length=3, max_length=64)
    password: Optional[str] = Field(None, min_length=6, max_length=128)

    _any = model_validator(mode="after")(_require_any_field)


class StudentOut(StudentRef):
    mother_name: str
    phone: str
    study_semesters_count: int
    department_id: str
    department: DepartmentRef


# ---------- Subjects ----------
class SubjectIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=50)
    units: int = Field(gt=0)
    curriculum_semester: int = Field(ge=1, le=8)
    department_ids: List[str] = Field(min_length=1)

    @field_validator("code")
    @classmethod
    def _code(cls, v: str) -> str:
        return v.strip().upper()


class SubjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    units: Optional[int] = Field(None, gt=0)
    curriculum_semester: Optional[int] = Field(None, ge=1, le=8)
    department_ids: Optional[List[str]] = Field(None, min_length=1)

    @field_validator("code")
    @classmethod
    def _code(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v

    _any = model_validator(mode="after")(_require_any_field)


class SubjectBulkIn(BaseModel):
    subjects: List[SubjectIn] = Field(min_length=1)


# ---------- Periods ----------
class PeriodUpdate(BaseModel):
    label: Optional[str] = Field(None, min_length=1, max_length=100)
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    _any = model_validator(mode="after")(_require_any_field)


class PeriodOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    label: str
    start_time: str
    end_time: str
    sort_order: int

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _fmt(cls, v):
        return v.strftime("%H:%M") if isinstance(v, time) else v


# ---------- Public ----------
class StudentLoginIn(BaseModel):
    email: str = Field(min_length=1)
    roll_id: str = Field(min_length=1)
    password: str = Field(min_length=1)

