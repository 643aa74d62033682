from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import func, or_, select

from extensions import db
from models import (
    Department,
    Period,
    Registration,
    Student,
    StudentSubject,
    Subject,
    TermSubject,
    TimetableEntry,
    department_subjects,
)
from blueprints.registry.errors import Conflict, ValidationFailed
from blueprints.registry.services import atomic, require, unique_ids
from .schemas import (
    DepartmentIn, DepartmentUpdate,
    PeriodUpdate,
    StudentIn, StudentUpdate,
    SubjectBulkIn, SubjectIn, SubjectUpdate,
)
from .validators import ensure_period_range

log = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass
class Page:
    items: list
    page: int
    page_size: int
    total: int


@dataclass
class BulkReport:
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)


# ---------- Departments ----------
def list_departments() -> List[Department]:
    return Department.query.order_by(Department.name.asc()).all()


def create_department(cmd: DepartmentIn) -> Department:
    with atomic():
        dept = Department(name=cmd.name.strip(), code=cmd.code, is_active=cmd.is_active)
        db.session.add(dept)
        db.session.flush()
    log.info("department created", extra={"event": "department_created", "entity": "department", "entity_id": dept.id})
    return dept


def update_department(department_id: str, cmd: DepartmentUpdate) -> Department:
    with atomic():
        dept = require(Department, department_id, "Department")
        for key, value in cmd.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(dept, key, value.strip() if isinstance(value, str) else value)
        db.session.flush()
    return dept


def delete_department(department_id: str) -> None:
    with atomic():
        dept = require(Department, department_id, "Department")
        students = Student.query.filter_by(department_id=dept.id).count()
        subjects = db.session.scalar(
            select(func.count()).select_from(department_subjects)
            .where(department_subjects.c.department_id == dept.id)
        )
        if students or subjects:
            raise Conflict("Department is referenced by students or subjects.", code="DEPARTMENT_IN_USE",
                           details={"students": students, "subjects": subjects})
        db.session.delete(dept)
    log.info("department deleted", extra={"event": "department_deleted", "entity": "department", "entity_id": department_id})


# ---------- Students ----------
def list_students(*, search: str = "", department_id: Optional[str] = None,
                  page: int = 1, page_size: int = 20) -> Page:
    page = max(1, page)
    page_size = max(1, min(MAX_PAGE_SIZE, page_size))
    q = Student.query
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Student.full_name.ilike(like), Student.registration_id.ilike(like),
                         Student.email.ilike(like)))
    if department_id:
        q = q.filter(Student.department_id == department_id)
    total = q.count()
    rows = q.order_by(Student.full_name.asc()).offset((page - 1) * page_size).limit(page_size).all()
    return Page(items=rows, page=page, page_size=page_size, total=total)


def create_student(cmd: StudentIn) -> Student:
    with atomic():
        require(Department, cmd.department_id, "Department")
        student = Student(
            registration_id=cmd.registration_id.strip(),
            full_name=cmd.full_name.strip(),
            email=cmd.email.strip().lower(),
            department_id=cmd.department_id,
            mother_name=cmd.mother_name.strip(),
            phone=cmd.phone.strip(),
        )
        student.set_password(cmd.password)
        db.session.add(student)
        db.session.flush()
    log.info("student created", extra={"event": "student_created", "entity": "student", "entity_id": student.id})
    return student


def update_student(student_id: str, cmd: StudentUpdate) -> Student:
    changes = cmd.model_dump(exclude_unset=True, exclude_none=True)
    with atomic():
        student = require(Student, student_id, "Student")
        if "department_id" in changes:
            require(Department, changes["department_id"], "Department")
        password = changes.pop("password", None)
        if password:
            student.set_password(password)
        if "email" in changes:
            changes["email"] = changes["email"].strip().lower()
        for key, value in changes.items():
            setattr(student, key, value.strip() if isinstance(value, str) else value)
        db.session.flush()
    return student


def delete_student(student_id: str) -> None:
    with atomic():
        student = require(Student, student_id, "Student")
        StudentSubject.query.filter(StudentSubject.student_id == student_id).delete(synchronize_session=False)
        Registration.query.filter(Registration.student_id == student_id).delete(synchronize_session=False)
        db.session.delete(student)
    log.info("student deleted", extra={"event": "student_deleted", "entity": "student", "entity_id": student_id})


# ---------- Subjects ----------
def _departments_for(ids: List[str]) -> List[Department]:
    ids = unique_ids(ids)
    if not ids:
        raise ValidationFailed("Subject must belong to at least one department.", code="DEPARTMENTS_REQUIRED")
    return [require(Department, dept_id, "Department") for dept_id in ids]


def list_subjects(*, search: str = "", department_id: Optional[str] = None) -> List[Subject]:
    q = Subject.query
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Subject.name.ilike(like), Subject.code.ilike(like)))
    if department_id:
        q = q.join(department_subjects, department_subjects.c.subject_id == Subject.id).filter(
            department_subjects.c.department_id == department_id
        )
    return q.order_by(Subject.code.asc()).all()


def create_subject(cmd: SubjectIn) -> Subject:
    with atomic():
        subject = Subject(
            name=cmd.name.strip(),
            code=cmd.code,
            units=cmd.units,
            curriculum_semester=cmd.curriculum_semester,
        )
        subject.departments = _departments_for(cmd.department_ids)
        db.session.add(subject)
        db.session.flush()
    log.info("subject created", extra={"event": "subject_created", "entity": "subject", "entity_id": subject.id})
    return subject


def update_subject(subject_id: str, cmd: SubjectUpdate) -> Subject:
    changes = cmd.model_dump(exclude_unset=True, exclude_none=True)
    with atomic():
        subject = require(Subject, subject_id, "Subject")
        dept_ids = changes.pop("department_ids", None)
        if dept_ids is not None:
            subject.departments = _departments_for(dept_ids)
        for key, value in changes.items():
            setattr(subject, key, value.strip() if isinstance(value, str) else value)
        db.session.flush()
    return subject


def bulk_upsert_subjects(cmd: SubjectBulkIn) -> BulkReport:
    """Создать или обновить предметы по коду; связи с кафедрами заменяются целиком."""
    report = BulkReport()
    # при повторе кода в одном запросе побеждает последняя запись
    by_code = {item.code: item for item in cmd.subjects}
    with atomic():
        for code, item in by_code.items():
            subject = Subject.query.filter_by(code=code).first()
            if subject is None:
                subject = Subject(code=code)
                db.session.add(subject)
                bucket = report.created
            else:
                bucket = report.updated
            subject.name = item.name.strip()
            subject.units = item.units
            subject.curriculum_semester = item.curriculum_semester
            subject.departments = _departments_for(item.department_ids)
            bucket.append(code)
    log.info("subjects upserted", extra={"event": "subjects_upserted", "entity": "subject",
                                         "entity_id": None, "fields": {"created": len(report.created),
                                                                       "updated": len(report.updated)}})
    return report


def delete_subject(subject_id: str) -> None:
    with atomic():
        subject = require(Subject, subject_id, "Subject")
        for model in (StudentSubject, TimetableEntry, TermSubject):
            model.query.filter(model.subject_id == subject_id).delete(synchronize_session=False)
        # строки department_subjects ORM удалит сам через relationship
        db.session.delete(subject)
    log.info("subject deleted", extra={"event": "subject_deleted", "entity": "subject", "entity_id": subject_id})


# ---------- Periods ----------
def list_periods() -> List[Period]:
    return Period.query.order_by(Period.sort_order.asc()).all()


def update_period(period_id: str, cmd: PeriodUpdate) -> Period:
    with atomic():
        period = require(Period, period_id, "Period")
        start = cmd.start_time or period.start_time
        end = cmd.end_time or period.end_time
        ensure_period_range(start, end)
        if cmd.label:
            period.label = cmd.label.strip()
        period.start_time = start
        period.end_time = end
        db.session.flush()
    return period
