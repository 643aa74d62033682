# blueprints/import_export/services.py
from __future__ import annotations
import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from flask import current_app

from extensions import db
from models import Department, Student, Subject
from blueprints.registry.errors import ValidationFailed
from blueprints.registry.services import atomic

log = logging.getLogger(__name__)

DEFAULT_STUDENT_PASSWORD = "password123"
STUDENT_REQUIRED = ("registration_id", "full_name", "email", "mother_name", "phone")
SUBJECT_REQUIRED = ("code", "name", "units", "curriculum_semester")


# ---------- контракты для ошибок и итогов
@dataclass
class RowError:
    row: int   # номер строки файла, заголовок = 1
    code: str
    details: dict[str, Any] | None = None


@dataclass
class ImportReport:
    inserted: int = 0
    updated: int = 0
    keys: List[str] = field(default_factory=list)


# ---------- util: CSV чтение
def read_rows(text: str) -> List[Dict[str, str]]:
    if not text.strip():
        return []
    # поддержка и запятой, и точки с запятой
    sample = text.splitlines()[0]
    delimiter = ";" if sample.count(";") > sample.count(",") else ","
    reader = csv.DictReader(io.StringIO(text), delimiter=delimiter)
    return [
        {(k or "").strip().lower(): (v or "").strip() for k, v in r.items()}
        for r in reader
    ]


def _int_or_none(s: str) -> Optional[int]:
    try:
        return int(s)
    except (TypeError, ValueError):
        return None


def _raise_on_errors(errors: List[RowError]):
    if errors:
        raise ValidationFailed(
            "CSV contains invalid rows; nothing was imported.",
            code="IMPORT_INVALID_ROWS",
            details={"rows": [{"row": e.row, "code": e.code, "details": e.details} for e in errors]},
        )


def _missing(row: Dict[str, str], required) -> List[str]:
    return [f for f in required if not row.get(f)]


def ensure_default_department() -> Department:
    code = current_app.config.get("DEFAULT_DEPARTMENT_CODE", "GEN")
    dept = Department.query.filter_by(code=code).first()
    if dept is None:
        dept = Department(name="General Department", code=code, is_active=True)
        db.session.add(dept)
        db.session.flush()
    return dept


def _departments_by_code() -> Dict[str, Department]:
    return {d.code: d for d in Department.query.all()}


# ---------- студенты: upsert по registration_id
def import_students(text: str) -> ImportReport:
    rows = read_rows(text)
    errors: List[RowError] = []
    seen: set[str] = set()
    for i, r in enumerate(rows, start=2):
        missing = _missing(r, STUDENT_REQUIRED)
        if missing:
            errors.append(RowError(i, "MISSING_REQUIRED", {"fields": missing}))
            continue
        if "@" not in r["email"]:
            errors.append(RowError(i, "INVALID_EMAIL", {"value": r["email"]}))
        if r["registration_id"] in seen:
            errors.append(RowError(i, "DUPLICATE_IN_FILE", {"registration_id": r["registration_id"]}))
        seen.add(r["registration_id"])

    report = ImportReport()
    with atomic():
        default_dept = ensure_default_department()
        depts = _departments_by_code()
        for i, r in enumerate(rows, start=2):
            code = (r.get("department_code") or "").upper()
            if code and code not in depts:
                errors.append(RowError(i, "UNKNOWN_DEPARTMENT", {"department_code": code}))
        _raise_on_errors(errors)

        for r in rows:
            dept = depts.get((r.get("department_code") or "").upper(), default_dept)
            student = Student.query.filter_by(registration_id=r["registration_id"]).first()
            if student is None:
                student = Student(registration_id=r["registration_id"])
                db.session.add(student)
                report.inserted += 1
            else:
                report.updated += 1
            student.full_name = r["full_name"]
            student.email = r["email"].lower()
            student.department_id = dept.id
            student.mother_name = r["mother_name"]
            student.phone = r["phone"]
            student.set_password(r.get("password") or DEFAULT_STUDENT_PASSWORD)
            report.keys.append(r["registration_id"])
            # флашим сразу: следующая строка ищет студента запросом
            db.session.flush()
    log.info("students imported", extra={"event": "students_imported", "entity": "student", "entity_id": None,
                                         "fields": {"inserted": report.inserted, "updated": report.updated}})
    return report


# ---------- предметы: upsert по code, кафедры через department_codes "CS|SE"
def import_subjects(text: str) -> ImportReport:
    rows = read_rows(text)
    errors: List[RowError] = []
    seen: set[str] = set()
    for i, r in enumerate(rows, start=2):
        missing = _missing(r, SUBJECT_REQUIRED)
        if missing:
            errors.append(RowError(i, "MISSING_REQUIRED", {"fields": missing}))
            continue
        units = _int_or_none(r["units"])
        if units is None or units <= 0:
            errors.append(RowError(i, "INVALID_INT", {"field": "units", "value": r["units"]}))
        semester = _int_or_none(r["curriculum_semester"])
        if semester is None or not 1 <= semester <= 8:
            errors.append(RowError(i, "INVALID_INT", {"field": "curriculum_semester",
                                                      "value": r["curriculum_semester"]}))
        code = r["code"].upper()
        if code in seen:
            errors.append(RowError(i, "DUPLICATE_IN_FILE", {"code": code}))
        seen.add(code)

    report = ImportReport()
    with atomic():
        default_dept = ensure_default_department()
        depts = _departments_by_code()
        links: Dict[int, List[Department]] = {}
        for i, r in enumerate(rows, start=2):
            codes = [c.strip().upper() for c in (r.get("department_codes") or "").split("|") if c.strip()]
            unknown = [c for c in codes if c not in depts]
            if unknown:
                errors.append(RowError(i, "UNKNOWN_DEPARTMENT", {"department_codes": unknown}))
            links[i] = [depts[c] for c in codes if c in depts] or [default_dept]
        _raise_on_errors(errors)

        for i, r in enumerate(rows, start=2):
            code = r["code"].upper()
            subject = Subject.query.filter_by(code=code).first()
            if subject is None:
                subject = Subject(code=code)
                db.session.add(subject)
                report.inserted += 1
            else:
                report.updated += 1
            subject.name = r["name"]
            subject.units = int(r["units"])
            subject.curriculum_semester = int(r["curriculum_semester"])
            # связи только добавляются, существующие сохраняем
            for dept in links[i]:
                if dept not in subject.departments:
                    subject.departments.append(dept)
            report.keys.append(code)
            db.session.flush()
    log.info("subjects imported", extra={"event": "subjects_imported", "entity": "subject", "entity_id": None,
                                         "fields": {"inserted": report.inserted, "updated": report.updated}})
    return report
