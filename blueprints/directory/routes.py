from __future__ import annotations
import logging
from typing import Any

from flask import jsonify, request, url_for

from blueprints.auth.routes import admin_required
from blueprints.registry.services import require
from models import Student, Subject
from . import bp
from . import services
from .schemas import (
    DepartmentIn, DepartmentOut, DepartmentUpdate,
    PeriodOut, PeriodUpdate,
    StudentIn, StudentOut, StudentUpdate,
    SubjectBulkIn, SubjectIn, SubjectOut, SubjectUpdate,
)

log = logging.getLogger(__name__)

# ----------------------- Helpers -----------------------
def ok(data: Any, status: int = 200):
    return jsonify(data), status

def created(location: str, data: Any):
    resp = jsonify(data)
    resp.status_code = 201
    resp.headers["Location"] = location
    return resp

def dump(schema, obj) -> dict:
    return schema.model_validate(obj).model_dump(mode="json")

def dump_all(schema, rows) -> list[dict]:
    return [dump(schema, r) for r in rows]

def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default

def _body() -> dict:
    return request.get_json(silent=True) or {}

# ---- Departments ----
@bp.get("/departments")
@admin_required
def departments_list():
    return ok(dump_all(DepartmentOut, services.list_departments()))

@bp.post("/departments")
@admin_required
def departments_create():
    dept = services.create_department(DepartmentIn.model_validate(_body()))
    return created(url_for("directory.departments_list"), dump(DepartmentOut, dept))

@bp.put("/departments/<id>")
@admin_required
def departments_update(id: str):
    dept = services.update_department(id, DepartmentUpdate.model_validate(_body()))
    return ok(dump(DepartmentOut, dept))

@bp.delete("/departments/<id>")
@admin_required
def departments_delete(id: str):
    services.delete_department(id)
    return "", 204

# ---- Students ----
@bp.get("/students")
@admin_required
def students_list():
    page = services.list_students(
        search=request.args.get("search", ""),
        department_id=request.args.get("department_id") or None,
        page=_int_arg("page", 1),
        page_size=_int_arg("page_size", 20),
    )
    return ok({
        "items": dump_all(StudentOut, page.items),
        "meta": {"page": page.page, "page_size": page.page_size, "total": page.total},
    })

@bp.post("/students")
@admin_required
def students_create():
    student = services.create_student(StudentIn.model_validate(_body()))
    return created(url_for("directory.students_get", id=student.id), dump(StudentOut, student))

@bp.get("/students/<id>")
@admin_required
def students_get(id: str):
    return ok(dump(StudentOut, require(Student, id, "Student")))

@bp.put("/students/<id>")
@admin_required
def students_update(id: str):
    student = services.update_student(id, StudentUpdate.model_validate(_body()))
    return ok(dump(StudentOut, student))

@bp.delete("/students/<id>")
@admin_required
def students_delete(id: str):
    services.delete_student(id)
    return "", 204

# ---- Subjects ----
@bp.get("/subjects")
@admin_required
def subjects_list():
    rows = services.list_subjects(
        search=request.args.get("search", ""),
        department_id=request.args.get("department_id") or None,
    )
    return ok(dump_all(SubjectOut, rows))

@bp.post("/subjects")
@admin_required
def subjects_create():
    subject = services.create_subject(SubjectIn.model_validate(_body()))
    return created(url_for("directory.subjects_get", id=subject.id), dump(SubjectOut, subject))

@bp.post("/subjects/bulk")
@admin_required
def subjects_bulk():
    report = services.bulk_upsert_subjects(SubjectBulkIn.model_validate(_body()))
    return ok({"created": report.created, "updated": report.updated})

@bp.get("/subjects/<id>")
@admin_required
def subjects_get(id: str):
    return ok(dump(SubjectOut, require(Subject, id, "Subject")))

@bp.put("/subjects/<id>")
@admin_required
def subjects_update(id: str):
    subject = services.update_subject(id, SubjectUpdate.model_validate(_body()))
    return ok(dump(SubjectOut, subject))

@bp.delete("/subjects/<id>")
@admin_required
def subjects_delete(id: str):
    services.delete_subject(id)
    return "", 204

# ---- Periods (набор фиксирован: только чтение и правка) ----
@bp.get("/periods")
@admin_required
def periods_list():
    return ok(dump_all(PeriodOut, services.list_periods()))

@bp.put("/periods/<id>")
@admin_required
def periods_update(id: str):
    period = services.update_period(id, PeriodUpdate.model_validate(_body()))
    return ok(dump(PeriodOut, period))
