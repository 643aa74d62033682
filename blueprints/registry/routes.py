from __future__ import annotations
from typing import Any

from flask import jsonify, request, url_for

from blueprints.auth.routes import admin_required
from . import bp
from . import services
from .errors import ValidationFailed
from .schemas import (
    GradeIn,
    RegistrationIn,
    RegistrationOut,
    SectionIn,
    SectionOut,
    StudentSubjectOut,
    SubjectIdsIn,
    SubjectOut,
    TermCreate,
    TermOut,
    TermUpdate,
    TimetableEntryIn,
    TimetableEntryOut,
    UnregistrationIn,
)

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

def _body() -> dict:
    return request.get_json(silent=True) or {}

def _flag(name: str) -> bool:
    return (request.args.get(name) or "").lower() in ("1", "true", "yes")

def _student_subject(row) -> dict:
    return StudentSubjectOut(
        subject_id=row.subject_id,
        grade=row.grade,
        name=row.subject.name,
        code=row.subject.code,
        units=row.subject.units,
        curriculum_semester=row.subject.curriculum_semester,
    ).model_dump(mode="json")

# ---- Terms ----
@bp.get("/terms")
@admin_required
def terms_list():
    rows = services.list_terms(include_archived=_flag("include_archived"))
    return ok([dump(TermOut, t) for t in rows])

@bp.post("/terms")
@admin_required
def terms_create():
    term = services.create_term(TermCreate.model_validate(_body()))
    return created(url_for("registry.terms_get", term_id=term.id), dump(TermOut, term))

@bp.get("/terms/<term_id>")
@admin_required
def terms_get(term_id: str):
    return ok(dump(TermOut, services.get_term(term_id)))

@bp.put("/terms/<term_id>")
@admin_required
def terms_update(term_id: str):
    term = services.update_term(term_id, TermUpdate.model_validate(_body()))
    return ok(dump(TermOut, term))

@bp.delete("/terms/<term_id>")
@admin_required
def terms_delete(term_id: str):
    services.delete_term(term_id)
    return "", 204

# ---- Offerings ----
@bp.get("/terms/<term_id>/subjects")
@admin_required
def offerings_list(term_id: str):
    return ok([dump(SubjectOut, s) for s in services.list_offerings(term_id)])

@bp.post("/terms/<term_id>/subjects/assign")
@admin_required
def offerings_assign(term_id: str):
    result = services.assign_subjects(term_id, SubjectIdsIn.model_validate(_body()))
    return ok({"term_id": term_id, "assigned": result.applied, "already_offered": result.skipped})

@bp.post("/terms/<term_id>/subjects/unassign")
@admin_required
def offerings_unassign(term_id: str):
    result = services.unassign_subjects(term_id, SubjectIdsIn.model_validate(_body()))
    return ok({"term_id": term_id, "removed": result.applied, "not_offered": result.skipped})

# ---- Sections ----
@bp.get("/terms/<term_id>/sections")
@admin_required
def sections_list(term_id: str):
    return ok([dump(SectionOut, s) for s in services.list_sections(term_id)])

@bp.post("/terms/<term_id>/sections")
@admin_required
def sections_create(term_id: str):
    section = services.create_section(term_id, SectionIn.model_validate(_body()))
    return created(url_for("registry.sections_list", term_id=term_id), dump(SectionOut, section))

# ---- Registrations ----
@bp.get("/registrations")
@admin_required
def registrations_list():
    term_id = request.args.get("term_id")
    if not term_id:
        raise ValidationFailed("term_id query parameter is required", code="TERM_ID_REQUIRED")
    return ok([dump(RegistrationOut, r) for r in services.list_registrations(term_id)])

@bp.post("/registrations/register")
@admin_required
def registrations_register():
    result = services.register_students(RegistrationIn.model_validate(_body()))
    return ok({"term_id": result.term_id, "registered": result.applied, "already_registered": result.skipped})

@bp.post("/registrations/unregister")
@admin_required
def registrations_unregister():
    result = services.unregister_students(UnregistrationIn.model_validate(_body()))
    return ok({"term_id": result.term_id, "unregistered": result.applied, "not_registered": result.skipped})

# ---- Student subjects & grades ----
@bp.get("/terms/<term_id>/students/<student_id>/subjects")
@admin_required
def student_subjects_list(term_id: str, student_id: str):
    return ok([_student_subject(r) for r in services.list_student_subjects(term_id, student_id)])

@bp.post("/terms/<term_id>/students/<student_id>/subjects/assign")
@admin_required
def student_subjects_assign(term_id: str, student_id: str):
    result = services.assign_student_subjects(term_id, student_id, SubjectIdsIn.model_validate(_body()))
    return ok({"term_id": term_id, "student_id": student_id,
               "assigned": result.applied, "already_assigned": result.skipped})

@bp.post("/terms/<term_id>/students/<student_id>/subjects/unassign")
@admin_required
def student_subjects_unassign(term_id: str, student_id: str):
    result = services.unassign_student_subjects(term_id, student_id, SubjectIdsIn.model_validate(_body()))
    return ok({"term_id": term_id, "student_id": student_id,
               "removed": result.applied, "not_assigned": result.skipped})

@bp.put("/terms/<term_id>/students/<student_id>/subjects/<subject_id>/grade")
@admin_required
def student_subject_grade(term_id: str, student_id: str, subject_id: str):
    row = services.set_grade(term_id, student_id, subject_id, GradeIn.model_validate(_body()))
    return ok(_student_subject(row))

# ---- Timetable ----
@bp.get("/terms/<term_id>/timetable")
@admin_required
def timetable_list(term_id: str):
    return ok([dump(TimetableEntryOut, e) for e in services.list_timetable(term_id)])

@bp.post("/terms/<term_id>/timetable")
@admin_required
def timetable_create(term_id: str):
    entry = services.create_timetable_entry(term_id, TimetableEntryIn.model_validate(_body()))
    return created(url_for("registry.timetable_list", term_id=term_id), dump(TimetableEntryOut, entry))

@bp.put("/timetable/<entry_id>")
@admin_required
def timetable_update(entry_id: str):
    entry = services.update_timetable_entry(entry_id, TimetableEntryIn.model_validate(_body()))
    return ok(dump(TimetableEntryOut, entry))

@bp.delete("/timetable/<entry_id>")
@admin_required
def timetable_delete(entry_id: str):
    services.delete_timetable_entry(entry_id)
    return "", 204
