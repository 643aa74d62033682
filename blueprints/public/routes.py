from __future__ import annotations
from flask import Blueprint, jsonify, request

from blueprints.directory.schemas import DepartmentRef, StudentLoginIn
from blueprints.registry.schemas import TermOut
from . import services

api_bp = Blueprint("public_api", __name__)


def _term(term) -> dict | None:
    return TermOut.model_validate(term).model_dump(mode="json") if term else None


@api_bp.post("/student-dashboard")
def student_dashboard():
    payload = request.get_json(silent=True) or {}
    data = services.student_dashboard(StudentLoginIn.model_validate(payload))
    st = data.student
    return jsonify({
        "student": {
            "id": st.id,
            "registration_id": st.registration_id,
            "full_name": st.full_name,
            "email": st.email,
            "mother_name": st.mother_name,
            "phone": st.phone,
            "study_semesters_count": st.study_semesters_count,
            "department": DepartmentRef.model_validate(st.department).model_dump(mode="json"),
        },
        "current_term": _term(data.current_term),
        "grade_average": data.grade_average,
        "academic_record": [
            {"term": _term(rec.term), "subjects": rec.subjects} for rec in data.record
        ],
    })


@api_bp.get("/schedule")
def schedule():
    term, entries = services.public_schedule(request.args.get("term_id") or None)
    return jsonify({
        "term": _term(term),
        "items": [
            {
                "id": e.id,
                "day_of_week": e.day_of_week.value,
                "period_id": e.period_id,
                "period_label": e.period.label,
                "start_time": e.period.start_time.strftime("%H:%M"),
                "end_time": e.period.end_time.strftime("%H:%M"),
                "subject_id": e.subject_id,
                "subject_code": e.subject.code,
                "subject_name": e.subject.name,
                "units": e.subject.units,
                "room_text": e.room_text,
                "lecturer_text": e.lecturer_text,
            }
            for e in entries
        ],
    })
