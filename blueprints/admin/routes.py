from __future__ import annotations
from flask import Blueprint, jsonify

from blueprints.auth.routes import admin_required
from blueprints.directory import services as directory
from blueprints.directory.schemas import DepartmentOut, PeriodOut, StudentOut, SubjectOut
from blueprints.registry import services as registry
from blueprints.registry.schemas import TermOut
from models import Student

api_bp = Blueprint("admin_api", __name__)

# ---------- API (сводка для админки одним запросом) ----------
@api_bp.get("/bootstrap")
@admin_required
def bootstrap():
    students = Student.query.order_by(Student.full_name.asc()).all()
    return jsonify({
        "students": [StudentOut.model_validate(s).model_dump(mode="json") for s in students],
        "subjects": [SubjectOut.model_validate(s).model_dump(mode="json") for s in directory.list_subjects()],
        "terms": [TermOut.model_validate(t).model_dump(mode="json") for t in registry.list_terms()],
        "periods": [PeriodOut.model_validate(p).model_dump(mode="json") for p in directory.list_periods()],
        "departments": [DepartmentOut.model_validate(d).model_dump(mode="json") for d in directory.list_departments()],
    })
