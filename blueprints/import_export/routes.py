# blueprints/import_export/routes.py
from __future__ import annotations
from flask import Blueprint, jsonify, request

from blueprints.auth.routes import admin_required
from blueprints.registry.errors import ValidationFailed
from . import services

api_bp = Blueprint("import_export_api", __name__)

# ---------- helpers ----------

def _read_text() -> str:
    f = request.files.get("file")
    if f is None:
        raise ValidationFailed("CSV file is required in the 'file' field.", code="FILE_REQUIRED")
    # читаем CSV в UTF-8-sig, чтобы с BOM всё было ок
    try:
        return f.read().decode("utf-8-sig")
    except UnicodeDecodeError as ex:
        raise ValidationFailed("CSV file must be UTF-8 encoded.", code="INVALID_ENCODING") from ex

def _report(report: services.ImportReport):
    return jsonify({"ok": True, "inserted": report.inserted, "updated": report.updated, "keys": report.keys})

# ---------- API ----------

@api_bp.post("/import/students")
@admin_required
def import_students():
    return _report(services.import_students(_read_text()))

@api_bp.post("/import/subjects")
@admin_required
def import_subjects():
    return _report(services.import_subjects(_read_text()))
