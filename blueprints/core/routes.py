from __future__ import annotations
import json, logging
from datetime import datetime

from flask import g, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException
from werkzeug.wrappers.response import Response

from extensions import db
from blueprints.registry.errors import RegistryError

from . import bp

log = logging.getLogger(__name__)

_EXTRA_KEYS = (
    "event", "path", "method", "status", "duration_ms",
    "entity", "entity_id", "term_id", "student_id", "subject_ids", "student_ids", "fields", "grade",
)

class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.utcnow().isoformat(timespec="milliseconds") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)

def _setup_structured_logging(app):
    # модульные логгеры (blueprints.*) и app.logger пишут через один JSON-хендлер
    for logger in (app.logger, logging.getLogger("blueprints")):
        has_json = any(
            isinstance(h, logging.StreamHandler)
            and isinstance(getattr(h, "formatter", None), JSONFormatter)
            for h in logger.handlers
        )
        if not has_json:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            logger.addHandler(handler)
            logger.setLevel(logging.INFO)

def _pydantic_errors_safe(ve: ValidationError):
    # ctx может содержать исключения, которые jsonify не сериализует
    return [
        {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
        for e in ve.errors(include_url=False)
    ]

@bp.before_app_request
def _start_timer():
    g._req_start = datetime.utcnow()

@bp.after_app_request
def _log_request(response: Response):
    start = getattr(g, "_req_start", None)
    duration_ms = int((datetime.utcnow() - start).total_seconds() * 1000) if start else None
    extra = {
        "event": "http_request",
        "path": request.path,
        "method": request.method,
        "status": response.status_code,
        "duration_ms": duration_ms,
    }
    log.info("request handled", extra=extra)
    return response

@bp.record_once
def _on_register(state):
    _setup_structured_logging(state.app)

# ---------- ошибки -> JSON ----------
@bp.app_errorhandler(RegistryError)
def _registry_error(ex: RegistryError):
    return jsonify(ex.to_dict()), ex.status

@bp.app_errorhandler(ValidationError)
def _validation_error(ex: ValidationError):
    db.session.rollback()
    return jsonify({"error": "Invalid request body", "code": "VALIDATION_ERROR",
                    "details": _pydantic_errors_safe(ex)}), 400

@bp.app_errorhandler(HTTPException)
def _http_error(ex: HTTPException):
    if not request.path.startswith("/api/"):
        return ex
    code = (ex.name or "error").upper().replace(" ", "_")
    return jsonify({"error": ex.description or ex.name, "code": code}), ex.code or 500

@bp.app_errorhandler(Exception)
def _unhandled(ex: Exception):
    db.session.rollback()
    log.exception("unhandled error", extra={"event": "unhandled_error", "path": request.path})
    return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500

@bp.get("/health")
def health():
    return jsonify({
        "status": "ok",
        "ts": datetime.utcnow().isoformat(timespec="seconds") + "Z",
    })
