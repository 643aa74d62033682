# blueprints/auth/routes.py
from __future__ import annotations
import hmac
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, current_app, jsonify
from flask_login import UserMixin, current_user, login_required

from extensions import login_manager

api_bp = Blueprint("auth_api", __name__)

REALM = 'Basic realm="admin"'


class AdminPrincipal(UserMixin):
    """Администратор, опознанный по HTTP Basic; в БД не хранится."""

    role = "ADMIN"

    def __init__(self, username: str):
        self.id = username
        self.username = username


def _basic_credentials(req) -> Optional[tuple[str, str]]:
    # разбор заголовка делает werkzeug; битый base64 даёт None
    auth = req.authorization
    if auth is None or auth.type != "basic" or auth.username is None:
        return None
    return auth.username, auth.password or ""


@login_manager.request_loader
def load_admin_from_request(req) -> Optional[AdminPrincipal]:
    creds = _basic_credentials(req)
    if not creds:
        return None
    username, password = creds
    expected_user = current_app.config.get("ADMIN_USERNAME", "")
    expected_password = current_app.config.get("ADMIN_PASSWORD", "")
    # сравнение за постоянное время
    user_ok = hmac.compare_digest(username.encode(), expected_user.encode())
    password_ok = hmac.compare_digest(password.encode(), expected_password.encode())
    if user_ok and password_ok:
        return AdminPrincipal(username)
    return None


# ---------- декораторы ролей ----------
def admin_required(fn: Callable):
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        if getattr(current_user, "role", None) != "ADMIN":
            return _unauth()
        return fn(*args, **kwargs)
    return wrapper


# ---------- обработчик 401 ----------
@login_manager.unauthorized_handler
def _unauth():
    resp = jsonify({"error": "Authentication required", "code": "UNAUTHORIZED"})
    resp.status_code = 401
    resp.headers["WWW-Authenticate"] = REALM
    return resp


# ---------- API ----------
@api_bp.get("/me")
@admin_required
def me():
    return jsonify({"username": current_user.username, "role": current_user.role})
