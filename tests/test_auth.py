from __future__ import annotations
import base64

import pytest


def _basic(user: str, password: str) -> dict:
    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


def test_me_with_valid_credentials(client, auth):
    r = client.get("/api/admin/me", headers=auth)
    assert r.status_code == 200
    assert r.get_json() == {"username": "admin", "role": "ADMIN"}


def test_missing_credentials_401_with_challenge(client):
    r = client.get("/api/admin/terms")
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == 'Basic realm="admin"'
    assert r.get_json()["code"] == "UNAUTHORIZED"


@pytest.mark.parametrize("headers", [
    _basic("admin", "wrong"),
    _basic("root", "s3cret"),
    _basic("админ", "s3cret"),
    {"Authorization": "Basic !!!not-base64"},
    {"Authorization": "Bearer abc"},
    {"Authorization": "Basic " + base64.b64encode(b"no-colon").decode()},
])
def test_bad_credentials_are_rejected(client, headers):
    r = client.get("/api/admin/me", headers=headers)
    assert r.status_code == 401
    assert "WWW-Authenticate" in r.headers


def test_admin_endpoints_are_all_protected(app, client):
    admin_rules = [rule for rule in app.url_map.iter_rules() if rule.rule.startswith("/api/admin/")]
    assert admin_rules
    for rule in admin_rules:
        method = sorted(rule.methods - {"HEAD", "OPTIONS"})[0]
        url = rule.rule.replace("<", "").replace(">", "")
        r = client.open(url, method=method)
        assert r.status_code == 401, rule.rule


def test_public_endpoints_need_no_credentials(client):
    assert client.get("/api/health").status_code == 200
    r = client.get("/api/schedule")
    assert r.status_code == 200
    assert r.get_json() == {"term": None, "items": []}  # активного семестра нет


def test_password_may_contain_colon(app, client):
    app.config["ADMIN_PASSWORD"] = "pa:ss:word"
    r = client.get("/api/admin/me", headers=_basic("admin", "pa:ss:word"))
    assert r.status_code == 200


def test_basic_credentials_come_from_werkzeug(app):
    from blueprints.auth.routes import _basic_credentials

    with app.test_request_context(headers=_basic("admin", "s3cret")) as ctx:
        assert _basic_credentials(ctx.request) == ("admin", "s3cret")
    with app.test_request_context(headers={"Authorization": "Bearer abc"}) as ctx:
        assert _basic_credentials(ctx.request) is None
    with app.test_request_context() as ctx:
        assert _basic_credentials(ctx.request) is None
