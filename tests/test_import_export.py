# tests/test_import_export.py
from __future__ import annotations
from io import BytesIO

from models import Student, Subject

STUDENTS_CSV = (
    "registration_id,full_name,email,department_code,mother_name,phone,password\n"
    "2025100,Sara Ali,Sara@Example.com,CS,Amal,+201000000001,secret1\n"
    "2025101,Omar Khaled,omar@example.com,,Mona,+201000000002,\n"
)


def _upload(client, auth, kind: str, text: str, filename="data.csv"):
    data = {"file": (BytesIO(text.encode("utf-8")), filename)}
    return client.post(f"/api/admin/import/{kind}", headers=auth, data=data, content_type="multipart/form-data")


def test_import_students_inserts_and_updates(client, auth):
    r = _upload(client, auth, "students", STUDENTS_CSV)
    assert r.status_code == 200
    js = r.get_json()
    assert js["ok"] is True
    assert js["inserted"] == 2 and js["updated"] == 0
    assert js["keys"] == ["2025100", "2025101"]

    sara = Student.query.filter_by(registration_id="2025100").one()
    assert sara.email == "sara@example.com"
    assert sara.department.code == "CS"
    assert sara.check_password("secret1")
    omar = Student.query.filter_by(registration_id="2025101").one()
    # кафедра по умолчанию и стандартный пароль
    assert omar.department.code == "GEN"
    assert omar.check_password("password123")

    changed = STUDENTS_CSV.replace("Sara Ali", "Sara A. Ali")
    r = _upload(client, auth, "students", changed)
    assert r.get_json()["updated"] == 2
    assert Student.query.count() == 2
    assert Student.query.filter_by(registration_id="2025100").one().full_name == "Sara A. Ali"


def test_import_students_semicolon_and_bom(client, auth):
    text = "\ufeffregistration_id;full_name;email;mother_name;phone\n2025200;Laila;laila@example.com;Hoda;+2010\n"
    r = _upload(client, auth, "students", text)
    assert r.status_code == 200
    assert r.get_json()["keys"] == ["2025200"]


def test_import_students_invalid_rows_write_nothing(client, auth):
    text = (
        "registration_id,full_name,email,department_code,mother_name,phone\n"
        "2025300,Good Row,good@example.com,CS,M,+2010\n"
        "2025301,,bad@example.com,CS,M,+2010\n"
        "2025302,Bad Email,not-an-email,CS,M,+2010\n"
        "2025303,Bad Dept,dept@example.com,XX,M,+2010\n"
    )
    r = _upload(client, auth, "students", text)
    assert r.status_code == 400
    body = r.get_json()
    assert body["code"] == "IMPORT_INVALID_ROWS"
    codes = {(row["row"], row["code"]) for row in body["details"]["rows"]}
    assert codes == {(3, "MISSING_REQUIRED"), (4, "INVALID_EMAIL"), (5, "UNKNOWN_DEPARTMENT")}
    assert Student.query.count() == 0


def test_import_subjects_unions_department_links(client, auth, make):
    make.subject(code="CS101", departments=("CS",))
    text = (
        "code,name,units,curriculum_semester,department_codes\n"
        "cs101,Intro to Programming,4,1,SE\n"
        "ENG101,Academic Writing,2,1,\n"
    )
    r = _upload(client, auth, "subjects", text)
    assert r.status_code == 200
    js = r.get_json()
    assert (js["inserted"], js["updated"]) == (1, 1)
    assert js["keys"] == ["CS101", "ENG101"]

    cs101 = Subject.query.filter_by(code="CS101").one()
    assert cs101.units == 4
    assert sorted(d.code for d in cs101.departments) == ["CS", "SE"]
    eng = Subject.query.filter_by(code="ENG101").one()
    assert [d.code for d in eng.departments] == ["GEN"]


def test_import_subjects_rejects_bad_numbers(client, auth):
    text = (
        "code,name,units,curriculum_semester\n"
        "X1,Bad Units,zero,1\n"
        "X2,Bad Semester,3,9\n"
        "X2,Duplicate,3,1\n"
    )
    r = _upload(client, auth, "subjects", text)
    assert r.status_code == 400
    rows = r.get_json()["details"]["rows"]
    assert [row["code"] for row in rows] == ["INVALID_INT", "INVALID_INT", "DUPLICATE_IN_FILE"]
    # код предмета лежит в details и не затирает код ошибки
    assert rows[2] == {"row": 4, "code": "DUPLICATE_IN_FILE", "details": {"code": "X2"}}
    assert rows[0]["details"] == {"field": "units", "value": "zero"}
    assert Subject.query.count() == 0


def test_import_requires_file(client, auth):
    r = client.post("/api/admin/import/students", headers=auth, data={}, content_type="multipart/form-data")
    assert r.status_code == 400
    assert r.get_json()["code"] == "FILE_REQUIRED"


def test_import_rejects_non_utf8(client, auth):
    data = {"file": (BytesIO("code,name\nX,Café\n".encode("latin-1")), "data.csv")}
    r = client.post("/api/admin/import/subjects", headers=auth, data=data, content_type="multipart/form-data")
    assert r.status_code == 400
    assert r.get_json()["code"] == "INVALID_ENCODING"


def test_import_requires_admin(client):
    r = _upload(client, {}, "students", STUDENTS_CSV)
    assert r.status_code == 401
