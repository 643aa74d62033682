from __future__ import annotations
import pytest

from extensions import db
from models import Period, Registration, Student, StudentSubject, Subject, TermSubject, TimetableEntry
from blueprints.directory import services as directory
from blueprints.registry import services as registry
from blueprints.registry.errors import Conflict
from blueprints.registry.schemas import SubjectIdsIn, TimetableEntryIn


def _student_payload(make, **kw):
    data = {
        "registration_id": "2025900",
        "full_name": "Sara Ali",
        "email": "Sara@Example.com",
        "department_id": make.dept("CS"),
        "mother_name": "Amal Hassan",
        "phone": "+201000000001",
        "password": "password123",
    }
    data.update(kw)
    return data


# ---- Departments ----
def test_department_crud_and_uniqueness(client, auth):
    r = client.post("/api/admin/departments", headers=auth, json={"name": "Mathematics", "code": "math"})
    assert r.status_code == 201
    dept = r.get_json()
    assert dept["code"] == "MATH"

    r = client.post("/api/admin/departments", headers=auth, json={"name": "Dup", "code": "MATH"})
    assert r.status_code == 409
    assert r.get_json()["code"] == "DUPLICATE_CODE"

    r = client.put(f"/api/admin/departments/{dept['id']}", headers=auth, json={"is_active": False})
    assert r.status_code == 200
    assert r.get_json()["is_active"] is False

    r = client.get("/api/admin/departments", headers=auth)
    assert {d["code"] for d in r.get_json()} == {"GEN", "CS", "SE", "MATH"}

    r = client.delete(f"/api/admin/departments/{dept['id']}", headers=auth)
    assert r.status_code == 204


def test_department_in_use_cannot_be_deleted(client, auth, make):
    make.student(department="CS")
    make.subject(departments=("SE",))
    for code in ("CS", "SE"):
        r = client.delete(f"/api/admin/departments/{make.dept(code)}", headers=auth)
        assert r.status_code == 409
        assert r.get_json()["code"] == "DEPARTMENT_IN_USE"


# ---- Students ----
def test_student_crud(client, auth, make):
    r = client.post("/api/admin/students", headers=auth, json=_student_payload(make))
    assert r.status_code == 201
    student = r.get_json()
    assert student["email"] == "sara@example.com"
    assert student["department"]["code"] == "CS"
    assert student["study_semesters_count"] == 0
    assert "password_hash" not in student

    r = client.put(f"/api/admin/students/{student['id']}", headers=auth,
                   json={"phone": "+201000000099", "department_id": make.dept("SE")})
    assert r.status_code == 200
    assert r.get_json()["department"]["code"] == "SE"

    r = client.get(f"/api/admin/students/{student['id']}", headers=auth)
    assert r.get_json()["phone"] == "+201000000099"

    r = client.delete(f"/api/admin/students/{student['id']}", headers=auth)
    assert r.status_code == 204
    r = client.get(f"/api/admin/students/{student['id']}", headers=auth)
    assert r.status_code == 404


def test_student_duplicates_are_conflicts(client, auth, make):
    assert client.post("/api/admin/students", headers=auth, json=_student_payload(make)).status_code == 201

    r = client.post("/api/admin/students", headers=auth,
                    json=_student_payload(make, email="other@example.com"))
    assert r.status_code == 409
    assert r.get_json()["code"] == "DUPLICATE_REGISTRATION_ID"

    r = client.post("/api/admin/students", headers=auth,
                    json=_student_payload(make, registration_id="2025901", email="sara@example.com"))
    assert r.status_code == 409
    assert r.get_json()["code"] == "DUPLICATE_EMAIL"


def test_student_with_unknown_department_is_404(client, auth, make):
    r = client.post("/api/admin/students", headers=auth, json=_student_payload(make, department_id="nope"))
    assert r.status_code == 404
    assert r.get_json()["code"] == "DEPARTMENT_NOT_FOUND"


def test_student_list_search_filter_and_pagination(client, auth, make):
    for _ in range(3):
        make.student(department="CS")
    make.student(department="SE", full_name="Omar Khaled")

    r = client.get("/api/admin/students?page=1&page_size=2", headers=auth)
    data = r.get_json()
    assert data["meta"] == {"page": 1, "page_size": 2, "total": 4}
    assert len(data["items"]) == 2

    r = client.get("/api/admin/students?search=omar", headers=auth)
    assert [s["full_name"] for s in r.get_json()["items"]] == ["Omar Khaled"]

    r = client.get(f"/api/admin/students?department_id={make.dept('CS')}", headers=auth)
    assert r.get_json()["meta"]["total"] == 3


def test_delete_student_removes_registrations_and_assignments(app, make):
    term_id = make.term()
    subject_id = make.subject(departments=("CS",))
    student_id = make.student(department="CS")
    make.offer(term_id, subject_id)
    make.register(term_id, student_id)
    registry.assign_student_subjects(term_id, student_id, SubjectIdsIn(subject_ids=[subject_id]))

    directory.delete_student(student_id)

    assert db.session.get(Student, student_id) is None
    assert Registration.query.filter_by(student_id=student_id).count() == 0
    assert StudentSubject.query.filter_by(student_id=student_id).count() == 0


# ---- Subjects ----
def test_subject_crud(client, auth, make):
    payload = {"name": "Calculus I", "code": "math101", "units": 3, "curriculum_semester": 1,
               "department_ids": [make.dept("CS"), make.dept("SE")]}
    r = client.post("/api/admin/subjects", headers=auth, json=payload)
    assert r.status_code == 201
    subject = r.get_json()
    assert subject["code"] == "MATH101"
    assert {d["code"] for d in subject["departments"]} == {"CS", "SE"}

    r = client.post("/api/admin/subjects", headers=auth, json=payload)
    assert r.status_code == 409
    assert r.get_json()["code"] == "DUPLICATE_CODE"

    r = client.put(f"/api/admin/subjects/{subject['id']}", headers=auth,
                   json={"units": 4, "department_ids": [make.dept("GEN")]})
    assert r.status_code == 200
    body = r.get_json()
    assert body["units"] == 4
    assert [d["code"] for d in body["departments"]] == ["GEN"]

    r = client.get(f"/api/admin/subjects?department_id={make.dept('GEN')}", headers=auth)
    assert [s["code"] for s in r.get_json()] == ["MATH101"]
    r = client.get("/api/admin/subjects?search=calc", headers=auth)
    assert len(r.get_json()) == 1


@pytest.mark.parametrize("patch", [
    {"department_ids": []},
    {"units": 0},
    {"curriculum_semester": 9},
])
def test_subject_validation(client, auth, make, patch):
    payload = {"name": "X", "code": "X1", "units": 3, "curriculum_semester": 1,
               "department_ids": [make.dept("CS")]}
    payload.update(patch)
    r = client.post("/api/admin/subjects", headers=auth, json=payload)
    assert r.status_code == 400
    assert r.get_json()["code"] == "VALIDATION_ERROR"


def test_subject_bulk_upsert_replaces_links(client, auth, make):
    existing = make.subject(code="CS101", departments=("CS",))
    r = client.post("/api/admin/subjects/bulk", headers=auth, json={"subjects": [
        {"name": "Intro to CS", "code": "CS101", "units": 4, "curriculum_semester": 1,
         "department_ids": [make.dept("SE")]},
        {"name": "Academic Writing", "code": "ENG101", "units": 2, "curriculum_semester": 1,
         "department_ids": [make.dept("GEN")]},
    ]})
    assert r.status_code == 200
    assert r.get_json() == {"created": ["ENG101"], "updated": ["CS101"]}

    subject = db.session.get(Subject, existing)
    assert subject.units == 4
    assert [d.code for d in subject.departments] == ["SE"]


def test_delete_subject_cascades(app, make):
    term_id = make.term()
    subject_id = make.subject(departments=("CS", "SE"))
    student_id = make.student(department="CS")
    make.offer(term_id, subject_id)
    make.register(term_id, student_id)
    registry.assign_student_subjects(term_id, student_id, SubjectIdsIn(subject_ids=[subject_id]))
    registry.create_timetable_entry(term_id, TimetableEntryIn(day_of_week="sunday", period_id=make.period(1),
                                                             subject_id=subject_id))

    directory.delete_subject(subject_id)

    assert db.session.get(Subject, subject_id) is None
    for model in (TermSubject, StudentSubject, TimetableEntry):
        assert model.query.filter_by(subject_id=subject_id).count() == 0
    # кафедра теперь свободна и удаляется
    directory.delete_department(make.dept("SE"))


def test_department_delete_blocked_by_subject_link(app, make):
    make.subject(departments=("GEN",))
    with pytest.raises(Conflict):
        directory.delete_department(make.dept("GEN"))


# ---- Periods ----
def test_periods_fixed_set(client, auth):
    r = client.get("/api/admin/periods", headers=auth)
    rows = r.get_json()
    assert [p["sort_order"] for p in rows] == [1, 2, 3]
    assert rows[0]["start_time"] == "09:00"

    # создавать пары через API нельзя
    r = client.post("/api/admin/periods", headers=auth, json={"label": "x"})
    assert r.status_code == 405
    assert Period.query.count() == 3


def test_period_update(client, auth, make):
    pid = make.period(1)
    r = client.put(f"/api/admin/periods/{pid}", headers=auth,
                   json={"label": "08:30 - 10:30", "start_time": "08:30", "end_time": "10:30"})
    assert r.status_code == 200
    assert r.get_json()["start_time"] == "08:30"

    r = client.put(f"/api/admin/periods/{pid}", headers=auth, json={"end_time": "08:00"})
    assert r.status_code == 400
    assert r.get_json()["code"] == "INVALID_TIME_RANGE"
