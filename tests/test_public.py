from __future__ import annotations
import pytest

from blueprints.public.services import weighted_average
from blueprints.registry import services as registry
from blueprints.registry.schemas import GradeIn, SubjectIdsIn, TimetableEntryIn


@pytest.fixture()
def graded(make):
    """Студент с двумя семестрами: в первом две оценки, во втором предмет без оценки."""
    spring = make.term("2025-02-01", "2025-05-15")
    fall = make.term("2025-09-01", "2025-12-31", is_active=True)
    a = make.subject(code="A101", units=3)
    b = make.subject(code="B101", units=1)
    c = make.subject(code="C101", units=2)
    student = make.student(department="CS", password="secret1", email="sara@example.com",
                           registration_id="2025777")
    make.offer(spring, a, b)
    make.offer(fall, c)
    make.register(spring, student)
    make.register(fall, student)
    registry.assign_student_subjects(spring, student, SubjectIdsIn(subject_ids=[a, b]))
    registry.assign_student_subjects(fall, student, SubjectIdsIn(subject_ids=[c]))
    registry.set_grade(spring, student, a, GradeIn(grade=90))
    registry.set_grade(spring, student, b, GradeIn(grade=70))
    return {"spring": spring, "fall": fall, "student": student}


def _login(client, **kw):
    payload = {"email": "sara@example.com", "roll_id": "2025777", "password": "secret1"}
    payload.update(kw)
    return client.post("/api/student-dashboard", json=payload)


def test_dashboard(client, graded):
    r = _login(client, email="  SARA@example.com ")
    assert r.status_code == 200
    data = r.get_json()
    assert data["student"]["id"] == graded["student"]
    assert data["student"]["department"]["code"] == "CS"
    assert data["student"]["study_semesters_count"] == 2
    assert "password_hash" not in data["student"]
    assert data["current_term"]["id"] == graded["fall"]
    # (90*3 + 70*1) / 4
    assert data["grade_average"] == 85.0

    record = data["academic_record"]
    assert [rec["term"]["id"] for rec in record] == [graded["fall"], graded["spring"]]
    assert [s["code"] for s in record[1]["subjects"]] == ["A101", "B101"]
    assert record[0]["subjects"][0]["grade"] is None


def test_dashboard_wrong_password_is_401(client, graded):
    r = _login(client, password="nope")
    assert r.status_code == 401
    assert r.get_json()["code"] == "INVALID_CREDENTIALS"


def test_dashboard_unknown_student_is_404(client, graded):
    r = _login(client, roll_id="0000000")
    assert r.status_code == 404
    assert r.get_json()["code"] == "STUDENT_NOT_FOUND"


def test_dashboard_requires_fields(client):
    r = client.post("/api/student-dashboard", json={"email": "x@example.com"})
    assert r.status_code == 400
    assert r.get_json()["code"] == "VALIDATION_ERROR"


def test_dashboard_without_registrations(client, make):
    make.student(email="new@example.com", registration_id="2025888")
    r = _login(client, email="new@example.com", roll_id="2025888", password="password123")
    data = r.get_json()
    assert data["current_term"] is None
    assert data["grade_average"] is None
    assert data["academic_record"] == []


def test_weighted_average():
    assert weighted_average([]) is None
    assert weighted_average([{"grade": None, "units": 3}]) is None
    assert weighted_average([{"grade": 80, "units": 2}, {"grade": 65.5, "units": 1}]) == 75.17


def test_schedule_defaults_to_active_term(client, make):
    spring = make.term("2025-02-01", "2025-05-15")
    fall = make.term("2025-09-01", "2025-12-31", is_active=True)
    subject = make.subject(code="MATH101")
    make.offer(spring, subject)
    make.offer(fall, subject)
    registry.create_timetable_entry(fall, TimetableEntryIn(day_of_week="monday", period_id=make.period(2),
                                                           subject_id=subject, room_text="Room 5"))

    r = client.get("/api/schedule")
    assert r.status_code == 200
    data = r.get_json()
    assert data["term"]["id"] == fall
    assert data["items"] == [{
        "id": data["items"][0]["id"],
        "day_of_week": "monday",
        "period_id": make.period(2),
        "period_label": "11:00 - 13:00",
        "start_time": "11:00",
        "end_time": "13:00",
        "subject_id": subject,
        "subject_code": "MATH101",
        "subject_name": data["items"][0]["subject_name"],
        "units": 3,
        "room_text": "Room 5",
        "lecturer_text": None,
    }]

    r = client.get(f"/api/schedule?term_id={spring}")
    assert r.get_json()["term"]["id"] == spring
    assert r.get_json()["items"] == []


def test_schedule_unknown_term_is_404(client):
    r = client.get("/api/schedule?term_id=nope")
    assert r.status_code == 404
    assert r.get_json()["code"] == "TERM_NOT_FOUND"
