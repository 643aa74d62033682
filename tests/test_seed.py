from __future__ import annotations

from extensions import db
from models import Department, Period, Registration, Student, StudentSubject, Term, TermSubject, TimetableEntry
from seed import DEMO_TERM_ID, seed_demo_data, seed_reference_data


def _counts():
    return {m.__name__: m.query.count()
            for m in (Department, Period, Term, TermSubject, Student, Registration, StudentSubject, TimetableEntry)}


def test_reference_seed_is_idempotent(app):
    seed_reference_data()
    db.session.commit()
    assert Department.query.count() == 3
    assert [p.sort_order for p in Period.query.order_by(Period.sort_order)] == [1, 2, 3]


def test_demo_seed_is_idempotent(app):
    seed_demo_data()
    db.session.commit()
    first = _counts()
    seed_demo_data()
    db.session.commit()
    assert _counts() == first

    assert first["Term"] == 1
    assert first["Student"] == 2
    assert first["StudentSubject"] == 4
    assert {e.id for e in TimetableEntry.query.all()} == {"tt-1", "tt-2", "tt-3"}
    # повторный прогон не увеличивает счётчик семестров
    assert {s.study_semesters_count for s in Student.query.all()} == {1}
    term = db.session.get(Term, DEMO_TERM_ID)
    assert term.is_active is True


def test_demo_seed_respects_existing_terms(app, make):
    make.term("2025-03-01", "2025-04-01")
    seed_demo_data()
    db.session.commit()
    assert db.session.get(Term, DEMO_TERM_ID) is None
    assert Student.query.count() == 0


def test_demo_student_can_open_dashboard(app, client):
    seed_demo_data()
    db.session.commit()
    r = client.post("/api/student-dashboard",
                    json={"email": "sara@example.com", "roll_id": "2025001", "password": "password123"})
    assert r.status_code == 200
    codes = [s["code"] for s in r.get_json()["academic_record"][0]["subjects"]]
    assert codes == ["CS101", "MATH101"]
