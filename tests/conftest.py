from __future__ import annotations
import base64
import itertools

import pytest

from app import create_app
from extensions import db
from models import Department, Period
from seed import seed_reference_data
from blueprints.directory import services as directory
from blueprints.directory.schemas import StudentIn, SubjectIn
from blueprints.registry import services as registry
from blueprints.registry.schemas import RegistrationIn, SubjectIdsIn, TermCreate

ADMIN_USER = "admin"
ADMIN_PASSWORD = "s3cret"


@pytest.fixture()
def app():
    app = create_app("test")
    app.config.update(TESTING=True, ADMIN_USERNAME=ADMIN_USER, ADMIN_PASSWORD=ADMIN_PASSWORD,
                      MAX_SUBJECTS_PER_TERM=7)
    with app.app_context():
        db.create_all()
        seed_reference_data()
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def auth():
    token = base64.b64encode(f"{ADMIN_USER}:{ADMIN_PASSWORD}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


class Factory:
    """Создание тестовых сущностей через сервисы, возвращает id."""

    def __init__(self):
        self._seq = itertools.count(1)

    def dept(self, code: str) -> str:
        return Department.query.filter_by(code=code).one().id

    def period(self, sort_order: int = 1) -> str:
        return Period.query.filter_by(sort_order=sort_order).one().id

    def term(self, start="2025-02-01", end="2025-05-15", name=None, **kw) -> str:
        n = next(self._seq)
        cmd = TermCreate(name=name or f"Term {n}", start_date=start, end_date=end, **kw)
        return registry.create_term(cmd).id

    def subject(self, code=None, departments=("CS",), units=3, semester=1) -> str:
        n = next(self._seq)
        cmd = SubjectIn(name=f"Subject {n}", code=code or f"SUBJ{n:03d}", units=units,
                        curriculum_semester=semester, department_ids=[self.dept(c) for c in departments])
        return directory.create_subject(cmd).id

    def student(self, department="CS", password="password123", **kw) -> str:
        n = next(self._seq)
        data = {
            "registration_id": f"2025{n:03d}",
            "full_name": f"Student {n}",
            "email": f"student{n}@example.com",
            "department_id": self.dept(department),
            "mother_name": "Mother",
            "phone": "+201000000000",
            "password": password,
        }
        data.update(kw)
        return directory.create_student(StudentIn(**data)).id

    def offer(self, term_id: str, *subject_ids: str):
        registry.assign_subjects(term_id, SubjectIdsIn(subject_ids=list(subject_ids)))

    def register(self, term_id: str, *student_ids: str, section_id=None):
        registry.register_students(RegistrationIn(term_id=term_id, student_ids=list(student_ids),
                                                  section_id=section_id))


@pytest.fixture()
def make(app):
    return Factory()
