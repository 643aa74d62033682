# blueprints/public/services.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import func

from models import Registration, Student, StudentSubject, Subject, Term
from blueprints.registry.errors import NotFound, Unauthorized
from blueprints.registry.services import list_timetable, require
from blueprints.directory.schemas import StudentLoginIn


@dataclass
class TermRecord:
    term: Term
    subjects: list[dict] = field(default_factory=list)


@dataclass
class Dashboard:
    student: Student
    current_term: Optional[Term]
    grade_average: Optional[float]
    record: list[TermRecord]


def authenticate_student(cmd: StudentLoginIn) -> Student:
    student = Student.query.filter(
        func.lower(Student.email) == cmd.email.strip().lower(),
        Student.registration_id == cmd.roll_id.strip(),
    ).first()
    if student is None:
        raise NotFound.entity("Student")
    if not student.check_password(cmd.password):
        raise Unauthorized("Invalid credentials")
    return student


def weighted_average(rows: list[dict]) -> Optional[float]:
    """Средняя оценка, взвешенная по зачётным единицам; без оценок -> None."""
    graded = [r for r in rows if r["grade"] is not None]
    units = sum(r["units"] for r in graded)
    if not units:
        return None
    return round(sum(r["grade"] * r["units"] for r in graded) / units, 2)


def student_dashboard(cmd: StudentLoginIn) -> Dashboard:
    student = authenticate_student(cmd)

    registered_terms = (
        Term.query.join(Registration, Registration.term_id == Term.id)
        .filter(Registration.student_id == student.id)
        .order_by(Term.start_date.desc())
        .all()
    )
    rows = (
        StudentSubject.query.join(Subject, Subject.id == StudentSubject.subject_id)
        .join(Term, Term.id == StudentSubject.term_id)
        .filter(StudentSubject.student_id == student.id)
        .order_by(Term.start_date.desc(), Subject.code.asc())
        .all()
    )

    # все семестры с регистрацией, даже без предметов
    by_term: dict[str, TermRecord] = {t.id: TermRecord(term=t) for t in registered_terms}
    for row in rows:
        rec = by_term.get(row.term_id)
        if rec is None:
            rec = by_term[row.term_id] = TermRecord(term=require(Term, row.term_id, "Term"))
        rec.subjects.append({
            "subject_id": row.subject_id,
            "code": row.subject.code,
            "name": row.subject.name,
            "units": row.subject.units,
            "grade": row.grade,
        })

    record = sorted(by_term.values(), key=lambda r: r.term.start_date, reverse=True)
    all_subjects = [s for r in record for s in r.subjects]
    return Dashboard(
        student=student,
        current_term=registered_terms[0] if registered_terms else None,
        grade_average=weighted_average(all_subjects),
        record=record,
    )


def public_schedule(term_id: Optional[str] = None):
    """Расписание семестра; без term_id берётся активный семестр."""
    if term_id:
        term = require(Term, term_id, "Term")
    else:
        term = Term.query.filter(Term.is_active.is_(True)).first()
    if term is None:
        return None, []
    return term, list_timetable(term.id)
