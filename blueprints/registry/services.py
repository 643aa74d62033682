# blueprints/registry/services.py
"""Правила учебного реестра: семестры, предложения предметов, регистрации,
закрепление предметов за студентами, оценки и расписание.

Каждая изменяющая операция выполняется в одной транзакции (``atomic``):
проверки идут до первой записи, любая ошибка откатывает всё целиком,
а ``IntegrityError`` хранилища превращается в доменную ошибку.
"""
from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Iterator, List, Optional

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import (
    Period,
    Registration,
    Section,
    Student,
    StudentSubject,
    Subject,
    Term,
    TermSubject,
    TimetableEntry,
    department_subjects,
)
from .errors import Conflict, EligibilityError, NotFound, ValidationFailed, translate_integrity_error
from .schemas import (
    GradeIn,
    RegistrationIn,
    SectionIn,
    SubjectIdsIn,
    TermCreate,
    TermUpdate,
    TimetableEntryIn,
    UnregistrationIn,
)

log = logging.getLogger(__name__)

DEFAULT_MAX_SUBJECTS_PER_TERM = 7


@dataclass
class BatchResult:
    """Итог пакетной операции: что изменилось и что пропущено как уже выполненное."""
    term_id: str
    applied: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    student_id: Optional[str] = None


# ----------------------- Transactions & lookups -----------------------
@contextmanager
def atomic() -> Iterator[None]:
    try:
        yield
        db.session.commit()
    except IntegrityError as ex:
        db.session.rollback()
        raise translate_integrity_error(ex) from ex
    except Exception:
        db.session.rollback()
        raise


def require(model, entity_id: str, name: str):
    obj = db.session.get(model, entity_id) if entity_id else None
    if obj is None:
        raise NotFound.entity(name, entity_id)
    return obj


def unique_ids(ids: Iterable[str]) -> List[str]:
    # порядок запроса сохраняем, повторы выбрасываем
    return list(dict.fromkeys(ids))


def _audit(event: str, entity: str, entity_id: str, **extra):
    log.info(event.replace("_", " "), extra={"event": event, "entity": entity, "entity_id": entity_id, **extra})


def max_subjects_per_term() -> int:
    return int(current_app.config.get("MAX_SUBJECTS_PER_TERM", DEFAULT_MAX_SUBJECTS_PER_TERM))


# ----------------------- Terms -----------------------
def _ensure_date_order(start: date, end: date):
    if start > end:
        raise ValidationFailed(
            "start_date must be on or before end_date",
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )


def _ensure_no_overlap(start: date, end: date, exclude_id: Optional[str] = None):
    # отрезки замкнутые: общий граничный день тоже пересечение
    q = Term.query.filter(Term.start_date <= end, Term.end_date >= start)
    if exclude_id:
        q = q.filter(Term.id != exclude_id)
    clash = q.order_by(Term.start_date).first()
    if clash:
        raise Conflict(
            "Term dates overlap with an existing term.",
            code="TERM_DATES_OVERLAP",
            details={"term_id": clash.id, "name": clash.name},
        )


def _clear_active(exclude_id: Optional[str] = None):
    q = Term.query.filter(Term.is_active.is_(True))
    if exclude_id:
        q = q.filter(Term.id != exclude_id)
    q.update({Term.is_active: False}, synchronize_session="fetch")


def list_terms(include_archived: bool = False) -> List[Term]:
    q = Term.query
    if not include_archived:
        q = q.filter(Term.is_archived.is_(False))
    return q.order_by(Term.start_date.desc()).all()


def get_term(term_id: str) -> Term:
    return require(Term, term_id, "Term")


def create_term(cmd: TermCreate) -> Term:
    _ensure_date_order(cmd.start_date, cmd.end_date)
    with atomic():
        _ensure_no_overlap(cmd.start_date, cmd.end_date)
        if cmd.is_active:
            # сначала снимаем флаг с остальных, иначе сработает индекс единственного активного
            _clear_active()
        term = Term(
            name=cmd.name.strip(),
            start_date=cmd.start_date,
            end_date=cmd.end_date,
            is_active=cmd.is_active,
            is_archived=cmd.is_archived,
        )
        db.session.add(term)
        db.session.flush()
        term_id = term.id
    _audit("term_created", "term", term_id, is_active=cmd.is_active)
    return term


def update_term(term_id: str, cmd: TermUpdate) -> Term:
    changes = cmd.changes()
    with atomic():
        term = require(Term, term_id, "Term")
        start = changes.get("start_date", term.start_date)
        end = changes.get("end_date", term.end_date)
        _ensure_date_order(start, end)
        if "start_date" in changes or "end_date" in changes:
            _ensure_no_overlap(start, end, exclude_id=term.id)
        if changes.get("is_active") is True and not term.is_active:
            _clear_active(exclude_id=term.id)
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        for key, value in changes.items():
            setattr(term, key, value)
        db.session.flush()
    _audit("term_updated", "term", term_id, fields=sorted(changes))
    return term


def delete_term(term_id: str) -> None:
    with atomic():
        term = require(Term, term_id, "Term")
        # явный каскад в фиксированном порядке, не полагаясь на ON DELETE хранилища
        for model in (StudentSubject, TimetableEntry, TermSubject, Registration, Section):
            model.query.filter(model.term_id == term_id).delete(synchronize_session=False)
        db.session.delete(term)
    _audit("term_deleted", "term", term_id)


# ----------------------- Offerings -----------------------
def _offered_ids(term_id: str) -> set[str]:
    return set(db.session.scalars(select(TermSubject.subject_id).where(TermSubject.term_id == term_id)))


def list_offerings(term_id: str) -> List[Subject]:
    require(Term, term_id, "Term")
    return (
        Subject.query.join(TermSubject, TermSubject.subject_id == Subject.id)
        .filter(TermSubject.term_id == term_id)
        .order_by(Subject.code.asc())
        .all()
    )


def assign_subjects(term_id: str, cmd: SubjectIdsIn) -> BatchResult:
    ids = unique_ids(cmd.subject_ids)
    result = BatchResult(term_id=term_id)
    with atomic():
        require(Term, term_id, "Term")
        for subject_id in ids:
            require(Subject, subject_id, "Subject")
        offered = _offered_ids(term_id)
        for subject_id in ids:
            if subject_id in offered:
                result.skipped.append(subject_id)
                continue
            db.session.add(TermSubject(term_id=term_id, subject_id=subject_id))
            result.applied.append(subject_id)
    _audit("subjects_offered", "term", term_id, subject_ids=result.applied)
    return result


def unassign_subjects(term_id: str, cmd: SubjectIdsIn) -> BatchResult:
    """Снять предметы с семестра.

    Закреплённые за студентами предметы и строки расписания не трогаются:
    они остаются ссылаться на предмет, который больше не предлагается.
    """
    ids = unique_ids(cmd.subject_ids)
    result = BatchResult(term_id=term_id)
    with atomic():
        require(Term, term_id, "Term")
        offered = _offered_ids(term_id)
        result.applied = [sid for sid in ids if sid in offered]
        result.skipped = [sid for sid in ids if sid not in offered]
        if result.applied:
            TermSubject.query.filter(
                TermSubject.term_id == term_id, TermSubject.subject_id.in_(result.applied)
            ).delete(synchronize_session=False)
    _audit("subjects_withdrawn", "term", term_id, subject_ids=result.applied)
    return result


# ----------------------- Registrations & sections -----------------------
def list_registrations(term_id: str) -> List[Registration]:
    require(Term, term_id, "Term")
    return (
        Registration.query.join(Student, Student.id == Registration.student_id)
        .filter(Registration.term_id == term_id)
        .order_by(Student.full_name.asc())
        .all()
    )


def register_students(cmd: RegistrationIn) -> BatchResult:
    ids = unique_ids(cmd.student_ids)
    result = BatchResult(term_id=cmd.term_id)
    with atomic():
        term = require(Term, cmd.term_id, "Term")
        if cmd.section_id:
            section = require(Section, cmd.section_id, "Section")
            if section.term_id != term.id:
                raise ValidationFailed(
                    "Section does not belong to this term.",
                    code="SECTION_TERM_MISMATCH",
                    details={"section_id": section.id, "term_id": term.id},
                )
        students = [require(Student, sid, "Student") for sid in ids]
        registered = set(db.session.scalars(
            select(Registration.student_id).where(
                Registration.term_id == term.id, Registration.student_id.in_(ids)
            )
        ))
        for student in students:
            if student.id in registered:
                result.skipped.append(student.id)
                continue
            db.session.add(Registration(term_id=term.id, student_id=student.id, section_id=cmd.section_id))
            # счётчик растёт ровно на одну новую регистрацию
            student.study_semesters_count = Student.study_semesters_count + 1
            result.applied.append(student.id)
    _audit("students_registered", "term", cmd.term_id, student_ids=result.applied)
    return result


def unregister_students(cmd: UnregistrationIn) -> BatchResult:
    """Снять регистрацию.

    ``study_semesters_count`` не уменьшается, закреплённые предметы и оценки
    за семестр остаются на месте.
    """
    ids = unique_ids(cmd.student_ids)
    result = BatchResult(term_id=cmd.term_id)
    with atomic():
        require(Term, cmd.term_id, "Term")
        registered = set(db.session.scalars(
            select(Registration.student_id).where(
                Registration.term_id == cmd.term_id, Registration.student_id.in_(ids)
            )
        ))
        result.applied = [sid for sid in ids if sid in registered]
        result.skipped = [sid for sid in ids if sid not in registered]
        if result.applied:
            Registration.query.filter(
                Registration.term_id == cmd.term_id, Registration.student_id.in_(result.applied)
            ).delete(synchronize_session=False)
    _audit("students_unregistered", "term", cmd.term_id, student_ids=result.applied)
    return result


def list_sections(term_id: str) -> List[Section]:
    require(Term, term_id, "Term")
    return Section.query.filter_by(term_id=term_id).order_by(Section.name.asc()).all()


def create_section(term_id: str, cmd: SectionIn) -> Section:
    name = cmd.name.strip()
    with atomic():
        require(Term, term_id, "Term")
        if Section.query.filter_by(term_id=term_id, name=name).first():
            raise Conflict("Section name already exists in this term.", code="DUPLICATE_SECTION",
                           details={"name": name})
        section = Section(term_id=term_id, name=name)
        db.session.add(section)
        db.session.flush()
        section_id = section.id
    _audit("section_created", "section", section_id, term_id=term_id)
    return section


# ----------------------- Student subjects & grades -----------------------
def _assigned_ids(term_id: str, student_id: str) -> set[str]:
    return set(db.session.scalars(
        select(StudentSubject.subject_id).where(
            StudentSubject.term_id == term_id, StudentSubject.student_id == student_id
        )
    ))


def _department_subject_ids(department_id: str) -> set[str]:
    return set(db.session.scalars(
        select(department_subjects.c.subject_id).where(department_subjects.c.department_id == department_id)
    ))


def list_student_subjects(term_id: str, student_id: str) -> List[StudentSubject]:
    require(Term, term_id, "Term")
    require(Student, student_id, "Student")
    return (
        StudentSubject.query.join(Subject, Subject.id == StudentSubject.subject_id)
        .filter(StudentSubject.term_id == term_id, StudentSubject.student_id == student_id)
        .order_by(Subject.code.asc())
        .all()
    )


def assign_student_subjects(term_id: str, student_id: str, cmd: SubjectIdsIn) -> BatchResult:
    ids = unique_ids(cmd.subject_ids)
    result = BatchResult(term_id=term_id, student_id=student_id)
    with atomic():
        require(Term, term_id, "Term")
        student = require(Student, student_id, "Student")

        # 1) регистрация в семестре
        registered = Registration.query.filter_by(term_id=term_id, student_id=student_id).first()
        if not registered:
            raise EligibilityError("Student must be registered in the term first.", code="NOT_REGISTERED",
                                   details={"term_id": term_id, "student_id": student_id})

        # 2) предмет предлагается в семестре
        offered = _offered_ids(term_id)
        not_offered = [sid for sid in ids if sid not in offered]
        if not_offered:
            raise EligibilityError("Subject must be offered in the term.", code="SUBJECT_NOT_OFFERED",
                                   details={"subject_ids": not_offered})

        # 3) предмет относится к кафедре студента
        allowed = _department_subject_ids(student.department_id)
        foreign = [sid for sid in ids if sid not in allowed]
        if foreign:
            raise EligibilityError("Subject is not linked to the student's department.",
                                   code="SUBJECT_NOT_IN_DEPARTMENT", details={"subject_ids": foreign})

        # 4) лимит предметов на семестр, уже закреплённые не считаем дважды
        current = _assigned_ids(term_id, student_id)
        new = [sid for sid in ids if sid not in current]
        limit = max_subjects_per_term()
        if len(current) + len(new) > limit:
            raise EligibilityError(
                f"A student cannot take more than {limit} subjects in a term.",
                code="SUBJECT_CAP_EXCEEDED",
                details={"current": len(current), "requested_new": len(new), "limit": limit},
            )

        for subject_id in new:
            db.session.add(StudentSubject(term_id=term_id, student_id=student_id, subject_id=subject_id))
        result.applied = new
        result.skipped = [sid for sid in ids if sid in current]
    _audit("student_subjects_assigned", "student", student_id, term_id=term_id, subject_ids=result.applied)
    return result


def unassign_student_subjects(term_id: str, student_id: str, cmd: SubjectIdsIn) -> BatchResult:
    ids = unique_ids(cmd.subject_ids)
    result = BatchResult(term_id=term_id, student_id=student_id)
    with atomic():
        require(Term, term_id, "Term")
        require(Student, student_id, "Student")
        current = _assigned_ids(term_id, student_id)
        result.applied = [sid for sid in ids if sid in current]
        result.skipped = [sid for sid in ids if sid not in current]
        if result.applied:
            StudentSubject.query.filter(
                StudentSubject.term_id == term_id,
                StudentSubject.student_id == student_id,
                StudentSubject.subject_id.in_(result.applied),
            ).delete(synchronize_session=False)
    _audit("student_subjects_unassigned", "student", student_id, term_id=term_id, subject_ids=result.applied)
    return result


def set_grade(term_id: str, student_id: str, subject_id: str, cmd: GradeIn) -> StudentSubject:
    grade = cmd.grade
    if grade is not None and not 0 <= grade <= 100:
        raise ValidationFailed("grade must be between 0 and 100", details={"grade": grade})
    with atomic():
        require(Term, term_id, "Term")
        require(Student, student_id, "Student")
        require(Subject, subject_id, "Subject")
        row = StudentSubject.query.filter_by(term_id=term_id, student_id=student_id, subject_id=subject_id).first()
        if row is None:
            raise NotFound("Subject is not assigned to this student in the term.", code="ASSIGNMENT_NOT_FOUND",
                           details={"term_id": term_id, "student_id": student_id, "subject_id": subject_id})
        row.grade = grade
        db.session.flush()
        row_id = row.id
    _audit("grade_set", "student_subject", row_id, grade=grade)
    return row


# ----------------------- Timetable -----------------------
def _ensure_offered(term_id: str, subject_id: str):
    if not TermSubject.query.filter_by(term_id=term_id, subject_id=subject_id).first():
        raise EligibilityError("Subject must be offered in the term.", code="SUBJECT_NOT_OFFERED",
                               details={"subject_id": subject_id})


def _ensure_slot_free(term_id: str, cmd: TimetableEntryIn, exclude_id: Optional[str] = None):
    q = TimetableEntry.query.filter_by(
        term_id=term_id, day_of_week=cmd.day_of_week, period_id=cmd.period_id, subject_id=cmd.subject_id
    )
    if exclude_id:
        q = q.filter(TimetableEntry.id != exclude_id)
    if q.first():
        raise Conflict("Subject already scheduled for this day/period in this term.",
                       code="DUPLICATE_TIMETABLE_SLOT",
                       details={"day_of_week": cmd.day_of_week.value, "period_id": cmd.period_id,
                                "subject_id": cmd.subject_id})


def list_timetable(term_id: str) -> List[TimetableEntry]:
    require(Term, term_id, "Term")
    rows = TimetableEntry.query.filter_by(term_id=term_id).all()
    # порядок дней задаёт учебная неделя, а не алфавит
    return sorted(rows, key=lambda e: (e.day_of_week.order, e.period.sort_order, e.subject.code))


def create_timetable_entry(term_id: str, cmd: TimetableEntryIn) -> TimetableEntry:
    with atomic():
        require(Term, term_id, "Term")
        require(Period, cmd.period_id, "Period")
        _ensure_offered(term_id, cmd.subject_id)
        _ensure_slot_free(term_id, cmd)
        entry = TimetableEntry(
            term_id=term_id,
            day_of_week=cmd.day_of_week,
            period_id=cmd.period_id,
            subject_id=cmd.subject_id,
            room_text=cmd.room_text,
            lecturer_text=cmd.lecturer_text,
        )
        db.session.add(entry)
        db.session.flush()
        entry_id = entry.id
    _audit("timetable_entry_created", "timetable_entry", entry_id, term_id=term_id)
    return entry


def update_timetable_entry(entry_id: str, cmd: TimetableEntryIn) -> TimetableEntry:
    with atomic():
        entry = require(TimetableEntry, entry_id, "Timetable entry")
        # семестр записи не меняется, всё проверяем относительно него
        require(Period, cmd.period_id, "Period")
        _ensure_offered(entry.term_id, cmd.subject_id)
        _ensure_slot_free(entry.term_id, cmd, exclude_id=entry.id)
        entry.day_of_week = cmd.day_of_week
        entry.period_id = cmd.period_id
        entry.subject_id = cmd.subject_id
        entry.room_text = cmd.room_text
        entry.lecturer_text = cmd.lecturer_text
        db.session.flush()
    _audit("timetable_entry_updated", "timetable_entry", entry_id)
    return entry


def delete_timetable_entry(entry_id: str) -> None:
    with atomic():
        entry = require(TimetableEntry, entry_id, "Timetable entry")
        db.session.delete(entry)
    _audit("timetable_entry_deleted", "timetable_entry", entry_id)
