"""
Idempotent seed-скрипт.
Запуск:
  python seed.py --reset        # дропнуть и пересоздать БД + справочники + демо-данные
  python seed.py --demo         # справочники + демо-данные (idempotent)
  python seed.py                # только справочники: кафедры и пары
"""
from datetime import date, time
import argparse

from extensions import db
from models import (
    DayOfWeek,
    Department,
    Period,
    Registration,
    Student,
    StudentSubject,
    Subject,
    Term,
    TermSubject,
    TimetableEntry,
)

DEMO_PASSWORD = "password123"
DEMO_TERM_ID = "term-demo-1"

DEPARTMENTS = [
    {"id": "dept-general", "name": "General Department", "code": "GEN"},
    {"id": "dept-cs", "name": "Computer Science", "code": "CS"},
    {"id": "dept-se", "name": "Software Engineering", "code": "SE"},
]

PERIODS = [
    {"id": "period-1", "label": "09:00 - 11:00", "start_time": time(9, 0), "end_time": time(11, 0), "sort_order": 1},
    {"id": "period-2", "label": "11:00 - 13:00", "start_time": time(11, 0), "end_time": time(13, 0), "sort_order": 2},
    {"id": "period-3", "label": "13:00 - 15:00", "start_time": time(13, 0), "end_time": time(15, 0), "sort_order": 3},
]

DEMO_SUBJECTS = [
    {"id": "subj-math101", "name": "Calculus I", "code": "MATH101", "units": 3, "curriculum_semester": 1,
     "departments": ["CS"]},
    {"id": "subj-cs101", "name": "Intro to CS", "code": "CS101", "units": 4, "curriculum_semester": 1,
     "departments": ["CS", "SE"]},
    {"id": "subj-eng101", "name": "Academic Writing", "code": "ENG101", "units": 2, "curriculum_semester": 1,
     "departments": ["SE"]},
]

DEMO_STUDENTS = [
    {"id": "student-demo-1", "registration_id": "2025001", "full_name": "Sara Ali", "email": "sara@example.com",
     "department": "CS", "mother_name": "Amal Hassan", "phone": "+201000000001",
     "subjects": ["MATH101", "CS101"]},
    {"id": "student-demo-2", "registration_id": "2025002", "full_name": "Omar Khaled", "email": "omar@example.com",
     "department": "SE", "mother_name": "Noura Adel", "phone": "+201000000002",
     "subjects": ["CS101", "ENG101"]},
]

DEMO_TIMETABLE = [
    {"id": "tt-1", "day": DayOfWeek.SATURDAY, "period_id": "period-1", "subject": "MATH101",
     "room_text": "Room 101", "lecturer_text": "Dr. Hassan"},
    {"id": "tt-2", "day": DayOfWeek.SUNDAY, "period_id": "period-2", "subject": "CS101",
     "room_text": "Lab 1", "lecturer_text": "Prof. Salem"},
    {"id": "tt-3", "day": DayOfWeek.MONDAY, "period_id": "period-3", "subject": "ENG101",
     "room_text": "Room 202", "lecturer_text": "Ms. Huda"},
]


# ---- вспомогательные утилиты ----
def get_or_create(model, defaults=None, **by):
    """Идемпотентное создание по уникальным ключам."""
    inst = model.query.filter_by(**by).first()
    if inst:
        return inst, False
    data = dict(defaults or {})
    data.update(by)
    inst = model(**data)
    db.session.add(inst)
    db.session.flush()
    return inst, True


# ---- сиды справочников ----
def seed_reference_data():
    """Кафедры GEN/CS/SE и три фиксированные пары. Коммит делает вызывающий."""
    for d in DEPARTMENTS:
        get_or_create(Department, defaults={"id": d["id"], "name": d["name"], "is_active": True}, code=d["code"])
    for p in PERIODS:
        get_or_create(
            Period,
            defaults={"id": p["id"], "label": p["label"], "start_time": p["start_time"], "end_time": p["end_time"]},
            sort_order=p["sort_order"],
        )


# ---- демо-данные для ручной проверки ----
def seed_demo_data():
    """Демо-семестр, предметы, студенты, регистрации, закрепления и расписание."""
    seed_reference_data()
    depts = {d.code: d for d in Department.query.all()}

    term = db.session.get(Term, DEMO_TERM_ID)
    if term is None:
        if Term.query.filter(Term.start_date <= date(2025, 5, 15), Term.end_date >= date(2025, 2, 1)).first():
            # даты заняты другим семестром: демо не накатываем
            return
        Term.query.filter(Term.is_active.is_(True)).update({Term.is_active: False})
        term = Term(id=DEMO_TERM_ID, name="Spring 2025", start_date=date(2025, 2, 1), end_date=date(2025, 5, 15),
                    is_active=True, is_archived=False)
        db.session.add(term)
        db.session.flush()

    subjects = {}
    for s in DEMO_SUBJECTS:
        subject, _ = get_or_create(
            Subject,
            defaults={"id": s["id"], "name": s["name"], "units": s["units"],
                      "curriculum_semester": s["curriculum_semester"]},
            code=s["code"],
        )
        for code in s["departments"]:
            if depts[code] not in subject.departments:
                subject.departments.append(depts[code])
        get_or_create(TermSubject, term_id=term.id, subject_id=subject.id)
        subjects[s["code"]] = subject

    for st in DEMO_STUDENTS:
        student = Student.query.filter_by(registration_id=st["registration_id"]).first()
        if student is None:
            student = Student(id=st["id"], registration_id=st["registration_id"], full_name=st["full_name"],
                              email=st["email"], department_id=depts[st["department"]].id,
                              mother_name=st["mother_name"], phone=st["phone"], study_semesters_count=0)
            student.set_password(DEMO_PASSWORD)
            db.session.add(student)
            db.session.flush()
        _, registered = get_or_create(Registration, term_id=term.id, student_id=student.id)
        if registered:
            student.study_semesters_count = (student.study_semesters_count or 0) + 1
        for code in st["subjects"]:
            get_or_create(StudentSubject, term_id=term.id, student_id=student.id, subject_id=subjects[code].id)

    for row in DEMO_TIMETABLE:
        get_or_create(
            TimetableEntry,
            defaults={"id": row["id"], "room_text": row["room_text"], "lecturer_text": row["lecturer_text"]},
            term_id=term.id, day_of_week=row["day"], period_id=row["period_id"],
            subject_id=subjects[row["subject"]].id,
        )
    db.session.flush()


def main():
    from app import create_app

    parser = argparse.ArgumentParser(description="Seed academic registry data")
    parser.add_argument("--reset", action="store_true", help="drop & create all tables, then seed demo data")
    parser.add_argument("--demo", action="store_true", help="seed demo data in addition to reference data")
    parser.add_argument("--config", default=None, help="config name: dev/test/prod")
    args = parser.parse_args()

    app = create_app(args.config)
    with app.app_context():
        if args.reset:
            db.drop_all()
            db.create_all()
        seed_reference_data()
        if args.reset or args.demo:
            seed_demo_data()
        db.session.commit()
        print("Seed complete ✅")


if __name__ == "__main__":
    main()
