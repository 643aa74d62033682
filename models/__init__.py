from extensions import db

from .department import Department, department_subjects
from .subject import Subject
from .term import Term, Section
from .student import Student
from .registration import Registration, TermSubject, StudentSubject
from .period import Period
from .timetable import DayOfWeek, TimetableEntry

__all__ = [
    "db",
    "Department", "department_subjects",
    "Subject",
    "Term", "Section",
    "Student", "Registration", "TermSubject", "StudentSubject",
    "Period",
    "DayOfWeek", "TimetableEntry",
]
