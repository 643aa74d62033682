from __future__ import annotations
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError


class RegistryError(Exception):
    """Базовая доменная ошибка: HTTP-слой превращает её в {"error", "code", "details"}."""
    status = 400
    code = "REGISTRY_ERROR"

    def __init__(self, message: str, *, code: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationFailed(RegistryError):
    status = 400
    code = "VALIDATION_ERROR"


class NotFound(RegistryError):
    status = 404
    code = "NOT_FOUND"

    @classmethod
    def entity(cls, name: str, entity_id: Any = None) -> "NotFound":
        details = {"id": entity_id} if entity_id is not None else None
        return cls(f"{name} not found", code=f"{name.upper().replace(' ', '_')}_NOT_FOUND", details=details)


class Conflict(RegistryError):
    status = 409
    code = "CONFLICT"


class Unauthorized(RegistryError):
    status = 401
    code = "INVALID_CREDENTIALS"


class EligibilityError(ValidationFailed):
    """Студенту нельзя выдать предмет: не зарегистрирован, предмет не предлагается и т.п."""
    code = "NOT_ELIGIBLE"


# (подстроки из текста ошибки БД) -> фабрика доменной ошибки.
# SQLite сообщает таблицу.колонку, PostgreSQL имя ограничения, поэтому ищем и то и другое.
_INTEGRITY_MAP: list[tuple[tuple[str, ...], Any]] = [
    (("TERM_DATES_OVERLAP",),
     lambda: Conflict("Term dates overlap with an existing term.", code="TERM_DATES_OVERLAP")),
    (("terms.is_active", "ix_terms_single_active"),
     lambda: Conflict("Only one term can be active at a time.", code="ACTIVE_TERM_EXISTS")),
    (("departments.code",),
     lambda: Conflict("Department code must be unique.", code="DUPLICATE_CODE")),
    (("subjects.code",),
     lambda: Conflict("Subject code must be unique.", code="DUPLICATE_CODE")),
    (("students.registration_id",),
     lambda: Conflict("Registration ID must be unique.", code="DUPLICATE_REGISTRATION_ID")),
    (("students.email",),
     lambda: Conflict("Email must be unique.", code="DUPLICATE_EMAIL")),
    (("sections.term_id", "uq_sections_term_name"),
     lambda: Conflict("Section name already exists in this term.", code="DUPLICATE_SECTION")),
    (("term_subjects.term_id", "uq_term_subjects_term_subject"),
     lambda: Conflict("Subject is already offered in this term.", code="DUPLICATE_OFFERING")),
    (("registrations.term_id", "uq_registrations_term_student"),
     lambda: Conflict("Student is already registered for this term.", code="DUPLICATE_REGISTRATION")),
    (("student_subjects.term_id", "uq_student_subjects_tuple"),
     lambda: Conflict("Subject is already assigned to this student in the term.", code="DUPLICATE_ASSIGNMENT")),
    (("timetable_entries.term_id", "uq_timetable_slot"),
     lambda: Conflict("Subject already scheduled for this day/period in this term.", code="DUPLICATE_TIMETABLE_SLOT")),
    (("FOREIGN KEY constraint failed", "foreign key constraint"),
     lambda: Conflict("Record is referenced by or references a missing record.", code="REFERENCE_CONSTRAINT")),
    (("CHECK constraint failed", "check constraint"),
     lambda: ValidationFailed("Value violates a data constraint.", code="CHECK_CONSTRAINT")),
]


def translate_integrity_error(ex: IntegrityError) -> RegistryError:
    msg = str(ex.orig) if getattr(ex, "orig", None) else str(ex)
    for needles, factory in _INTEGRITY_MAP:
        if any(n in msg for n in needles):
            return factory()
    return Conflict("Unique constraint violation", code="UNIQUE_CONSTRAINT")
