import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from extensions import db


class Registration(db.Model):
    __tablename__ = "registrations"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    term_id: Mapped[str] = mapped_column(ForeignKey("terms.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    section_id: Mapped[str | None] = mapped_column(ForeignKey("sections.id", ondelete="SET NULL"), nullable=True)
    registered_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    term = relationship("Term")
    student = relationship("Student")
    section = relationship("Section")

    __table_args__ = (
        UniqueConstraint("term_id", "student_id", name="uq_registrations_term_student"),
    )


class TermSubject(db.Model):
    """Предмет, предлагаемый в семестре (offering)."""
    __tablename__ = "term_subjects"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    term_id: Mapped[str] = mapped_column(ForeignKey("terms.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id: Mapped[str] = mapped_column(ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)

    term = relationship("Term")
    subject = relationship("Subject")

    __table_args__ = (
        UniqueConstraint("term_id", "subject_id", name="uq_term_subjects_term_subject"),
    )


class StudentSubject(db.Model):
    __tablename__ = "student_subjects"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    term_id: Mapped[str] = mapped_column(ForeignKey("terms.id", ondelete="CASCADE"), nullable=False)
    student_id: Mapped[str] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    subject_id: Mapped[str] = mapped_column(ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    grade: Mapped[float | None] = mapped_column(Float, nullable=True)

    subject = relationship("Subject")

    __table_args__ = (
        UniqueConstraint("term_id", "student_id", "subject_id", name="uq_student_subjects_tuple"),
        CheckConstraint("grade IS NULL OR (grade >= 0 AND grade <= 100)", name="ck_student_subjects_grade"),
        Index("ix_student_subjects_student", "student_id"),
    )
