import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from extensions import db
from .department import department_subjects


class Subject(db.Model):
    __tablename__ = "subjects"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    code: Mapped[str] = mapped_column(db.String(50), unique=True, nullable=False, index=True)
    units: Mapped[int] = mapped_column(Integer, nullable=False)
    curriculum_semester: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    departments = relationship("Department", secondary=department_subjects, order_by="Department.code")

    __table_args__ = (
        CheckConstraint("units > 0", name="ck_subjects_units"),
        CheckConstraint("curriculum_semester BETWEEN 1 AND 8", name="ck_subjects_curriculum_semester"),
    )

    def __repr__(self):
        return f"<Subject {self.code}>"
