import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from extensions import db

# subject <-> department (many-to-many); кафедру нельзя удалить, пока на неё ссылаются
department_subjects = db.Table(
    "department_subjects",
    db.Column("department_id", db.String(36), db.ForeignKey("departments.id", ondelete="RESTRICT"), primary_key=True),
    db.Column("subject_id", db.String(36), db.ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
    db.Index("ix_department_subjects_subject", "subject_id"),
)


class Department(db.Model):
    __tablename__ = "departments"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    code: Mapped[str] = mapped_column(db.String(50), unique=True, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Department {self.code}>"
