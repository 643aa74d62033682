import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship
from werkzeug.security import generate_password_hash, check_password_hash

from extensions import db


class Student(db.Model):
    __tablename__ = "students"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    registration_id: Mapped[str] = mapped_column(db.String(64), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    email: Mapped[str] = mapped_column(db.String(255), unique=True, nullable=False, index=True)
    department_id: Mapped[str] = mapped_column(ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False, index=True)
    mother_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    phone: Mapped[str] = mapped_column(db.String(64), nullable=False)
    password_hash: Mapped[str] = mapped_column(db.String(255), nullable=False)
    # растёт при каждой новой регистрации, при отмене не уменьшается
    study_semesters_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    department = relationship("Department")

    __table_args__ = (
        CheckConstraint("study_semesters_count >= 0", name="ck_students_semesters_count"),
    )

    # helpers
    def set_password(self, raw: str):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        return check_password_hash(self.password_hash, raw)

    def __repr__(self):
        return f"<Student {self.registration_id}>"
