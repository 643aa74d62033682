import uuid
from datetime import date, datetime

from sqlalchemy import DDL, Boolean, CheckConstraint, Date, DateTime, ForeignKey, Index, UniqueConstraint, event, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from extensions import db


class Term(db.Model):
    __tablename__ = "terms"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_terms_date_order"),
        # не больше одного активного семестра
        Index("ix_terms_single_active", "is_active", unique=True,
              sqlite_where=text("is_active = 1"), postgresql_where=text("is_active")),
        Index("ix_terms_dates", "start_date", "end_date"),
    )

    def __repr__(self):
        return f"<Term {self.name}>"


class Section(db.Model):
    __tablename__ = "sections"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    term_id: Mapped[str] = mapped_column(ForeignKey("terms.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(db.String(100), nullable=False)

    term = relationship("Term")

    __table_args__ = (
        UniqueConstraint("term_id", "name", name="uq_sections_term_name"),
    )


# пересечение дат дублируется триггерами на уровне БД (только SQLite)
_TERM_OVERLAP_ON_INSERT = DDL("""
CREATE TRIGGER IF NOT EXISTS trg_terms_no_overlap_insert
BEFORE INSERT ON terms
WHEN EXISTS (
    SELECT 1 FROM terms t
    WHERE date(t.start_date) <= date(NEW.end_date)
      AND date(t.end_date) >= date(NEW.start_date)
)
BEGIN
    SELECT RAISE(ABORT, 'TERM_DATES_OVERLAP');
END;
""")

_TERM_OVERLAP_ON_UPDATE = DDL("""
CREATE TRIGGER IF NOT EXISTS trg_terms_no_overlap_update
BEFORE UPDATE OF start_date, end_date ON terms
WHEN EXISTS (
    SELECT 1 FROM terms t
    WHERE t.id != NEW.id
      AND date(t.start_date) <= date(NEW.end_date)
      AND date(t.end_date) >= date(NEW.start_date)
)
BEGIN
    SELECT RAISE(ABORT, 'TERM_DATES_OVERLAP');
END;
""")

event.listen(Term.__table__, "after_create", _TERM_OVERLAP_ON_INSERT.execute_if(dialect="sqlite"))
event.listen(Term.__table__, "after_create", _TERM_OVERLAP_ON_UPDATE.execute_if(dialect="sqlite"))
