import enum
import uuid

from sqlalchemy import Enum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from extensions import db


class DayOfWeek(str, enum.Enum):
    # учебная неделя: суббота..четверг, пятница выходной
    SATURDAY = "saturday"
    SUNDAY = "sunday"
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"

    @property
    def order(self) -> int:
        return list(DayOfWeek).index(self)


class TimetableEntry(db.Model):
    __tablename__ = "timetable_entries"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    term_id: Mapped[str] = mapped_column(ForeignKey("terms.id", ondelete="CASCADE"), nullable=False)
    day_of_week: Mapped[DayOfWeek] = mapped_column(
        Enum(DayOfWeek, name="day_of_week", native_enum=False, create_constraint=True,
             values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    period_id: Mapped[str] = mapped_column(ForeignKey("periods.id", ondelete="CASCADE"), nullable=False)
    subject_id: Mapped[str] = mapped_column(ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    room_text: Mapped[str | None] = mapped_column(db.String(255))
    lecturer_text: Mapped[str | None] = mapped_column(db.String(255))

    period = relationship("Period")
    subject = relationship("Subject")

    __table_args__ = (
        # один и тот же предмет нельзя дважды поставить в одну ячейку; разные предметы в ячейке допустимы
        UniqueConstraint("term_id", "day_of_week", "period_id", "subject_id", name="uq_timetable_slot"),
        Index("ix_timetable_term_day_period", "term_id", "day_of_week", "period_id"),
    )
