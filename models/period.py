import uuid
from datetime import time

from sqlalchemy import Integer, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from extensions import db


class Period(db.Model):
    __tablename__ = "periods"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    label: Mapped[str] = mapped_column(db.String(100), nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False)  # 1..3, набор фиксирован

    __table_args__ = (UniqueConstraint("sort_order", name="uq_periods_sort_order"),)
