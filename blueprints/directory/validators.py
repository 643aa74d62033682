from __future__ import annotations
from datetime import time

from blueprints.registry.errors import ValidationFailed


def ensure_period_range(start_time: time, end_time: time):
    if end_time <= start_time:
        raise ValidationFailed("end_time must be > start_time", code="INVALID_TIME_RANGE",
                               details={"start_time": start_time.strftime("%H:%M"),
                                        "end_time": end_time.strftime("%H:%M")})
