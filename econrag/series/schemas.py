"""
Observation schema.

Raw observations arrive as (timestamp, value) pairs, FRED-style dicts
({"date": ..., "value": ...}) or Observation instances. Validation goes
through pydantic so ISO strings, dates and numeric strings coerce the
same way everywhere.
"""

from datetime import date, datetime, time, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class Observation(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    timestamp: datetime
    value: float

    @field_validator("timestamp", mode="before")
    @classmethod
    def _dates_to_midnight(cls, v: Any) -> Any:
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, time.min)
        return v

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        # Naive timestamps are taken as UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)
