"""CareBlock data model for Rhythm.

A care block is a named time window (fixed or recurring) during which a care
arrangement applies to one or more children.
"""

from __future__ import annotations

from datetime import date, time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from rhythm.models.constants import DEFAULT_WEEKLY_DAY


class BlockCategory(str, Enum):
    """Care block category; decides the availability state the block creates."""
    CHILDCARE = "childcare"
    BABYSITTER = "babysitter"
    APPOINTMENT = "appointment"
    ACTIVITY = "activity"
    SLEEP_SCHEDULED = "sleep-scheduled"


class Recurrence(str, Enum):
    """Recurrence descriptor for a care block."""
    DAILY = "daily"
    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    SPECIFIC_DAYS = "specific-days"
    ONE_OFF = "one-off"


def _dedupe_days(days: Optional[List[int]]) -> Optional[List[int]]:
    if days is None:
        return None
    seen = set()
    out: List[int] = []
    for day in days:
        if not 0 <= day <= 6:
            raise ValueError("day of week must be in 0..6 (0=Sunday)")
        if day not in seen:
            seen.add(day)
            out.append(day)
    return out


class CareBlock(BaseModel):
    """Canonical CareBlock model."""

    id: str = Field(..., description="Unique care block identifier (UUID v4)")
    child_ids: List[str] = Field(default_factory=list, description="Children this block applies to")
    name: str = Field(..., description="Display name, e.g. 'Daycare'")
    category: BlockCategory = Field(..., description="Care block category")

    recurrence: Recurrence = Field(Recurrence.DAILY, description="Recurrence descriptor")
    days_of_week: Optional[List[int]] = Field(
        None, description="Explicit day-of-week override (0=Sunday); wins over recurrence"
    )
    specific_days: Optional[List[int]] = Field(
        None, description="Days for the 'specific-days' recurrence (0=Sunday)"
    )
    weekly_day: int = Field(
        DEFAULT_WEEKLY_DAY, ge=0, le=6, description="Day the 'weekly' recurrence fires on (0=Sunday)"
    )
    one_off_date: Optional[date] = Field(None, description="Calendar date for one-off blocks")

    start_time: time = Field(..., description="Start time of day")
    end_time: time = Field(..., description="End time of day (same day, after start)")

    travel_before_min: Optional[int] = Field(None, ge=0, description="Travel minutes before start")
    travel_after_min: Optional[int] = Field(None, ge=0, description="Travel minutes after end")

    is_active: bool = Field(True, description="Whether the block is in effect")

    @field_validator("days_of_week", "specific_days")
    @classmethod
    def _validate_days(cls, v):
        return _dedupe_days(v)

    @model_validator(mode="after")
    def _validate_window(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time (same-day window)")
        if self.recurrence == Recurrence.ONE_OFF and self.one_off_date is None:
            raise ValueError("one-off blocks require one_off_date")
        return self

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
