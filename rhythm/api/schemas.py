"""Request and response models for the Rhythm API."""

from datetime import date, datetime, time
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, Field

from rhythm.models.care_block import BlockCategory, Recurrence
from rhythm.models.care_log import SleepType
from rhythm.models.constants import DEFAULT_WEEKLY_DAY
from rhythm.models.transition import PendingTransition


def to_local_naive(value: datetime) -> datetime:
    """Log times are stored naive in local time; convert offset-aware input."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


LocalDateTime = Annotated[datetime, AfterValidator(to_local_naive)]


class ChildCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    birthdate: date
    is_napping_age: bool = False
    bedtime: Optional[time] = None
    wake_time: Optional[time] = None


class ChildUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    birthdate: Optional[date] = None
    is_napping_age: Optional[bool] = None
    bedtime: Optional[time] = None
    wake_time: Optional[time] = None


class CareBlockCreateRequest(BaseModel):
    """Fields for a new care block; validated again as a CareBlock."""
    child_ids: List[str] = Field(default_factory=list)
    name: str = Field(..., min_length=1)
    category: BlockCategory
    recurrence: Recurrence = Recurrence.DAILY
    days_of_week: Optional[List[int]] = None
    specific_days: Optional[List[int]] = None
    weekly_day: int = DEFAULT_WEEKLY_DAY
    one_off_date: Optional[date] = None
    start_time: time
    end_time: time
    travel_before_min: Optional[int] = None
    travel_after_min: Optional[int] = None
    is_active: bool = True


class CareBlockUpdateRequest(BaseModel):
    """Partial update; only the fields sent are changed."""
    child_ids: Optional[List[str]] = None
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[BlockCategory] = None
    recurrence: Optional[Recurrence] = None
    days_of_week: Optional[List[int]] = None
    specific_days: Optional[List[int]] = None
    weekly_day: Optional[int] = None
    one_off_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    travel_before_min: Optional[int] = None
    travel_after_min: Optional[int] = None
    is_active: Optional[bool] = None


class NapScheduleCreateRequest(BaseModel):
    child_id: str
    nap_number: int = Field(1, ge=1, le=3)
    typical_start: time
    typical_end: time


class SleepStartRequest(BaseModel):
    sleep_type: SleepType = SleepType.NAP
    started_at: Optional[LocalDateTime] = Field(None, description="Defaults to now")


class AwayStartRequest(BaseModel):
    label: Optional[str] = None
    started_at: Optional[LocalDateTime] = Field(None, description="Defaults to now")


class LogUpdateRequest(BaseModel):
    """Correction of a log entry's times; omitted fields are left alone."""
    started_at: Optional[LocalDateTime] = None
    ended_at: Optional[LocalDateTime] = None


class TransitionCheckResponse(BaseModel):
    created: List[PendingTransition]
    pending: List[PendingTransition]
    checked_at: datetime
