"""RhythmEvent data model for Rhythm."""

from datetime import date, datetime
from pydantic import BaseModel, Field


class RhythmEvent(BaseModel):
    """A fire-and-forget notification, e.g. 'nap-end' or 'nap-end:<child id>'."""

    key: str = Field(..., description="Event key")
    timestamp: datetime = Field(..., description="When the event fired")
    event_date: date = Field(..., description="Calendar date the event fired on")
