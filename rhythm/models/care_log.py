"""Sleep and away log models for Rhythm.

Both logs are open-ended: an entry is created when the child falls asleep (or
leaves) and stays open (``ended_at is None``) until someone marks the end.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class SleepType(str, Enum):
    """Sleep sub-type."""
    NAP = "nap"
    NIGHT = "night"


class EndReason(str, Enum):
    """How a closed log entry was closed."""
    USER = "user"
    AUTO_EXPIRED = "auto-expired"
    SUPERSEDED = "superseded"
    SCHEDULED = "scheduled"


class CareLog(BaseModel):
    """Fields shared by sleep and away logs."""

    id: str = Field(..., description="Unique log identifier (UUID v4)")
    child_id: str = Field(..., description="Child the log belongs to")
    started_on: date = Field(..., description="Calendar date the event began")
    started_at: datetime = Field(..., description="Start timestamp")
    ended_at: Optional[datetime] = Field(None, description="End timestamp (null while ongoing)")
    end_reason: Optional[EndReason] = Field(None, description="How the entry was closed")
    auto_tracked: bool = Field(False, description="Created from a schedule rather than by the user")

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    def duration(self, now: datetime):
        """Elapsed time, measured to ``now`` while the entry is still open."""
        return (self.ended_at or now) - self.started_at

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class SleepLog(CareLog):
    """A nap or night-sleep entry."""

    sleep_type: SleepType = Field(SleepType.NAP, description="Nap or night sleep")


class AwayLog(CareLog):
    """A child-is-away entry (daycare, grandma's, ...)."""

    label: Optional[str] = Field(None, description="Name of the care arrangement, e.g. 'Daycare'")
