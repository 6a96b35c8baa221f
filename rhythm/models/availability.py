"""Availability state model for Rhythm."""

from datetime import datetime
from enum import Enum
from typing import Dict, List
from pydantic import BaseModel, Field

from rhythm.models.care_block import CareBlock


class AvailabilityState(str, Enum):
    """What kind of task the caregiver can do right now."""
    UNAVAILABLE = "unavailable"  # driving, at an appointment with a child
    FREE = "free"  # children are away
    QUIET = "quiet"  # children asleep, caregiver at home
    PARENTING = "parenting"  # children home and awake


class ChildStatus(str, Enum):
    """Where a child is, as far as availability is concerned."""
    HOME = "home"
    AWAY = "away"
    ASLEEP = "asleep"


class AvailabilitySnapshot(BaseModel):
    """Availability plus the data it was derived from."""

    state: AvailabilityState = Field(..., description="Derived availability state")
    at: datetime = Field(..., description="When the snapshot was taken")
    active_blocks: List[CareBlock] = Field(default_factory=list, description="Care blocks in effect at 'at'")
    children: Dict[str, ChildStatus] = Field(default_factory=dict, description="Child id -> home/away/asleep")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
