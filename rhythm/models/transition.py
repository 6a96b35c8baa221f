"""PendingTransition data model for Rhythm."""

from datetime import date, datetime, time
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from rhythm.models.constants import AUTO_CONFIRM_MS


class TransitionKind(str, Enum):
    """What the detector noticed."""
    CARE_BLOCK_START = "care-block-start"
    CARE_BLOCK_END = "care-block-end"
    NAP_START = "nap-start"


class TransitionStatus(str, Enum):
    """Transition status; everything except PENDING is terminal."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DISMISSED = "dismissed"
    AUTO_CONFIRMED = "auto-confirmed"


class PendingTransition(BaseModel):
    """A detected, time-boxed state change awaiting confirmation."""

    id: str = Field(..., description="Unique transition identifier (UUID v4)")
    kind: TransitionKind = Field(..., description="Transition kind")
    child_id: str = Field(..., description="Child the transition applies to")
    scheduled_time: time = Field(..., description="Scheduled time that triggered it")
    scheduled_date: date = Field(..., description="Calendar date it applies to")
    block_id: Optional[str] = Field(None, description="Originating care block")
    nap_schedule_id: Optional[str] = Field(None, description="Originating nap schedule")
    label: Optional[str] = Field(None, description="Block name captured when the transition was created")
    applied_log_id: Optional[str] = Field(None, description="Log entry created when the transition was applied")
    description: str = Field(..., description="Human-readable prompt, e.g. 'Milo at Daycare?'")
    auto_confirm_after_ms: int = Field(AUTO_CONFIRM_MS, ge=0, description="Deadline before auto-confirming")
    created_at: datetime = Field(..., description="Creation timestamp")
    status: TransitionStatus = Field(TransitionStatus.PENDING, description="Transition status")
    resolved_at: Optional[datetime] = Field(None, description="When the transition left 'pending'")

    @property
    def origin_id(self) -> str:
        """The block or nap schedule this transition was raised for."""
        return self.block_id or self.nap_schedule_id or ""

    def is_stale(self, now: datetime) -> bool:
        """True once the transition has outlived its auto-confirm deadline."""
        age_ms = (now - self.created_at).total_seconds() * 1000
        return age_ms > self.auto_confirm_after_ms

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
