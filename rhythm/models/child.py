"""Child data model for Rhythm."""

from datetime import date, time
from typing import Optional
from pydantic import BaseModel, Field


class Child(BaseModel):
    """A child tracked by the household."""

    id: str = Field(..., description="Unique child identifier (UUID v4)")
    name: str = Field(..., description="Display name")
    birthdate: date = Field(..., description="Date of birth")
    is_napping_age: bool = Field(False, description="Whether daytime naps are tracked for this child")
    bedtime: Optional[time] = Field(None, description="Usual bedtime (used to estimate night sleep)")
    wake_time: Optional[time] = Field(None, description="Usual wake time (used to estimate night sleep)")
