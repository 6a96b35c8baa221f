"""NapSchedule data model for Rhythm."""

from datetime import time
from pydantic import BaseModel, Field, model_validator


class NapSchedule(BaseModel):
    """A child's typical nap window (first nap, second nap, ...)."""

    id: str = Field(..., description="Unique nap schedule identifier")
    child_id: str = Field(..., description="Child this schedule belongs to")
    nap_number: int = Field(1, ge=1, le=3, description="Which nap of the day (1, 2 or 3)")
    typical_start: time = Field(..., description="Usual nap start")
    typical_end: time = Field(..., description="Usual nap end")

    @model_validator(mode="after")
    def _validate_window(self):
        if self.typical_start >= self.typical_end:
            raise ValueError("typical_start must be before typical_end")
        return self
