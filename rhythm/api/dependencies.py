"""FastAPI dependencies for Rhythm."""

from datetime import datetime
from typing import Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from rhythm.database.database import get_db
from rhythm.engine.household import Household
from rhythm.events.bus import EventBus

# Process-wide bus so "has fired today" survives across requests.
event_bus = EventBus()


def get_clock() -> Callable[[], datetime]:
    return datetime.now


def get_bus() -> EventBus:
    return event_bus


def get_household(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
    bus: EventBus = Depends(get_bus),
) -> Household:
    """Build the household's repositories and engines on the request session."""
    return Household(db, clock=clock, bus=bus)
