"""Availability and transition engine for Rhythm."""

from rhythm.engine.availability import (
    AvailabilityEngine,
    CATEGORY_AVAILABILITY,
    availability_for_category,
    resolve_availability,
)
from rhythm.engine.transitions import (
    TransitionCommand,
    StartAwayCommand,
    EndAwayCommand,
    SuggestNapCommand,
    TransitionDetector,
)
from rhythm.engine.household import Household

__all__ = [
    "AvailabilityEngine",
    "CATEGORY_AVAILABILITY",
    "availability_for_category",
    "resolve_availability",
    "TransitionCommand",
    "StartAwayCommand",
    "EndAwayCommand",
    "SuggestNapCommand",
    "TransitionDetector",
    "Household",
]
