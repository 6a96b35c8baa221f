"""Data models for Rhythm."""

from rhythm.models.child import Child
from rhythm.models.care_block import CareBlock, BlockCategory, Recurrence
from rhythm.models.nap_schedule import NapSchedule
from rhythm.models.care_log import CareLog, SleepLog, AwayLog, SleepType, EndReason
from rhythm.models.transition import PendingTransition, TransitionKind, TransitionStatus
from rhythm.models.availability import AvailabilityState, AvailabilitySnapshot, ChildStatus
from rhythm.models.rhythm_event import RhythmEvent

__all__ = [
    "Child",
    "CareBlock",
    "BlockCategory",
    "Recurrence",
    "NapSchedule",
    "CareLog",
    "SleepLog",
    "AwayLog",
    "SleepType",
    "EndReason",
    "PendingTransition",
    "TransitionKind",
    "TransitionStatus",
    "AvailabilityState",
    "AvailabilitySnapshot",
    "ChildStatus",
    "RhythmEvent",
]
