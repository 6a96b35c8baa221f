"""SQLAlchemy database models for Rhythm."""

from datetime import datetime
import uuid
from sqlalchemy import Column, String, Integer, Boolean, Date, DateTime, Time, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import declared_attr

from typing import Union, TypeVar, Type
from rhythm.database.database import Base
from rhythm.models.care_block import BlockCategory, Recurrence
from rhythm.models.care_log import SleepType, EndReason
from rhythm.models.transition import TransitionKind, TransitionStatus

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


def _optional_enum_value(enum_obj):
    return enum_to_value(enum_obj) if enum_obj is not None else None


class ChildDB(Base):
    """Database model for Child."""

    __tablename__ = "children"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    birthdate = Column(Date, nullable=False)
    is_napping_age = Column(Boolean, nullable=False, default=False)
    bedtime = Column(Time, nullable=True)
    wake_time = Column(Time, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from rhythm.models.child import Child
        return Child(
            id=self.id,
            name=self.name,
            birthdate=self.birthdate,
            is_napping_age=self.is_napping_age,
            bedtime=self.bedtime,
            wake_time=self.wake_time,
        )

    @classmethod
    def from_pydantic(cls, child):
        """Create database model from Pydantic model."""
        return cls(
            id=child.id,
            name=child.name,
            birthdate=child.birthdate,
            is_napping_age=child.is_napping_age,
            bedtime=child.bedtime,
            wake_time=child.wake_time,
        )


class CareBlockDB(Base):
    """Database model for CareBlock."""

    __tablename__ = "care_blocks"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Children are referenced by id (stored as JSON array)
    child_ids = Column(JSON, nullable=False, default=list)

    name = Column(String, nullable=False)
    category = Column(String, nullable=False)

    # Recurrence
    recurrence = Column(String, nullable=False, default=Recurrence.DAILY.value)
    days_of_week = Column(JSON, nullable=True)
    specific_days = Column(JSON, nullable=True)
    weekly_day = Column(Integer, nullable=False, default=0)
    one_off_date = Column(Date, nullable=True)

    # Window
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    travel_before_min = Column(Integer, nullable=True)
    travel_after_min = Column(Integer, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from rhythm.models.care_block import CareBlock
        return CareBlock(
            id=self.id,
            child_ids=self.child_ids or [],
            name=self.name,
            category=value_to_enum(self.category, BlockCategory, BlockCategory.CHILDCARE),
            recurrence=value_to_enum(self.recurrence, Recurrence, Recurrence.DAILY),
            days_of_week=self.days_of_week,
            specific_days=self.specific_days,
            weekly_day=self.weekly_day,
            one_off_date=self.one_off_date,
            start_time=self.start_time,
            end_time=self.end_time,
            travel_before_min=self.travel_before_min,
            travel_after_min=self.travel_after_min,
            is_active=self.is_active,
        )

    @classmethod
    def from_pydantic(cls, block):
        """Create database model from Pydantic model."""
        row = cls(id=block.id)
        row.apply(block)
        return row

    def apply(self, block) -> None:
        """Copy every editable field from a Pydantic CareBlock."""
        self.child_ids = list(block.child_ids)
        self.name = block.name
        self.category = enum_to_value(block.category)
        self.recurrence = enum_to_value(block.recurrence)
        self.days_of_week = block.days_of_week
        self.specific_days = block.specific_days
        self.weekly_day = block.weekly_day
        self.one_off_date = block.one_off_date
        self.start_time = block.start_time
        self.end_time = block.end_time
        self.travel_before_min = block.travel_before_min
        self.travel_after_min = block.travel_after_min
        self.is_active = block.is_active


class NapScheduleDB(Base):
    """Database model for NapSchedule."""

    __tablename__ = "nap_schedules"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    child_id = Column(String, ForeignKey("children.id", ondelete="CASCADE"), nullable=False, index=True)
    nap_number = Column(Integer, nullable=False, default=1)
    typical_start = Column(Time, nullable=False)
    typical_end = Column(Time, nullable=False)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from rhythm.models.nap_schedule import NapSchedule
        return NapSchedule(
            id=self.id,
            child_id=self.child_id,
            nap_number=self.nap_number,
            typical_start=self.typical_start,
            typical_end=self.typical_end,
        )

    @classmethod
    def from_pydantic(cls, schedule):
        """Create database model from Pydantic model."""
        return cls(
            id=schedule.id,
            child_id=schedule.child_id,
            nap_number=schedule.nap_number,
            typical_start=schedule.typical_start,
            typical_end=schedule.typical_end,
        )


class CareLogMixin:
    """Columns shared by the sleep and away log tables."""

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    @declared_attr
    def child_id(cls):
        return Column(String, ForeignKey("children.id", ondelete="CASCADE"), nullable=False, index=True)

    started_on = Column(Date, nullable=False, index=True)
    started_at = Column(DateTime, nullable=False)
    ended_at = Column(DateTime, nullable=True, index=True)
    end_reason = Column(String, nullable=True)
    auto_tracked = Column(Boolean, nullable=False, default=False)

    def _common_fields(self) -> dict:
        return {
            "id": self.id,
            "child_id": self.child_id,
            "started_on": self.started_on,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "end_reason": value_to_enum(self.end_reason, EndReason, None),
            "auto_tracked": bool(self.auto_tracked),
        }

    @classmethod
    def _common_columns(cls, log) -> dict:
        return {
            "id": log.id,
            "child_id": log.child_id,
            "started_on": log.started_on,
            "started_at": log.started_at,
            "ended_at": log.ended_at,
            "end_reason": _optional_enum_value(log.end_reason),
            "auto_tracked": log.auto_tracked,
        }


class SleepLogDB(CareLogMixin, Base):
    """Database model for SleepLog."""

    __tablename__ = "sleep_logs"

    sleep_type = Column(String, nullable=False, default=SleepType.NAP.value)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from rhythm.models.care_log import SleepLog
        return SleepLog(
            **self._common_fields(),
            sleep_type=value_to_enum(self.sleep_type, SleepType, SleepType.NAP),
        )

    @classmethod
    def from_pydantic(cls, log):
        """Create database model from Pydantic model."""
        return cls(**cls._common_columns(log), sleep_type=enum_to_value(log.sleep_type))


class AwayLogDB(CareLogMixin, Base):
    """Database model for AwayLog."""

    __tablename__ = "away_logs"

    label = Column(String, nullable=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from rhythm.models.care_log import AwayLog
        return AwayLog(**self._common_fields(), label=self.label)

    @classmethod
    def from_pydantic(cls, log):
        """Create database model from Pydantic model."""
        return cls(**cls._common_columns(log), label=log.label)


class PendingTransitionDB(Base):
    """Database model for PendingTransition."""

    __tablename__ = "pending_transitions"
    __table_args__ = (
        # One transition per occurrence. origin_id is never NULL so the
        # constraint also covers nap suggestions (NULLs never collide).
        UniqueConstraint("kind", "child_id", "scheduled_date", "origin_id", name="uq_transition_occurrence"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    kind = Column(String, nullable=False)
    child_id = Column(String, nullable=False, index=True)
    scheduled_time = Column(Time, nullable=False)
    scheduled_date = Column(Date, nullable=False, index=True)
    block_id = Column(String, nullable=True, index=True)
    nap_schedule_id = Column(String, nullable=True, index=True)
    origin_id = Column(String, nullable=False, default="")
    label = Column(String, nullable=True)
    applied_log_id = Column(String, nullable=True)
    description = Column(String, nullable=False)
    auto_confirm_after_ms = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=TransitionStatus.PENDING.value, index=True)
    resolved_at = Column(DateTime, nullable=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from rhythm.models.transition import PendingTransition
        return PendingTransition(
            id=self.id,
            kind=value_to_enum(self.kind, TransitionKind, TransitionKind.CARE_BLOCK_START),
            child_id=self.child_id,
            scheduled_time=self.scheduled_time,
            scheduled_date=self.scheduled_date,
            block_id=self.block_id,
            nap_schedule_id=self.nap_schedule_id,
            label=self.label,
            applied_log_id=self.applied_log_id,
            description=self.description,
            auto_confirm_after_ms=self.auto_confirm_after_ms,
            created_at=self.created_at,
            status=value_to_enum(self.status, TransitionStatus, TransitionStatus.PENDING),
            resolved_at=self.resolved_at,
        )

    @classmethod
    def from_pydantic(cls, transition):
        """Create database model from Pydantic model."""
        return cls(
            id=transition.id,
            kind=enum_to_value(transition.kind),
            child_id=transition.child_id,
            scheduled_time=transition.scheduled_time,
            scheduled_date=transition.scheduled_date,
            block_id=transition.block_id,
            nap_schedule_id=transition.nap_schedule_id,
            origin_id=transition.origin_id,
            label=transition.label,
            applied_log_id=transition.applied_log_id,
            description=transition.description,
            auto_confirm_after_ms=transition.auto_confirm_after_ms,
            created_at=transition.created_at,
            status=enum_to_value(transition.status),
            resolved_at=transition.resolved_at,
        )
