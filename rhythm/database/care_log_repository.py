"""Repositories for the open-ended sleep and away logs.

Both logs share one lifecycle per (child, log kind): closed -> open -> closed.
At most one entry per child is open at a time; starting a new entry closes any
open one first (``end_reason = superseded``). Closed entries stay editable but
are never reopened.

Open sleep entries that have run implausibly long are closed by
``SleepLogRepository.close_expired()``, which every sleep read calls first.
"""

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from rhythm.database.models import AwayLogDB, SleepLogDB
from rhythm.models.care_log import AwayLog, CareLog, EndReason, SleepLog, SleepType
from rhythm.models.constants import (
    NAP_CEILING,
    NAP_FALLBACK_DURATION,
    NIGHT_CEILING,
    NIGHT_FALLBACK_DURATION,
)
from rhythm.recurrence.resolver import minute_of_day

logger = logging.getLogger(__name__)
_UNSET = object()


class CareLogRepository:
    """Shared operations for a per-child open-ended event log."""

    row_model = None
    event_name = ""

    def __init__(
        self,
        db: Session,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        bus=None,
    ):
        self.db = db
        self._clock = clock or datetime.now
        self._bus = bus

    # -- hooks -----------------------------------------------------------

    def _before_read(self) -> None:
        """Called before every query."""

    def _new_log(self, child_id: str, started_at: datetime, auto_tracked: bool, **fields) -> CareLog:
        raise NotImplementedError

    def _emit(self, phase: str, log: CareLog) -> None:
        if self._bus is not None:
            self._bus.emit_scoped(f"{self.event_name}-{phase}", log.child_id)

    # -- queries ---------------------------------------------------------

    def _query(self):
        return self.db.query(self.row_model)

    def _open_rows(self, child_id: str) -> list:
        return (
            self._query()
            .filter(self.row_model.child_id == child_id, self.row_model.ended_at.is_(None))
            .order_by(desc(self.row_model.started_at))
            .all()
        )

    def get(self, log_id: str) -> Optional[CareLog]:
        self._before_read()
        row = self._query().filter(self.row_model.id == log_id).first()
        return row.to_pydantic() if row else None

    def list_all(self) -> List[CareLog]:
        self._before_read()
        rows = self._query().order_by(self.row_model.started_at).all()
        return [row.to_pydantic() for row in rows]

    def list_for_date(self, on_date: date) -> List[CareLog]:
        """Entries that began on ``on_date``."""
        self._before_read()
        rows = (
            self._query()
            .filter(self.row_model.started_on == on_date)
            .order_by(self.row_model.started_at)
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def list_open(self) -> List[CareLog]:
        self._before_read()
        rows = self._query().filter(self.row_model.ended_at.is_(None)).order_by(self.row_model.started_at).all()
        return [row.to_pydantic() for row in rows]

    def active_for(self, child_id: str) -> Optional[CareLog]:
        """The child's open entry, or None."""
        self._before_read()
        rows = self._open_rows(child_id)
        return rows[0].to_pydantic() if rows else None

    def is_active(self, child_id: str) -> bool:
        return self.active_for(child_id) is not None

    def last_end_time(self, child_id: str) -> Optional[datetime]:
        """End of the child's most recent closed entry (for 'awake for X')."""
        self._before_read()
        row = (
            self._query()
            .filter(self.row_model.child_id == child_id, self.row_model.ended_at.isnot(None))
            .order_by(desc(self.row_model.ended_at))
            .first()
        )
        return row.ended_at if row else None

    def logs_overlapping(self, on_date: date) -> List[CareLog]:
        """Entries that started on, ended on, or ran through ``on_date``.

        Open entries are treated as running until now.
        """
        self._before_read()
        now = self._clock()
        day_start = datetime.combine(on_date, datetime.min.time())
        out: List[CareLog] = []
        for row in self._query().order_by(self.row_model.started_at).all():
            ended_at = row.ended_at or now
            starts_on_date = row.started_on == on_date
            ends_on_date = row.ended_at is not None and row.ended_at.date() == on_date
            spans_date = row.started_at < day_start and ended_at > day_start
            if starts_on_date or ends_on_date or spans_date:
                out.append(row.to_pydantic())
        return out

    # -- lifecycle -------------------------------------------------------

    def _open(self, child_id: str, started_at: datetime, auto_tracked: bool, **fields) -> CareLog:
        self._before_read()
        log = self._new_log(child_id, started_at, auto_tracked, **fields)
        try:
            for row in self._open_rows(child_id):
                row.ended_at = max(row.started_at, started_at)
                row.end_reason = EndReason.SUPERSEDED.value
                logger.info(f"Closed open {self.event_name} log {row.id} for child {child_id}: superseded")
            row = self.row_model.from_pydantic(log)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Started {self.event_name} log {log.id} for child {child_id}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to start {self.event_name} log for child {child_id}: {type(e).__name__}: {str(e)}")
            raise
        created = row.to_pydantic()
        self._emit("start", created)
        return created

    def _close(self, child_id: str, ended_at: datetime, reason: EndReason) -> Optional[CareLog]:
        rows = self._open_rows(child_id)
        if not rows:
            return None
        try:
            for row in rows:
                row.ended_at = max(row.started_at, ended_at)
                row.end_reason = reason.value
            self.db.commit()
            self.db.refresh(rows[0])
            logger.debug(f"Ended {self.event_name} log {rows[0].id} for child {child_id}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to end {self.event_name} log for child {child_id}: {type(e).__name__}: {str(e)}")
            raise
        closed = rows[0].to_pydantic()
        self._emit("end", closed)
        return closed

    def end(self, child_id: str) -> Optional[CareLog]:
        """Close the child's open entry at now. Returns None if nothing was open."""
        self._before_read()
        return self._close(child_id, self._clock(), EndReason.USER)

    def end_auto(self, child_id: str, at: datetime) -> Optional[CareLog]:
        """Close the child's open entry back-dated to a scheduled time."""
        self._before_read()
        return self._close(child_id, at, EndReason.SCHEDULED)

    def revert_auto_start(self, child_id: str, log_id: Optional[str] = None) -> bool:
        """Delete an auto-tracked entry (a true undo).

        With ``log_id`` exactly that entry is removed, open or closed. Without
        it, the child's most recent auto-tracked open entry is removed.
        """
        self._before_read()
        query = self._query().filter(
            self.row_model.child_id == child_id,
            self.row_model.auto_tracked.is_(True),
        )
        if log_id is not None:
            query = query.filter(self.row_model.id == log_id)
        else:
            query = query.filter(self.row_model.ended_at.is_(None)).order_by(desc(self.row_model.started_at))
        row = query.first()
        if row is None:
            return False
        log_id = row.id
        try:
            self.db.delete(row)
            self.db.commit()
            logger.info(f"Reverted auto-tracked {self.event_name} log {log_id} for child {child_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to revert {self.event_name} log for child {child_id}: {type(e).__name__}: {str(e)}")
            raise

    def update(self, log_id: str, *, started_at=_UNSET, ended_at=_UNSET) -> Optional[CareLog]:
        """Correct an entry's start and/or end time.

        Uses an UNSET sentinel so only the passed fields change. Closed entries
        cannot be reopened and an entry cannot end before it starts.
        """
        row = self._query().filter(self.row_model.id == log_id).first()
        if row is None:
            return None
        new_start = row.started_at if started_at is _UNSET else started_at
        new_end = row.ended_at if ended_at is _UNSET else ended_at
        if new_start is None:
            raise ValueError("started_at cannot be cleared")
        if row.ended_at is not None and new_end is None:
            raise ValueError("closed log entries cannot be reopened")
        if new_end is not None and new_end < new_start:
            raise ValueError("ended_at must not be before started_at")
        try:
            if row.ended_at is None and new_end is not None:
                row.end_reason = EndReason.USER.value
            row.started_at = new_start
            row.started_on = new_start.date()
            row.ended_at = new_end
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update {self.event_name} log {log_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, log_id: str) -> bool:
        row = self._query().filter(self.row_model.id == log_id).first()
        if row is None:
            return False
        try:
            self.db.delete(row)
            self.db.commit()
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete {self.event_name} log {log_id}: {type(e).__name__}: {str(e)}")
            raise

    def clear(self) -> int:
        try:
            deleted_count = self._query().delete()
            self.db.commit()
            logger.debug(f"Deleted {deleted_count} {self.event_name} logs")
            return int(deleted_count)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to clear {self.event_name} logs: {type(e).__name__}: {str(e)}")
            raise


class SleepLogRepository(CareLogRepository):
    """Nap and night-sleep log with auto-expiry."""

    row_model = SleepLogDB
    event_name = "sleep"

    def __init__(
        self,
        db: Session,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        bus=None,
        nap_schedules=None,
        children=None,
    ):
        super().__init__(db, clock=clock, bus=bus)
        self._nap_schedules = nap_schedules
        self._children = children

    def _new_log(self, child_id, started_at, auto_tracked, sleep_type=SleepType.NAP, **fields) -> SleepLog:
        return SleepLog(
            id=str(uuid.uuid4()),
            child_id=child_id,
            started_on=started_at.date(),
            started_at=started_at,
            auto_tracked=auto_tracked,
            sleep_type=sleep_type,
        )

    def _emit(self, phase: str, log: CareLog) -> None:
        super()._emit(phase, log)
        if self._bus is not None and log.sleep_type == SleepType.NAP:
            self._bus.emit_scoped(f"nap-{phase}", log.child_id)

    def _before_read(self) -> None:
        self.close_expired()

    def start(self, child_id: str, sleep_type: SleepType = SleepType.NAP, *, at: Optional[datetime] = None) -> SleepLog:
        """Mark a child asleep (now, unless ``at`` is given)."""
        return self._open(child_id, at or self._clock(), False, sleep_type=sleep_type)

    def start_auto(self, child_id: str, at: datetime, sleep_type: SleepType = SleepType.NAP) -> SleepLog:
        """Record a schedule-derived sleep back-dated to ``at``."""
        return self._open(child_id, at, True, sleep_type=sleep_type)

    def naps_on(self, child_id: str, on_date: date) -> List[SleepLog]:
        return [
            log for log in self.list_for_date(on_date)
            if log.child_id == child_id and log.sleep_type == SleepType.NAP
        ]

    def close_expired(self) -> List[SleepLog]:
        """Close open entries older than their ceiling (3h nap, 14h night).

        The entry is closed at ``started_at`` plus an estimated duration, never
        later than now. Closed entries are no longer open, so calling this
        again is a no-op for them.
        """
        now = self._clock()
        rows = self._query().filter(self.row_model.ended_at.is_(None)).all()
        expired = []
        for row in rows:
            is_night = row.sleep_type == SleepType.NIGHT.value
            ceiling = NIGHT_CEILING if is_night else NAP_CEILING
            if now - row.started_at <= ceiling:
                continue
            duration = self.estimate_duration(row.to_pydantic())
            row.ended_at = min(row.started_at + duration, now)
            row.end_reason = EndReason.AUTO_EXPIRED.value
            expired.append(row)
        if not expired:
            return []
        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to close expired sleep logs: {type(e).__name__}: {str(e)}")
            raise
        for row in expired:
            logger.info(f"Auto-closed sleep log {row.id} for child {row.child_id} at {row.ended_at.isoformat()}")
        return [row.to_pydantic() for row in expired]

    def estimate_duration(self, log: SleepLog) -> timedelta:
        """How long a forgotten sleep entry most likely lasted."""
        if log.sleep_type == SleepType.NIGHT:
            return self._night_duration(log.child_id)
        return self._nap_duration(log)

    def _nap_duration(self, log: SleepLog) -> timedelta:
        if self._nap_schedules is None:
            return NAP_FALLBACK_DURATION
        schedules = self._nap_schedules.list_for_child(log.child_id)
        if not schedules:
            return NAP_FALLBACK_DURATION
        started = minute_of_day(log.started_at.time())
        nearest = min(schedules, key=lambda s: abs(minute_of_day(s.typical_start) - started))
        return timedelta(minutes=minute_of_day(nearest.typical_end) - minute_of_day(nearest.typical_start))

    def _night_duration(self, child_id: str) -> timedelta:
        if self._children is None:
            return NIGHT_FALLBACK_DURATION
        child = self._children.get(child_id)
        if child is None or child.bedtime is None or child.wake_time is None:
            return NIGHT_FALLBACK_DURATION
        # Bedtime is in the evening, wake time the next morning.
        minutes = (minute_of_day(child.wake_time) - minute_of_day(child.bedtime)) % (24 * 60)
        return timedelta(minutes=minutes) if minutes else NIGHT_FALLBACK_DURATION


class AwayLogRepository(CareLogRepository):
    """Child-is-away log (daycare, babysitter outings, grandparents)."""

    row_model = AwayLogDB
    event_name = "away"

    def _new_log(self, child_id, started_at, auto_tracked, label=None, **fields) -> AwayLog:
        return AwayLog(
            id=str(uuid.uuid4()),
            child_id=child_id,
            started_on=started_at.date(),
            started_at=started_at,
            auto_tracked=auto_tracked,
            label=label,
        )

    def start(self, child_id: str, label: Optional[str] = None, *, at: Optional[datetime] = None) -> AwayLog:
        """Mark a child away (now, unless ``at`` is given)."""
        return self._open(child_id, at or self._clock(), False, label=label)

    def start_auto(self, child_id: str, at: datetime, label: Optional[str] = None) -> AwayLog:
        """Record a schedule-derived absence back-dated to ``at``."""
        return self._open(child_id, at, True, label=label)
