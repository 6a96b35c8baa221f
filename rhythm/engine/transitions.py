"""Transition detection for Rhythm.

The detector compares the clock against today's care block and nap schedule
boundaries. Care block boundaries are applied optimistically to the away log
and recorded as pending transitions the caregiver can confirm (keep) or
dismiss (revert). Nap starts are only suggested.

Each transition kind is a command: ``apply`` performs the optimistic change,
``revert`` undoes it on dismiss, and ``confirm`` runs the follow-up work when
the caregiver keeps it.

Scans are serialized within the process; the store's unique constraint
keeps a second process from recording the same occurrence twice.
"""

import logging
import threading
import uuid
from datetime import date, datetime, time
from typing import Callable, Dict, List, Optional, Type

from rhythm.engine.availability import is_free_category
from rhythm.models.care_log import SleepType
from rhythm.models.constants import AUTO_CONFIRM_MS
from rhythm.models.transition import PendingTransition, TransitionKind, TransitionStatus
from rhythm.recurrence.resolver import format_hhmm, minute_of_day

logger = logging.getLogger(__name__)

_scan_lock = threading.Lock()


def _scheduled_at(transition: PendingTransition) -> datetime:
    return datetime.combine(transition.scheduled_date, transition.scheduled_time)


class TransitionCommand:
    """Base command bound to one pending transition."""

    kind: TransitionKind = None

    def __init__(self, transition: PendingTransition, *, away_logs, sleep_logs, bus=None):
        self.transition = transition
        self.away_logs = away_logs
        self.sleep_logs = sleep_logs
        self.bus = bus

    @staticmethod
    def describe(child_name: str, label: Optional[str], scheduled_time: time) -> str:
        raise NotImplementedError

    def apply(self) -> Optional[str]:
        """Optimistic change made when the transition is detected.

        Returns the id of a log entry it created, if any.
        """

    def confirm(self) -> None:
        """Follow-up when the caregiver keeps the transition."""

    def revert(self) -> None:
        """Undo ``apply`` when the caregiver dismisses the transition."""

    def _emit(self, name: str) -> None:
        if self.bus is not None:
            self.bus.emit_scoped(name, self.transition.child_id)


class StartAwayCommand(TransitionCommand):
    kind = TransitionKind.CARE_BLOCK_START

    @staticmethod
    def describe(child_name, label, scheduled_time):
        return f"{child_name} at {label}?"

    def apply(self):
        t = self.transition
        return self.away_logs.start_auto(t.child_id, _scheduled_at(t), label=t.label).id

    def confirm(self):
        self._emit("care-block-start")

    def revert(self):
        t = self.transition
        self.away_logs.revert_auto_start(t.child_id, log_id=t.applied_log_id)


class EndAwayCommand(TransitionCommand):
    kind = TransitionKind.CARE_BLOCK_END

    @staticmethod
    def describe(child_name, label, scheduled_time):
        return f"{child_name} home from {label}?"

    def apply(self):
        t = self.transition
        self.away_logs.end_auto(t.child_id, _scheduled_at(t))

    def confirm(self):
        self._emit("care-block-end")

    def revert(self):
        # The child is still away: reopen from the moment of the auto-end.
        t = self.transition
        self.away_logs.start(t.child_id, t.label, at=_scheduled_at(t))


class SuggestNapCommand(TransitionCommand):
    kind = TransitionKind.NAP_START

    @staticmethod
    def describe(child_name, label, scheduled_time):
        return f"Time for {child_name}'s nap? (usually ~{format_hhmm(scheduled_time)})"

    def confirm(self):
        t = self.transition
        if not self.sleep_logs.is_active(t.child_id):
            self.sleep_logs.start_auto(t.child_id, _scheduled_at(t), SleepType.NAP)


COMMANDS: Dict[str, Type[TransitionCommand]] = {
    TransitionKind.CARE_BLOCK_START.value: StartAwayCommand,
    TransitionKind.CARE_BLOCK_END.value: EndAwayCommand,
    TransitionKind.NAP_START.value: SuggestNapCommand,
}


class TransitionDetector:
    """Detects care block and nap boundaries and manages pending transitions."""

    def __init__(
        self,
        *,
        children,
        care_blocks,
        nap_schedules,
        sleep_logs,
        away_logs,
        transitions,
        bus=None,
        clock: Optional[Callable[[], datetime]] = None,
        auto_confirm_after_ms: int = AUTO_CONFIRM_MS,
    ):
        self.children = children
        self.care_blocks = care_blocks
        self.nap_schedules = nap_schedules
        self.sleep_logs = sleep_logs
        self.away_logs = away_logs
        self.transitions = transitions
        self.bus = bus
        self._clock = clock or datetime.now
        self.auto_confirm_after_ms = auto_confirm_after_ms
        self.last_checked_at: Optional[datetime] = None

    def command_for(self, transition: PendingTransition) -> TransitionCommand:
        command_cls = COMMANDS[TransitionKind(transition.kind).value]
        return command_cls(transition, away_logs=self.away_logs, sleep_logs=self.sleep_logs, bus=self.bus)

    def _record(
        self,
        command_cls: Type[TransitionCommand],
        child,
        scheduled_time: time,
        now: datetime,
        *,
        block_id: Optional[str] = None,
        nap_schedule_id: Optional[str] = None,
        label: Optional[str] = None,
    ) -> Optional[PendingTransition]:
        transition = PendingTransition(
            id=str(uuid.uuid4()),
            kind=command_cls.kind,
            child_id=child.id,
            scheduled_time=scheduled_time,
            scheduled_date=now.date(),
            block_id=block_id,
            nap_schedule_id=nap_schedule_id,
            label=label,
            description=command_cls.describe(child.name, label, scheduled_time),
            auto_confirm_after_ms=self.auto_confirm_after_ms,
            created_at=now,
        )
        created = self.transitions.create(transition)
        if created is None:
            return None
        try:
            log_id = self.command_for(created).apply()
        except Exception:
            self.transitions.delete(created.id)
            raise
        if log_id is not None:
            created = self.transitions.set_applied_log(created.id, log_id)
        logger.info(f"Detected {created.kind} for child {child.id}: {created.description}")
        return created

    def check_for_transitions(self) -> List[PendingTransition]:
        """Run one scan. Returns the transitions created by it."""
        with _scan_lock:
            return self._scan()

    def _scan(self) -> List[PendingTransition]:
        now = self._clock()
        today = now.date()
        now_min = minute_of_day(now.time())
        children = {child.id: child for child in self.children.list()}
        created: List[Optional[PendingTransition]] = []

        for block in self.care_blocks.active_on(today):
            if not is_free_category(block.category):
                continue
            for child_id in block.child_ids:
                child = children.get(child_id)
                if child is None:
                    continue
                if (
                    now_min >= minute_of_day(block.start_time)
                    and not self.transitions.exists(
                        TransitionKind.CARE_BLOCK_START, child_id, today, block_id=block.id
                    )
                    and not self.away_logs.is_active(child_id)
                ):
                    created.append(self._record(
                        StartAwayCommand, child, block.start_time, now, block_id=block.id, label=block.name
                    ))
                if (
                    now_min >= minute_of_day(block.end_time)
                    and not self.transitions.exists(
                        TransitionKind.CARE_BLOCK_END, child_id, today, block_id=block.id
                    )
                    and self.away_logs.is_active(child_id)
                ):
                    created.append(self._record(
                        EndAwayCommand, child, block.end_time, now, block_id=block.id, label=block.name
                    ))

        for schedule in self.nap_schedules.list():
            child = children.get(schedule.child_id)
            if child is None or not child.is_napping_age:
                continue
            if now_min < minute_of_day(schedule.typical_start):
                continue
            if self.transitions.exists(
                TransitionKind.NAP_START, child.id, today, nap_schedule_id=schedule.id
            ):
                continue
            if self.sleep_logs.is_active(child.id):
                continue
            if len(self.sleep_logs.naps_on(child.id, today)) >= schedule.nap_number:
                continue
            created.append(self._record(
                SuggestNapCommand, child, schedule.typical_start, now, nap_schedule_id=schedule.id
            ))

        self.auto_confirm_stale()
        self.last_checked_at = now
        return [transition for transition in created if transition is not None]

    def auto_confirm_stale(self) -> List[PendingTransition]:
        confirmed = self.transitions.auto_confirm_stale(self._clock())
        for transition in confirmed:
            logger.info(f"Auto-confirmed transition {transition.id}")
        return confirmed

    def confirm(self, transition_id: str) -> Optional[PendingTransition]:
        """Keep a pending transition. Returns None if it is unknown or not pending."""
        transition = self.transitions.get(transition_id)
        if transition is None or transition.status != TransitionStatus.PENDING:
            return None
        resolved = self.transitions.resolve(transition_id, TransitionStatus.CONFIRMED, self._clock())
        if resolved is not None:
            self.command_for(resolved).confirm()
        return resolved

    def dismiss(self, transition_id: str) -> Optional[PendingTransition]:
        """Reject a pending transition and revert its optimistic change."""
        transition = self.transitions.get(transition_id)
        if transition is None or transition.status != TransitionStatus.PENDING:
            return None
        self.command_for(transition).revert()
        resolved = self.transitions.resolve(transition_id, TransitionStatus.DISMISSED, self._clock())
        logger.info(f"Dismissed transition {transition_id} ({transition.kind})")
        return resolved

    def pending_transitions(self) -> List[PendingTransition]:
        """Pending transitions scheduled for today."""
        return self.transitions.pending_for_date(self._clock().date())

    def clear_transitions_for_date(self, on_date: date) -> int:
        return self.transitions.clear_for_date(on_date)
