"""In-process notification bus for Rhythm.

Fire-and-forget: ``emit`` records the event for today and hands it to every
subscriber. Events from before yesterday are pruned on each emit. The bus is
shared by request handlers and the background scan, so the event list is
guarded by a lock.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from rhythm.models.rhythm_event import RhythmEvent

logger = logging.getLogger(__name__)

Subscriber = Callable[[RhythmEvent], None]


class EventBus:
    """Records emitted events and forwards them to subscribers."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or datetime.now
        self._events: List[RhythmEvent] = []
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def emit(self, key: str) -> RhythmEvent:
        now = self._clock()
        event = RhythmEvent(key=key, timestamp=now, event_date=now.date())
        with self._lock:
            self._prune(now)
            self._events.append(event)
        logger.debug(f"Emitted event {key}")
        for callback in list(self._subscribers):
            callback(event)
        return event

    def emit_scoped(self, name: str, child_id: str) -> None:
        """Emit ``name`` and ``name:<child_id>``."""
        self.emit(name)
        self.emit(f"{name}:{child_id}")

    def has_fired(self, key: str) -> bool:
        return self.event_timestamp(key) is not None

    def event_timestamp(self, key: str) -> Optional[datetime]:
        today = self._clock().date()
        with self._lock:
            events = list(self._events)
        for e in events:
            if e.event_date == today and e.key == key:
                return e.timestamp
        return None

    def events_today(self) -> List[RhythmEvent]:
        today = self._clock().date()
        with self._lock:
            return [e for e in self._events if e.event_date == today]

    def clear(self) -> None:
        with self._lock:
            self._events = []

    def _prune(self, now: datetime) -> None:
        """Drop old events. Caller holds the lock."""
        # Keep yesterday too: trigger delays may span midnight.
        yesterday = (now - timedelta(days=1)).date()
        self._events = [e for e in self._events if e.event_date >= yesterday]
