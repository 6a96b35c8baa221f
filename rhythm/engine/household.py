"""Wires one household's repositories and engines together.

Everything shares a single SQLAlchemy session, clock and event bus, so a
Household is cheap to build per request or per scheduled scan.
"""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from rhythm.database.care_block_repository import CareBlockRepository
from rhythm.database.care_log_repository import AwayLogRepository, SleepLogRepository
from rhythm.database.child_repository import ChildRepository
from rhythm.database.nap_schedule_repository import NapScheduleRepository
from rhythm.database.transition_repository import TransitionRepository
from rhythm.engine.availability import AvailabilityEngine
from rhythm.engine.transitions import TransitionDetector
from rhythm.events.bus import EventBus


class Household:
    def __init__(
        self,
        db: Session,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        bus: Optional[EventBus] = None,
    ):
        self.db = db
        self.clock = clock or datetime.now
        self.bus = bus if bus is not None else EventBus(clock=self.clock)

        self.children = ChildRepository(db)
        self.nap_schedules = NapScheduleRepository(db)
        self.care_blocks = CareBlockRepository(db, clock=self.clock)
        self.sleep_logs = SleepLogRepository(
            db,
            clock=self.clock,
            bus=self.bus,
            nap_schedules=self.nap_schedules,
            children=self.children,
        )
        self.away_logs = AwayLogRepository(db, clock=self.clock, bus=self.bus)
        self.transition_store = TransitionRepository(db)

        self.availability = AvailabilityEngine(
            self.children, self.care_blocks, self.sleep_logs, self.away_logs, clock=self.clock
        )
        self.detector = TransitionDetector(
            children=self.children,
            care_blocks=self.care_blocks,
            nap_schedules=self.nap_schedules,
            sleep_logs=self.sleep_logs,
            away_logs=self.away_logs,
            transitions=self.transition_store,
            bus=self.bus,
            clock=self.clock,
        )
