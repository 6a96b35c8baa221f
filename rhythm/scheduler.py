"""Background transition scan for Rhythm.

Runs the transition detector on a fixed interval with its own database session
per run. The job never overlaps itself; missed runs are coalesced.
"""

import logging
import os
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from rhythm.database.database import SessionLocal, session_scope
from rhythm.engine.household import Household
from rhythm.events.bus import EventBus
from rhythm.models.constants import TRANSITION_SCAN_INTERVAL_MINUTES

logger = logging.getLogger(__name__)

TRANSITION_SCAN_JOB_ID = "transition_scan"

# Global scheduler instance
scheduler = BackgroundScheduler()


def scan_interval_minutes() -> int:
    return int(os.getenv("TRANSITION_SCAN_INTERVAL_MIN", str(TRANSITION_SCAN_INTERVAL_MINUTES)))


def run_transition_scan(session_factory: Callable = SessionLocal, bus: Optional[EventBus] = None) -> int:
    """Run one detector scan. Returns the number of transitions created."""
    with session_scope(session_factory) as db:
        try:
            created = Household(db, bus=bus).detector.check_for_transitions()
        except Exception as e:
            logger.error(f"Transition scan failed: {type(e).__name__}: {str(e)}")
            raise
    if created:
        logger.info(f"Transition scan created {len(created)} transition(s)")
    return len(created)


def start_scheduler(bus: Optional[EventBus] = None) -> None:
    """Register the scan job and start the background scheduler."""
    scheduler.add_job(
        func=run_transition_scan,
        trigger=IntervalTrigger(minutes=scan_interval_minutes()),
        kwargs={"bus": bus},
        id=TRANSITION_SCAN_JOB_ID,
        name="Transition scan",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    if not scheduler.running:
        scheduler.start()
        logger.info(f"Transition scan scheduled every {scan_interval_minutes()} minutes")


def stop_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
