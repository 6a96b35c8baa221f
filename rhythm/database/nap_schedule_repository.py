"""Repository for NapSchedule database operations."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from rhythm.database.models import NapScheduleDB
from rhythm.models.nap_schedule import NapSchedule

logger = logging.getLogger(__name__)


class NapScheduleRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, schedule: NapSchedule) -> NapSchedule:
        try:
            row = NapScheduleDB.from_pydantic(schedule)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Added nap schedule {schedule.id} for child {schedule.child_id}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to add nap schedule {schedule.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, schedule_id: str) -> Optional[NapSchedule]:
        row = self.db.query(NapScheduleDB).filter(NapScheduleDB.id == schedule_id).first()
        return row.to_pydantic() if row else None

    def list(self) -> List[NapSchedule]:
        rows = (
            self.db.query(NapScheduleDB)
            .order_by(NapScheduleDB.child_id, NapScheduleDB.nap_number)
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def list_for_child(self, child_id: str) -> List[NapSchedule]:
        """Schedules for a child, first nap first."""
        rows = (
            self.db.query(NapScheduleDB)
            .filter(NapScheduleDB.child_id == child_id)
            .order_by(NapScheduleDB.nap_number)
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def remove(self, schedule_id: str) -> bool:
        row = self.db.query(NapScheduleDB).filter(NapScheduleDB.id == schedule_id).first()
        if row is None:
            return False
        try:
            self.db.delete(row)
            self.db.commit()
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to remove nap schedule {schedule_id}: {type(e).__name__}: {str(e)}")
            raise
