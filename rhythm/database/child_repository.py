"""Repository for Child database operations (the household's child registry)."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from rhythm.database.models import ChildDB
from rhythm.models.child import Child

logger = logging.getLogger(__name__)


class ChildRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, child: Child) -> Child:
        try:
            row = ChildDB.from_pydantic(child)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Added child {child.id}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to add child {child.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, child_id: str) -> Optional[Child]:
        row = self.db.query(ChildDB).filter(ChildDB.id == child_id).first()
        return row.to_pydantic() if row else None

    def list(self) -> List[Child]:
        rows = self.db.query(ChildDB).order_by(ChildDB.birthdate, ChildDB.name).all()
        return [row.to_pydantic() for row in rows]

    def update(self, child: Child) -> Optional[Child]:
        row = self.db.query(ChildDB).filter(ChildDB.id == child.id).first()
        if row is None:
            return None
        row.name = child.name
        row.birthdate = child.birthdate
        row.is_napping_age = child.is_napping_age
        row.bedtime = child.bedtime
        row.wake_time = child.wake_time
        try:
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update child {child.id}: {type(e).__name__}: {str(e)}")
            raise

    def remove(self, child_id: str) -> bool:
        row = self.db.query(ChildDB).filter(ChildDB.id == child_id).first()
        if row is None:
            return False
        try:
            self.db.delete(row)
            self.db.commit()
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to remove child {child_id}: {type(e).__name__}: {str(e)}")
            raise
