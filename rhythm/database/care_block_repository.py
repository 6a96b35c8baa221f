"""Repository for CareBlock database operations.

Besides CRUD, this is the care block registry the engine queries: which blocks
occur on a date, which are in effect right now, and the travel-buffer edges.
"""

import logging
from datetime import date, datetime, time
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from rhythm.database.models import CareBlockDB
from rhythm.models.care_block import CareBlock
from rhythm.recurrence.resolver import TimeLike, block_occurs_on, in_effective_window, shift_time

logger = logging.getLogger(__name__)


class CareBlockRepository:
    """Repository for CareBlock database operations."""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self._clock = clock or datetime.now

    def _row(self, block_id: str) -> Optional[CareBlockDB]:
        return self.db.query(CareBlockDB).filter(CareBlockDB.id == block_id).first()

    def add(self, block: CareBlock) -> CareBlock:
        """Store a new care block."""
        try:
            row = CareBlockDB.from_pydantic(block)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Added care block {block.id}: {block.name}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to add care block {block.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, block_id: str) -> Optional[CareBlock]:
        row = self._row(block_id)
        return row.to_pydantic() if row else None

    def list(self) -> List[CareBlock]:
        rows = self.db.query(CareBlockDB).order_by(CareBlockDB.start_time, CareBlockDB.name).all()
        return [row.to_pydantic() for row in rows]

    def list_for_child(self, child_id: str) -> List[CareBlock]:
        return [block for block in self.list() if child_id in block.child_ids]

    def update(self, block_id: str, **changes) -> Optional[CareBlock]:
        """Apply partial changes; the merged block is re-validated before saving.

        Returns None if the block does not exist.
        """
        row = self._row(block_id)
        if row is None:
            return None
        merged = {**row.to_pydantic().model_dump(), **changes, "id": block_id}
        updated = CareBlock.model_validate(merged)
        row.apply(updated)
        try:
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update care block {block_id}: {type(e).__name__}: {str(e)}")
            raise

    def remove(self, block_id: str) -> bool:
        row = self._row(block_id)
        if row is None:
            return False
        try:
            self.db.delete(row)
            self.db.commit()
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to remove care block {block_id}: {type(e).__name__}: {str(e)}")
            raise

    def replace_all(self, blocks: List[CareBlock]) -> List[CareBlock]:
        """Replace every stored block (used when restoring a saved household)."""
        try:
            self.db.query(CareBlockDB).delete()
            rows = [CareBlockDB.from_pydantic(block) for block in blocks]
            self.db.add_all(rows)
            self.db.commit()
            logger.debug(f"Replaced care blocks with {len(rows)} blocks")
            return [row.to_pydantic() for row in rows]
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to replace care blocks: {type(e).__name__}: {str(e)}")
            raise

    def active_on(self, on_date: date) -> List[CareBlock]:
        """Active blocks whose recurrence fires on ``on_date``."""
        return [block for block in self.list() if block.is_active and block_occurs_on(block, on_date)]

    def active_at(self, on_date: date, at: TimeLike) -> List[CareBlock]:
        """Blocks occurring on ``on_date`` whose buffered window contains ``at``."""
        return [block for block in self.active_on(on_date) if in_effective_window(block, at)]

    def active_now(self) -> List[CareBlock]:
        now = self._clock()
        return self.active_at(now.date(), now.time())

    @staticmethod
    def leave_by_time(block: CareBlock) -> Optional[time]:
        """When to leave for the block, or None without a travel-before buffer."""
        if not block.travel_before_min:
            return None
        return shift_time(block.start_time, -block.travel_before_min)

    @staticmethod
    def return_time(block: CareBlock) -> Optional[time]:
        """When the caregiver is back, or None without a travel-after buffer."""
        if not block.travel_after_min:
            return None
        return shift_time(block.end_time, block.travel_after_min)
