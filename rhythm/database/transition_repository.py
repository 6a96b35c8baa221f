"""Repository for PendingTransition database operations."""

import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rhythm.database.models import PendingTransitionDB, enum_to_value
from rhythm.models.transition import PendingTransition, TransitionKind, TransitionStatus

logger = logging.getLogger(__name__)


class TransitionRepository:
    """Repository for PendingTransition database operations."""

    def __init__(self, db: Session):
        self.db = db

    def _row(self, transition_id: str) -> Optional[PendingTransitionDB]:
        return self.db.query(PendingTransitionDB).filter(PendingTransitionDB.id == transition_id).first()

    def create(self, transition: PendingTransition) -> Optional[PendingTransition]:
        """Store a new transition.

        Returns None when a transition for the same occurrence (kind, child,
        date, block or nap schedule) is already stored.
        """
        try:
            row = PendingTransitionDB.from_pydantic(transition)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Created {row.kind} transition {transition.id} for child {transition.child_id}")
            return row.to_pydantic()
        except IntegrityError:
            self.db.rollback()
            logger.info(
                f"Transition {enum_to_value(transition.kind)} for child {transition.child_id} "
                f"on {transition.scheduled_date.isoformat()} already recorded"
            )
            return None
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create transition {transition.id}: {type(e).__name__}: {str(e)}")
            raise

    def set_applied_log(self, transition_id: str, log_id: str) -> Optional[PendingTransition]:
        row = self._row(transition_id)
        if row is None:
            return None
        try:
            row.applied_log_id = log_id
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update transition {transition_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, transition_id: str) -> bool:
        row = self._row(transition_id)
        if row is None:
            return False
        try:
            self.db.delete(row)
            self.db.commit()
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete transition {transition_id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, transition_id: str) -> Optional[PendingTransition]:
        row = self._row(transition_id)
        return row.to_pydantic() if row else None

    def list_all(self) -> List[PendingTransition]:
        rows = self.db.query(PendingTransitionDB).order_by(PendingTransitionDB.created_at).all()
        return [row.to_pydantic() for row in rows]

    def exists(
        self,
        kind: TransitionKind,
        child_id: str,
        scheduled_date: date,
        block_id: Optional[str] = None,
        nap_schedule_id: Optional[str] = None,
    ) -> bool:
        """Has a transition of this kind been recorded for the date, in any status?"""
        query = self.db.query(PendingTransitionDB).filter(
            PendingTransitionDB.kind == enum_to_value(kind),
            PendingTransitionDB.child_id == child_id,
            PendingTransitionDB.scheduled_date == scheduled_date,
        )
        if block_id is not None:
            query = query.filter(PendingTransitionDB.block_id == block_id)
        if nap_schedule_id is not None:
            query = query.filter(PendingTransitionDB.nap_schedule_id == nap_schedule_id)
        return query.first() is not None

    def pending_for_date(self, on_date: date) -> List[PendingTransition]:
        rows = (
            self.db.query(PendingTransitionDB)
            .filter(
                PendingTransitionDB.status == TransitionStatus.PENDING.value,
                PendingTransitionDB.scheduled_date == on_date,
            )
            .order_by(PendingTransitionDB.created_at)
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def list_pending(self) -> List[PendingTransition]:
        rows = (
            self.db.query(PendingTransitionDB)
            .filter(PendingTransitionDB.status == TransitionStatus.PENDING.value)
            .order_by(PendingTransitionDB.created_at)
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def resolve(
        self, transition_id: str, status: TransitionStatus, resolved_at: datetime
    ) -> Optional[PendingTransition]:
        """Move a pending transition to a terminal status.

        Returns None when the transition is unknown or already resolved.
        """
        row = self._row(transition_id)
        if row is None or row.status != TransitionStatus.PENDING.value:
            return None
        try:
            row.status = enum_to_value(status)
            row.resolved_at = resolved_at
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Transition {transition_id} -> {row.status}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to resolve transition {transition_id}: {type(e).__name__}: {str(e)}")
            raise

    def auto_confirm_stale(self, now: datetime) -> List[PendingTransition]:
        """Flip every pending transition past its deadline to auto-confirmed."""
        stale = [row for row in self.db.query(PendingTransitionDB).filter(
            PendingTransitionDB.status == TransitionStatus.PENDING.value
        ).all() if row.to_pydantic().is_stale(now)]
        if not stale:
            return []
        try:
            for row in stale:
                row.status = TransitionStatus.AUTO_CONFIRMED.value
                row.resolved_at = now
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to auto-confirm transitions: {type(e).__name__}: {str(e)}")
            raise
        return [row.to_pydantic() for row in stale]

    def clear_for_date(self, on_date: date) -> int:
        try:
            deleted_count = (
                self.db.query(PendingTransitionDB)
                .filter(PendingTransitionDB.scheduled_date == on_date)
                .delete()
            )
            self.db.commit()
            logger.debug(f"Deleted {deleted_count} transitions for {on_date.isoformat()}")
            return int(deleted_count)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to clear transitions for {on_date}: {type(e).__name__}: {str(e)}")
            raise
