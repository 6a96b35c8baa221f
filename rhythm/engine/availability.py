"""Availability derivation for Rhythm.

Combines the care blocks in effect with the live sleep/away logs into a single
availability state. Rules are evaluated top to bottom; the first match wins:

1. UNAVAILABLE: the caregiver is in a travel buffer of a block in effect, or a
   block in effect maps to unavailable (appointment, activity).
2. FREE: a free block (childcare, babysitter) is in effect and every child is
   covered by one and currently away.
3. QUIET: at least one child is asleep and every other child is away under a
   free block, or every child is covered by a sleep-scheduled block.
4. PARENTING: everything else, including a household with no children.
"""

from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional

from rhythm.models.availability import AvailabilitySnapshot, AvailabilityState, ChildStatus
from rhythm.models.care_block import BlockCategory, CareBlock
from rhythm.recurrence.resolver import TimeLike, in_travel_buffer

ChildPredicate = Callable[[str], bool]

CATEGORY_AVAILABILITY = {
    BlockCategory.CHILDCARE: AvailabilityState.FREE,
    BlockCategory.BABYSITTER: AvailabilityState.FREE,
    BlockCategory.APPOINTMENT: AvailabilityState.UNAVAILABLE,
    BlockCategory.ACTIVITY: AvailabilityState.UNAVAILABLE,
    BlockCategory.SLEEP_SCHEDULED: AvailabilityState.QUIET,
}


def availability_for_category(category) -> AvailabilityState:
    """Map a block category to the availability it creates (parenting if unknown)."""
    try:
        return CATEGORY_AVAILABILITY[BlockCategory(category)]
    except (KeyError, ValueError):
        return AvailabilityState.PARENTING


def _covered(child_id: str, blocks: Iterable[CareBlock]) -> bool:
    return any(child_id in block.child_ids for block in blocks)


def resolve_availability(
    child_ids: List[str],
    blocks: List[CareBlock],
    current: TimeLike,
    *,
    is_away: Optional[ChildPredicate] = None,
    is_asleep: Optional[ChildPredicate] = None,
) -> AvailabilityState:
    """Apply the priority rules to the blocks in effect at ``current``.

    Without ``is_away``/``is_asleep`` the result is block-based only: block
    membership counts as coverage and the live away-or-asleep rule is skipped.
    """
    known = set(child_ids)
    # Blocks without any known child are inert.
    blocks = [block for block in blocks if known.intersection(block.child_ids)]

    for block in blocks:
        if in_travel_buffer(block, current):
            return AvailabilityState.UNAVAILABLE
        if availability_for_category(block.category) == AvailabilityState.UNAVAILABLE:
            return AvailabilityState.UNAVAILABLE

    if not child_ids:
        return AvailabilityState.PARENTING

    free_blocks = [b for b in blocks if availability_for_category(b.category) == AvailabilityState.FREE]
    if free_blocks and all(
        _covered(child_id, free_blocks) and (is_away is None or is_away(child_id))
        for child_id in child_ids
    ):
        return AvailabilityState.FREE

    if is_away is not None and is_asleep is not None:
        asleep = [child_id for child_id in child_ids if is_asleep(child_id)]
        if asleep and all(
            child_id in asleep or (_covered(child_id, free_blocks) and is_away(child_id))
            for child_id in child_ids
        ):
            return AvailabilityState.QUIET

    sleep_blocks = [b for b in blocks if availability_for_category(b.category) == AvailabilityState.QUIET]
    if sleep_blocks and all(_covered(child_id, sleep_blocks) for child_id in child_ids):
        return AvailabilityState.QUIET

    return AvailabilityState.PARENTING


class AvailabilityEngine:
    """Derives the household's availability from its collaborators."""

    def __init__(self, children, care_blocks, sleep_logs, away_logs, clock: Optional[Callable[[], datetime]] = None):
        self.children = children
        self.care_blocks = care_blocks
        self.sleep_logs = sleep_logs
        self.away_logs = away_logs
        self._clock = clock or datetime.now

    def _child_ids(self) -> List[str]:
        return [child.id for child in self.children.list()]

    def current_availability(self) -> AvailabilityState:
        """Live availability: blocks in effect now plus the open sleep/away logs."""
        now = self._clock()
        return resolve_availability(
            self._child_ids(),
            self.care_blocks.active_at(now.date(), now.time()),
            now.time(),
            is_away=self.away_logs.is_active,
            is_asleep=self.sleep_logs.is_active,
        )

    def availability_at(self, on_date: date, at: TimeLike) -> AvailabilityState:
        """Forward-looking availability from care block data only."""
        return resolve_availability(self._child_ids(), self.care_blocks.active_at(on_date, at), at)

    def child_status(self, child_id: str) -> ChildStatus:
        if self.sleep_logs.is_active(child_id):
            return ChildStatus.ASLEEP
        if self.away_logs.is_active(child_id):
            return ChildStatus.AWAY
        return ChildStatus.HOME

    def child_statuses(self) -> Dict[str, ChildStatus]:
        return {child_id: self.child_status(child_id) for child_id in self._child_ids()}

    def snapshot(self) -> AvailabilitySnapshot:
        now = self._clock()
        return AvailabilitySnapshot(
            state=self.current_availability(),
            at=now,
            active_blocks=self.care_blocks.active_at(now.date(), now.time()),
            children=self.child_statuses(),
        )


def is_free_category(category) -> bool:
    return availability_for_category(category) == AvailabilityState.FREE
