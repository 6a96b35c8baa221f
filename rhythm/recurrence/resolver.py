"""Recurrence and time-window resolution for Rhythm.

Pure functions, no state. Times are same-day times of day (``HH:mm`` strings or
``datetime.time``); windows never wrap across midnight. Days of week use the
0=Sunday ... 6=Saturday convention throughout.

Inputs are assumed well-formed: validation happens where blocks are created.
"""

from __future__ import annotations

from datetime import date, time
from typing import Iterable, Optional, Tuple, Union

from rhythm.models.care_block import CareBlock, Recurrence
from rhythm.models.constants import DEFAULT_WEEKLY_DAY, MINUTES_PER_DAY, SATURDAY, SUNDAY

TimeLike = Union[str, time]
DateLike = Union[str, date]


def parse_hhmm(value: TimeLike) -> time:
    """Parse ``HH:mm`` (seconds ignored) into a time; times pass through."""
    if isinstance(value, time):
        return value
    hours, minutes = value.split(":")[:2]
    return time(int(hours), int(minutes))


def format_hhmm(value: TimeLike) -> str:
    t = parse_hhmm(value)
    return f"{t.hour:02d}:{t.minute:02d}"


def minute_of_day(value: TimeLike) -> int:
    t = parse_hhmm(value)
    return t.hour * 60 + t.minute


def time_from_minutes(minutes: int) -> time:
    minutes = minutes % MINUTES_PER_DAY
    return time(minutes // 60, minutes % 60)


def day_of_week(d: date) -> int:
    # Python weekday: Monday=0 ... Sunday=6
    return (d.weekday() + 1) % 7


def _as_date(value: Optional[DateLike]) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


def occurs_on(
    rule: Union[Recurrence, str],
    days_override: Optional[Iterable[int]],
    one_off_date: Optional[DateLike],
    on_date: date,
    *,
    specific_days: Optional[Iterable[int]] = None,
    weekly_day: int = DEFAULT_WEEKLY_DAY,
) -> bool:
    """Does a recurring rule fire on ``on_date``?

    - ``one-off`` fires only on its exact date, whatever the weekday.
    - Otherwise a non-empty ``days_override`` wins over the descriptor.
    - ``weekly`` fires on ``weekly_day`` (Sunday unless configured).
    - ``monthly`` fires on the 1st of the month.
    """
    if rule == Recurrence.ONE_OFF:
        return _as_date(one_off_date) == on_date

    dow = day_of_week(on_date)
    override = list(days_override or [])
    if override:
        return dow in override

    if rule == Recurrence.DAILY:
        return True
    if rule == Recurrence.WEEKDAYS:
        return 1 <= dow <= 5
    if rule == Recurrence.WEEKENDS:
        return dow in (SUNDAY, SATURDAY)
    if rule == Recurrence.WEEKLY:
        return dow == weekly_day
    if rule == Recurrence.MONTHLY:
        return on_date.day == 1
    if rule == Recurrence.SPECIFIC_DAYS:
        return dow in list(specific_days or [])
    return False


def block_occurs_on(block: CareBlock, on_date: date) -> bool:
    """Recurrence check for a care block (ignores ``is_active``)."""
    return occurs_on(
        block.recurrence,
        block.days_of_week,
        block.one_off_date,
        on_date,
        specific_days=block.specific_days,
        weekly_day=block.weekly_day,
    )


def is_within_minutes(current: int, start: int, end: int) -> bool:
    return start <= current < end


def is_within(current: TimeLike, start: TimeLike, end: TimeLike) -> bool:
    """Half-open ``[start, end)`` containment using minute-of-day arithmetic."""
    return is_within_minutes(minute_of_day(current), minute_of_day(start), minute_of_day(end))


def shift_time(value: TimeLike, delta_minutes: int) -> time:
    """Shift a time of day, wrapping at 24h (no day carry)."""
    return time_from_minutes(minute_of_day(value) + delta_minutes)


def shift_minutes_clamped(value: TimeLike, delta_minutes: int) -> int:
    """Shift a time of day, clamped to ``[0, 1440]`` instead of wrapping."""
    return max(0, min(MINUTES_PER_DAY, minute_of_day(value) + delta_minutes))


def effective_window(block: CareBlock) -> Tuple[int, int]:
    """Block window widened by its travel buffers, in minutes of day.

    Buffer edges are clamped at midnight so an early block with a long
    leave-by buffer does not wrap into an inverted window.
    """
    start = shift_minutes_clamped(block.start_time, -(block.travel_before_min or 0))
    end = shift_minutes_clamped(block.end_time, block.travel_after_min or 0)
    return start, end


def in_effective_window(block: CareBlock, current: TimeLike) -> bool:
    start, end = effective_window(block)
    return is_within_minutes(minute_of_day(current), start, end)


def in_travel_buffer(block: CareBlock, current: TimeLike) -> bool:
    """True while the caregiver is travelling to or from the block."""
    now_min = minute_of_day(current)
    start, end = effective_window(block)
    if block.travel_before_min and is_within_minutes(now_min, start, minute_of_day(block.start_time)):
        return True
    if block.travel_after_min and is_within_minutes(now_min, minute_of_day(block.end_time), end):
        return True
    return False
