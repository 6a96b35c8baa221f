"""Constants for Rhythm.

This module centralizes all magic numbers and default values used by the engine.
"""

from datetime import timedelta


# Auto-expiry ceilings for open sleep logs
NAP_CEILING = timedelta(hours=3)
NIGHT_CEILING = timedelta(hours=14)

# Fallback durations used when closing an expired sleep log
NAP_FALLBACK_DURATION = timedelta(hours=2)
NIGHT_FALLBACK_DURATION = timedelta(hours=11)

# Pending transitions auto-confirm after 30 minutes
AUTO_CONFIRM_MS = 30 * 60 * 1000

# Transition detector scan interval
TRANSITION_SCAN_INTERVAL_MINUTES = 5

# Minutes in a day (time-of-day arithmetic)
MINUTES_PER_DAY = 24 * 60

# Day-of-week convention: 0=Sunday ... 6=Saturday
SUNDAY = 0
SATURDAY = 6

# "weekly" recurrence fires on this day unless the block says otherwise
DEFAULT_WEEKLY_DAY = SUNDAY
