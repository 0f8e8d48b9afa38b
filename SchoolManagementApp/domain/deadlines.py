"""Pure deadline arithmetic shared by submissions, dashboards and the warning sweep."""

import math
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

ONE_DAY = timedelta(days=1)
DEFAULT_WARNING_DAYS = 5


def days_left(now: datetime, deadline: datetime) -> int:
    """Whole days until ``deadline``, rounded up; negative once it has passed."""
    return math.ceil((deadline - now) / ONE_DAY)


def is_late(submitted_at: datetime, deadline: datetime | None) -> bool:
    """A submission is late when it is committed strictly after the deadline."""
    return bool(deadline and submitted_at > deadline)


def needs_deadline_warning(
    now: datetime,
    deadline: datetime,
    already_submitted: bool,
    window_days: int = DEFAULT_WARNING_DAYS,
) -> bool:
    """True while 0 <= days_left <= window and the student has not turned in work."""
    if already_submitted:
        return False
    return 0 <= days_left(now, deadline) <= window_days


def round_half_up(value: float | Decimal) -> int:
    """Round .5 away from zero (``round()`` would round to even)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
