"""Reading streak calculation.

All day arithmetic uses UTC calendar days. Check-ins are stamped with
`utc_today()` at write time and streaks are measured against the same
clock at read time.
"""

from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone

ONE_DAY = timedelta(days=1)


def utc_today() -> date:
    """Current UTC calendar day."""
    return datetime.now(timezone.utc).date()


def to_utc_day(value: date | datetime) -> date:
    """Truncate a date or datetime to its UTC calendar day.

    Naive datetimes are assumed to already be UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def compute_streak(dates: Iterable[date | datetime], today: date | None = None) -> int:
    """Consecutive-day streak ending today or yesterday (UTC).

    A streak whose most recent day is older than yesterday is broken and
    counts as 0; it resets rather than decays.

    Args:
        dates: Check-in days for one member, any order
        today: Reference day (defaults to the current UTC day)

    Returns:
        Number of consecutive days in the current run
    """
    today = today or utc_today()

    days = sorted(
        {d for d in (to_utc_day(v) for v in dates) if d <= today},
        reverse=True,
    )
    if not days:
        return 0

    most_recent = days[0]
    if most_recent != today and most_recent != today - ONE_DAY:
        return 0

    streak = 0
    expected = most_recent
    for day in days:
        if day == expected:
            streak += 1
            expected -= ONE_DAY
        elif day < expected:
            break

    return streak
