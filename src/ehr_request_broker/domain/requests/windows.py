"""Rolling time windows used by admission control and cache lookup.

All functions are pure: they take the current time explicitly and return
a ``(from, to)`` pair of datetimes, inclusive on both ends.
"""

from datetime import datetime, timedelta
from typing import Callable, Tuple

Clock = Callable[[], datetime]
TimeWindow = Tuple[datetime, datetime]


def hours_window(now: datetime, hours: int) -> TimeWindow:
    """Window covering the ``hours`` hours up to ``now``.

    Parameters
    ----------
    now : datetime
        End of the window
    hours : int
        Width of the window in hours, must not be negative

    Returns
    -------
    TimeWindow
        ``(now - hours, now)``

    Raises
    ------
    ValueError
        If ``hours`` is negative

    Examples
    --------
    >>> hours_window(datetime(2024, 1, 2, 12), 24)
    (datetime.datetime(2024, 1, 1, 12, 0), datetime.datetime(2024, 1, 2, 12, 0))
    """
    if hours < 0:
        raise ValueError(f"Window width must not be negative: {hours}")
    return now - timedelta(hours=hours), now


def days_window(now: datetime, days: int) -> TimeWindow:
    """Window covering the ``days`` days up to ``now``."""
    if days < 0:
        raise ValueError(f"Window width must not be negative: {days}")
    return now - timedelta(days=days), now


def is_older_than(timestamp: datetime, now: datetime, hours: int) -> bool:
    """Check whether ``timestamp`` lies more than ``hours`` before ``now``."""
    return timestamp < now - timedelta(hours=hours)
