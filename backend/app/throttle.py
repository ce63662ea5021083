"""Throttle gate between consecutive notifications of one record."""

from datetime import datetime, timedelta
from typing import Optional

DEFAULT_THROTTLE_MINUTES = 10


def may_notify(
    last_notified_at: Optional[datetime],
    now: datetime,
    window_minutes: int = DEFAULT_THROTTLE_MINUTES,
) -> bool:
    """Check whether enough time has passed since the last notification.

    Args:
        last_notified_at: When the record was last notified (None if never)
        now: Current time
        window_minutes: Minimum minutes between notifications

    Returns:
        False only if the last notification falls inside the window
    """
    if last_notified_at is None:
        return True
    return now - last_notified_at >= timedelta(minutes=window_minutes)
