"""Sync window calculator — pure business logic.

The window is the [start, end) range of event start times for which
channels are kept. With an anchor weekday the start is turned back to the
most recent such weekday, so a job run daily still only keeps channels a
fixed distance ahead of that day.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

NO_ANCHOR = -1


def sunday_weekday(moment: datetime) -> int:
    """Weekday numbered Sunday=0 … Saturday=6."""
    return (moment.weekday() + 1) % 7


@dataclass(frozen=True)
class SyncWindow:
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


def days_since_weekday(weekday: int, anchor: int) -> int:
    """Days to step back from `weekday` to reach `anchor` (0..6)."""
    if weekday >= anchor:
        return weekday - anchor
    return weekday + 7 - anchor


def compute_window(
    now: datetime,
    lookahead: timedelta,
    anchor_weekday: int = NO_ANCHOR,
) -> SyncWindow:
    """Compute the sync window.

    Args:
        now: Current instant (UTC).
        lookahead: Length of the window.
        anchor_weekday: Sunday=0 … Saturday=6, or NO_ANCHOR to start at now.
            The time of day of `now` is kept when stepping back.
    """
    start = now
    if 0 <= anchor_weekday <= 6:
        start = now - timedelta(days=days_since_weekday(sunday_weekday(now), anchor_weekday))
    elif anchor_weekday != NO_ANCHOR:
        raise ValueError(f"anchor_weekday must be -1..6, got {anchor_weekday}")
    return SyncWindow(start=start, end=start + lookahead)
