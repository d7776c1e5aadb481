"""Time and velocity analytics.

Days are counted with ``ceil`` so that any part of a day counts as a day. All
datetimes may be naive (read as UTC) or aware.
"""

import math
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from ..clock import DateLike, as_date, as_utc
from .schemas import TimeMetrics

SECONDS_PER_DAY = 86400


def round_half_up(value: float, digits: int = 0) -> float:
    """Round half away from zero for non-negative values."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def _day_delta(later: DateLike, earlier: DateLike) -> float:
    return (as_utc(later) - as_utc(earlier)).total_seconds() / SECONDS_PER_DAY


# ============================================================================
# Progress Over Time
# ============================================================================


def days_active(started_at: Optional[DateLike], now: DateLike) -> int:
    """Whole days since the entity started, 0 when it never started."""
    if started_at is None:
        return 0
    return max(0, math.ceil(_day_delta(now, started_at)))


def progress_rate(progress: int, active_days: int, digits: Optional[int] = 2) -> float:
    """Percentage points gained per day, unrounded when ``digits`` is None."""
    if active_days <= 0:
        return 0.0
    rate = progress / active_days
    return rate if digits is None else round_half_up(rate, digits)


def estimated_completion(
    progress: int, rate: float, now: DateLike
) -> Optional[datetime]:
    """Date the entity reaches 100% at its current rate, None without a rate."""
    if rate <= 0:
        return None
    remaining = max(0, 100 - progress)
    return as_utc(now) + timedelta(days=remaining / rate)


def is_on_track(
    estimate: Optional[DateLike], target_date: Optional[DateLike]
) -> bool:
    """Whether the estimate lands on or before the deadline.

    Missing either side counts as on track.
    """
    if estimate is None or target_date is None:
        return True
    return as_utc(estimate) <= as_utc(target_date)


def days_until(deadline: Optional[DateLike], now: DateLike) -> Optional[int]:
    """Days left before a deadline; negative once it has passed."""
    if deadline is None:
        return None
    return math.ceil(_day_delta(deadline, now))


def days_overdue(deadline: Optional[DateLike], now: DateLike) -> int:
    """Days since a passed deadline, 0 when not passed or no deadline."""
    if deadline is None:
        return 0
    return max(0, math.ceil(_day_delta(now, deadline)))


def time_metrics(
    progress: int,
    started_at: Optional[DateLike],
    target_date: Optional[DateLike],
    now: DateLike,
) -> TimeMetrics:
    """Bundle the time analytics shown on a detail view."""
    active = days_active(started_at, now)
    rate = progress_rate(progress, active, digits=None)
    estimate = estimated_completion(progress, rate, now)
    return TimeMetrics(
        days_active=active,
        days_until_deadline=days_until(target_date, now),
        progress_rate=round_half_up(rate, 2),
        estimated_completion=estimate,
        is_on_track=is_on_track(estimate, target_date),
    )


def activity_start(
    started_at: Optional[DateLike], session_dates: Iterable[DateLike] = ()
) -> Optional[datetime]:
    """When activity began: explicit start, else the earliest session."""
    if started_at is not None:
        return as_utc(started_at)
    dates = [as_utc(d) for d in session_dates]
    return min(dates) if dates else None


# ============================================================================
# Reading Analytics
# ============================================================================


def reading_velocity(
    current_page: int, active_days: int, digits: Optional[int] = 1
) -> float:
    """Pages per day since the item was started, unrounded when ``digits`` is None."""
    if active_days <= 0 or not current_page or current_page <= 0:
        return 0.0
    velocity = current_page / active_days
    return velocity if digits is None else round_half_up(velocity, digits)


def reading_speed(sessions: Iterable) -> float:
    """Pages per hour across timed sessions, to one decimal."""
    pages = 0
    minutes = 0
    for session in sessions:
        if session.duration_minutes and session.duration_minutes > 0:
            minutes += session.duration_minutes
            pages += session.pages_read or 0
    if minutes == 0:
        return 0.0
    return round_half_up(pages / minutes * 60, 1)


def projected_finish(
    current_page: int,
    total_pages: Optional[int],
    velocity: float,
    now: DateLike,
) -> Optional[datetime]:
    """Date the last page is reached at the current velocity."""
    if not total_pages or velocity <= 0:
        return None
    remaining = max(0, total_pages - (current_page or 0))
    return as_utc(now) + timedelta(days=remaining / velocity)


def estimated_time_remaining(
    current_page: int,
    total_pages: Optional[int],
    average_page_time: Optional[float] = 3.0,
) -> int:
    """Minutes of reading left, 0 when finished or the length is unknown."""
    if not total_pages or (current_page or 0) >= total_pages:
        return 0
    remaining = total_pages - (current_page or 0)
    return int(round_half_up(remaining * (average_page_time or 3.0)))


def reading_streak(
    session_dates: Iterable[DateLike],
    today: DateLike,
    lookback_days: int = 30,
) -> int:
    """Consecutive reading days ending today.

    A day without reading today does not break a run that reaches yesterday.
    Only the last ``lookback_days`` days are inspected.
    """
    days = {as_date(d) for d in session_dates}
    today = as_date(today)
    streak = 0
    for offset in range(lookback_days):
        day = today - timedelta(days=offset)
        if day in days:
            streak += 1
        elif offset > 0:
            break
    return streak


def longest_streak(session_dates: Iterable[DateLike]) -> int:
    """Longest run of consecutive reading days."""
    days = sorted({as_date(d) for d in session_dates})
    longest = 0
    current = 0
    previous: Optional[date] = None
    for day in days:
        if previous is not None and day - previous == timedelta(days=1):
            current += 1
        else:
            current = 1
        longest = max(longest, current)
        previous = day
    return longest


def average_session_length(sessions: Iterable) -> int:
    """Mean session duration in whole minutes."""
    durations = [s.duration_minutes or 0 for s in sessions]
    if not durations:
        return 0
    return int(round_half_up(sum(durations) / len(durations)))
