"""Dashboard aggregation over already-loaded entities.

Functions here never touch the database. Each accepts an empty collection and
returns zeroed or empty results for it.
"""

import calendar
from collections import Counter, defaultdict
from typing import Iterable, Optional, Sequence

from ..clock import DateLike, as_date, as_utc
from ..db.schemas import (
    ChildItemResponse,
    EntityKind,
    EntitySummary,
    OverlayStatus,
    ReadingStatus,
    ReadingType,
    lifecycle_for,
)
from .schemas import (
    CategoryCount,
    ChildStats,
    DeadlineEntry,
    GenreTrend,
    HeatmapDay,
    HeatmapSummary,
    MonthlyBucket,
    Overview,
    ReadingOverview,
    RecentActivity,
    YearlyGoalProgress,
)
from .status import DEFAULT_POLICY, StatusPolicy, assess
from .timeline import (
    days_overdue,
    days_until,
    longest_streak,
    reading_streak,
    round_half_up,
)


def _average(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return round_half_up(sum(values) / len(values), 1)


def _same_month(value: Optional[DateLike], now: DateLike) -> bool:
    if value is None:
        return False
    value, now = as_utc(value), as_utc(now)
    return value.year == now.year and value.month == now.month


# ============================================================================
# Counts
# ============================================================================


def overview(
    entities: Iterable, now: DateLike, policy: StatusPolicy = DEFAULT_POLICY
) -> Overview:
    """Count entities by derived status.

    ``completed``, ``in_progress``, ``not_started``, ``held`` and ``cancelled``
    map each kind's own vocabulary (e.g. ``achieved``, ``on_hold``,
    ``abandoned``) onto one scale, so the buckets always sum to ``total``.
    """
    result = Overview()
    by_status: Counter = Counter()

    for entity in entities:
        _, status = assess(entity, now, policy)
        lifecycle = lifecycle_for(entity.kind)
        derived = status.derived_status

        result.total += 1
        by_status[derived] += 1
        if derived == lifecycle.success:
            result.completed += 1
        elif derived == lifecycle.active:
            result.in_progress += 1
        elif derived == lifecycle.initial:
            result.not_started += 1
        elif derived == OverlayStatus.OVERDUE.value:
            result.overdue += 1
        elif derived == OverlayStatus.AT_RISK.value:
            result.at_risk += 1
        elif derived == lifecycle.held:
            result.held += 1
        elif derived == lifecycle.cancelled:
            result.cancelled += 1

    result.by_status = dict(by_status)
    return result


def top_categories(entities: Iterable, limit: int = 5) -> list[CategoryCount]:
    """Most used categories, ties broken by name."""
    counts = Counter(entity.category for entity in entities if entity.category)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [CategoryCount(category=name, count=count) for name, count in ranked[:limit]]


def recent_activity(entities: Iterable, now: DateLike) -> RecentActivity:
    """Entities created and completed in the month of ``now``."""
    result = RecentActivity()
    for entity in entities:
        if _same_month(entity.created_at, now):
            result.created_this_month += 1
        if _same_month(entity.completed_at, now):
            result.completed_this_month += 1
    return result


# ============================================================================
# Trends
# ============================================================================


def genre_trends(
    readings: Iterable, since: Optional[DateLike] = None
) -> list[GenreTrend]:
    """Completed reading grouped by genre, most read first.

    Args:
        readings: Reading items
        since: Only count items completed at or after this time

    Returns:
        One GenreTrend per genre with at least one completion
    """
    since = as_utc(since)
    groups: dict[str, list] = defaultdict(list)
    for item in readings:
        if item.completed_at is None:
            continue
        if since is not None and as_utc(item.completed_at) < since:
            continue
        groups[item.genre].append(item)

    trends = []
    for genre, items in groups.items():
        months: Counter = Counter(
            as_utc(item.completed_at).strftime("%Y-%m") for item in items
        )
        trends.append(
            GenreTrend(
                genre=genre,
                count=len(items),
                total_pages=sum(item.total_pages or 0 for item in items),
                avg_rating=_average([item.rating for item in items if item.rating]),
                months=dict(sorted(months.items())),
            )
        )

    trends.sort(key=lambda t: (-t.count, t.genre))
    return trends


def _type_bucket(item) -> str:
    if item.item_type == ReadingType.BOOK.value:
        return "books"
    if item.item_type == ReadingType.ARTICLE.value:
        return "articles"
    if item.item_type == ReadingType.AUDIOBOOK.value:
        return "audiobooks"
    return "other"


def monthly_breakdown(entities: Iterable, year: int) -> list[MonthlyBucket]:
    """Completions per month of ``year``, always twelve buckets.

    Reading items count under their type (books, articles, audiobooks,
    other); goals and projects count under their kind.
    """
    buckets = [
        MonthlyBucket(month=month, month_name=calendar.month_name[month])
        for month in range(1, 13)
    ]
    ratings: dict[int, list[int]] = defaultdict(list)

    for entity in entities:
        if entity.completed_at is None:
            continue
        completed = as_utc(entity.completed_at)
        if completed.year != year:
            continue

        bucket = buckets[completed.month - 1]
        bucket.total_count += 1
        kind = EntityKind(entity.kind)
        if kind == EntityKind.GOAL:
            bucket.goals += 1
        elif kind == EntityKind.PROJECT:
            bucket.projects += 1
        else:
            field = _type_bucket(entity)
            setattr(bucket, field, getattr(bucket, field) + 1)
            bucket.total_pages += entity.total_pages or entity.current_page or 0
            if entity.rating:
                ratings[completed.month].append(entity.rating)

    for month, values in ratings.items():
        buckets[month - 1].avg_rating = _average(values)

    return buckets


# ============================================================================
# Heatmap
# ============================================================================


def _intensity(value: int, maximum: int) -> int:
    if maximum <= 0 or value < maximum * 0.25:
        return 1
    if value < maximum * 0.5:
        return 2
    if value < maximum * 0.75:
        return 3
    return 4


def heatmap(readings: Iterable, year: int) -> list[HeatmapDay]:
    """Per-day reading activity for ``year``, only days with a session.

    Intensity is the quartile of the day's minutes against the busiest day of
    the year; days logged with pages but no minutes are scaled by pages.
    """
    daily: dict = defaultdict(
        lambda: {"minutes": 0, "pages": 0, "sessions": 0, "items": set()}
    )

    for item in readings:
        for session in item.sessions:
            day = as_date(session.date)
            if day.year != year:
                continue
            data = daily[day]
            data["minutes"] += session.duration_minutes or 0
            data["pages"] += session.pages_read or 0
            data["sessions"] += 1
            data["items"].add(item.id)

    max_minutes = max((d["minutes"] for d in daily.values()), default=0)
    max_pages = max((d["pages"] for d in daily.values()), default=0)

    entries = []
    for day in sorted(daily):
        data = daily[day]
        if data["minutes"] > 0:
            intensity = _intensity(data["minutes"], max_minutes)
        else:
            intensity = _intensity(data["pages"], max_pages)
        entries.append(
            HeatmapDay(
                date=day,
                value=data["minutes"],
                pages=data["pages"],
                sessions=data["sessions"],
                items=len(data["items"]),
                intensity=intensity,
            )
        )
    return entries


def heatmap_summary(entries: Sequence[HeatmapDay], today: DateLike) -> HeatmapSummary:
    """Totals and streaks across heatmap entries."""
    if not entries:
        return HeatmapSummary()

    total_minutes = sum(e.value for e in entries)
    dates = [e.date for e in entries]
    return HeatmapSummary(
        active_days=len(entries),
        total_minutes=total_minutes,
        total_pages=sum(e.pages for e in entries),
        total_sessions=sum(e.sessions for e in entries),
        average_minutes_per_day=round_half_up(total_minutes / len(entries), 1),
        longest_streak=longest_streak(dates),
        current_streak=reading_streak(dates, today, lookback_days=366),
    )


# ============================================================================
# Deadlines
# ============================================================================


def _open_with_deadline(entities: Iterable, now: DateLike, policy: StatusPolicy):
    for entity in entities:
        if entity.target_date is None:
            continue
        if entity.status in lifecycle_for(entity.kind).terminal:
            continue
        progress, status = assess(entity, now, policy)
        if progress >= 100:
            continue
        yield entity, progress, status


def upcoming_deadlines(
    entities: Iterable,
    now: DateLike,
    limit: int = 5,
    policy: StatusPolicy = DEFAULT_POLICY,
) -> list[DeadlineEntry]:
    """Open entities whose deadline is still ahead, nearest first."""
    now = as_utc(now)
    entries = [
        DeadlineEntry(
            id=entity.id,
            kind=entity.kind,
            title=entity.title,
            target_date=as_utc(entity.target_date),
            progress=progress,
            derived_status=status.derived_status,
            days_until_deadline=days_until(entity.target_date, now),
        )
        for entity, progress, status in _open_with_deadline(entities, now, policy)
        if as_utc(entity.target_date) >= now
    ]
    entries.sort(key=lambda e: e.target_date)
    return entries[:limit]


def overdue_items(
    entities: Iterable,
    now: DateLike,
    limit: int = 5,
    policy: StatusPolicy = DEFAULT_POLICY,
) -> list[DeadlineEntry]:
    """Open entities whose deadline has passed, oldest deadline first."""
    now = as_utc(now)
    entries = [
        DeadlineEntry(
            id=entity.id,
            kind=entity.kind,
            title=entity.title,
            target_date=as_utc(entity.target_date),
            progress=progress,
            derived_status=status.derived_status,
            days_overdue=days_overdue(entity.target_date, now),
        )
        for entity, progress, status in _open_with_deadline(entities, now, policy)
        if status.is_overdue
    ]
    entries.sort(key=lambda e: e.target_date)
    return entries[:limit]


# ============================================================================
# Reading
# ============================================================================


def reading_overview(
    readings: Iterable, now: DateLike, yearly_goal: int = 52
) -> ReadingOverview:
    """Reading counts and yearly goal progress.

    Only books count toward the yearly goal. The expected count assumes an
    even pace across the twelve months.
    """
    readings = list(readings)
    now = as_utc(now)
    month_index = now.month  # months elapsed including the current one

    def completed_in(item, *, month: bool) -> bool:
        if item.completed_at is None:
            return False
        completed = as_utc(item.completed_at)
        if completed.year != now.year:
            return False
        return not month or completed.month == now.month

    books = [r for r in readings if r.item_type == ReadingType.BOOK.value]
    status_counts = Counter(r.status for r in readings)
    books_this_year = sum(1 for b in books if completed_in(b, month=False))

    expected = int(round_half_up(yearly_goal / 12 * month_index)) if yearly_goal else 0
    goal = YearlyGoalProgress(
        target=yearly_goal,
        current=books_this_year,
        expected=expected,
        percentage_complete=(
            int(round_half_up(books_this_year / yearly_goal * 100)) if yearly_goal else 0
        ),
        on_track=books_this_year >= expected,
        projected_total=int(round_half_up(books_this_year / month_index * 12)),
    )

    return ReadingOverview(
        total=len(readings),
        total_books=len(books),
        books_read=sum(1 for b in books if b.status == ReadingStatus.COMPLETED.value),
        to_read=status_counts.get(ReadingStatus.TO_READ.value, 0),
        currently_reading=status_counts.get(ReadingStatus.READING.value, 0),
        completed=status_counts.get(ReadingStatus.COMPLETED.value, 0),
        on_hold=status_counts.get(ReadingStatus.ON_HOLD.value, 0),
        abandoned=status_counts.get(ReadingStatus.ABANDONED.value, 0),
        this_year=sum(1 for r in readings if completed_in(r, month=False)),
        books_this_year=books_this_year,
        this_month=sum(1 for r in readings if completed_in(r, month=True)),
        books_this_month=sum(1 for b in books if completed_in(b, month=True)),
        total_pages=sum(r.total_pages or 0 for r in readings),
        pages_read=sum(r.current_page or 0 for r in readings),
        avg_books_per_month=round_half_up(books_this_year / month_index, 1),
        goal_progress=goal,
    )


# ============================================================================
# Per-entity Summaries
# ============================================================================


def child_overdue(item, now: DateLike) -> bool:
    """Whether an open step or milestone is past its due date."""
    if item.completed or item.due_date is None:
        return False
    return as_utc(now) > as_utc(item.due_date)


def child_stats(items: Iterable, now: DateLike) -> ChildStats:
    """Counts over roadmap steps or milestones."""
    items = list(items)
    completed = sum(1 for item in items if item.completed)
    return ChildStats(
        total=len(items),
        completed=completed,
        pending=len(items) - completed,
        overdue=sum(1 for item in items if child_overdue(item, now)),
    )


def entity_summary(
    entity, now: DateLike, policy: StatusPolicy = DEFAULT_POLICY
) -> EntitySummary:
    """Listing row for any trackable entity."""
    progress, status = assess(entity, now, policy)
    return EntitySummary(
        id=entity.id,
        kind=entity.kind,
        title=entity.title,
        category=entity.category,
        priority=entity.priority,
        stored_status=status.stored_status,
        calculated_status=status.derived_status,
        progress=progress,
        is_overdue=status.is_overdue,
        target_date=as_utc(entity.target_date),
    )


def child_responses(items: Iterable, now: DateLike) -> list[ChildItemResponse]:
    """Steps or milestones as response rows, flagged when overdue."""
    rows = []
    for item in sorted(items, key=lambda i: i.order):
        row = ChildItemResponse.model_validate(item)
        row.is_overdue = child_overdue(item, now)
        rows.append(row)
    return rows
