"""Pydantic schemas for computed analytics."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..db.schemas import EntityKind


# ============================================================================
# Detail Analytics
# ============================================================================


class TimeMetrics(BaseModel):
    """Time analytics for one entity."""

    days_active: int = 0
    days_until_deadline: Optional[int] = None
    progress_rate: float = 0.0
    estimated_completion: Optional[datetime] = None
    is_on_track: bool = True


class ChildStats(BaseModel):
    """Counts over a goal's steps or a project's milestones."""

    total: int = 0
    completed: int = 0
    pending: int = 0
    overdue: int = 0


# ============================================================================
# Dashboard Aggregates
# ============================================================================


class Overview(BaseModel):
    """Counts by derived status."""

    total: int = 0
    completed: int = 0
    in_progress: int = 0
    not_started: int = 0
    overdue: int = 0
    at_risk: int = 0
    held: int = 0
    cancelled: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)


class CategoryCount(BaseModel):
    """Number of entities in one category."""

    category: str
    count: int


class GenreTrend(BaseModel):
    """Completed reading grouped by genre."""

    genre: str
    count: int
    total_pages: int = 0
    avg_rating: float = 0.0
    months: dict[str, int] = Field(default_factory=dict)  # "YYYY-MM" -> count


class MonthlyBucket(BaseModel):
    """Completions in one calendar month."""

    month: int = Field(ge=1, le=12)
    month_name: str
    total_count: int = 0
    books: int = 0
    articles: int = 0
    audiobooks: int = 0
    other: int = 0
    goals: int = 0
    projects: int = 0
    total_pages: int = 0
    avg_rating: float = 0.0


class HeatmapDay(BaseModel):
    """Reading activity on a single day."""

    date: date
    value: int = 0  # minutes
    pages: int = 0
    sessions: int = 0
    items: int = 0
    intensity: int = Field(ge=1, le=4)  # 1=light, 2=medium, 3=high, 4=very high


class HeatmapSummary(BaseModel):
    """Totals across a heatmap."""

    active_days: int = 0
    total_minutes: int = 0
    total_pages: int = 0
    total_sessions: int = 0
    average_minutes_per_day: float = 0.0
    longest_streak: int = 0
    current_streak: int = 0


class DeadlineEntry(BaseModel):
    """An entity listed by its deadline."""

    id: str
    kind: EntityKind
    title: str
    target_date: datetime
    progress: int
    derived_status: str
    days_until_deadline: Optional[int] = None
    days_overdue: Optional[int] = None


class RecentActivity(BaseModel):
    """Entities created and completed in the current month."""

    created_this_month: int = 0
    completed_this_month: int = 0


class YearlyGoalProgress(BaseModel):
    """Progress toward the yearly book count."""

    target: int
    current: int = 0
    expected: int = 0
    percentage_complete: int = 0
    on_track: bool = True
    projected_total: int = 0


class ReadingOverview(BaseModel):
    """Reading counts, page totals and yearly goal."""

    total: int = 0
    total_books: int = 0
    books_read: int = 0
    to_read: int = 0
    currently_reading: int = 0
    completed: int = 0
    on_hold: int = 0
    abandoned: int = 0
    this_year: int = 0
    books_this_year: int = 0
    this_month: int = 0
    books_this_month: int = 0
    total_pages: int = 0
    pages_read: int = 0
    avg_books_per_month: float = 0.0
    goal_progress: YearlyGoalProgress
