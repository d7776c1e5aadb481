"""Pydantic schemas for reading responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..db.schemas import EntitySummary, SessionResponse
from ..engine.schemas import (
    DeadlineEntry,
    GenreTrend,
    HeatmapDay,
    HeatmapSummary,
    MonthlyBucket,
    Overview,
    ReadingOverview,
    RecentActivity,
    TimeMetrics,
)


class ReadingItemResponse(BaseModel):
    """Stored fields of a reading item."""

    id: str
    title: str
    author: Optional[str] = None
    description: Optional[str] = None
    item_type: str
    genre: str
    priority: str
    status: str
    total_pages: Optional[int] = None
    current_page: int = 0
    average_page_time: float = 3.0
    rating: Optional[int] = None
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    goal_id: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    target_date: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReadingAnalytics(BaseModel):
    """Pace, streak and session figures for one reading item."""

    pages_per_day: float = 0.0  # canonical velocity: current page / days active
    reading_speed: float = 0.0  # pages per hour across timed sessions
    projected_finish: Optional[datetime] = None
    estimated_time_remaining: int = 0  # minutes
    current_streak: int = 0
    longest_streak: int = 0
    average_session_length: int = 0  # minutes
    total_sessions: int = 0
    total_minutes: int = 0
    total_pages_logged: int = 0


class ReadingDetail(BaseModel):
    """A reading item with derived progress, status and analytics."""

    item: ReadingItemResponse
    progress: int
    stored_status: str
    calculated_status: str
    is_overdue: bool
    time_metrics: TimeMetrics
    analytics: ReadingAnalytics
    sessions: list[SessionResponse] = Field(default_factory=list)


class ReadingHeatmap(BaseModel):
    """Calendar heatmap for one year."""

    year: int
    days: list[HeatmapDay] = Field(default_factory=list)
    summary: HeatmapSummary


class ReadingDashboard(BaseModel):
    """Reading dashboard."""

    overview: Overview
    stats: ReadingOverview
    currently_reading: list[EntitySummary] = Field(default_factory=list)
    recently_completed: list[EntitySummary] = Field(default_factory=list)
    genre_trends: list[GenreTrend] = Field(default_factory=list)
    recent_activity: RecentActivity
    upcoming_deadlines: list[DeadlineEntry] = Field(default_factory=list)
    overdue: list[DeadlineEntry] = Field(default_factory=list)
    monthly_breakdown: list[MonthlyBucket] = Field(default_factory=list)
    reading_streak: int = 0
