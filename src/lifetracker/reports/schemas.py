"""Pydantic schemas for cross-entity reports."""

from typing import Optional

from pydantic import BaseModel, Field

from ..engine.schemas import (
    CategoryCount,
    DeadlineEntry,
    HeatmapDay,
    HeatmapSummary,
    MonthlyBucket,
    Overview,
    ReadingOverview,
    RecentActivity,
)


class HomeDashboard(BaseModel):
    """Goals, projects and reading on one page."""

    year: int

    # Current status
    overview: Overview
    goals: Overview
    projects: Overview
    reading: Overview
    reading_stats: ReadingOverview
    reading_streak: int = 0

    # Rollups
    top_categories: list[CategoryCount] = Field(default_factory=list)
    recent_activity: RecentActivity
    upcoming_deadlines: list[DeadlineEntry] = Field(default_factory=list)
    overdue: list[DeadlineEntry] = Field(default_factory=list)
    monthly_breakdown: list[MonthlyBucket] = Field(default_factory=list)

    # Mini charts data
    heatmap: list[HeatmapDay] = Field(default_factory=list)
    heatmap_summary: HeatmapSummary
    favorite_genre: Optional[str] = None
