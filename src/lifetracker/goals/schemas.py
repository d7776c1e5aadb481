"""Pydantic schemas for goal responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..db.schemas import ChildItemResponse, EntitySummary
from ..engine.schemas import (
    CategoryCount,
    ChildStats,
    DeadlineEntry,
    MonthlyBucket,
    Overview,
    RecentActivity,
    TimeMetrics,
)


class GoalResponse(BaseModel):
    """Stored fields of a goal."""

    id: str
    title: str
    description: Optional[str] = None
    category: str
    priority: str
    status: str
    tags: list[str] = Field(default_factory=list)
    target_date: Optional[datetime] = None
    started_at: Optional[datetime] = None
    achieved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    steps: list[ChildItemResponse] = Field(default_factory=list)


class GoalDetail(BaseModel):
    """A goal with derived progress, status and analytics."""

    goal: GoalResponse
    progress: int
    stored_status: str
    calculated_status: str
    is_overdue: bool
    time_metrics: TimeMetrics
    child_stats: ChildStats
    linked_progress: int = 0
    linked_projects: list[EntitySummary] = Field(default_factory=list)
    linked_readings: list[EntitySummary] = Field(default_factory=list)


class GoalDashboard(BaseModel):
    """Goal dashboard."""

    overview: Overview
    top_categories: list[CategoryCount] = Field(default_factory=list)
    recent_activity: RecentActivity
    upcoming_deadlines: list[DeadlineEntry] = Field(default_factory=list)
    overdue: list[DeadlineEntry] = Field(default_factory=list)
    monthly_breakdown: list[MonthlyBucket] = Field(default_factory=list)
