"""Pydantic schemas for project responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..db.schemas import ChildItemResponse
from ..engine.schemas import (
    CategoryCount,
    ChildStats,
    DeadlineEntry,
    MonthlyBucket,
    Overview,
    RecentActivity,
    TimeMetrics,
)


class ProjectResponse(BaseModel):
    """Stored fields of a project."""

    id: str
    title: str
    description: Optional[str] = None
    category: str
    priority: str
    status: str
    status_notes: Optional[str] = None
    goal_id: Optional[str] = None
    archived: bool = False
    tags: list[str] = Field(default_factory=list)
    target_date: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    milestones: list[ChildItemResponse] = Field(default_factory=list)


class ProjectHours(BaseModel):
    """Estimated against actual effort."""

    estimated: float = 0.0
    actual: float = 0.0
    remaining: float = 0.0


class ProjectDetail(BaseModel):
    """A project with derived progress, status and milestone analytics."""

    project: ProjectResponse
    progress: int
    stored_status: str
    calculated_status: str
    is_overdue: bool
    time_metrics: TimeMetrics
    child_stats: ChildStats
    hours: ProjectHours
    next_milestone: Optional[ChildItemResponse] = None
    upcoming_milestones: list[ChildItemResponse] = Field(default_factory=list)
    overdue_milestones: list[ChildItemResponse] = Field(default_factory=list)


class ProjectDashboard(BaseModel):
    """Project dashboard."""

    overview: Overview
    top_categories: list[CategoryCount] = Field(default_factory=list)
    recent_activity: RecentActivity
    upcoming_deadlines: list[DeadlineEntry] = Field(default_factory=list)
    overdue: list[DeadlineEntry] = Field(default_factory=list)
    monthly_breakdown: list[MonthlyBucket] = Field(default_factory=list)
    archived: int = 0
