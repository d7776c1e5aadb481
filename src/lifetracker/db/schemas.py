"""Pydantic schemas for data validation.

These schemas define the status vocabularies, categories and create payloads
for goals, projects and reading items.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..clock import as_utc


class EntityKind(str, Enum):
    """Kind of trackable entity."""

    GOAL = "goal"
    PROJECT = "project"
    READING = "reading"


class GoalStatus(str, Enum):
    """Stored status of a goal."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    ACHIEVED = "achieved"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class ProjectStatus(str, Enum):
    """Stored status of a project."""

    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReadingStatus(str, Enum):
    """Stored status of a reading item."""

    TO_READ = "to_read"
    READING = "reading"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class Lifecycle:
    """Stored-status vocabulary of one entity kind."""

    initial: str
    active: str
    success: str
    held: str
    cancelled: str

    @property
    def terminal(self) -> frozenset[str]:
        return frozenset({self.success, self.cancelled})

    @property
    def values(self) -> tuple[str, ...]:
        return (self.initial, self.active, self.success, self.held, self.cancelled)


LIFECYCLES = {
    EntityKind.GOAL: Lifecycle(
        initial=GoalStatus.NOT_STARTED.value,
        active=GoalStatus.IN_PROGRESS.value,
        success=GoalStatus.ACHIEVED.value,
        held=GoalStatus.PAUSED.value,
        cancelled=GoalStatus.CANCELLED.value,
    ),
    EntityKind.PROJECT: Lifecycle(
        initial=ProjectStatus.PLANNING.value,
        active=ProjectStatus.ACTIVE.value,
        success=ProjectStatus.COMPLETED.value,
        held=ProjectStatus.ON_HOLD.value,
        cancelled=ProjectStatus.CANCELLED.value,
    ),
    EntityKind.READING: Lifecycle(
        initial=ReadingStatus.TO_READ.value,
        active=ReadingStatus.READING.value,
        success=ReadingStatus.COMPLETED.value,
        held=ReadingStatus.ON_HOLD.value,
        cancelled=ReadingStatus.ABANDONED.value,
    ),
}


def lifecycle_for(kind) -> Lifecycle:
    """Get the lifecycle vocabulary for an entity kind."""
    return LIFECYCLES[EntityKind(kind)]


class OverlayStatus(str, Enum):
    """Display-only statuses that are never persisted."""

    OVERDUE = "overdue"
    AT_RISK = "at_risk"


class Priority(str, Enum):
    """Priority of a goal or project."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ReadingPriority(str, Enum):
    """Priority of a reading item."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class GoalCategory(str, Enum):
    """Goal categories."""

    FINANCIAL = "financial"
    HEALTH = "health"
    PERSONAL = "personal"
    BUSINESS = "business"
    EDUCATION = "education"
    AWARDS = "awards"
    CAREER = "career"
    RELATIONSHIPS = "relationships"
    TRAVEL = "travel"
    HOBBIES = "hobbies"
    SPIRITUAL = "spiritual"
    OTHER = "other"


class ProjectCategory(str, Enum):
    """Project categories."""

    PERSONAL = "personal"
    WORK = "work"
    BUSINESS = "business"
    EDUCATION = "education"
    RESEARCH = "research"
    CREATIVE = "creative"
    TECHNICAL = "technical"
    HEALTH = "health"
    HOME = "home"
    TRAVEL = "travel"
    OTHER = "other"


class ReadingType(str, Enum):
    """Type of reading material."""

    BOOK = "book"
    ARTICLE = "article"
    AUDIOBOOK = "audiobook"
    MAGAZINE = "magazine"
    PAPER = "paper"
    OTHER = "other"


class Genre(str, Enum):
    """Reading genres."""

    FICTION = "fiction"
    NON_FICTION = "non-fiction"
    BIOGRAPHY = "biography"
    BUSINESS = "business"
    SELF_HELP = "self-help"
    SCIENCE = "science"
    HISTORY = "history"
    PHILOSOPHY = "philosophy"
    TECHNOLOGY = "technology"
    HEALTH = "health"
    EDUCATION = "education"
    THRILLER = "thriller"
    ROMANCE = "romance"
    FANTASY = "fantasy"
    MYSTERY = "mystery"
    PSYCHOLOGY = "psychology"
    ECONOMICS = "economics"
    POLITICS = "politics"
    RELIGION = "religion"
    ART = "art"
    OTHER = "other"


def normalize_tags(tags: Optional[list[str]]) -> list[str]:
    """Lower-case, strip and de-duplicate tags, keeping first-seen order."""
    if not tags:
        return []
    seen = []
    for tag in tags:
        cleaned = str(tag).strip().lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


# ============================================================================
# Child Item Schemas
# ============================================================================


class StepCreate(BaseModel):
    """Schema for a new roadmap step."""

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    due_date: Optional[datetime] = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("due_date", mode="after")
    @classmethod
    def due_date_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class MilestoneCreate(StepCreate):
    """Schema for a new project milestone."""

    estimated_hours: Optional[float] = Field(None, ge=0)


# ============================================================================
# Entity Create Schemas
# ============================================================================


class TrackableBase(BaseModel):
    """Fields shared by every trackable entity."""

    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = Field(None, max_length=5000)
    tags: list[str] = Field(default_factory=list)
    target_date: Optional[datetime] = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v) -> list[str]:
        return normalize_tags(v)

    @field_validator("target_date", mode="after")
    @classmethod
    def target_date_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class GoalCreate(TrackableBase):
    """Schema for creating a goal."""

    category: GoalCategory = GoalCategory.OTHER
    priority: Priority = Priority.MEDIUM
    steps: list[StepCreate] = Field(default_factory=list)


class ProjectCreate(TrackableBase):
    """Schema for creating a project."""

    category: ProjectCategory = ProjectCategory.PERSONAL
    priority: Priority = Priority.MEDIUM
    goal_id: Optional[str] = None
    estimated_total_hours: Optional[float] = Field(None, ge=0)
    milestones: list[MilestoneCreate] = Field(default_factory=list)


class ReadingItemCreate(TrackableBase):
    """Schema for creating a reading item."""

    author: Optional[str] = Field(None, max_length=200)
    item_type: ReadingType = ReadingType.BOOK
    genre: Genre = Genre.OTHER
    priority: ReadingPriority = ReadingPriority.MEDIUM
    total_pages: Optional[int] = Field(None, ge=1)
    current_page: int = Field(0, ge=0)
    average_page_time: float = Field(3.0, ge=0.5, le=30)
    rating: Optional[int] = Field(None, ge=1, le=5)
    isbn: Optional[str] = Field(None, max_length=17)
    publisher: Optional[str] = Field(None, max_length=200)
    goal_id: Optional[str] = None

    @model_validator(mode="after")
    def page_within_total(self) -> "ReadingItemCreate":
        if self.total_pages is not None and self.current_page > self.total_pages:
            raise ValueError("current_page cannot exceed total_pages")
        return self


class SessionCreate(BaseModel):
    """Schema for logging a reading session."""

    duration_minutes: Optional[int] = Field(None, gt=0)
    pages_read: Optional[int] = Field(None, ge=0)
    start_page: Optional[int] = Field(None, ge=0)
    end_page: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=500)
    session_date: Optional[datetime] = None

    @field_validator("session_date", mode="after")
    @classmethod
    def session_date_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @model_validator(mode="after")
    def has_duration_or_pages(self) -> "SessionCreate":
        if not self.duration_minutes and not self.pages_read and not (
            self.start_page is not None and self.end_page is not None
        ):
            raise ValueError("Either duration or pages read is required")
        if (
            self.start_page is not None
            and self.end_page is not None
            and self.end_page < self.start_page
        ):
            raise ValueError("end_page cannot be before start_page")
        return self


# ============================================================================
# Response Schemas
# ============================================================================


class ChildItemResponse(BaseModel):
    """A roadmap step or milestone as returned to callers."""

    order: int
    title: str
    description: Optional[str] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    is_overdue: bool = False

    model_config = {"from_attributes": True}

    @field_validator("completed_at", "due_date", mode="after")
    @classmethod
    def dates_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class SessionResponse(BaseModel):
    """A reading session as returned to callers."""

    id: str
    date: datetime
    duration_minutes: int
    pages_read: int
    start_page: Optional[int] = None
    end_page: Optional[int] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}

    @field_validator("date", mode="after")
    @classmethod
    def date_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class EntitySummary(BaseModel):
    """Compact listing row with stored and derived status."""

    id: str
    kind: EntityKind
    title: str
    category: str
    priority: str
    stored_status: str
    calculated_status: str
    progress: int
    is_overdue: bool
    target_date: Optional[datetime] = None
