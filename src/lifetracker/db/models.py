"""SQLAlchemy ORM models for local SQLite database.

Tables:
- goals / roadmap_steps: Goals and their ordered roadmap
- projects / milestones: Projects and their ordered milestones
- reading_items / reading_sessions: Reading material and logged sessions

Child collections load eagerly (selectin) so entities stay usable after they
are detached from the session that loaded them.
"""

import json
from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ..clock import utcnow
from .schemas import (
    EntityKind,
    GoalCategory,
    GoalStatus,
    Genre,
    Priority,
    ProjectCategory,
    ProjectStatus,
    ReadingPriority,
    ReadingStatus,
    ReadingType,
)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


class TrackableMixin:
    """Columns and helpers shared by goals, projects and reading items."""

    kind: EntityKind

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    tags: Mapped[Optional[str]] = mapped_column(Text)  # JSON array

    # Deadline and engine-owned lifecycle timestamps
    target_date: Mapped[Optional[datetime]] = mapped_column(DateTime, index=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    def get_tags(self) -> list[str]:
        """Get tags as list."""
        if self.tags:
            return json.loads(self.tags)
        return []

    def set_tags(self, tags: list[str]) -> None:
        """Set tags from list."""
        self.tags = json.dumps(tags) if tags else None

    @property
    def child_items(self) -> list:
        """Ordered child items driving progress (empty for reading items)."""
        return []


class Goal(TrackableMixin, Base):
    """Goal model - a target with an ordered roadmap of steps."""

    __tablename__ = "goals"

    kind = EntityKind.GOAL

    category: Mapped[str] = mapped_column(
        String(30), default=GoalCategory.OTHER.value, index=True
    )
    priority: Mapped[str] = mapped_column(String(20), default=Priority.MEDIUM.value)
    status: Mapped[str] = mapped_column(
        String(20), default=GoalStatus.NOT_STARTED.value, index=True
    )

    steps: Mapped[list["RoadmapStep"]] = relationship(
        "RoadmapStep",
        back_populates="goal",
        cascade="all, delete-orphan",
        order_by="RoadmapStep.order",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Goal(id={self.id}, title='{self.title}', status={self.status})>"

    @property
    def child_items(self) -> list["RoadmapStep"]:
        return list(self.steps)

    @property
    def achieved_at(self) -> Optional[datetime]:
        """Alias for the completion timestamp of a goal."""
        return self.completed_at


class RoadmapStep(Base):
    """Roadmap step - an ordered, completable sub-item of a goal."""

    __tablename__ = "roadmap_steps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    goal_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order: Mapped[int] = mapped_column("position", Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime)

    goal: Mapped["Goal"] = relationship("Goal", back_populates="steps")

    def __repr__(self) -> str:
        return f"<RoadmapStep(goal_id={self.goal_id}, order={self.order}, completed={self.completed})>"


class Project(TrackableMixin, Base):
    """Project model - work broken into ordered milestones."""

    __tablename__ = "projects"

    kind = EntityKind.PROJECT

    category: Mapped[str] = mapped_column(
        String(30), default=ProjectCategory.PERSONAL.value, index=True
    )
    priority: Mapped[str] = mapped_column(String(20), default=Priority.MEDIUM.value)
    status: Mapped[str] = mapped_column(
        String(20), default=ProjectStatus.PLANNING.value, index=True
    )
    goal_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("goals.id", ondelete="SET NULL"), index=True
    )
    estimated_total_hours: Mapped[Optional[float]] = mapped_column(Float)
    actual_total_hours: Mapped[float] = mapped_column(Float, default=0.0)
    status_notes: Mapped[Optional[str]] = mapped_column(Text)
    archived: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    milestones: Mapped[list["Milestone"]] = relationship(
        "Milestone",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Milestone.order",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, title='{self.title}', status={self.status})>"

    @property
    def child_items(self) -> list["Milestone"]:
        return list(self.milestones)


class Milestone(Base):
    """Milestone - an ordered, completable sub-item of a project."""

    __tablename__ = "milestones"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order: Mapped[int] = mapped_column("position", Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    estimated_hours: Mapped[Optional[float]] = mapped_column(Float)
    actual_hours: Mapped[Optional[float]] = mapped_column(Float)

    project: Mapped["Project"] = relationship("Project", back_populates="milestones")

    def __repr__(self) -> str:
        return f"<Milestone(project_id={self.project_id}, order={self.order}, completed={self.completed})>"


class ReadingItem(TrackableMixin, Base):
    """Reading item - a book, article or other material with a page counter."""

    __tablename__ = "reading_items"

    kind = EntityKind.READING

    author: Mapped[Optional[str]] = mapped_column(String(200), index=True)
    item_type: Mapped[str] = mapped_column(
        String(20), default=ReadingType.BOOK.value, index=True
    )
    genre: Mapped[str] = mapped_column(String(30), default=Genre.OTHER.value, index=True)
    priority: Mapped[str] = mapped_column(
        String(20), default=ReadingPriority.MEDIUM.value
    )
    status: Mapped[str] = mapped_column(
        String(20), default=ReadingStatus.TO_READ.value, index=True
    )
    total_pages: Mapped[Optional[int]] = mapped_column(Integer)
    current_page: Mapped[int] = mapped_column(Integer, default=0)
    average_page_time: Mapped[float] = mapped_column(Float, default=3.0)
    rating: Mapped[Optional[int]] = mapped_column(Integer)
    isbn: Mapped[Optional[str]] = mapped_column(String(17), index=True)
    publisher: Mapped[Optional[str]] = mapped_column(String(200))
    goal_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("goals.id", ondelete="SET NULL"), index=True
    )

    sessions: Mapped[list["ReadingSession"]] = relationship(
        "ReadingSession",
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="ReadingSession.date",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<ReadingItem(id={self.id}, title='{self.title}', status={self.status})>"

    @property
    def category(self) -> str:
        """Genre doubles as the category for reporting."""
        return self.genre


class ReadingSession(Base):
    """Reading session - one logged stretch of reading."""

    __tablename__ = "reading_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    item_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("reading_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, default=0)
    pages_read: Mapped[int] = mapped_column(Integer, default=0)
    start_page: Mapped[Optional[int]] = mapped_column(Integer)
    end_page: Mapped[Optional[int]] = mapped_column(Integer)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    item: Mapped["ReadingItem"] = relationship("ReadingItem", back_populates="sessions")

    def __repr__(self) -> str:
        return f"<ReadingSession(item_id={self.item_id}, date={self.date})>"
