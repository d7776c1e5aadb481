"""Pytest configuration and shared fixtures.

This module provides fixtures for testing lifetracker, including in-memory
databases, a pinned clock and factories for unsaved ORM entities.
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator, Optional

import pytest

from lifetracker.config import Config, reset_config
from lifetracker.context import UserContext
from lifetracker.db.models import (
    Goal,
    Milestone,
    Project,
    ReadingItem,
    ReadingSession,
    RoadmapStep,
    generate_uuid,
)
from lifetracker.db.schemas import GoalStatus, ProjectStatus, ReadingStatus
from lifetracker.db.sqlite import Database, reset_db

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db() -> Database:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    return database


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Configuration with default thresholds and a throwaway database path."""
    return Config(
        db_path=tmp_path / "lifetracker.db",
        owner_id="tester",
        at_risk_window_days=7,
        goal_risk_threshold=80,
        project_risk_threshold=75,
        reading_risk_threshold=75,
        streak_lookback_days=30,
        top_n=5,
        yearly_reading_goal=24,
        log_level="WARNING",
        log_file=None,
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture(autouse=True)
def reset_package_logger() -> Generator[None, None, None]:
    """Undo setup_logging so caplog sees package records."""
    yield
    logger = logging.getLogger("lifetracker")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def ctx() -> UserContext:
    """Caller context with the clock pinned to NOW."""
    return UserContext(owner_id="tester", now=NOW)


@pytest.fixture
def other_ctx() -> UserContext:
    """A second owner sharing the same clock."""
    return UserContext(owner_id="someone-else", now=NOW)


@pytest.fixture
def clean_env(tmp_path: Path) -> Generator[Path, None, None]:
    """Point the global config and database at a temporary file."""
    reset_db()
    reset_config()

    db_path = tmp_path / "cli.db"
    os.environ["LIFETRACKER_DB_PATH"] = str(db_path)
    os.environ["LIFETRACKER_OWNER"] = "tester"

    yield db_path

    # Cleanup
    reset_db()
    reset_config()
    for name in ("LIFETRACKER_DB_PATH", "LIFETRACKER_OWNER"):
        os.environ.pop(name, None)


# ============================================================================
# Unsaved Entity Factories
# ============================================================================


def _make_goal(
    completed: int = 0,
    total: int = 0,
    status: str = GoalStatus.NOT_STARTED.value,
    target_date: Optional[datetime] = None,
    category: str = "personal",
    **fields,
) -> Goal:
    """Build a goal with ``total`` steps, the first ``completed`` of them done."""
    goal = Goal(
        id=fields.pop("id", None) or generate_uuid(),
        owner_id="tester",
        title=fields.pop("title", "Goal"),
        category=category,
        priority="medium",
        status=status,
        target_date=target_date,
        **fields,
    )
    for order in range(1, total + 1):
        goal.steps.append(
            RoadmapStep(order=order, title=f"Step {order}", completed=order <= completed)
        )
    return goal


def _make_project(
    completed: int = 0,
    total: int = 0,
    status: str = ProjectStatus.PLANNING.value,
    target_date: Optional[datetime] = None,
    category: str = "work",
    **fields,
) -> Project:
    """Build a project with ``total`` milestones, the first ``completed`` done."""
    project = Project(
        id=fields.pop("id", None) or generate_uuid(),
        owner_id="tester",
        title=fields.pop("title", "Project"),
        category=category,
        priority="medium",
        status=status,
        target_date=target_date,
        archived=False,
        **fields,
    )
    for order in range(1, total + 1):
        project.milestones.append(
            Milestone(order=order, title=f"Milestone {order}", completed=order <= completed)
        )
    return project


def _make_reading(
    current_page: int = 0,
    total_pages: Optional[int] = 300,
    status: str = ReadingStatus.TO_READ.value,
    target_date: Optional[datetime] = None,
    genre: str = "fiction",
    item_type: str = "book",
    sessions: Optional[list[tuple[datetime, int, int]]] = None,
    **fields,
) -> ReadingItem:
    """Build a reading item; ``sessions`` are ``(date, minutes, pages)`` tuples."""
    item = ReadingItem(
        id=fields.pop("id", None) or generate_uuid(),
        owner_id="tester",
        title=fields.pop("title", "Book"),
        item_type=item_type,
        genre=genre,
        priority="medium",
        status=status,
        current_page=current_page,
        total_pages=total_pages,
        target_date=target_date,
        **fields,
    )
    for when, minutes, pages in sessions or []:
        item.sessions.append(
            ReadingSession(date=when, duration_minutes=minutes, pages_read=pages)
        )
    return item


@pytest.fixture
def days():
    """Offset helper: ``days(3)`` is three days after NOW."""

    def _days(n: float) -> datetime:
        return NOW + timedelta(days=n)

    return _days


@pytest.fixture
def make_goal():
    return _make_goal


@pytest.fixture
def make_project():
    return _make_project


@pytest.fixture
def make_reading():
    return _make_reading
