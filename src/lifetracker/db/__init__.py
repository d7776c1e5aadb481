"""Database module for local SQLite storage."""

from .models import Goal, Milestone, Project, ReadingItem, ReadingSession, RoadmapStep
from .sqlite import Database, get_db, reset_db

__all__ = [
    "Goal",
    "RoadmapStep",
    "Project",
    "Milestone",
    "ReadingItem",
    "ReadingSession",
    "Database",
    "get_db",
    "reset_db",
]
