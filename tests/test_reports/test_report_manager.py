"""Tests for ReportManager."""

from datetime import date, timedelta

import pytest

from lifetracker.db.schemas import (
    Genre,
    GoalCategory,
    GoalCreate,
    ProjectCategory,
    ProjectCreate,
    ReadingItemCreate,
    StepCreate,
)
from lifetracker.goals import GoalManager
from lifetracker.projects import ProjectManager
from lifetracker.reading import ReadingManager
from lifetracker.reports import ReportManager


@pytest.fixture
def manager(db, config):
    """Create a ReportManager with test database."""
    return ReportManager(db, config)


@pytest.fixture
def populated(db, config, ctx):
    """One at-risk goal, one overdue project, one archived project and a finished book."""
    goals = GoalManager(db, config)
    projects = ProjectManager(db, config)
    reading = ReadingManager(db, config)

    goal = goals.create(
        ctx,
        GoalCreate(
            title="Emergency fund",
            category=GoalCategory.FINANCIAL,
            target_date=ctx.now + timedelta(days=3),
            steps=[StepCreate(title=f"Month {n}") for n in range(1, 5)],
        ),
    )
    goals.complete_step(ctx, goal.goal.id, 1)

    projects.create(
        ctx,
        ProjectCreate(
            title="Launch site",
            category=ProjectCategory.WORK,
            target_date=ctx.now - timedelta(days=2),
        ),
    )
    shelved = projects.create(ctx, ProjectCreate(title="Shelved", category=ProjectCategory.WORK))
    projects.archive(ctx, shelved.project.id)

    book = reading.create(
        ctx, ReadingItemCreate(title="Dune", genre=Genre.FICTION, total_pages=300)
    )
    reading.log_session(ctx, book.item.id, duration=45, start_page=0, end_page=300)
    return ctx


class TestHomeDashboard:
    """Tests for the home dashboard."""

    def test_empty(self, manager, ctx):
        dashboard = manager.get_home_dashboard(ctx)

        assert dashboard.year == 2025
        assert dashboard.overview.total == 0
        assert dashboard.reading_streak == 0
        assert dashboard.top_categories == []
        assert dashboard.upcoming_deadlines == []
        assert dashboard.heatmap == []
        assert dashboard.heatmap_summary.active_days == 0
        assert dashboard.favorite_genre is None
        assert len(dashboard.monthly_breakdown) == 12
        assert all(bucket.total_count == 0 for bucket in dashboard.monthly_breakdown)

    def test_overview(self, manager, populated):
        dashboard = manager.get_home_dashboard(populated)

        assert dashboard.overview.total == 3
        assert dashboard.overview.completed == 1
        assert dashboard.overview.overdue == 1
        assert dashboard.overview.at_risk == 1
        assert dashboard.goals.by_status == {"at_risk": 1}
        assert dashboard.projects.total == 1
        assert dashboard.reading.completed == 1

    def test_archived_projects_excluded(self, manager, populated):
        dashboard = manager.get_home_dashboard(populated)
        titles = [entry.title for entry in dashboard.upcoming_deadlines + dashboard.overdue]
        assert "Shelved" not in titles
        assert dashboard.recent_activity.created_this_month == 3

    def test_deadlines(self, manager, populated):
        dashboard = manager.get_home_dashboard(populated)

        assert [e.title for e in dashboard.upcoming_deadlines] == ["Emergency fund"]
        assert dashboard.upcoming_deadlines[0].days_until_deadline == 3
        assert dashboard.upcoming_deadlines[0].progress == 25
        assert [e.title for e in dashboard.overdue] == ["Launch site"]
        assert dashboard.overdue[0].days_overdue == 2

    def test_reading_rollups(self, manager, populated):
        dashboard = manager.get_home_dashboard(populated)

        assert dashboard.reading_stats.completed == 1
        assert dashboard.reading_stats.goal_progress.current == 1
        assert dashboard.reading_streak == 1
        assert dashboard.favorite_genre == "fiction"
        assert [d.date for d in dashboard.heatmap] == [date(2025, 6, 15)]
        assert dashboard.heatmap_summary.total_minutes == 45

    def test_monthly_breakdown(self, manager, populated):
        dashboard = manager.get_home_dashboard(populated)

        june = dashboard.monthly_breakdown[5]
        assert june.month_name == "June"
        assert june.books == 1
        assert june.total_count == 1

    def test_top_categories(self, manager, populated):
        dashboard = manager.get_home_dashboard(populated)
        assert [(c.category, c.count) for c in dashboard.top_categories] == [
            ("fiction", 1),
            ("financial", 1),
            ("work", 1),
        ]

    def test_other_year(self, manager, populated):
        dashboard = manager.get_home_dashboard(populated, year=2024)
        assert dashboard.year == 2024
        assert dashboard.heatmap == []
        assert all(bucket.total_count == 0 for bucket in dashboard.monthly_breakdown)

    def test_owner_isolation(self, manager, populated, other_ctx):
        assert manager.get_home_dashboard(other_ctx).overview.total == 0
