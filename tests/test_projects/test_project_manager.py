"""Tests for ProjectManager."""

from datetime import timedelta

import pytest

from lifetracker.context import UserContext
from lifetracker.db.schemas import (
    GoalCreate,
    MilestoneCreate,
    ProjectCategory,
    ProjectCreate,
)
from lifetracker.errors import InvalidInputError, NotFoundError
from lifetracker.goals import GoalManager
from lifetracker.projects import ProjectManager


@pytest.fixture
def manager(db, config):
    """Create a ProjectManager with test database."""
    return ProjectManager(db, config)


@pytest.fixture
def project(manager, ctx):
    """A project with three milestones."""
    data = ProjectCreate(
        title="Kitchen remodel",
        category=ProjectCategory.HOME,
        estimated_total_hours=40,
        milestones=[
            MilestoneCreate(title="Design", estimated_hours=5),
            MilestoneCreate(title="Demolition", estimated_hours=10),
            MilestoneCreate(title="Install", estimated_hours=25),
        ],
    )
    return manager.create(ctx, data)


def later(ctx: UserContext, days: float) -> UserContext:
    return UserContext(owner_id=ctx.owner_id, now=ctx.now + timedelta(days=days))


class TestProjectCreation:
    """Tests for creating projects."""

    def test_create(self, project):
        assert project.project.status == "planning"
        assert project.project.category == "home"
        assert project.project.archived is False
        assert [m.title for m in project.project.milestones] == ["Design", "Demolition", "Install"]
        assert project.progress == 0
        assert project.calculated_status == "planning"
        assert project.hours.estimated == 40
        assert project.hours.actual == 0
        assert project.hours.remaining == 40
        assert project.next_milestone.title == "Design"

    def test_estimated_hours_from_milestones(self, manager, ctx):
        detail = manager.create(
            ctx,
            ProjectCreate(
                title="No total",
                milestones=[MilestoneCreate(title="a", estimated_hours=3), MilestoneCreate(title="b")],
            ),
        )
        assert detail.hours.estimated == 3

    def test_create_with_goal(self, db, config, manager, ctx):
        goal = GoalManager(db, config).create(ctx, GoalCreate(title="Home"))
        detail = manager.create(ctx, ProjectCreate(title="Paint", goal_id=goal.goal.id))
        assert detail.project.goal_id == goal.goal.id

    def test_create_with_missing_goal(self, manager, ctx):
        with pytest.raises(NotFoundError) as exc:
            manager.create(ctx, ProjectCreate(title="Orphan", goal_id="missing"))
        assert exc.value.kind == "Goal"


class TestMilestones:
    """Tests for milestone operations."""

    def test_progress_and_lifecycle(self, manager, ctx, project):
        project_id = project.project.id
        detail = manager.complete_milestone(ctx, project_id, 1, actual_hours=6)

        assert detail.progress == 33
        assert detail.stored_status == "active"
        assert detail.calculated_status == "active"
        assert detail.project.started_at == ctx.now
        assert detail.hours.actual == 6
        assert detail.next_milestone.title == "Demolition"

    def test_completing_all_completes_project(self, manager, ctx, project):
        project_id = project.project.id
        for order in (1, 2, 3):
            detail = manager.complete_milestone(ctx, project_id, order, actual_hours=10)

        assert detail.progress == 100
        assert detail.stored_status == "completed"
        assert detail.project.completed_at == ctx.now
        assert detail.hours.actual == 30
        assert detail.hours.remaining == 10
        assert detail.next_milestone is None

    def test_reopen_keeps_completed_at(self, manager, ctx):
        project_id = manager.create(
            ctx, ProjectCreate(title="Tiny", milestones=[MilestoneCreate(title="only")])
        ).project.id
        manager.complete_milestone(ctx, project_id, 1)
        detail = manager.reopen_milestone(later(ctx, 2), project_id, 1)

        assert detail.progress == 0
        assert detail.stored_status == "completed"
        assert detail.project.completed_at == ctx.now
        assert detail.project.milestones[0].completed_at is None

    def test_add_milestone(self, manager, ctx, project):
        detail = manager.add_milestone(ctx, project.project.id, "Inspection", estimated_hours=2)
        assert detail.project.milestones[-1].order == 4
        assert detail.project.milestones[-1].estimated_hours == 2

    def test_remove_milestone_renumbers(self, manager, ctx, project):
        detail = manager.remove_milestone(ctx, project.project.id, 1)
        assert [(m.order, m.title) for m in detail.project.milestones] == [
            (1, "Demolition"),
            (2, "Install"),
        ]

    def test_reorder(self, manager, ctx, project):
        detail = manager.reorder_milestones(ctx, project.project.id, [3, 1, 2])
        assert [m.title for m in detail.project.milestones] == ["Install", "Design", "Demolition"]
        assert [m.order for m in detail.project.milestones] == [1, 2, 3]

    @pytest.mark.parametrize("new_order", [[1, 2], [1, 1, 2], [1, 2, 4]])
    def test_reorder_must_be_permutation(self, manager, ctx, project, new_order):
        with pytest.raises(InvalidInputError):
            manager.reorder_milestones(ctx, project.project.id, new_order)

    def test_missing_milestone(self, manager, ctx, project):
        with pytest.raises(NotFoundError) as exc:
            manager.complete_milestone(ctx, project.project.id, 7)
        assert exc.value.kind == "Milestone"

    def test_upcoming_and_overdue_milestones(self, manager, ctx):
        detail = manager.create(
            ctx,
            ProjectCreate(
                title="Dated",
                milestones=[
                    MilestoneCreate(title="late", due_date=ctx.now - timedelta(days=2)),
                    MilestoneCreate(title="soon", due_date=ctx.now + timedelta(days=3)),
                    MilestoneCreate(title="later", due_date=ctx.now + timedelta(days=30)),
                ],
            ),
        )
        assert [m.title for m in detail.overdue_milestones] == ["late"]
        assert [m.title for m in detail.upcoming_milestones] == ["soon"]
        assert detail.child_stats.overdue == 1


class TestStatus:
    """Tests for project status."""

    def test_overdue_project(self, manager, ctx):
        project_id = manager.create(
            ctx,
            ProjectCreate(
                title="Late",
                target_date=ctx.now - timedelta(days=1),
                milestones=[MilestoneCreate(title=str(n)) for n in range(5)],
            ),
        ).project.id
        for order in (1, 2, 3):
            detail = manager.complete_milestone(ctx, project_id, order)

        assert detail.progress == 60
        assert detail.calculated_status == "overdue"
        assert detail.is_overdue is True

    def test_at_risk_project(self, manager, ctx):
        project_id = manager.create(
            ctx,
            ProjectCreate(
                title="Close",
                target_date=ctx.now + timedelta(days=3),
                milestones=[MilestoneCreate(title="a"), MilestoneCreate(title="b")],
            ),
        ).project.id
        detail = manager.complete_milestone(ctx, project_id, 1)
        assert detail.progress == 50
        assert detail.calculated_status == "at_risk"

    def test_set_status_with_notes(self, manager, ctx, project):
        detail = manager.set_status(ctx, project.project.id, "on_hold", notes="Waiting on parts")
        assert detail.stored_status == "on_hold"
        assert detail.calculated_status == "on_hold"
        assert detail.project.status_notes == "Waiting on parts"

    def test_unknown_status(self, manager, ctx, project):
        with pytest.raises(InvalidInputError):
            manager.set_status(ctx, project.project.id, "done")

    def test_explicit_complete_stamps(self, manager, ctx, project):
        detail = manager.set_status(ctx, project.project.id, "completed")
        assert detail.calculated_status == "completed"
        assert detail.project.completed_at == ctx.now
        assert detail.project.started_at == ctx.now

    def test_cancelled_sticky(self, manager, ctx, project):
        project_id = project.project.id
        manager.set_status(ctx, project_id, "cancelled")
        for order in (1, 2, 3):
            detail = manager.complete_milestone(ctx, project_id, order)
        assert detail.progress == 100
        assert detail.stored_status == "cancelled"
        assert detail.calculated_status == "cancelled"

    def test_edit(self, manager, ctx, project):
        detail = manager.edit(ctx, project.project.id, estimated_total_hours=50, category="work")
        assert detail.hours.estimated == 50
        assert detail.project.category == "work"


class TestArchiveAndDuplicate:
    """Tests for archive and duplicate."""

    def test_archive_hides_from_list(self, manager, ctx, project):
        project_id = project.project.id
        detail = manager.archive(ctx, project_id)
        assert detail.project.archived is True
        assert manager.list_projects(ctx) == []
        assert [p.id for p in manager.list_projects(ctx, include_archived=True)] == [project_id]

        manager.unarchive(ctx, project_id)
        assert [p.id for p in manager.list_projects(ctx)] == [project_id]

    def test_dashboard_excludes_archived(self, manager, ctx, project):
        manager.create(ctx, ProjectCreate(title="Visible"))
        manager.archive(ctx, project.project.id)
        dashboard = manager.get_dashboard(ctx)
        assert dashboard.overview.total == 1
        assert dashboard.archived == 1
        assert len(dashboard.monthly_breakdown) == 12

    def test_duplicate(self, manager, ctx, project):
        project_id = project.project.id
        manager.complete_milestone(ctx, project_id, 1, actual_hours=4)
        copy = manager.duplicate(ctx, project_id)

        assert copy.project.id != project_id
        assert copy.project.title == "Kitchen remodel (Copy)"
        assert copy.project.status == "planning"
        assert copy.progress == 0
        assert [m.title for m in copy.project.milestones] == ["Design", "Demolition", "Install"]
        assert all(not m.completed for m in copy.project.milestones)
        assert copy.hours.actual == 0

        original = manager.get_detail(ctx, project_id)
        assert original.progress == 33

    def test_duplicate_with_title(self, manager, ctx, project):
        copy = manager.duplicate(ctx, project.project.id, title="Bathroom remodel")
        assert copy.project.title == "Bathroom remodel"


class TestQueries:
    def test_owner_isolation(self, manager, other_ctx, project):
        with pytest.raises(NotFoundError):
            manager.get_detail(other_ctx, project.project.id)

    def test_list_by_status(self, manager, ctx, project):
        manager.create(ctx, ProjectCreate(title="Other"))
        manager.complete_milestone(ctx, project.project.id, 1)
        assert [p.title for p in manager.list_projects(ctx, status="active")] == ["Kitchen remodel"]

    def test_delete(self, manager, ctx, project):
        manager.delete(ctx, project.project.id)
        with pytest.raises(NotFoundError):
            manager.get_detail(ctx, project.project.id)

    def test_dict_command(self, manager, ctx, project):
        detail = manager.apply(
            ctx, project.project.id, {"kind": "complete_milestone", "order": 2, "actual_hours": 1.5}
        )
        assert detail.project.milestones[1].completed is True
        assert detail.hours.actual == 1.5


class TestSearch:
    """Tests for searching projects."""

    @pytest.fixture
    def projects(self, manager, ctx, project):
        manager.create(
            ctx, ProjectCreate(title="Garden shed", category=ProjectCategory.HOME, tags=["Woodwork"])
        )
        manager.create(
            ctx,
            ProjectCreate(
                title="Remodel blog",
                description="Write up the kitchen build",
                category=ProjectCategory.CREATIVE,
            ),
        )
        manager.complete_milestone(later(ctx, 2), project.project.id, 1)

    def test_title_and_description_newest_first(self, manager, ctx, projects):
        results = manager.search(ctx, "KITCHEN")
        assert [p.title for p in results] == ["Kitchen remodel", "Remodel blog"]

    def test_matches_tags(self, manager, ctx, projects):
        assert [p.title for p in manager.search(ctx, "woodwork")] == ["Garden shed"]

    def test_filters_and_limit(self, manager, ctx, projects):
        assert [p.title for p in manager.search(ctx, "remodel", category="creative")] == [
            "Remodel blog"
        ]
        assert [p.title for p in manager.search(ctx, "remodel", status="active")] == [
            "Kitchen remodel"
        ]
        assert len(manager.search(ctx, "e", limit=2)) == 2

    def test_archived_hidden_by_default(self, manager, ctx, project, projects):
        manager.archive(ctx, project.project.id)
        assert [p.title for p in manager.search(ctx, "kitchen")] == ["Remodel blog"]
        assert [p.title for p in manager.search(ctx, "kitchen", include_archived=True)] == [
            "Kitchen remodel",
            "Remodel blog",
        ]

    def test_owner_isolation(self, manager, other_ctx, projects):
        assert manager.search(other_ctx, "kitchen") == []


class TestCategories:
    def test_list_categories(self, manager, ctx, project):
        manager.create(ctx, ProjectCreate(title="Garden shed", category=ProjectCategory.HOME))
        manager.create(ctx, ProjectCreate(title="Blog", category=ProjectCategory.CREATIVE))
        hidden = manager.create(ctx, ProjectCreate(title="Report", category=ProjectCategory.WORK))
        manager.archive(ctx, hidden.project.id)

        categories = manager.list_categories(ctx)
        assert [(c.category, c.count) for c in categories] == [("home", 2), ("creative", 1)]

    def test_no_projects(self, manager, ctx):
        assert manager.list_categories(ctx) == []
