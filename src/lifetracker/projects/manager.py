"""Project manager for project and milestone operations."""

import logging
from datetime import datetime, timedelta
from typing import Optional, Union

from sqlalchemy.orm import Session

from ..clock import as_utc, to_storage
from ..config import Config, get_config
from ..context import UserContext
from ..db.commands import (
    AddMilestone,
    CompleteMilestone,
    EditProject,
    ProjectCommand,
    RemoveMilestone,
    ReopenMilestone,
    ReorderMilestones,
    SetProjectStatus,
    apply_edit,
    parse_project_command,
)
from ..db.models import Goal, Milestone, Project
from ..db.schemas import EntitySummary, ProjectCreate, ProjectStatus
from ..db.sqlite import Database, get_db
from ..engine import aggregate
from ..engine.progress import entity_progress
from ..engine.status import (
    apply_explicit_status,
    apply_lifecycle,
    assess,
    is_auto_completion,
)
from ..engine.timeline import time_metrics
from ..errors import InvalidInputError, NotFoundError
from .schemas import ProjectDashboard, ProjectDetail, ProjectHours, ProjectResponse

logger = logging.getLogger(__name__)

UPCOMING_MILESTONE_DAYS = 7


class ProjectManager:
    """Manages projects and their milestones."""

    def __init__(self, db: Optional[Database] = None, config: Optional[Config] = None):
        """Initialize project manager.

        Args:
            db: Database instance
            config: Configuration (thresholds, top-N)
        """
        self.db = db or get_db()
        self.config = config or get_config()
        self.policy = self.config.status_policy()

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    def create(self, ctx: UserContext, data: ProjectCreate) -> ProjectDetail:
        """Create a project with an optional initial set of milestones.

        Args:
            ctx: Caller context
            data: Project creation data

        Returns:
            Detail of the created project

        Raises:
            NotFoundError: If ``goal_id`` does not name one of the caller's goals
        """
        now = ctx.current_time()
        with self.db.get_session() as session:
            self._check_goal(ctx, data.goal_id, session)
            project = Project(
                owner_id=ctx.owner_id,
                title=data.title,
                description=data.description,
                category=data.category.value,
                priority=data.priority.value,
                status=ProjectStatus.PLANNING.value,
                goal_id=data.goal_id,
                estimated_total_hours=data.estimated_total_hours,
                target_date=to_storage(data.target_date),
                created_at=to_storage(now),
                updated_at=to_storage(now),
            )
            project.set_tags(data.tags)
            for index, milestone in enumerate(data.milestones, start=1):
                project.milestones.append(
                    Milestone(
                        order=index,
                        title=milestone.title,
                        description=milestone.description,
                        due_date=to_storage(milestone.due_date),
                        estimated_hours=milestone.estimated_hours,
                    )
                )

            project = self.db.save(project, session=session)
            logger.info(
                "Created project %s with %d milestones", project.id, len(project.milestones)
            )
            return self._detail(ctx, project)

    def get_detail(self, ctx: UserContext, project_id: str) -> ProjectDetail:
        """Get a project with progress, derived status and milestone analytics.

        Raises:
            NotFoundError: If the project does not exist for this owner
        """
        with self.db.get_session() as session:
            project = self._load(ctx, project_id, session)
            return self._detail(ctx, project)

    get = get_detail

    def list_projects(
        self,
        ctx: UserContext,
        status: Optional[str] = None,
        category: Optional[str] = None,
        include_archived: bool = False,
    ) -> list[EntitySummary]:
        """List projects, optionally filtered.

        Args:
            ctx: Caller context
            status: Stored or derived status to match
            category: Category to match
            include_archived: Include archived projects

        Returns:
            Project summaries ordered by creation
        """
        filters = {}
        if category:
            filters["category"] = category
        if not include_archived:
            filters["archived"] = False
        projects = self.db.find(Project, ctx.owner_id, **filters)
        now = ctx.current_time()
        summaries = [aggregate.entity_summary(p, now, self.policy) for p in projects]
        if status:
            summaries = [
                s for s in summaries
                if status in (s.stored_status, s.calculated_status)
            ]
        return summaries

    def search(
        self,
        ctx: UserContext,
        query: str,
        category: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 20,
        include_archived: bool = False,
    ) -> list[EntitySummary]:
        """Search projects by title, description or tag, most recently updated first."""
        filters = {}
        if category:
            filters["category"] = category
        if not include_archived:
            filters["archived"] = False
        projects = self.db.search(Project, ctx.owner_id, query, **filters)
        now = ctx.current_time()
        summaries = [aggregate.entity_summary(p, now, self.policy) for p in projects]
        if status:
            summaries = [
                s for s in summaries
                if status in (s.stored_status, s.calculated_status)
            ]
        return summaries[:limit]

    def delete(self, ctx: UserContext, project_id: str) -> None:
        """Delete a project and its milestones.

        Raises:
            NotFoundError: If the project does not exist for this owner
        """
        with self.db.get_session() as session:
            project = self._load(ctx, project_id, session)
            self.db.delete(project, session=session)
        logger.info("Deleted project %s", project_id)

    def duplicate(
        self, ctx: UserContext, project_id: str, title: Optional[str] = None
    ) -> ProjectDetail:
        """Copy a project and its milestones as a fresh, unstarted project.

        Args:
            ctx: Caller context
            project_id: Project to copy
            title: Title of the copy (default: "<title> (Copy)")

        Returns:
            Detail of the new project
        """
        now = ctx.current_time()
        with self.db.get_session() as session:
            source = self._load(ctx, project_id, session)
            copy = Project(
                owner_id=ctx.owner_id,
                title=title or f"{source.title} (Copy)",
                description=source.description,
                category=source.category,
                priority=source.priority,
                status=ProjectStatus.PLANNING.value,
                goal_id=source.goal_id,
                estimated_total_hours=source.estimated_total_hours,
                target_date=source.target_date,
                tags=source.tags,
                created_at=to_storage(now),
                updated_at=to_storage(now),
            )
            for milestone in source.milestones:
                copy.milestones.append(
                    Milestone(
                        order=milestone.order,
                        title=milestone.title,
                        description=milestone.description,
                        due_date=milestone.due_date,
                        estimated_hours=milestone.estimated_hours,
                    )
                )

            copy = self.db.save(copy, session=session)
            logger.info("Duplicated project %s as %s", source.id, copy.id)
            return self._detail(ctx, copy)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def apply(
        self,
        ctx: UserContext,
        project_id: str,
        command: Union[dict, ProjectCommand],
    ) -> ProjectDetail:
        """Apply one update command to a project.

        Args:
            ctx: Caller context
            project_id: Project ID
            command: A project command, or a raw payload validated into one

        Returns:
            Detail of the updated project

        Raises:
            NotFoundError: If the project or referenced milestone does not exist
            InvalidInputError: If a reorder is not a permutation of the milestones
        """
        if isinstance(command, dict):
            command = parse_project_command(command)

        now = ctx.current_time()
        with self.db.get_session() as session:
            project = self._load(ctx, project_id, session)

            if isinstance(command, SetProjectStatus):
                apply_explicit_status(project, command.status.value, now)
                if command.notes is not None:
                    project.status_notes = command.notes
                logger.info("Project %s status set to %s", project.id, project.status)
            else:
                if isinstance(command, AddMilestone):
                    project.milestones.append(
                        Milestone(
                            order=len(project.milestones) + 1,
                            title=command.title.strip(),
                            description=command.description,
                            due_date=to_storage(command.due_date),
                            estimated_hours=command.estimated_hours,
                        )
                    )
                elif isinstance(command, CompleteMilestone):
                    milestone = self._milestone(project, command.order)
                    if not milestone.completed:
                        milestone.completed = True
                        milestone.completed_at = to_storage(now)
                    if command.actual_hours is not None:
                        milestone.actual_hours = command.actual_hours
                elif isinstance(command, ReopenMilestone):
                    milestone = self._milestone(project, command.order)
                    milestone.completed = False
                    milestone.completed_at = None
                elif isinstance(command, RemoveMilestone):
                    milestone = self._milestone(project, command.order)
                    project.milestones.remove(milestone)
                    self._renumber(project.milestones)
                elif isinstance(command, ReorderMilestones):
                    self._reorder(project, command.new_order)
                elif isinstance(command, EditProject):
                    apply_edit(project, command)

                changed = apply_lifecycle(project, entity_progress(project), now)
                if is_auto_completion(project.kind, changed):
                    logger.info("Project %s completed", project.id)
                elif changed:
                    logger.info("Project %s status moved to %s", project.id, changed)

            project.actual_total_hours = sum(
                m.actual_hours or 0.0 for m in project.milestones
            )
            project.updated_at = to_storage(now)
            project = self.db.save(project, session=session)
            return self._detail(ctx, project)

    def add_milestone(
        self,
        ctx: UserContext,
        project_id: str,
        title: str,
        description: Optional[str] = None,
        due_date: Optional[datetime] = None,
        estimated_hours: Optional[float] = None,
    ) -> ProjectDetail:
        """Append a milestone."""
        return self.apply(
            ctx,
            project_id,
            AddMilestone(
                title=title,
                description=description,
                due_date=due_date,
                estimated_hours=estimated_hours,
            ),
        )

    def complete_milestone(
        self,
        ctx: UserContext,
        project_id: str,
        order: int,
        actual_hours: Optional[float] = None,
    ) -> ProjectDetail:
        """Mark a milestone complete, optionally recording hours spent."""
        return self.apply(
            ctx, project_id, CompleteMilestone(order=order, actual_hours=actual_hours)
        )

    def reopen_milestone(self, ctx: UserContext, project_id: str, order: int) -> ProjectDetail:
        """Mark a milestone incomplete."""
        return self.apply(ctx, project_id, ReopenMilestone(order=order))

    def remove_milestone(self, ctx: UserContext, project_id: str, order: int) -> ProjectDetail:
        """Remove a milestone."""
        return self.apply(ctx, project_id, RemoveMilestone(order=order))

    def reorder_milestones(
        self, ctx: UserContext, project_id: str, new_order: list[int]
    ) -> ProjectDetail:
        """Reorder milestones.

        Args:
            ctx: Caller context
            project_id: Project ID
            new_order: Current milestone orders listed in the desired sequence
        """
        return self.apply(ctx, project_id, ReorderMilestones(new_order=new_order))

    def set_status(
        self,
        ctx: UserContext,
        project_id: str,
        status: str,
        notes: Optional[str] = None,
    ) -> ProjectDetail:
        """Explicitly set the stored status.

        Raises:
            InvalidInputError: If the status is not a project status
        """
        try:
            value = ProjectStatus(status)
        except ValueError:
            raise InvalidInputError(f"Unknown project status: {status}") from None
        return self.apply(ctx, project_id, SetProjectStatus(status=value, notes=notes))

    def edit(self, ctx: UserContext, project_id: str, **fields) -> ProjectDetail:
        """Edit plain project fields."""
        return self.apply(ctx, project_id, EditProject(**fields))

    def archive(self, ctx: UserContext, project_id: str) -> ProjectDetail:
        """Hide a project from default listings."""
        return self._set_archived(ctx, project_id, True)

    def unarchive(self, ctx: UserContext, project_id: str) -> ProjectDetail:
        """Restore an archived project to default listings."""
        return self._set_archived(ctx, project_id, False)

    # -------------------------------------------------------------------------
    # Dashboards
    # -------------------------------------------------------------------------

    def get_dashboard(self, ctx: UserContext) -> ProjectDashboard:
        """Get the project dashboard for the caller.

        Archived projects are left out of every figure except ``archived``.
        """
        now = ctx.current_time()
        projects = self.db.find(Project, ctx.owner_id)
        active = [p for p in projects if not p.archived]
        top_n = self.config.top_n
        return ProjectDashboard(
            overview=aggregate.overview(active, now, self.policy),
            top_categories=aggregate.top_categories(active, limit=top_n),
            recent_activity=aggregate.recent_activity(active, now),
            upcoming_deadlines=aggregate.upcoming_deadlines(
                active, now, limit=top_n, policy=self.policy
            ),
            overdue=aggregate.overdue_items(active, now, limit=top_n, policy=self.policy),
            monthly_breakdown=aggregate.monthly_breakdown(active, now.year),
            archived=len(projects) - len(active),
        )

    def list_categories(self, ctx: UserContext):
        """Get every category in use by unarchived projects with its count."""
        projects = [p for p in self.db.find(Project, ctx.owner_id) if not p.archived]
        return aggregate.top_categories(projects, limit=len(projects))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _load(self, ctx: UserContext, project_id: str, session: Session) -> Project:
        project = self.db.find_one(Project, project_id, ctx.owner_id, session=session)
        if project is None:
            logger.debug("Project %s not found for owner %s", project_id, ctx.owner_id)
            raise NotFoundError("Project", project_id)
        return project

    def _check_goal(self, ctx: UserContext, goal_id: Optional[str], session: Session) -> None:
        if goal_id and self.db.find_one(Goal, goal_id, ctx.owner_id, session=session) is None:
            logger.debug("Linked goal %s not found for owner %s", goal_id, ctx.owner_id)
            raise NotFoundError("Goal", goal_id)

    def _milestone(self, project: Project, order: int) -> Milestone:
        for milestone in project.milestones:
            if milestone.order == order:
                return milestone
        logger.debug("Milestone %d not found on project %s", order, project.id)
        raise NotFoundError("Milestone", order)

    @staticmethod
    def _renumber(milestones: list[Milestone]) -> None:
        for index, milestone in enumerate(sorted(milestones, key=lambda m: m.order), start=1):
            milestone.order = index

    def _reorder(self, project: Project, new_order: list[int]) -> None:
        current = sorted(m.order for m in project.milestones)
        if sorted(new_order) != current:
            raise InvalidInputError(
                f"Reorder must list each milestone exactly once: expected {current}"
            )
        by_order = {m.order: m for m in project.milestones}
        for index, old_order in enumerate(new_order, start=1):
            by_order[old_order].order = index

    def _set_archived(self, ctx: UserContext, project_id: str, archived: bool) -> ProjectDetail:
        now = ctx.current_time()
        with self.db.get_session() as session:
            project = self._load(ctx, project_id, session)
            project.archived = archived
            project.updated_at = to_storage(now)
            project = self.db.save(project, session=session)
            logger.info("Project %s %s", project.id, "archived" if archived else "unarchived")
            return self._detail(ctx, project)

    def _detail(self, ctx: UserContext, project: Project) -> ProjectDetail:
        now = ctx.current_time()
        progress, status = assess(project, now, self.policy)
        milestones = aggregate.child_responses(project.milestones, now)

        pending = [m for m in milestones if not m.completed]
        horizon = now + timedelta(days=UPCOMING_MILESTONE_DAYS)
        upcoming = [
            m for m in pending
            if m.due_date is not None and now <= as_utc(m.due_date) <= horizon
        ]
        upcoming.sort(key=lambda m: as_utc(m.due_date))

        estimated = project.estimated_total_hours
        if estimated is None:
            estimated = sum(m.estimated_hours or 0.0 for m in project.milestones)
        actual = sum(m.actual_hours or 0.0 for m in project.milestones)

        return ProjectDetail(
            project=ProjectResponse(
                id=project.id,
                title=project.title,
                description=project.description,
                category=project.category,
                priority=project.priority,
                status=project.status,
                status_notes=project.status_notes,
                goal_id=project.goal_id,
                archived=project.archived,
                tags=project.get_tags(),
                target_date=as_utc(project.target_date),
                started_at=as_utc(project.started_at),
                completed_at=as_utc(project.completed_at),
                created_at=as_utc(project.created_at),
                updated_at=as_utc(project.updated_at),
                milestones=milestones,
            ),
            progress=progress,
            stored_status=status.stored_status,
            calculated_status=status.derived_status,
            is_overdue=status.is_overdue,
            time_metrics=time_metrics(progress, project.started_at, project.target_date, now),
            child_stats=aggregate.child_stats(project.milestones, now),
            hours=ProjectHours(
                estimated=estimated,
                actual=actual,
                remaining=max(0.0, estimated - actual),
            ),
            next_milestone=pending[0] if pending else None,
            upcoming_milestones=upcoming,
            overdue_milestones=[m for m in pending if m.is_overdue],
        )
