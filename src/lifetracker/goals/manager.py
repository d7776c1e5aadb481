"""Goal manager for goal and roadmap operations."""

import logging
from datetime import datetime
from typing import Optional, Union

from sqlalchemy.orm import Session

from ..clock import as_utc, to_storage
from ..config import Config, get_config
from ..context import UserContext
from ..db.commands import (
    AddStep,
    CompleteStep,
    EditGoal,
    GoalCommand,
    LinkProject,
    LinkReading,
    RemoveStep,
    ReopenStep,
    SetGoalStatus,
    apply_edit,
    parse_goal_command,
)
from ..db.models import Goal, Project, ReadingItem, RoadmapStep
from ..db.schemas import EntitySummary, GoalCreate, GoalStatus
from ..db.sqlite import Database, get_db
from ..engine import aggregate
from ..engine.progress import entity_progress, linked_progress
from ..engine.status import (
    apply_explicit_status,
    apply_lifecycle,
    assess,
    is_auto_completion,
)
from ..engine.timeline import time_metrics
from ..errors import InvalidInputError, NotFoundError
from .schemas import GoalDashboard, GoalDetail, GoalResponse

logger = logging.getLogger(__name__)


class GoalManager:
    """Manages goals and their roadmap steps."""

    def __init__(self, db: Optional[Database] = None, config: Optional[Config] = None):
        """Initialize goal manager.

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

    def create(self, ctx: UserContext, data: GoalCreate) -> GoalDetail:
        """Create a goal with an optional initial roadmap.

        Args:
            ctx: Caller context
            data: Goal creation data

        Returns:
            Detail of the created goal
        """
        now = ctx.current_time()
        with self.db.get_session() as session:
            goal = Goal(
                owner_id=ctx.owner_id,
                title=data.title,
                description=data.description,
                category=data.category.value,
                priority=data.priority.value,
                status=GoalStatus.NOT_STARTED.value,
                target_date=to_storage(data.target_date),
                created_at=to_storage(now),
                updated_at=to_storage(now),
            )
            goal.set_tags(data.tags)
            for index, step in enumerate(data.steps, start=1):
                goal.steps.append(
                    RoadmapStep(
                        order=index,
                        title=step.title,
                        description=step.description,
                        due_date=to_storage(step.due_date),
                    )
                )

            goal = self.db.save(goal, session=session)
            logger.info("Created goal %s with %d steps", goal.id, len(goal.steps))
            return self._detail(ctx, goal, session)

    def get_detail(self, ctx: UserContext, goal_id: str) -> GoalDetail:
        """Get a goal with progress, derived status and analytics.

        Raises:
            NotFoundError: If the goal does not exist for this owner
        """
        with self.db.get_session() as session:
            goal = self._load(ctx, goal_id, session)
            return self._detail(ctx, goal, session)

    get = get_detail

    def list_goals(
        self,
        ctx: UserContext,
        status: Optional[str] = None,
        category: Optional[str] = None,
    ) -> list[EntitySummary]:
        """List goals, optionally filtered.

        Args:
            ctx: Caller context
            status: Stored or derived status to match
            category: Category to match

        Returns:
            Goal summaries ordered by creation
        """
        filters = {"category": category} if category else {}
        goals = self.db.find(Goal, ctx.owner_id, **filters)
        now = ctx.current_time()
        summaries = [aggregate.entity_summary(g, now, self.policy) for g in goals]
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
    ) -> list[EntitySummary]:
        """Search goals by title, description or tag.

        Args:
            ctx: Caller context
            query: Case-insensitive text to look for
            category: Category to match
            status: Stored or derived status to match
            limit: Maximum number of results

        Returns:
            Matching goal summaries, most recently updated first
        """
        filters = {"category": category} if category else {}
        goals = self.db.search(Goal, ctx.owner_id, query, **filters)
        now = ctx.current_time()
        summaries = [aggregate.entity_summary(g, now, self.policy) for g in goals]
        if status:
            summaries = [
                s for s in summaries
                if status in (s.stored_status, s.calculated_status)
            ]
        return summaries[:limit]

    def delete(self, ctx: UserContext, goal_id: str) -> None:
        """Delete a goal and its roadmap.

        Raises:
            NotFoundError: If the goal does not exist for this owner
        """
        with self.db.get_session() as session:
            goal = self._load(ctx, goal_id, session)
            self.db.delete(goal, session=session)
        logger.info("Deleted goal %s", goal_id)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def apply(
        self,
        ctx: UserContext,
        goal_id: str,
        command: Union[dict, GoalCommand],
    ) -> GoalDetail:
        """Apply one update command to a goal.

        Progress is recomputed after the change and the stored status moves
        forward when the goal starts or completes.

        Args:
            ctx: Caller context
            goal_id: Goal ID
            command: A goal command, or a raw payload validated into one

        Returns:
            Detail of the updated goal

        Raises:
            NotFoundError: If the goal or referenced step does not exist
        """
        if isinstance(command, dict):
            command = parse_goal_command(command)

        now = ctx.current_time()
        with self.db.get_session() as session:
            goal = self._load(ctx, goal_id, session)

            if isinstance(command, SetGoalStatus):
                apply_explicit_status(goal, command.status.value, now)
                logger.info("Goal %s status set to %s", goal.id, goal.status)
            elif isinstance(command, LinkProject):
                self._link(ctx, goal, Project, "Project", command.project_id, session)
            elif isinstance(command, LinkReading):
                self._link(ctx, goal, ReadingItem, "Reading item", command.reading_id, session)
            else:
                if isinstance(command, AddStep):
                    self._add_step(goal, command)
                elif isinstance(command, CompleteStep):
                    step = self._step(goal, command.order)
                    if not step.completed:
                        step.completed = True
                        step.completed_at = to_storage(now)
                elif isinstance(command, ReopenStep):
                    step = self._step(goal, command.order)
                    step.completed = False
                    step.completed_at = None
                elif isinstance(command, RemoveStep):
                    self._remove_step(goal, command.order)
                elif isinstance(command, EditGoal):
                    apply_edit(goal, command)

                changed = apply_lifecycle(goal, entity_progress(goal), now)
                if is_auto_completion(goal.kind, changed):
                    logger.info("Goal %s achieved", goal.id)
                elif changed:
                    logger.info("Goal %s status moved to %s", goal.id, changed)

            goal.updated_at = to_storage(now)
            goal = self.db.save(goal, session=session)
            return self._detail(ctx, goal, session)

    def add_step(
        self,
        ctx: UserContext,
        goal_id: str,
        title: str,
        description: Optional[str] = None,
        due_date: Optional[datetime] = None,
    ) -> GoalDetail:
        """Append a roadmap step."""
        return self.apply(
            ctx, goal_id, AddStep(title=title, description=description, due_date=due_date)
        )

    def complete_step(self, ctx: UserContext, goal_id: str, order: int) -> GoalDetail:
        """Mark a roadmap step complete."""
        return self.apply(ctx, goal_id, CompleteStep(order=order))

    def reopen_step(self, ctx: UserContext, goal_id: str, order: int) -> GoalDetail:
        """Mark a roadmap step incomplete."""
        return self.apply(ctx, goal_id, ReopenStep(order=order))

    def remove_step(self, ctx: UserContext, goal_id: str, order: int) -> GoalDetail:
        """Remove a roadmap step."""
        return self.apply(ctx, goal_id, RemoveStep(order=order))

    def set_status(self, ctx: UserContext, goal_id: str, status: str) -> GoalDetail:
        """Explicitly set the stored status.

        Raises:
            InvalidInputError: If the status is not a goal status
        """
        try:
            value = GoalStatus(status)
        except ValueError:
            raise InvalidInputError(f"Unknown goal status: {status}") from None
        return self.apply(ctx, goal_id, SetGoalStatus(status=value))

    def edit(self, ctx: UserContext, goal_id: str, **fields) -> GoalDetail:
        """Edit plain goal fields (title, description, tags, target_date, ...)."""
        return self.apply(ctx, goal_id, EditGoal(**fields))

    def link_project(self, ctx: UserContext, goal_id: str, project_id: str) -> GoalDetail:
        """Link a project to a goal so it counts towards linked progress.

        Raises:
            NotFoundError: If the goal or the project does not exist for this owner
        """
        return self.apply(ctx, goal_id, LinkProject(project_id=project_id))

    def link_reading(self, ctx: UserContext, goal_id: str, reading_id: str) -> GoalDetail:
        """Link a reading item to a goal.

        Raises:
            NotFoundError: If the goal or the reading item does not exist for this owner
        """
        return self.apply(ctx, goal_id, LinkReading(reading_id=reading_id))

    # -------------------------------------------------------------------------
    # Dashboards
    # -------------------------------------------------------------------------

    def get_dashboard(self, ctx: UserContext) -> GoalDashboard:
        """Get the goal dashboard for the caller."""
        now = ctx.current_time()
        goals = self.db.find(Goal, ctx.owner_id)
        top_n = self.config.top_n
        return GoalDashboard(
            overview=aggregate.overview(goals, now, self.policy),
            top_categories=aggregate.top_categories(goals, limit=top_n),
            recent_activity=aggregate.recent_activity(goals, now),
            upcoming_deadlines=aggregate.upcoming_deadlines(
                goals, now, limit=top_n, policy=self.policy
            ),
            overdue=aggregate.overdue_items(goals, now, limit=top_n, policy=self.policy),
            monthly_breakdown=aggregate.monthly_breakdown(goals, now.year),
        )

    def list_categories(self, ctx: UserContext):
        """Get every category in use with its goal count."""
        goals = self.db.find(Goal, ctx.owner_id)
        return aggregate.top_categories(goals, limit=len(goals))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _load(self, ctx: UserContext, goal_id: str, session: Session) -> Goal:
        goal = self.db.find_one(Goal, goal_id, ctx.owner_id, session=session)
        if goal is None:
            logger.debug("Goal %s not found for owner %s", goal_id, ctx.owner_id)
            raise NotFoundError("Goal", goal_id)
        return goal

    def _link(
        self,
        ctx: UserContext,
        goal: Goal,
        model: type[Union[Project, ReadingItem]],
        label: str,
        entity_id: str,
        session: Session,
    ) -> None:
        entity = self.db.find_one(model, entity_id, ctx.owner_id, session=session)
        if entity is None:
            logger.debug("%s %s not found for owner %s", label, entity_id, ctx.owner_id)
            raise NotFoundError(label, entity_id)
        entity.goal_id = goal.id
        entity.updated_at = to_storage(ctx.current_time())
        logger.info("Linked %s %s to goal %s", entity.kind.value, entity.id, goal.id)

    def _step(self, goal: Goal, order: int) -> RoadmapStep:
        for step in goal.steps:
            if step.order == order:
                return step
        logger.debug("Step %d not found on goal %s", order, goal.id)
        raise NotFoundError("Step", order)

    def _add_step(self, goal: Goal, command: AddStep) -> None:
        goal.steps.append(
            RoadmapStep(
                order=len(goal.steps) + 1,
                title=command.title.strip(),
                description=command.description,
                due_date=to_storage(command.due_date),
            )
        )

    def _remove_step(self, goal: Goal, order: int) -> None:
        step = self._step(goal, order)
        goal.steps.remove(step)
        for index, remaining in enumerate(sorted(goal.steps, key=lambda s: s.order), start=1):
            remaining.order = index

    def _detail(self, ctx: UserContext, goal: Goal, session: Session) -> GoalDetail:
        now = ctx.current_time()
        progress, status = assess(goal, now, self.policy)

        projects = self.db.find(Project, ctx.owner_id, session=session, goal_id=goal.id)
        readings = self.db.find(ReadingItem, ctx.owner_id, session=session, goal_id=goal.id)
        linked = [(e.kind, entity_progress(e), e.status) for e in [*projects, *readings]]

        return GoalDetail(
            goal=GoalResponse(
                id=goal.id,
                title=goal.title,
                description=goal.description,
                category=goal.category,
                priority=goal.priority,
                status=goal.status,
                tags=goal.get_tags(),
                target_date=as_utc(goal.target_date),
                started_at=as_utc(goal.started_at),
                achieved_at=as_utc(goal.achieved_at),
                created_at=as_utc(goal.created_at),
                updated_at=as_utc(goal.updated_at),
                steps=aggregate.child_responses(goal.steps, now),
            ),
            progress=progress,
            stored_status=status.stored_status,
            calculated_status=status.derived_status,
            is_overdue=status.is_overdue,
            time_metrics=time_metrics(progress, goal.started_at, goal.target_date, now),
            child_stats=aggregate.child_stats(goal.steps, now),
            linked_progress=linked_progress(linked),
            linked_projects=[aggregate.entity_summary(p, now, self.policy) for p in projects],
            linked_readings=[aggregate.entity_summary(r, now, self.policy) for r in readings],
        )
