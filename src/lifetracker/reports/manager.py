"""Manager for cross-entity reports."""

import logging
from typing import Optional

from ..config import Config, get_config
from ..context import UserContext
from ..db.models import Goal, Project, ReadingItem
from ..db.sqlite import Database, get_db
from ..engine import aggregate, timeline
from .schemas import HomeDashboard

logger = logging.getLogger(__name__)


class ReportManager:
    """Manager for dashboards spanning goals, projects and reading."""

    def __init__(self, db: Optional[Database] = None, config: Optional[Config] = None):
        """Initialize the report manager.

        Args:
            db: Database instance
            config: Configuration (thresholds, top-N, yearly goal)
        """
        self.db = db or get_db()
        self.config = config or get_config()
        self.policy = self.config.status_policy()

    def get_home_dashboard(
        self, ctx: UserContext, year: Optional[int] = None
    ) -> HomeDashboard:
        """Generate the home dashboard.

        Every figure is recomputed from the caller's entities; archived
        projects are left out.

        Args:
            ctx: Caller context
            year: Year for monthly breakdown and heatmap (default: current year)

        Returns:
            Dashboard data
        """
        now = ctx.current_time()
        year = year or now.year

        with self.db.get_session() as session:
            goals = self.db.find(Goal, ctx.owner_id, session=session)
            projects = self.db.find(Project, ctx.owner_id, session=session, archived=False)
            readings = self.db.find(ReadingItem, ctx.owner_id, session=session)
            entities = [*goals, *projects, *readings]
            logger.debug(
                "Home dashboard for %s: %d goals, %d projects, %d reading items",
                ctx.owner_id,
                len(goals),
                len(projects),
                len(readings),
            )

            top_n = self.config.top_n
            days = aggregate.heatmap(readings, year)
            trends = aggregate.genre_trends(readings)
            session_dates = [s.date for r in readings for s in r.sessions]

            return HomeDashboard(
                year=year,
                overview=aggregate.overview(entities, now, self.policy),
                goals=aggregate.overview(goals, now, self.policy),
                projects=aggregate.overview(projects, now, self.policy),
                reading=aggregate.overview(readings, now, self.policy),
                reading_stats=aggregate.reading_overview(
                    readings, now, self.config.yearly_reading_goal
                ),
                reading_streak=timeline.reading_streak(
                    session_dates, now, self.config.streak_lookback_days
                ),
                top_categories=aggregate.top_categories(entities, limit=top_n),
                recent_activity=aggregate.recent_activity(entities, now),
                upcoming_deadlines=aggregate.upcoming_deadlines(
                    entities, now, limit=top_n, policy=self.policy
                ),
                overdue=aggregate.overdue_items(
                    entities, now, limit=top_n, policy=self.policy
                ),
                monthly_breakdown=aggregate.monthly_breakdown(entities, year),
                heatmap=days,
                heatmap_summary=aggregate.heatmap_summary(days, now),
                favorite_genre=trends[0].genre if trends else None,
            )
