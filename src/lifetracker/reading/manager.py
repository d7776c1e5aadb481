"""Reading manager for reading items, page progress and sessions."""

import logging
from datetime import datetime, timedelta
from typing import Optional, Union

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..clock import as_utc, to_storage
from ..config import Config, get_config
from ..context import UserContext
from ..db.commands import (
    EditReading,
    LogSession,
    ReadingCommand,
    SetReadingStatus,
    UpdateReadingProgress,
    apply_edit,
    parse_reading_command,
)
from ..db.models import Goal, ReadingItem, ReadingSession
from ..db.schemas import (
    EntitySummary,
    ReadingItemCreate,
    ReadingStatus,
    SessionResponse,
)
from ..db.sqlite import Database, get_db
from ..engine import aggregate, timeline
from ..engine.progress import entity_progress
from ..engine.status import (
    apply_explicit_status,
    apply_lifecycle,
    assess,
    is_auto_completion,
)
from ..errors import InvalidInputError, NotFoundError
from .schemas import (
    ReadingAnalytics,
    ReadingDashboard,
    ReadingDetail,
    ReadingHeatmap,
    ReadingItemResponse,
)

logger = logging.getLogger(__name__)

GENRE_TREND_DAYS = 365


class ReadingManager:
    """Manages reading items and their sessions."""

    def __init__(self, db: Optional[Database] = None, config: Optional[Config] = None):
        """Initialize reading manager.

        Args:
            db: Database instance
            config: Configuration (thresholds, streak window, yearly goal)
        """
        self.db = db or get_db()
        self.config = config or get_config()
        self.policy = self.config.status_policy()

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    def create(self, ctx: UserContext, data: ReadingItemCreate) -> ReadingDetail:
        """Add a reading item.

        An item created part-way through is stored as ``reading``; one created
        on its last page is stored as ``completed``.

        Args:
            ctx: Caller context
            data: Reading item creation data

        Returns:
            Detail of the created item

        Raises:
            NotFoundError: If ``goal_id`` does not name one of the caller's goals
        """
        now = ctx.current_time()
        with self.db.get_session() as session:
            if data.goal_id and self.db.find_one(
                Goal, data.goal_id, ctx.owner_id, session=session
            ) is None:
                logger.debug("Linked goal %s not found for owner %s", data.goal_id, ctx.owner_id)
                raise NotFoundError("Goal", data.goal_id)

            item = ReadingItem(
                owner_id=ctx.owner_id,
                title=data.title,
                author=data.author,
                description=data.description,
                item_type=data.item_type.value,
                genre=data.genre.value,
                priority=data.priority.value,
                status=ReadingStatus.TO_READ.value,
                total_pages=data.total_pages,
                current_page=data.current_page,
                average_page_time=data.average_page_time,
                rating=data.rating,
                isbn=data.isbn,
                publisher=data.publisher,
                goal_id=data.goal_id,
                target_date=to_storage(data.target_date),
                created_at=to_storage(now),
                updated_at=to_storage(now),
            )
            item.set_tags(data.tags)
            self._advance(item, now)

            item = self.db.save(item, session=session)
            logger.info("Created reading item %s (%s)", item.id, item.status)
            return self._detail(ctx, item)

    def get_detail(self, ctx: UserContext, item_id: str) -> ReadingDetail:
        """Get a reading item with progress, derived status and reading analytics.

        Raises:
            NotFoundError: If the item does not exist for this owner
        """
        with self.db.get_session() as session:
            item = self._load(ctx, item_id, session)
            return self._detail(ctx, item)

    get = get_detail

    def list_items(
        self,
        ctx: UserContext,
        status: Optional[str] = None,
        genre: Optional[str] = None,
        item_type: Optional[str] = None,
    ) -> list[EntitySummary]:
        """List reading items, optionally filtered.

        Args:
            ctx: Caller context
            status: Stored or derived status to match
            genre: Genre to match
            item_type: Item type to match

        Returns:
            Reading item summaries ordered by creation
        """
        filters = {}
        if genre:
            filters["genre"] = genre
        if item_type:
            filters["item_type"] = item_type
        items = self.db.find(ReadingItem, ctx.owner_id, **filters)
        now = ctx.current_time()
        summaries = [aggregate.entity_summary(i, now, self.policy) for i in items]
        if status:
            summaries = [
                s for s in summaries
                if status in (s.stored_status, s.calculated_status)
            ]
        return summaries

    def delete(self, ctx: UserContext, item_id: str) -> None:
        """Delete a reading item and its sessions.

        Raises:
            NotFoundError: If the item does not exist for this owner
        """
        with self.db.get_session() as session:
            item = self._load(ctx, item_id, session)
            self.db.delete(item, session=session)
        logger.info("Deleted reading item %s", item_id)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def apply(
        self,
        ctx: UserContext,
        item_id: str,
        command: Union[dict, ReadingCommand],
    ) -> ReadingDetail:
        """Apply one update command to a reading item.

        Args:
            ctx: Caller context
            item_id: Reading item ID
            command: A reading command, or a raw payload validated into one

        Returns:
            Detail of the updated item

        Raises:
            NotFoundError: If the item does not exist
            InvalidInputError: If a page lies beyond the item's total pages
        """
        if isinstance(command, dict):
            command = parse_reading_command(command)

        now = ctx.current_time()
        with self.db.get_session() as session:
            item = self._load(ctx, item_id, session)

            if isinstance(command, SetReadingStatus):
                status = command.status.value
                apply_explicit_status(item, status, now)
                if status == ReadingStatus.COMPLETED.value and item.total_pages:
                    item.current_page = item.total_pages
                logger.info("Reading item %s status set to %s", item.id, item.status)
            else:
                if isinstance(command, UpdateReadingProgress):
                    self._update_progress(item, command, now)
                elif isinstance(command, LogSession):
                    self._log_session(item, command, now)
                elif isinstance(command, EditReading):
                    apply_edit(item, command)
                    self._check_page(item, item.current_page)
                self._advance(item, now)

            item.updated_at = to_storage(now)
            item = self.db.save(item, session=session)
            return self._detail(ctx, item)

    def update_progress(
        self,
        ctx: UserContext,
        item_id: str,
        current_page: Optional[int] = None,
        session_duration: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> ReadingDetail:
        """Move the page counter, recording a session when a duration is given.

        Raises:
            InvalidInputError: If the page is negative or beyond the total, or
                the duration is not positive
        """
        try:
            command = UpdateReadingProgress(
                current_page=current_page, session_duration=session_duration, notes=notes
            )
        except ValidationError as e:
            raise InvalidInputError(f"Invalid progress update: {e}") from e
        return self.apply(ctx, item_id, command)

    def log_session(
        self,
        ctx: UserContext,
        item_id: str,
        duration: Optional[int] = None,
        pages_read: Optional[int] = None,
        start_page: Optional[int] = None,
        end_page: Optional[int] = None,
        notes: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> ReadingDetail:
        """Record a reading session.

        Raises:
            InvalidInputError: If the session has neither duration nor pages,
                the duration is not positive, or a page is out of range
        """
        try:
            command = LogSession(
                duration_minutes=duration,
                pages_read=pages_read,
                start_page=start_page,
                end_page=end_page,
                notes=notes,
                session_date=date,
            )
        except ValidationError as e:
            raise InvalidInputError(f"Invalid reading session: {e}") from e
        return self.apply(ctx, item_id, command)

    def set_status(self, ctx: UserContext, item_id: str, status: str) -> ReadingDetail:
        """Explicitly set the stored status.

        Raises:
            InvalidInputError: If the status is not a reading status
        """
        try:
            value = ReadingStatus(status)
        except ValueError:
            raise InvalidInputError(f"Unknown reading status: {status}") from None
        return self.apply(ctx, item_id, SetReadingStatus(status=value))

    def edit(self, ctx: UserContext, item_id: str, **fields) -> ReadingDetail:
        """Edit plain reading item fields."""
        return self.apply(ctx, item_id, EditReading(**fields))

    # -------------------------------------------------------------------------
    # Dashboards
    # -------------------------------------------------------------------------

    def get_dashboard(self, ctx: UserContext) -> ReadingDashboard:
        """Get the reading dashboard for the caller."""
        now = ctx.current_time()
        items = self.db.find(ReadingItem, ctx.owner_id)
        top_n = self.config.top_n

        reading_now = [i for i in items if i.status == ReadingStatus.READING.value]
        reading_now.sort(key=lambda i: i.updated_at, reverse=True)
        finished = [i for i in items if i.completed_at is not None]
        finished.sort(key=lambda i: i.completed_at, reverse=True)
        session_dates = [s.date for i in items for s in i.sessions]

        return ReadingDashboard(
            overview=aggregate.overview(items, now, self.policy),
            stats=aggregate.reading_overview(items, now, self.config.yearly_reading_goal),
            currently_reading=[
                aggregate.entity_summary(i, now, self.policy) for i in reading_now[:top_n]
            ],
            recently_completed=[
                aggregate.entity_summary(i, now, self.policy) for i in finished[:top_n]
            ],
            genre_trends=aggregate.genre_trends(
                items, since=now - timedelta(days=GENRE_TREND_DAYS)
            ),
            recent_activity=aggregate.recent_activity(items, now),
            upcoming_deadlines=aggregate.upcoming_deadlines(
                items, now, limit=top_n, policy=self.policy
            ),
            overdue=aggregate.overdue_items(items, now, limit=top_n, policy=self.policy),
            monthly_breakdown=aggregate.monthly_breakdown(items, now.year),
            reading_streak=timeline.reading_streak(
                session_dates, now, self.config.streak_lookback_days
            ),
        )

    def get_heatmap(self, ctx: UserContext, year: Optional[int] = None) -> ReadingHeatmap:
        """Get the calendar heatmap of reading sessions.

        Args:
            ctx: Caller context
            year: Calendar year (default: the current year)

        Returns:
            Sparse per-day entries and a summary
        """
        now = ctx.current_time()
        year = year or now.year
        items = self.db.find(ReadingItem, ctx.owner_id)
        days = aggregate.heatmap(items, year)
        return ReadingHeatmap(
            year=year,
            days=days,
            summary=aggregate.heatmap_summary(days, now),
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _load(self, ctx: UserContext, item_id: str, session: Session) -> ReadingItem:
        item = self.db.find_one(ReadingItem, item_id, ctx.owner_id, session=session)
        if item is None:
            logger.debug("Reading item %s not found for owner %s", item_id, ctx.owner_id)
            raise NotFoundError("Reading item", item_id)
        return item

    @staticmethod
    def _check_page(item: ReadingItem, page: Optional[int]) -> None:
        if page is None:
            return
        if page < 0:
            raise InvalidInputError("Page cannot be negative")
        if item.total_pages is not None and page > item.total_pages:
            raise InvalidInputError(
                f"Page {page} is beyond the item's {item.total_pages} pages"
            )

    def _update_progress(
        self, item: ReadingItem, command: UpdateReadingProgress, now: datetime
    ) -> None:
        previous = item.current_page or 0
        if command.current_page is not None:
            self._check_page(item, command.current_page)
            item.current_page = command.current_page

        if command.session_duration:
            item.sessions.append(
                ReadingSession(
                    date=to_storage(now),
                    duration_minutes=command.session_duration,
                    pages_read=max(0, item.current_page - previous),
                    start_page=previous,
                    end_page=item.current_page,
                    notes=command.notes,
                )
            )
            logger.info(
                "Logged %d minute session on reading item %s",
                command.session_duration,
                item.id,
            )

    def _log_session(self, item: ReadingItem, command: LogSession, now: datetime) -> None:
        self._check_page(item, command.start_page)
        self._check_page(item, command.end_page)
        session_at = as_utc(command.session_date or now)
        started = min(session_at, as_utc(now))

        pages = command.pages_read
        if pages is None and command.start_page is not None and command.end_page is not None:
            pages = command.end_page - command.start_page

        item.sessions.append(
            ReadingSession(
                date=to_storage(session_at),
                duration_minutes=command.duration_minutes or 0,
                pages_read=pages or 0,
                start_page=command.start_page,
                end_page=command.end_page,
                notes=command.notes,
            )
        )
        if command.end_page is not None and command.end_page > (item.current_page or 0):
            item.current_page = command.end_page

        if item.status == ReadingStatus.TO_READ.value:
            apply_explicit_status(item, ReadingStatus.READING.value, started)
        elif item.started_at is not None and as_utc(item.started_at) > started:
            item.started_at = to_storage(started)
        logger.info("Logged session on reading item %s", item.id)

    def _advance(self, item: ReadingItem, now: datetime) -> None:
        changed = apply_lifecycle(item, entity_progress(item), now)
        if changed is None and item.status == ReadingStatus.TO_READ.value and item.current_page:
            apply_explicit_status(item, ReadingStatus.READING.value, now)
            changed = item.status
        if is_auto_completion(item.kind, changed):
            logger.info("Reading item %s completed", item.id)
        elif changed:
            logger.info("Reading item %s status moved to %s", item.id, changed)

    def _detail(self, ctx: UserContext, item: ReadingItem) -> ReadingDetail:
        now = ctx.current_time()
        progress, status = assess(item, now, self.policy)
        sessions = sorted(item.sessions, key=lambda s: s.date)
        session_dates = [s.date for s in sessions]

        start = timeline.activity_start(item.started_at, session_dates)
        active_days = timeline.days_active(start, now)
        velocity = timeline.reading_velocity(item.current_page, active_days, digits=None)

        analytics = ReadingAnalytics(
            pages_per_day=timeline.round_half_up(velocity, 1),
            reading_speed=timeline.reading_speed(sessions),
            projected_finish=timeline.projected_finish(
                item.current_page, item.total_pages, velocity, now
            ),
            estimated_time_remaining=timeline.estimated_time_remaining(
                item.current_page, item.total_pages, item.average_page_time
            ),
            current_streak=timeline.reading_streak(
                session_dates, now, self.config.streak_lookback_days
            ),
            longest_streak=timeline.longest_streak(session_dates),
            average_session_length=timeline.average_session_length(sessions),
            total_sessions=len(sessions),
            total_minutes=sum(s.duration_minutes or 0 for s in sessions),
            total_pages_logged=sum(s.pages_read or 0 for s in sessions),
        )

        return ReadingDetail(
            item=ReadingItemResponse(
                id=item.id,
                title=item.title,
                author=item.author,
                description=item.description,
                item_type=item.item_type,
                genre=item.genre,
                priority=item.priority,
                status=item.status,
                total_pages=item.total_pages,
                current_page=item.current_page,
                average_page_time=item.average_page_time,
                rating=item.rating,
                isbn=item.isbn,
                publisher=item.publisher,
                goal_id=item.goal_id,
                tags=item.get_tags(),
                target_date=as_utc(item.target_date),
                started_at=as_utc(item.started_at),
                completed_at=as_utc(item.completed_at),
                created_at=as_utc(item.created_at),
                updated_at=as_utc(item.updated_at),
            ),
            progress=progress,
            stored_status=status.stored_status,
            calculated_status=status.derived_status,
            is_overdue=status.is_overdue,
            time_metrics=timeline.time_metrics(progress, start, item.target_date, now),
            analytics=analytics,
            sessions=[SessionResponse.model_validate(s) for s in sessions],
        )
