"""SQLite database operations.

Handles database connection, session management, and the generic entity store
used by the managers.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional, TypeVar, Union

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

T = TypeVar("T", bound=Base)


class Database:
    """Database connection and entity store."""

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file, or ":memory:". If None,
                     uses LIFETRACKER_DB_PATH or the default location.
        """
        if db_path is None:
            # deferred: config -> engine -> db
            from ..config import get_config

            db_path = get_config().db_path

        self.db_path = Path(db_path)
        self._is_memory = str(db_path) == ":memory:"

        if not self._is_memory:
            self._ensure_directory()

        # For in-memory databases, use StaticPool to reuse the same connection
        # This ensures all sessions share the same in-memory database
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args={"check_same_thread": False},
            )
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ========================================================================
    # Entity Store
    # ========================================================================

    def find(
        self,
        model: type[T],
        owner_id: str,
        session: Optional[Session] = None,
        **filters,
    ) -> list[T]:
        """Get all entities of a model owned by ``owner_id``.

        Keyword filters are matched by equality against model columns.
        """

        def _find(s: Session) -> list[T]:
            stmt = select(model).where(model.owner_id == owner_id)
            for field, value in filters.items():
                stmt = stmt.where(getattr(model, field) == value)
            stmt = stmt.order_by(model.created_at, model.title)
            return list(s.execute(stmt).scalars().all())

        if session:
            return _find(session)
        else:
            with self.get_session() as s:
                entities = _find(s)
                for entity in entities:
                    s.expunge(entity)
                return entities

    def search(
        self,
        model: type[T],
        owner_id: str,
        query: str,
        session: Optional[Session] = None,
        **filters,
    ) -> list[T]:
        """Search title, description and tags, most recently updated first."""

        def _search(s: Session) -> list[T]:
            pattern = f"%{query.strip()}%"
            stmt = select(model).where(
                model.owner_id == owner_id,
                model.title.ilike(pattern)
                | model.description.ilike(pattern)
                | model.tags.ilike(pattern),
            )
            for field, value in filters.items():
                stmt = stmt.where(getattr(model, field) == value)
            stmt = stmt.order_by(model.updated_at.desc(), model.title)
            return list(s.execute(stmt).scalars().all())

        if session:
            return _search(session)
        else:
            with self.get_session() as s:
                entities = _search(s)
                for entity in entities:
                    s.expunge(entity)
                return entities

    def find_one(
        self,
        model: type[T],
        entity_id: str,
        owner_id: str,
        session: Optional[Session] = None,
    ) -> Optional[T]:
        """Get one entity by ID, or None if missing or owned by someone else."""

        def _get(s: Session) -> Optional[T]:
            stmt = select(model).where(model.id == entity_id, model.owner_id == owner_id)
            return s.execute(stmt).scalar_one_or_none()

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                entity = _get(s)
                if entity:
                    s.expunge(entity)
                return entity

    def save(self, entity: T, session: Optional[Session] = None) -> T:
        """Insert or update an entity together with its child items.

        Returns:
            The persisted entity (detached when no session is passed)
        """

        def _save(s: Session) -> T:
            merged = s.merge(entity)
            s.flush()
            s.refresh(merged)
            return merged

        if session:
            return _save(session)
        else:
            with self.get_session() as s:
                saved = _save(s)
                s.expunge(saved)
                return saved

    def delete(self, entity: Base, session: Optional[Session] = None) -> bool:
        """Delete an entity and its child items."""

        def _delete(s: Session) -> bool:
            existing = s.get(type(entity), entity.id)
            if not existing:
                return False
            s.delete(existing)
            return True

        if session:
            return _delete(session)
        else:
            with self.get_session() as s:
                return _delete(s)


# Global database instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database(db_path)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Reset the global database instance. Used for testing."""
    global _db
    _db = None
