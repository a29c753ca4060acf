# This project was developed with assistance from AI tools.
"""Engine and session management.

Storage operations of the wizard are synchronous (they run inside a single
request without awaiting), so the engine is a plain synchronous SQLAlchemy
engine. Nothing connects until the first session is opened.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import db_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class DatabaseService:
    """Owns one engine and its session factory."""

    def __init__(self, url: str | None = None, echo: bool | None = None):
        self.url = url or db_settings.DATABASE_URL
        kwargs: dict = {}
        if self.url.startswith("sqlite"):
            # In-memory SQLite must share a single connection across sessions
            kwargs = {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
        else:
            kwargs = {"pool_pre_ping": True}
        self.engine = create_engine(
            self.url,
            echo=db_settings.SQL_ECHO if echo is None else echo,
            **kwargs,
        )
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        logger.info("DatabaseService initialised (dialect=%s)", self.engine.dialect.name)

    def session(self) -> Session:
        """Return a new session. Callers use it as a context manager."""
        return self._session_factory()

    def create_all(self) -> None:
        """Create missing tables (dev and test convenience; prod uses alembic)."""
        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
