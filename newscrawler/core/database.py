from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from newscrawler.core.config import DatabaseConfig

# libpq sslmode values mapped onto asyncpg's "ssl" connect argument.
_SSL_MODES = {
    "disable": False,
    "allow": "allow",
    "prefer": "prefer",
    "require": "require",
    "verify-ca": "verify-ca",
    "verify-full": "verify-full",
}


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def build_database_url(config: DatabaseConfig) -> Tuple[str, Dict[str, Any]]:
    """
    Translate the configured driver and connection data into an async
    SQLAlchemy URL and the matching connect arguments.
    """
    if config.driver == "sqlite3":
        path = config.connection_data
        if path in ("", ":memory:"):
            return "sqlite+aiosqlite://", {}
        return f"sqlite+aiosqlite:///{path}", {}

    parts = urlsplit(config.connection_data)
    connect_args: Dict[str, Any] = {}
    query = []
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        if key == "sslmode":
            connect_args["ssl"] = _SSL_MODES.get(value, value)
        else:
            query.append((key, value))

    url = urlunsplit(("postgresql+asyncpg", parts.netloc, parts.path, urlencode(query), ""))
    return url, connect_args


class Database:
    """Async database connection manager for the article store."""

    def __init__(self, config: DatabaseConfig, echo: bool = False):
        self.config = config
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Get the database engine."""
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get the session factory."""
        if self._session_factory is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self._session_factory

    async def connect(self, use_pool: bool = True) -> None:
        """
        Initialize database connection and session factory.

        Args:
            use_pool: Whether to use connection pooling. Set False for testing.
        """
        url, connect_args = build_database_url(self.config)

        engine_options: Dict[str, Any] = {}
        if self.config.driver == "postgres":
            if use_pool:
                engine_options = {"pool_size": 10, "max_overflow": 20, "pool_pre_ping": True}
            else:
                engine_options = {"poolclass": NullPool}
        if connect_args:
            engine_options["connect_args"] = connect_args

        self._engine = create_async_engine(url, echo=self.echo, **engine_options)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def disconnect(self) -> None:
        """Close database connection and cleanup resources."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    async def create_tables(self) -> None:
        """Create the tables of every registered model if they don't exist."""
        # Registers the models on Base.metadata.
        import newscrawler.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Async context manager for database sessions.

        Yields:
            AsyncSession: Database session with automatic commit/rollback.
        """
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
