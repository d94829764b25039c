"""
Database connection and session management for the scoring engine.

Provides async database connection, session management, and
database initialization utilities.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy import event, inspect, text
from contextlib import asynccontextmanager
import logging
import time
import asyncio
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional
from .models import Base
from .config import config
from .exceptions import ScoringEngineError

logger = logging.getLogger(__name__)


class Database:
    """
    Async database connection manager.

    Provides connection pooling, session management, and
    database utilities for the scoring engine.
    """

    def __init__(self, database_url: str, echo: bool = False, pool_size: int = 10):
        """
        Initialize database connection.

        Args:
            database_url: SQLAlchemy async connection string
            echo: Whether to log SQL queries
            pool_size: Connection pool size (ignored for SQLite)
        """
        self.database_url = database_url
        self.engine = None
        self.async_session = None
        self.echo = echo
        self.pool_size = pool_size

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def _engine_options(self) -> dict:
        if self.is_sqlite:
            options = {"echo": self.echo}
            if ":memory:" in self.database_url:
                # Every session must see the same in-memory database
                options["poolclass"] = StaticPool
                options["connect_args"] = {"check_same_thread": False}
            return options

        return {
            "echo": self.echo,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
            "pool_size": self.pool_size,
            "max_overflow": 20,
            "connect_args": {
                "command_timeout": 60,
                "server_settings": {"application_name": "multisport_scoring"},
            },
        }

    async def initialize(self, max_retries: int = 3, retry_delay: float = 2.0):
        """
        Initialize the database engine and session maker with retry logic.

        Args:
            max_retries: Maximum number of connection retry attempts
            retry_delay: Delay between retry attempts in seconds
        """
        for attempt in range(max_retries):
            try:
                logger.info(f"Attempting database connection (attempt {attempt + 1}/{max_retries})")

                self.engine = create_async_engine(self.database_url, **self._engine_options())

                self.async_session = async_sessionmaker(
                    self.engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                    autoflush=True
                )

                await self._validate_connection()
                self._setup_event_listeners()

                logger.info("Database connection initialized successfully")
                return

            except Exception as e:
                logger.error(f"Database connection attempt {attempt + 1} failed: {e}")
                if attempt < max_retries - 1:
                    logger.info(f"Retrying in {retry_delay} seconds...")
                    await asyncio.sleep(retry_delay)
                    retry_delay *= 2  # Exponential backoff
                else:
                    logger.error("All database connection attempts failed")
                    raise

    async def _validate_connection(self):
        """Validate database connection with a simple query."""
        if not self.engine:
            raise RuntimeError("Database engine not initialized")

        async with self.engine.begin() as conn:
            result = await conn.execute(text("SELECT 1"))
            if result.scalar() != 1:
                raise RuntimeError("Database connection validation failed")
        logger.debug("Database connection validation passed")

    def _setup_event_listeners(self):
        """Set up SQLAlchemy event listeners for monitoring."""

        @event.listens_for(self.engine.sync_engine, "before_cursor_execute")
        def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            context._query_start_time = time.time()

        @event.listens_for(self.engine.sync_engine, "after_cursor_execute")
        def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            total = time.time() - context._query_start_time
            if total > 1.0:
                logger.warning(f"Slow query ({total:.2f}s): {statement[:100]}...")

    async def create_tables(self, drop_first: bool = False):
        """
        Create all database tables.

        Args:
            drop_first: Whether to drop existing tables first
        """
        if not self.engine:
            await self.initialize()

        try:
            async with self.engine.begin() as conn:
                if drop_first:
                    logger.info("Dropping existing tables...")
                    await conn.run_sync(Base.metadata.drop_all)

                logger.info("Creating database tables...")
                await conn.run_sync(Base.metadata.create_all)
                logger.info("Database tables created successfully")

        except Exception as e:
            logger.error(f"Failed to create tables: {e}")
            raise

    async def drop_tables(self):
        """Drop all database tables."""
        if not self.engine:
            await self.initialize()

        try:
            async with self.engine.begin() as conn:
                logger.info("Dropping all tables...")
                await conn.run_sync(Base.metadata.drop_all)
                logger.info("All tables dropped successfully")

        except Exception as e:
            logger.error(f"Failed to drop tables: {e}")
            raise

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a database session with automatic commit/rollback.

        Yields:
            AsyncSession: Database session
        """
        if not self.async_session:
            await self.initialize()

        async with self.async_session() as session:
            try:
                yield session
                await session.commit()
            except ScoringEngineError as e:
                # Rejected requests, already reported by the engine
                await session.rollback()
                logger.debug(f"Session rolled back: {e}")
                raise
            except Exception as e:
                await session.rollback()
                logger.error(f"Database session error: {e}")
                raise

    async def close(self):
        """Close all database connections."""
        if self.engine:
            await self.engine.dispose()
            logger.info("Database connections closed")

    async def health_check(self) -> dict:
        """
        Perform database health check.

        Returns:
            dict: Health check results
        """
        health_info = {
            "status": "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": {}
        }

        try:
            async with self.get_session() as session:
                start_time = time.time()
                await session.execute(text("SELECT 1"))
                response_time = time.time() - start_time
                health_info["checks"]["connectivity"] = {
                    "status": "pass",
                    "response_time_ms": round(response_time * 1000, 2)
                }

            async with self.engine.connect() as conn:
                existing = await conn.run_sync(
                    lambda sync_conn: set(inspect(sync_conn).get_table_names())
                )
                health_info["checks"]["tables"] = {
                    "status": "pass" if set(Base.metadata.tables) <= existing else "fail",
                    "expected": len(Base.metadata.tables)
                }

            if all(check["status"] == "pass" for check in health_info["checks"].values()):
                health_info["status"] = "healthy"

        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            health_info["error"] = str(e)

        return health_info


# Global database instance
db: Optional[Database] = None


async def get_database() -> Database:
    """
    Get the global database instance using configuration module.

    Returns:
        Database: Global database instance
    """
    global db
    if db is None:
        db = Database(config.database_url, echo=config.db_echo, pool_size=config.db_pool_size)
        await db.initialize()

    return db


async def init_database(drop_first: bool = False):
    """
    Initialize the database with all tables.

    Args:
        drop_first: Whether to drop existing tables first
    """
    database = await get_database()
    await database.create_tables(drop_first=drop_first)


async def validate_database_startup() -> bool:
    """
    Validate database connection during application startup.

    Returns:
        bool: True if database is ready to serve score submissions
    """
    logger.info("Validating database connectivity for startup...")

    try:
        database = await get_database()
        health_result = await database.health_check()

        if health_result["status"] != "healthy":
            logger.error(f"Database health check failed: {health_result}")
            return False

        logger.info("Database validation completed successfully")
        return True

    except Exception as e:
        logger.error(f"Database startup validation failed: {e}")
        return False
