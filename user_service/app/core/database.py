"""Database configuration for User Service"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ..models.base import UserServiceBase


class UserServiceDatabaseManager:
    """Custom database manager for User Service with optimized settings."""

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 40,
    ) -> None:
        engine_kwargs: Dict[str, Any] = {"echo": echo, "future": True}
        is_sqlite = database_url.startswith("sqlite")

        if is_sqlite:
            # SQLite configuration for development and tests
            engine_kwargs["connect_args"] = {
                "timeout": 60,
                "check_same_thread": False,
            }
            if ":memory:" in database_url:
                engine_kwargs["poolclass"] = StaticPool
        else:
            # PostgreSQL configuration optimized for User Service
            engine_kwargs.update(
                {
                    "pool_size": pool_size,
                    "max_overflow": max_overflow,
                    "pool_timeout": 45,
                    "pool_recycle": 3600,  # 1 hour recycle for user sessions
                    "pool_pre_ping": True,
                    "pool_reset_on_return": "commit",
                    "connect_args": {
                        "command_timeout": 30,
                        "server_settings": {"jit": "off"},
                    },
                }
            )

        self.async_engine = create_async_engine(database_url, **engine_kwargs)

        if is_sqlite:

            @event.listens_for(self.async_engine.sync_engine, "connect")
            def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        self.async_session_maker = async_sessionmaker(
            bind=self.async_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
            autocommit=False,
        )

    async def create_tables(self) -> None:
        """Create all User Service database tables."""
        async with self.async_engine.begin() as conn:
            await conn.run_sync(UserServiceBase.metadata.create_all, checkfirst=True)

    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get async database session for User Service."""
        async with self.async_session_maker() as session:
            yield session

    async def close(self) -> None:
        """Properly close the User Service database engine and connections."""
        await self.async_engine.dispose()
