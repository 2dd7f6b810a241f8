"""Database configuration for Cart Service"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ..models.base import CartServiceBase


class CartServiceDatabaseManager:
    """Database manager for Cart Service."""

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 40,
    ) -> None:
        engine_kwargs: Dict[str, Any] = {"echo": echo, "future": True}

        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {
                "timeout": 60,
                "check_same_thread": False,
            }
            if ":memory:" in database_url:
                # A single shared connection keeps the in-memory schema alive
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs.update(
                {
                    "pool_size": pool_size,
                    "max_overflow": max_overflow,
                    "pool_timeout": 30,
                    "pool_recycle": 1800,
                    "pool_pre_ping": True,
                    "connect_args": {
                        "command_timeout": 30,
                        "server_settings": {"jit": "off"},
                    },
                }
            )

        self.async_engine = create_async_engine(database_url, **engine_kwargs)

        if database_url.startswith("sqlite"):

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
        """Create all Cart Service database tables."""
        async with self.async_engine.begin() as conn:
            await conn.run_sync(CartServiceBase.metadata.create_all, checkfirst=True)

    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get async database session for Cart Service."""
        async with self.async_session_maker() as session:
            yield session

    async def close(self) -> None:
        """Close the Cart Service database engine and connections."""
        await self.async_engine.dispose()
