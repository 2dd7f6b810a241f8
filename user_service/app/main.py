import time
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.users import router as users_router
from .core.database import UserServiceDatabaseManager
from .core.settings import UserSettings, get_settings
from .events.event_consumers import UserEventConsumer
from .middleware.error import setup_user_error_handling
from .utils.logging import setup_user_logging as setup_logging

settings = get_settings()

# Enhanced logging with production features
environment = settings.ENVIRONMENT.lower()
enable_file_logging = environment in ["production", "staging"]

logger = setup_logging(
    "user_service",
    log_level=settings.LOG_LEVEL,
    enable_file_logging=enable_file_logging,
)


# Lifespan context manager for startup and shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    startup_start = time.time()
    app_settings: UserSettings = app.state.settings

    try:
        logger.info(
            "Starting user service initialization",
            extra={
                "environment": environment,
                "debug_mode": app_settings.DEBUG,
                "service_version": app_settings.APP_VERSION,
            },
        )

        # Database initialization
        db_start = time.time()
        database_manager = UserServiceDatabaseManager(
            database_url=app_settings.USER_DATABASE_URL,
            echo=app_settings.DEBUG,
            pool_size=app_settings.DATABASE_POOL_SIZE,
            max_overflow=app_settings.DATABASE_MAX_OVERFLOW,
        )
        await database_manager.create_tables()
        app.state.database_manager = database_manager
        db_duration = int((time.time() - db_start) * 1000)
        logger.info(
            "Database initialization completed", extra={"duration_ms": db_duration}
        )

        # Order history projector
        consumer_start = time.time()
        app.state.event_consumer = None
        if app_settings.ENABLE_EVENT_CONSUMER:
            event_consumer = UserEventConsumer(
                database_manager.async_session_maker, app_settings
            )
            await event_consumer.start()
            app.state.event_consumer = event_consumer
        consumer_duration = int((time.time() - consumer_start) * 1000)

        logger.info(
            "User service started successfully",
            extra={
                "total_startup_duration_ms": int((time.time() - startup_start) * 1000),
                "database_init_ms": db_duration,
                "event_consumer_init_ms": consumer_duration,
                "event_consumer": app_settings.ENABLE_EVENT_CONSUMER,
            },
        )

    except Exception as e:
        logger.error(
            "Failed to start user service",
            exc_info=True,
            extra={
                "startup_duration_ms": int((time.time() - startup_start) * 1000),
                "error_type": type(e).__name__,
            },
        )
        raise

    yield

    shutdown_start = time.time()
    logger.info("Starting user service shutdown")

    if app.state.event_consumer is not None:
        await app.state.event_consumer.stop()
    await app.state.database_manager.close()

    logger.info(
        "User service shutdown completed",
        extra={"shutdown_duration_ms": int((time.time() - shutdown_start) * 1000)},
    )


def create_app(app_settings: Optional[UserSettings] = None) -> FastAPI:
    app_settings = app_settings or settings
    app = FastAPI(
        title=app_settings.APP_NAME,
        version=app_settings.APP_VERSION,
        debug=app_settings.DEBUG,
        lifespan=lifespan,
        openapi_url="/openapi.json" if app_settings.DEBUG else None,
        docs_url="/docs" if app_settings.DEBUG else None,
        redoc_url="/redoc" if app_settings.DEBUG else None,
    )
    app.state.settings = app_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=app_settings.CORS_CREDENTIALS,
        allow_methods=app_settings.CORS_METHODS,
        allow_headers=app_settings.CORS_HEADERS,
    )

    setup_user_error_handling(app)

    routers_info: list[dict[str, Any]] = []
    app.include_router(
        users_router, prefix=app_settings.API_PREFIX, tags=["User Management"]
    )
    routers_info.append(
        {
            "router": "users",
            "prefix": app_settings.API_PREFIX,
            "tags": ["User Management"],
        }
    )

    logger.info(
        "API routes configured",
        extra={"total_routers": len(routers_info), "routers": routers_info},
    )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(  # type: ignore
        "user_service.app.main:app",
        host="0.0.0.0",
        port=8001,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
    )
