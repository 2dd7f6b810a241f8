import time
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.products import router as products_router
from .core.database import ProductServiceDatabaseManager
from .core.settings import ProductSettings, get_settings
from .events.event_consumers import ProductEventConsumer
from .middleware.error import setup_product_error_handling
from .utils.logging import setup_product_logging as setup_logging

settings = get_settings()

# Enhanced logging with production features
environment = settings.ENVIRONMENT.lower()
enable_file_logging = environment in ["production", "staging"]

logger = setup_logging(
    "product_service",
    log_level=settings.LOG_LEVEL,
    enable_file_logging=enable_file_logging,
)


# Lifespan context manager for startup and shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    startup_start = time.time()
    app_settings: ProductSettings = app.state.settings

    try:
        logger.info(
            "Starting product service initialization",
            extra={
                "environment": environment,
                "debug_mode": app_settings.DEBUG,
                "service_version": app_settings.APP_VERSION,
            },
        )

        # Database initialization
        db_start = time.time()
        database_manager = ProductServiceDatabaseManager(
            database_url=app_settings.PRODUCT_DATABASE_URL,
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

        # Inventory adjustment consumer
        consumer_start = time.time()
        app.state.event_consumer = None
        if app_settings.ENABLE_EVENT_CONSUMER:
            event_consumer = ProductEventConsumer(
                database_manager.async_session_maker, app_settings
            )
            await event_consumer.start()
            app.state.event_consumer = event_consumer
        consumer_duration = int((time.time() - consumer_start) * 1000)

        logger.info(
            "Product service started successfully",
            extra={
                "total_startup_duration_ms": int((time.time() - startup_start) * 1000),
                "database_init_ms": db_duration,
                "event_consumer_init_ms": consumer_duration,
                "event_consumer": app_settings.ENABLE_EVENT_CONSUMER,
            },
        )

    except Exception as e:
        logger.error(
            "Failed to start product service",
            exc_info=True,
            extra={
                "startup_duration_ms": int((time.time() - startup_start) * 1000),
                "error_type": type(e).__name__,
            },
        )
        raise

    yield

    shutdown_start = time.time()
    logger.info("Starting product service shutdown")

    if app.state.event_consumer is not None:
        await app.state.event_consumer.stop()
    await app.state.database_manager.close()

    logger.info(
        "Product service shutdown completed",
        extra={"shutdown_duration_ms": int((time.time() - shutdown_start) * 1000)},
    )


def create_app(app_settings: Optional[ProductSettings] = None) -> FastAPI:
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

    setup_product_error_handling(app)

    routers_info: list[dict[str, Any]] = []
    app.include_router(
        products_router, prefix=app_settings.API_PREFIX, tags=["Inventory Management"]
    )
    routers_info.append(
        {
            "router": "products",
            "prefix": app_settings.API_PREFIX,
            "tags": ["Inventory Management"],
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
        "product_service.app.main:app",
        host="0.0.0.0",
        port=8002,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
    )
