import time
from contextlib import asynccontextmanager
from typing import Any, Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.orders import router as orders_router
from .core.database import OrderServiceDatabaseManager
from .core.events import close_events, init_events
from .core.settings import OrderSettings, get_settings
from .middleware.error import setup_order_error_handling
from .utils.logging import setup_order_logging as setup_logging
from .utils.service_clients import ProductClient, UserClient

settings = get_settings()

# Enhanced logging with production features
environment = settings.ENVIRONMENT.lower()
enable_file_logging = environment in ["production", "staging"]

logger = setup_logging(
    "order_service",
    log_level=settings.LOG_LEVEL,
    enable_file_logging=enable_file_logging,
)


# Lifespan context manager for startup and shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    startup_start = time.time()
    app_settings: OrderSettings = app.state.settings

    try:
        logger.info(
            "Starting order service initialization",
            extra={
                "environment": environment,
                "debug_mode": app_settings.DEBUG,
                "service_version": app_settings.APP_VERSION,
            },
        )

        # Database initialization
        db_start = time.time()
        database_manager = OrderServiceDatabaseManager(
            database_url=app_settings.ORDER_DATABASE_URL,
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

        # Catalog and user lookups share one connection pool
        app.state.http_client = httpx.AsyncClient(
            timeout=app_settings.HTTP_CLIENT_TIMEOUT
        )
        app.state.product_client = ProductClient(
            app_settings.PRODUCT_SERVICE_URL,
            retries=app_settings.HTTP_CLIENT_RETRIES,
            client=app.state.http_client,
        )
        app.state.user_client = UserClient(
            app_settings.USER_SERVICE_URL,
            retries=app_settings.HTTP_CLIENT_RETRIES,
            client=app.state.http_client,
        )

        # Event publisher initialization
        event_start = time.time()
        app.state.kafka_publisher, app.state.event_producer = await init_events(
            app_settings
        )
        event_duration = int((time.time() - event_start) * 1000)

        logger.info(
            "Order service started successfully",
            extra={
                "total_startup_duration_ms": int((time.time() - startup_start) * 1000),
                "database_init_ms": db_duration,
                "event_publisher_init_ms": event_duration,
            },
        )

    except Exception as e:
        logger.error(
            "Failed to start order service",
            exc_info=True,
            extra={
                "startup_duration_ms": int((time.time() - startup_start) * 1000),
                "error_type": type(e).__name__,
            },
        )
        raise

    yield

    shutdown_start = time.time()
    logger.info("Starting order service shutdown")

    await close_events(app.state.kafka_publisher)
    await app.state.http_client.aclose()
    await app.state.database_manager.close()

    logger.info(
        "Order service shutdown completed",
        extra={"shutdown_duration_ms": int((time.time() - shutdown_start) * 1000)},
    )


def create_app(app_settings: Optional[OrderSettings] = None) -> FastAPI:
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

    setup_order_error_handling(app)

    routers_info: list[dict[str, Any]] = []
    app.include_router(
        orders_router, prefix=app_settings.API_PREFIX, tags=["Order Management"]
    )
    routers_info.append(
        {"router": "orders", "prefix": app_settings.API_PREFIX, "tags": ["Order Management"]}
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
        "order_service.app.main:app",
        host="0.0.0.0",
        port=8003,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
    )
