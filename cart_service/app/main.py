"""
Cart Service FastAPI Application
================================

Main application entry point for the Cart Service microservice.
Handles guest and user carts, checkout hand-off to the Order Service and
the periodic removal of expired carts.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.carts import router as carts_router
from .core.database import CartServiceDatabaseManager
from .core.settings import CartSettings, get_settings
from .events.base.kafka_client import KafkaEventPublisher
from .events.producers import CartEventProducer
from .middleware.error.error_handler import setup_cart_error_handling
from .tasks.cart_sweeper import CartSweeper
from .utils.logging import setup_cart_logging
from .utils.service_clients import OrderClient, ProductClient, UserClient

settings = get_settings()
logger = setup_cart_logging(
    "cart_service",
    log_level=settings.LOG_LEVEL,
    enable_file_logging=settings.ENVIRONMENT.lower() in ["production", "staging"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager for startup and shutdown."""
    startup_start = time.time()
    app_settings: CartSettings = app.state.settings

    try:
        database_manager = CartServiceDatabaseManager(
            database_url=app_settings.CART_DATABASE_URL,
            echo=app_settings.DEBUG,
            pool_size=app_settings.DATABASE_POOL_SIZE,
            max_overflow=app_settings.DATABASE_MAX_OVERFLOW,
        )
        await database_manager.create_tables()
        app.state.database_manager = database_manager

        http_client = httpx.AsyncClient(timeout=app_settings.HTTP_CLIENT_TIMEOUT)
        app.state.http_client = http_client
        client_options = {"retries": app_settings.HTTP_CLIENT_RETRIES, "client": http_client}
        app.state.product_client = ProductClient(
            app_settings.PRODUCT_SERVICE_URL, **client_options
        )
        app.state.user_client = UserClient(app_settings.USER_SERVICE_URL, **client_options)
        app.state.order_client = OrderClient(
            app_settings.ORDER_SERVICE_URL, **client_options
        )

        app.state.kafka_publisher = None
        app.state.event_producer = None
        if app_settings.ENABLE_EVENT_PUBLISHING:
            kafka_publisher = KafkaEventPublisher(
                bootstrap_servers=app_settings.KAFKA_BOOTSTRAP_SERVERS,
                client_id=app_settings.SERVICE_NAME,
                default_topic=app_settings.KAFKA_TOPIC_CART_EVENTS,
            )
            await kafka_publisher.start()
            app.state.kafka_publisher = kafka_publisher
            app.state.event_producer = CartEventProducer(
                kafka_publisher, topic=app_settings.KAFKA_TOPIC_CART_EVENTS
            )

        app.state.cart_sweeper = None
        if app_settings.ENABLE_CART_SWEEPER:
            sweeper = CartSweeper(
                database_manager.async_session_maker,
                interval_seconds=app_settings.CART_SWEEP_INTERVAL_SECONDS,
            )
            sweeper.start()
            app.state.cart_sweeper = sweeper

    except Exception as e:
        logger.error(
            "Failed to start cart service",
            exc_info=True,
            extra={
                "startup_duration_ms": int((time.time() - startup_start) * 1000),
                "error_type": type(e).__name__,
            },
        )
        raise

    logger.info(
        "Cart service started successfully",
        extra={
            "total_startup_duration_ms": int((time.time() - startup_start) * 1000),
            "event_publishing": app_settings.ENABLE_EVENT_PUBLISHING,
            "cart_sweeper": app_settings.ENABLE_CART_SWEEPER,
        },
    )

    yield

    await _shutdown_services(app)


async def _shutdown_services(app: FastAPI) -> None:
    """Shutdown all application services gracefully."""
    shutdown_start = time.time()
    logger.info("Starting cart service shutdown")

    if app.state.cart_sweeper is not None:
        await app.state.cart_sweeper.stop()
    if app.state.kafka_publisher is not None:
        await app.state.kafka_publisher.stop()
    await app.state.http_client.aclose()
    await app.state.database_manager.close()

    logger.info(
        "Cart service shutdown completed",
        extra={"shutdown_duration_ms": int((time.time() - shutdown_start) * 1000)},
    )


def create_app(app_settings: Optional[CartSettings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
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

    setup_cart_error_handling(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=app_settings.CORS_CREDENTIALS,
        allow_methods=app_settings.CORS_METHODS,
        allow_headers=app_settings.CORS_HEADERS,
    )

    app.include_router(carts_router, prefix=app_settings.API_PREFIX, tags=["Carts"])
    logger.info(
        "API routes configured",
        extra={"routers": ["carts"], "prefix": app_settings.API_PREFIX},
    )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(  # type: ignore
        "cart_service.app.main:app",
        host="0.0.0.0",
        port=8004,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
    )
