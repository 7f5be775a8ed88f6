"""FastAPI application setup and configuration."""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from produce_orders.config.settings import Settings, settings
from produce_orders.core.errors import AppError
from produce_orders.core.logger import setup_logger
from produce_orders.core.monitoring import capture_exception, init_monitoring
from produce_orders.core.tasks import pending_task_count, wait_for_pending_tasks
from produce_orders.db import get_engine, get_session_factory, init_db
from produce_orders.integrations.line import LineNotifier, build_notifier
from produce_orders.services import OrderContext, ServiceRegistry, build_services

logger = setup_logger(__name__)


def create_app(
    app_settings: Optional[Settings] = None,
    session_factory=None,
    notifier: Optional[LineNotifier] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        app_settings: Configuration (defaults to the environment settings)
        session_factory: Pre-built session factory; when given, startup does
            not create its own engine
        notifier: LINE notifier override (defaults to one built from settings)
    """
    app_settings = app_settings or settings
    init_monitoring(app_settings.glitchtip_dsn, app_settings.environment)

    app = FastAPI(
        title="Produce Order Service",
        version="1.0.0",
        description="B2B produce orders with ledger-based inventory and lifecycle notifications",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.engine = None
    app.state.services = None
    if session_factory is not None:
        app.state.services = build_services(session_factory, notifier or build_notifier(app_settings))

    # Import router AFTER the app state exists
    from produce_orders.server import routes

    app.include_router(routes.router)

    def get_services(request: Request) -> ServiceRegistry:
        services = request.app.state.services
        if services is None:
            raise RuntimeError("Database not initialized")
        return services

    def get_context() -> OrderContext:
        return OrderContext(orderer_company_id=app_settings.orderer_company_id)

    # Override the stub dependencies with the real providers
    app.dependency_overrides[routes.get_services_stub] = get_services
    app.dependency_overrides[routes.get_context_stub] = get_context

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected: {exc.status_code} {exc.code}")
        return JSONResponse(status_code=exc.status_code, content={"error": jsonable_encoder(exc.to_payload())})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path} invalid request: {len(exc.errors())} errors")
        return JSONResponse(
            status_code=400,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed.",
                    "details": jsonable_encoder(exc.errors()),
                }
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        capture_exception(exc, context={"method": request.method, "path": request.url.path})
        return JSONResponse(
            status_code=500,
            content={"error": {"code": "INTERNAL_SERVER_ERROR", "message": "Internal server error."}},
        )

    @app.on_event("startup")
    async def startup_db():
        """Initialize database on application startup."""
        if app.state.services is not None:
            return

        try:
            logger.info(f"Initializing database: {app_settings.database_url}")
            engine = get_engine(
                app_settings.database_url,
                isolation_level=app_settings.database_isolation_level,
                echo=app_settings.database_echo,
            )
            await init_db(engine)

            app.state.engine = engine
            app.state.services = build_services(
                get_session_factory(engine), notifier or build_notifier(app_settings)
            )
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}", exc_info=True)
            raise

    @app.on_event("shutdown")
    async def shutdown_handler():
        """
        Gracefully shut down all resources.

        1. Pending notification tasks are awaited (no timeout)
        2. Database connections are closed
        """
        logger.info("Starting graceful shutdown...")

        try:
            if pending_task_count():
                await wait_for_pending_tasks()

            if app.state.engine is not None:
                logger.info("Closing database connections...")
                await app.state.engine.dispose()
                logger.info("Database connections closed successfully")

            logger.info("Graceful shutdown completed successfully")
        except Exception as e:
            logger.error(f"Error during shutdown: {e}", exc_info=True)

    return app
