"""FastAPI main application with app factory and route configuration."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .config import Settings
from .db.session import check_database, create_db_engine, create_session_factory, init_db
from .deps import get_settings
from .routes import tasks
from .templating import templates
from .utils.logging import configure_request_logging, log_shutdown_info, log_startup_info, setup_logging

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"
SESSION_COOKIE = "task_tracker_session"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events.

    Args:
        app: FastAPI application instance
    """
    settings: Settings = app.state.settings

    setup_logging(settings)
    log_startup_info(settings)

    try:
        init_db(app.state.engine)
        logger.info("Application startup completed successfully")
    except Exception as e:
        logger.error(f"Error during application startup: {str(e)}")
        raise

    yield

    log_shutdown_info()
    app.state.engine.dispose()
    logger.info("Application shutdown completed successfully")


def _render_error(request: Request, status_code: int, message: str):
    return templates.TemplateResponse(
        request,
        "error.html",
        {"status_code": status_code, "message": message},
        status_code=status_code,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to run with; the global settings are used when omitted

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Task Tracker",
        description="Create, list, edit, complete and delete tasks through server-rendered forms",
        version=APP_VERSION,
        docs_url=None,
        redoc_url=None,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # One engine per app; sessions are opened per request in db.session.get_session
    app.state.settings = settings
    app.state.engine = create_db_engine(settings)
    app.state.session_factory = create_session_factory(app.state.engine)

    app.add_middleware(SessionMiddleware, secret_key=settings.secret_key, session_cookie=SESSION_COOKIE)
    app.middleware("http")(configure_request_logging())

    # Custom exception handlers
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions with proper logging."""
        logger.warning(
            f"HTTP {exc.status_code}: {exc.detail} for {request.method} {request.url}"
        )
        return _render_error(request, exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle malformed URLs and query parameters."""
        logger.warning(
            f"Validation error for {request.method} {request.url}: {exc.errors()}"
        )
        return _render_error(request, status.HTTP_422_UNPROCESSABLE_ENTITY, "The request could not be understood.")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(
            f"Unexpected error for {request.method} {request.url}: {str(exc)}",
            exc_info=True,
        )
        return _render_error(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please try again.",
        )

    @app.get("/healthz", tags=["health"])
    async def health_check(request: Request):
        """Health check endpoint for monitoring and load balancers."""
        database_ok = check_database(request.app.state.engine)
        health_status = {
            "status": "healthy" if database_ok else "unhealthy",
            "version": APP_VERSION,
            "database": "reachable" if database_ok else "unreachable",
        }
        if not database_ok:
            return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=health_status)
        return health_status

    @app.get("/", include_in_schema=False)
    async def root(request: Request):
        return RedirectResponse(url=str(request.url_for("task_index")), status_code=status.HTTP_303_SEE_OTHER)

    app.include_router(tasks.router, prefix="/tasks", tags=["tasks"])

    logger.info("FastAPI application created and configured")

    return app


# Create the app instance
app = create_app()
