"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order
- Can create multiple app instances if needed (e.g., for testing)

For local development:
    uvicorn coachboard.main:app --reload

For production:
    gunicorn coachboard.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.routes import admin, auth, dashboard, health, observations, players
from .config.settings import Settings, get_settings
from .core.errors import (
    CoachBoardError,
    Forbidden,
    IdentityUnavailable,
    InvalidCredentials,
    InvalidRecord,
    MultipleActivePlans,
    NotFound,
    PartialLifecycleFailure,
    StoreUnavailable,
    Unauthorized,
)
from .core.identity import RoleCache
from .core.roster import create_coach, get_coach_by_email
from .infrastructure.auth.mock import MockAuthBackend
from .infrastructure.memory.store import InMemoryRecordStore

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup configuration and validate it."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info(
        "CoachBoard API starting",
        extra={
            "version": __version__,
            "mock_mode": {
                "store": settings.store_mock_mode,
                "auth": settings.auth_mock_mode,
            }
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )
        # For development, we log the error but continue

    yield

    logger.info("CoachBoard API shutting down")


def init_state(app: FastAPI, settings: Settings) -> None:
    """
    Attach process-wide objects to app.state.

    The role cache is shared by every request. In mock modes the record
    store and the account backend live here too, and each mock account
    gets a coach row so it can sign in.
    """
    app.state.role_cache = RoleCache()
    app.state.mock_store = InMemoryRecordStore() if settings.store_mock_mode else None
    app.state.mock_auth = None

    if settings.auth_mock_mode:
        app.state.mock_auth = MockAuthBackend(
            accounts=settings.mock_accounts,
            jwt_secret=settings.jwt_signing_secret,
            audience=settings.auth_jwt_audience,
        )

    if settings.auth_mock_mode and settings.store_mock_mode:
        admin_emails = set(settings.mock_admin_emails_list)
        for email in settings.mock_accounts:
            if get_coach_by_email(app.state.mock_store, email) is None:
                create_coach(
                    app.state.mock_store,
                    email,
                    first_name=email.split("@")[0].title(),
                    is_admin=email in admin_emails,
                )
        logger.info(
            "Seeded mock coaches",
            extra={"count": len(settings.mock_accounts), "admins": sorted(admin_emails)}
        )


def _error_response(
    status_code: int,
    exc: CoachBoardError,
    **extra,
) -> JSONResponse:
    content = {"detail": str(exc), "retryable": exc.retryable}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Map the domain error taxonomy onto HTTP responses."""

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return _error_response(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(InvalidRecord)
    async def invalid_record_handler(request: Request, exc: InvalidRecord):
        return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, exc)

    @app.exception_handler(Unauthorized)
    async def unauthorized_handler(request: Request, exc: Unauthorized):
        return _error_response(
            status.HTTP_401_UNAUTHORIZED,
            exc,
            redirect=settings.login_path,
            **{"from": exc.requested_path or request.url.path},
        )

    @app.exception_handler(InvalidCredentials)
    async def invalid_credentials_handler(request: Request, exc: InvalidCredentials):
        return _error_response(status.HTTP_401_UNAUTHORIZED, exc)

    @app.exception_handler(Forbidden)
    async def forbidden_handler(request: Request, exc: Forbidden):
        return _error_response(
            status.HTTP_403_FORBIDDEN,
            exc,
            redirect=settings.default_area_path,
        )

    @app.exception_handler(MultipleActivePlans)
    async def multiple_active_handler(request: Request, exc: MultipleActivePlans):
        return _error_response(status.HTTP_409_CONFLICT, exc, plan_ids=list(exc.plan_ids))

    @app.exception_handler(PartialLifecycleFailure)
    async def partial_failure_handler(request: Request, exc: PartialLifecycleFailure):
        return _error_response(
            status.HTTP_409_CONFLICT,
            exc,
            phase=exc.phase,
            deactivated_ids=list(exc.deactivated_ids),
            unconfirmed_ids=list(exc.unconfirmed_ids),
        )

    @app.exception_handler(StoreUnavailable)
    @app.exception_handler(IdentityUnavailable)
    async def unavailable_handler(request: Request, exc: CoachBoardError):
        logger.error(
            "Backing service unavailable",
            extra={"path": request.url.path, "error": str(exc)}
        )
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        In production, this prevents stack traces from leaking to clients.
        We log the full error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    This function is called once at startup (in production) or
    multiple times (in tests with different configurations).
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        description="""
        Coaching staff dashboard.

        ## Features

        - Player roster with the development plan currently in effect
        - Append-only coach observations
        - Development plan history, with one active plan per player
        - Admin-only activity log

        ## Authentication

        Sign in with `POST /api/v1/auth/sign-in` and send the returned
        token as `Authorization: Bearer <token>`. Only emails registered
        as coaches may sign in; admin routes require the admin flag.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    init_state(app, settings)

    # CORS middleware
    # Configure allowed origins via CORS_ORIGINS environment variable
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
    app.include_router(players.router, prefix="/api/v1/players", tags=["Players"])
    app.include_router(observations.router, prefix="/api/v1/observations", tags=["Observations"])
    app.include_router(dashboard.router, prefix="/api/v1/dashboard", tags=["Dashboard"])
    app.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin"])

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - redirect to docs."""
        return {
            "message": "CoachBoard API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    register_exception_handlers(app, settings)

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()
