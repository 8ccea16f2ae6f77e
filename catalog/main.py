"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.

Key Concepts:
=============

1. Application Factory Pattern
   - create_app() returns a configured app
   - Tests build apps with their own Settings (e.g. OAuth enabled)

2. Startup-time wiring
   - OAuth providers are built from settings; only configured ones get routes
   - The session store backend is chosen from SESSION_BACKEND

3. Middleware Stack
   - CORS with credentials, so browsers send the session cookie
   - slowapi rate limiting for the credential endpoints

4. Exception Handlers
   - CatalogError subclasses map to their status code and label
   - Request validation errors become one 400 listing every violation
   - Database and unexpected errors are logged and answered with a 500
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from catalog.config import Settings, get_settings
from catalog.database import SessionLocal
from catalog.errors import CatalogError, ValidationFailed, format_validation_errors
from catalog.routers import auth_router, books_router, create_oauth_router, reviews_router
from catalog.services.oauth import build_oauth_providers
from catalog.services.rate_limiter import limiter, rate_limit_exceeded_handler
from catalog.services.sessions import DatabaseSessionStore, create_redis_session_store

# =============================================================================
# Logging Configuration
# =============================================================================
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan Events
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Code before yield: Runs on startup
    Code after yield: Runs on shutdown
    """
    app_settings: Settings = app.state.settings

    # ----- STARTUP -----
    logger.info(f"Starting {app_settings.app_name}...")
    logger.info(f"Environment: {app_settings.environment}, debug: {app_settings.debug}")
    logger.info(f"Session backend: {app_settings.session_backend}")
    logger.info(f"OAuth providers: {', '.join(app.state.oauth_providers) or 'none'}")

    if app_settings.session_backend == "database":
        db = SessionLocal()
        try:
            purged = DatabaseSessionStore(
                db, timedelta(hours=app_settings.session_ttl_hours)
            ).purge_expired()
            if purged:
                logger.info(f"Purged {purged} expired sessions")
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Could not purge expired sessions: {e}")
        finally:
            db.close()

    yield  # Application runs here

    # ----- SHUTDOWN -----
    logger.info(f"Shutting down {app_settings.app_name}...")

    store = app.state.session_store
    if store is not None:
        store.client.close()


# =============================================================================
# Application Factory
# =============================================================================
def create_app(app_settings: Settings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Settings to build the app from; defaults to the
            process settings from the environment

    Returns:
        Configured FastAPI application instance
    """
    app_settings = app_settings or settings

    app = FastAPI(
        title=app_settings.app_name,
        description="""
## Book Catalog API

A catalog of books and reader reviews.

### Features
- **Books**: Full CRUD for catalog entries
- **Reviews**: One review per reader per book; only the author may edit or delete it

### Authentication
Sign in with email and password, or with Google / GitHub when configured.
The session lives in an httpOnly `session_id` cookie. Every book and review
endpoint requires a signed-in user.
        """,
        version=app_settings.api_version,
        docs_url="/api-docs",  # Swagger UI
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = app_settings

    # -------------------------------------------------------------------------
    # Sessions & OAuth
    # -------------------------------------------------------------------------
    # None means the per-request database store (see get_session_store)
    app.state.session_store = (
        create_redis_session_store(app_settings)
        if app_settings.session_backend == "redis"
        else None
    )

    oauth_providers = build_oauth_providers(app_settings)
    app.state.oauth_providers = list(oauth_providers)

    # -------------------------------------------------------------------------
    # Rate Limiting
    # -------------------------------------------------------------------------
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    # allow_credentials so browsers send the session cookie cross-origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        error = ValidationFailed(format_validation_errors(exc.errors()))
        logger.info(f"{request.method} {request.url.path} -> 400: {error.detail}")
        return JSONResponse(status_code=error.status_code, content=error.to_body())

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(
        request: Request,
        exc: SQLAlchemyError,
    ) -> JSONResponse:
        """Log the real database error; hide it from clients."""
        logger.error(f"Database error: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Server Error",
                "detail": "A database error occurred. Please try again later.",
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """
        Catch-all exception handler.

        In production, hide internal errors from users.
        In debug mode, show more details.
        """
        logger.error(f"Unhandled error: {exc}", exc_info=True)

        detail = str(exc) if app_settings.debug else "An internal error occurred."
        return JSONResponse(
            status_code=500,
            content={"error": "Server Error", "detail": detail},
        )

    # -------------------------------------------------------------------------
    # Register Routers
    # -------------------------------------------------------------------------
    app.include_router(auth_router)
    app.include_router(create_oauth_router(oauth_providers, app_settings))
    app.include_router(books_router)
    app.include_router(reviews_router)

    # -------------------------------------------------------------------------
    # Health Check Endpoint
    # -------------------------------------------------------------------------
    @app.get(
        "/health",
        tags=["Health"],
        summary="Health check",
        description="Check if the API is running.",
    )
    async def health_check() -> dict:
        return {
            "status": "healthy",
            "app": app_settings.app_name,
            "version": app_settings.api_version,
            "session_backend": app_settings.session_backend,
            "oauth_providers": app.state.oauth_providers,
            "rate_limiting": {
                "enabled": app_settings.rate_limit_enabled,
                "auth_limit": app_settings.rate_limit_auth,
            },
        }

    @app.get(
        "/",
        tags=["Root"],
        summary="API root",
        description="Welcome message and API information.",
    )
    async def root() -> dict:
        return {
            "message": f"Welcome to {app_settings.app_name}",
            "version": app_settings.api_version,
            "docs": "/api-docs",
            "health": "/health",
        }

    return app


# =============================================================================
# Application Instance
# =============================================================================
# This is what uvicorn imports: uvicorn catalog.main:app

app = create_app()


# =============================================================================
# Development Server
# =============================================================================
# python -m catalog.main

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "catalog.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,  # Auto-reload on code changes
    )
