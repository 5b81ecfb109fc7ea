from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from swm_dashboard.api.v1.api import api_router
from swm_dashboard.core.config import settings
from swm_dashboard.core.database import Database
from swm_dashboard.core.exceptions import (
    AppError,
    app_error_handler,
    http_exception_handler,
    integrity_error_handler,
    request_validation_exception_handler,
    sqlalchemy_error_handler,
    unhandled_exception_handler,
)
from swm_dashboard.core.logging import get_logger, setup_logging
from swm_dashboard.middleware.auth_interceptor import AuthInterceptorMiddleware
from swm_dashboard.middleware.logging import RequestLoggingMiddleware
from swm_dashboard.services.auth_provider import AuthProvider

# Setup logging
setup_logging()
logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the providers the app does not already have, and close only those."""
    owned = []

    if getattr(app.state, "database", None) is None:
        database = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO).connect()
        database.create_all()
        app.state.database = database
        owned.append(database)

    if getattr(app.state, "auth_provider", None) is None:
        app.state.auth_provider = AuthProvider(
            settings.AUTH_BASE_URL,
            api_prefix=settings.AUTH_API_PREFIX,
            timeout=settings.AUTH_TIMEOUT_SECONDS,
        ).connect()
        owned.append(app.state.auth_provider)

    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started")
    try:
        yield
    finally:
        for provider in reversed(owned):
            provider.close()
        logger.info(f"{settings.PROJECT_NAME} stopped")


def create_app(
    database: Optional[Database] = None,
    auth_provider: Optional[AuthProvider] = None,
    require_auth: Optional[bool] = None,
) -> FastAPI:
    """
    Build the application.

    Providers passed in are used as-is and left open on shutdown; missing ones
    are created from settings in the lifespan.
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="Gram Panchayat solid waste management dashboard backend",
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )
    app.state.database = database
    app.state.auth_provider = auth_provider

    # Add middleware (order matters - last added is outermost)
    app.add_middleware(
        AuthInterceptorMiddleware,
        skip_paths=[
            # System endpoints
            "/health",
            "/docs",
            "/openapi.json",
            "/redoc",
            "/",  # exact match only
            f"{settings.API_V1_STR}/openapi.json",
        ],
        require_auth=settings.REQUIRE_AUTH if require_auth is None else require_auth,
    )
    app.add_middleware(RequestLoggingMiddleware)

    # Set up CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/")
    async def root():
        return {"message": f"Welcome to {settings.PROJECT_NAME} API"}

    @app.get("/health")
    async def health_check():
        database = app.state.database
        database_ok = database is not None and database.is_connected and database.test_connection()
        return {"status": "healthy" if database_ok else "degraded", "database": database_ok}

    # Exception handlers
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    return app


app = create_app()
