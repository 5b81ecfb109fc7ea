"""
Authentication Interceptor Middleware

Resolves the acting user for every request from the session token (bearer
header or session cookie), stores it on `request.state.current_user` and adds
X-User-Id / X-User-Role headers to the response.

Usage:
    from swm_dashboard.middleware.auth_interceptor import AuthInterceptorMiddleware

    app.add_middleware(
        AuthInterceptorMiddleware,
        skip_paths=["/health", "/docs", "/openapi.json"],
        require_auth=True
    )
"""
from typing import List, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from swm_dashboard.core.auth import CurrentUser, resolve_current_user
from swm_dashboard.core.exceptions import AuthProviderError
from swm_dashboard.core.logging import get_logger

logger = get_logger("middleware.auth-interceptor")


def _unauthorized(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"status": "error", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


class AuthInterceptorMiddleware(BaseHTTPMiddleware):
    """
    Args:
        skip_paths: Paths that never need a session. "/" matches exactly,
                    every other entry matches as a prefix.
        require_auth: If True, reject requests without a valid session with 401.
                      If False, resolve the user when a token is present and
                      pass everything else through.
    """

    def __init__(
        self,
        app,
        skip_paths: Optional[List[str]] = None,
        require_auth: bool = False
    ):
        super().__init__(app)
        self.skip_paths = skip_paths or [
            "/health",
            "/docs",
            "/openapi.json",
            "/redoc",
            "/",
        ]
        self.require_auth = require_auth

    def should_skip_path(self, path: str) -> bool:
        """Check if the path should skip authentication."""
        if path in self.skip_paths:
            return True

        for skip_path in self.skip_paths:
            # Root path only matches exactly
            if skip_path == "/":
                continue
            if path.startswith(skip_path):
                return True

        return False

    async def resolve_user(self, request: Request) -> Optional[CurrentUser]:
        auth_provider = getattr(request.app.state, "auth_provider", None)
        if auth_provider is None:
            logger.error("No auth provider configured on the application")
            return None
        return await run_in_threadpool(resolve_current_user, auth_provider, request.headers)

    async def dispatch(self, request: Request, call_next):
        """Process the request through the middleware."""
        if request.method == "OPTIONS" or self.should_skip_path(request.url.path):
            return await call_next(request)

        try:
            current_user = await self.resolve_user(request)
        except AuthProviderError as e:
            logger.error(f"Session lookup failed: {e.message}")
            if self.require_auth:
                return JSONResponse(
                    status_code=status.HTTP_502_BAD_GATEWAY,
                    content={"status": "error", "message": "Authentication service unavailable"},
                )
            return await call_next(request)

        if current_user is None:
            if self.require_auth:
                return _unauthorized("Authentication required")
            return await call_next(request)

        request.state.current_user = current_user

        response = await call_next(request)

        response.headers["X-User-Id"] = current_user.user_id
        if current_user.role:
            response.headers["X-User-Role"] = current_user.role

        return response
