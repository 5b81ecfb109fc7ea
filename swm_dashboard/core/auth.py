"""
Authentication and Authorization Dependencies

The acting user is resolved from the authentication server: the session token
travels either as `Authorization: Bearer <token>` or in the session cookie, and
the server's `get-session` endpoint turns it into a user.

Features:
- Session token extraction from header or cookie
- In-memory TTL cache of resolved sessions
- `get_current_user` / `require_admin` dependencies for routers
"""
import threading
from datetime import timedelta
from http.cookies import CookieError, SimpleCookie
from typing import Any, Dict, Mapping, Optional

from fastapi import Depends, HTTPException, Request, status
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from swm_dashboard.core.config import settings
from swm_dashboard.core.logging import get_logger
from swm_dashboard.services.auth_provider import AuthProvider, forwardable_headers
from swm_dashboard.utils.date import utcnow

logger = get_logger("core.auth")

# Structure: {token: {"user": CurrentUser, "cached_at": datetime}}
_session_cache: Dict[str, Dict[str, Any]] = {}
_cache_lock = threading.Lock()


class CurrentUser(BaseModel):
    """Current authenticated user model"""
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    session_token: Optional[str] = None
    impersonated_by: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def extract_session_token(
    authorization: Optional[str] = None,
    cookie: Optional[str] = None,
    cookie_name: Optional[str] = None,
) -> Optional[str]:
    """
    Extract the session token from the Authorization header or the session cookie.

    Supports formats:
    - Authorization: Bearer <token>
    - Cookie: better-auth.session_token=<token>; ...

    The header wins when both are present.
    """
    if authorization:
        authorization = authorization.strip()
        if authorization[:7].lower() == "bearer ":
            token = authorization[7:].strip()
            if token:
                return token

    if cookie:
        jar = SimpleCookie()
        try:
            jar.load(cookie)
        except CookieError:
            logger.warning("Malformed Cookie header ignored")
            return None
        morsel = jar.get(cookie_name or settings.AUTH_SESSION_COOKIE)
        if morsel is not None and morsel.value:
            return morsel.value

    return None


def _ttl() -> timedelta:
    return timedelta(seconds=settings.SESSION_CACHE_TTL_SECONDS)


def get_cached_session(token: str) -> Optional[CurrentUser]:
    with _cache_lock:
        entry = _session_cache.get(token)
        if entry is None:
            return None

        if utcnow() - entry["cached_at"] > _ttl():
            del _session_cache[token]
            logger.debug(f"Session cache entry expired for token (first 8 chars): {token[:8]}...")
            return None

        return entry["user"]


def cache_session(token: str, user: CurrentUser) -> None:
    now = utcnow()
    with _cache_lock:
        expired = [key for key, entry in _session_cache.items() if now - entry["cached_at"] > _ttl()]
        for key in expired:
            del _session_cache[key]
        _session_cache[token] = {"user": user, "cached_at": now}


def invalidate_cached_session(token: str) -> None:
    """Drop a session from the cache, matching either the cache key or the stored session token."""
    with _cache_lock:
        stale = [
            key for key, entry in _session_cache.items()
            if key == token or entry["user"].session_token == token
        ]
        for key in stale:
            del _session_cache[key]
    if stale:
        logger.debug(f"Evicted {len(stale)} cached session(s)")


def invalidate_cached_user(user_id: str) -> None:
    """Drop every cached session belonging to a user."""
    with _cache_lock:
        stale = [key for key, entry in _session_cache.items() if entry["user"].user_id == user_id]
        for key in stale:
            del _session_cache[key]


def clear_session_cache() -> None:
    with _cache_lock:
        _session_cache.clear()


def _user_from_session(body: Dict[str, Any]) -> Optional[CurrentUser]:
    user = body.get("user") or {}
    session = body.get("session") or {}
    user_id = user.get("id")
    if not user_id:
        return None
    return CurrentUser(
        user_id=str(user_id),
        name=user.get("name"),
        email=user.get("email"),
        role=user.get("role"),
        session_token=session.get("token"),
        impersonated_by=session.get("impersonatedBy"),
    )


def resolve_current_user(
    auth_provider: AuthProvider,
    headers: Mapping[str, str],
) -> Optional[CurrentUser]:
    """
    Resolve the acting user for a set of request headers, using the cache first.

    Returns None when no token is present or the server does not recognise it.
    Transport failures propagate as AuthProviderError.
    """
    lowered = {key.lower(): value for key, value in headers.items()}
    token = extract_session_token(lowered.get("authorization"), lowered.get("cookie"))
    if not token:
        return None

    cached = get_cached_session(token)
    if cached is not None:
        return cached

    body = auth_provider.get_session(headers=headers)
    if body is None:
        return None

    user = _user_from_session(body)
    if user is None:
        logger.warning("Session response carried no user id")
        return None

    cache_session(token, user)
    logger.debug(f"Resolved session for user {user.user_id}")
    return user


def get_auth_provider(request: Request) -> AuthProvider:
    """Dependency — the application's AuthProvider client."""
    return request.app.state.auth_provider


def forwarded_auth_headers(request: Request) -> Dict[str, str]:
    """Credential headers of the incoming request, ready to forward to the auth server."""
    return forwardable_headers(request.headers)


async def get_current_user(
    request: Request,
    auth_provider: AuthProvider = Depends(get_auth_provider),
) -> CurrentUser:
    """
    FastAPI dependency returning the acting user.

    Reuses the user resolved by AuthInterceptorMiddleware when present,
    otherwise asks the authentication server. 401 when nobody is signed in.
    """
    current_user = getattr(request.state, "current_user", None)
    if current_user is not None:
        return current_user

    current_user = await run_in_threadpool(resolve_current_user, auth_provider, request.headers)
    if current_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    request.state.current_user = current_user
    return current_user


def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current_user.is_admin:
        logger.warning(f"User {current_user.user_id} denied admin access")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user
