"""
Client for the authentication server's admin API (Better Auth compatible).

Account creation, listing, roles, bans, impersonation and sessions all live on
the authentication server; this module only forwards calls to it. The acting
admin's credentials (authorization header / session cookie) are forwarded on
every call so the server can authorize the request itself.
"""
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from swm_dashboard.core.exceptions import AuthProviderError
from swm_dashboard.core.logging import get_logger

logger = get_logger("services.auth_provider")

# Request headers passed through from the incoming request to the auth server
FORWARDED_HEADERS = ("authorization", "cookie", "origin", "user-agent", "x-forwarded-for")


def forwardable_headers(headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    if not headers:
        return {}
    lowered = {key.lower(): value for key, value in headers.items()}
    return {key: lowered[key] for key in FORWARDED_HEADERS if lowered.get(key)}


def decode_session_list(payload: Any) -> List[Dict[str, Any]]:
    """
    Normalize the session-list response into a plain list.

    The admin API has returned three shapes over its versions:
      - a bare list of sessions
      - {"data": [...]}
      - {"sessions": [...]}
    A null body or an object without either key means "no sessions".
    """
    if payload is None:
        return []
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        if isinstance(payload.get("data"), list):
            return payload["data"]
        if isinstance(payload.get("sessions"), list):
            return payload["sessions"]
        logger.warning(f"Session list response has no sessions key: {sorted(payload.keys())}")
        return []
    raise AuthProviderError(
        f"Unexpected session list response type: {type(payload).__name__}"
    )


class AuthProvider:
    def __init__(
        self,
        base_url: str,
        api_prefix: str = "/api/auth",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_prefix = "/" + api_prefix.strip("/") if api_prefix.strip("/") else ""
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> "AuthProvider":
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
            logger.info(f"Auth provider client created for {self.base_url}{self.api_prefix}")
        return self

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            logger.info("Auth provider client closed")
        self._client = None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            raise RuntimeError("AuthProvider is not connected; call connect() first")
        return self._client

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _send(
        self,
        method: str,
        path: str,
        headers: Optional[Mapping[str, str]] = None,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Tuple[Any, int, bool, List[str]]:
        """Returns (body, status_code, is_json, set_cookie_headers)."""
        request_headers = {
            "accept": "application/json",
            **forwardable_headers(headers),
        }
        url = f"{self.api_prefix}{path}"

        try:
            response = self.client.request(method, url, headers=request_headers, json=json, params=params)
        except httpx.HTTPError as exc:
            logger.error(f"Auth provider request {method} {path} failed: {exc}")
            raise AuthProviderError(f"Authentication service unavailable: {exc}")

        set_cookies = response.headers.get_list("set-cookie")
        try:
            return response.json(), response.status_code, True, set_cookies
        except ValueError:
            return response.text, response.status_code, False, set_cookies

    @staticmethod
    def _raise_for_status(body: Any, status_code: int, fallback: str) -> None:
        if 200 <= status_code < 300:
            return

        message = None
        code = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            code = body.get("code")
        elif isinstance(body, str) and body.strip():
            message = body.strip()

        logger.warning(f"Auth provider returned {status_code}: {message or fallback}")
        raise AuthProviderError(message or fallback, provider_status=status_code, code=code)

    def _call(
        self,
        method: str,
        path: str,
        fallback: str,
        headers: Optional[Mapping[str, str]] = None,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        body, status_code, is_json, _ = self._send(method, path, headers=headers, json=json, params=params)
        self._raise_for_status(body, status_code, fallback)
        return body if is_json else None

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def get_session(self, headers: Optional[Mapping[str, str]] = None) -> Optional[Dict[str, Any]]:
        """Return {"session": ..., "user": ...} for the forwarded credentials, or None."""
        body, status_code, is_json, _ = self._send("GET", "/get-session", headers=headers)
        if status_code == 401:
            return None
        self._raise_for_status(body, status_code, "Failed to get session")
        if not is_json or not isinstance(body, dict) or not body.get("user"):
            return None
        return body

    # ------------------------------------------------------------------
    # Admin API
    # ------------------------------------------------------------------

    def create_user(self, payload: Dict[str, Any], headers: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        return self._call("POST", "/admin/create-user", "Failed to create user", headers=headers, json=payload)

    def list_users(self, params: Dict[str, Any], headers: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        return self._call("GET", "/admin/list-users", "Failed to list users", headers=headers, params=params)

    def update_user(
        self, user_id: str, data: Dict[str, Any], headers: Optional[Mapping[str, str]] = None
    ) -> Dict[str, Any]:
        return self._call(
            "POST", "/admin/update-user", "Failed to update user",
            headers=headers, json={"userId": user_id, "data": data},
        )

    def remove_user(self, user_id: str, headers: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        return self._call(
            "POST", "/admin/remove-user", "Failed to delete user", headers=headers, json={"userId": user_id}
        )

    def set_role(self, user_id: str, role: str, headers: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        return self._call(
            "POST", "/admin/set-role", "Failed to set user role",
            headers=headers, json={"userId": user_id, "role": role},
        )

    def set_user_password(
        self, user_id: str, new_password: str, headers: Optional[Mapping[str, str]] = None
    ) -> Dict[str, Any]:
        return self._call(
            "POST", "/admin/set-user-password", "Failed to set password",
            headers=headers, json={"userId": user_id, "newPassword": new_password},
        )

    def ban_user(
        self,
        user_id: str,
        ban_reason: Optional[str] = None,
        ban_expires_in: Optional[int] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"userId": user_id}
        if ban_reason:
            payload["banReason"] = ban_reason
        if ban_expires_in:
            payload["banExpiresIn"] = ban_expires_in
        return self._call("POST", "/admin/ban-user", "Failed to ban user", headers=headers, json=payload)

    def unban_user(self, user_id: str, headers: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        return self._call(
            "POST", "/admin/unban-user", "Failed to unban user", headers=headers, json={"userId": user_id}
        )

    def impersonate_user(
        self, user_id: str, headers: Optional[Mapping[str, str]] = None
    ) -> Tuple[Dict[str, Any], List[str]]:
        """Returns the new session body and the Set-Cookie headers that switch the client to it."""
        body, status_code, is_json, set_cookies = self._send(
            "POST", "/admin/impersonate-user", headers=headers, json={"userId": user_id}
        )
        self._raise_for_status(body, status_code, "Failed to impersonate user")
        return (body if is_json and isinstance(body, dict) else {}), set_cookies

    def stop_impersonating(self, headers: Optional[Mapping[str, str]] = None) -> Tuple[Dict[str, Any], List[str]]:
        body, status_code, is_json, set_cookies = self._send("POST", "/admin/stop-impersonating", headers=headers)
        self._raise_for_status(body, status_code, "Failed to stop impersonating")
        return (body if is_json and isinstance(body, dict) else {}), set_cookies

    def list_user_sessions(self, user_id: str, headers: Optional[Mapping[str, str]] = None) -> Any:
        return self._call(
            "POST", "/admin/list-user-sessions", "Failed to list user sessions",
            headers=headers, json={"userId": user_id},
        )

    def revoke_user_session(self, session_token: str, headers: Optional[Mapping[str, str]] = None) -> Any:
        return self._call(
            "POST", "/admin/revoke-user-session", "Failed to revoke session",
            headers=headers, json={"sessionToken": session_token},
        )

    def revoke_user_sessions(self, user_id: str, headers: Optional[Mapping[str, str]] = None) -> Any:
        return self._call(
            "POST", "/admin/revoke-user-sessions", "Failed to revoke sessions",
            headers=headers, json={"userId": user_id},
        )
