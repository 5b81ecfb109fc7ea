from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from swm_dashboard.core.auth import invalidate_cached_session, invalidate_cached_user
from swm_dashboard.core.exceptions import (
    AuthProviderError,
    SelfActionForbiddenError,
    ValidationFailedError,
    validation_failed,
)
from swm_dashboard.core.logging import get_logger
from swm_dashboard.schemas.user_admin import (
    AdminUser,
    AuthSession,
    BanUserInput,
    BulkActionRequest,
    BulkActionResult,
    CreateUserInput,
    ImpersonationResult,
    ListUsersQuery,
    SetPasswordInput,
    SetRoleInput,
    UpdateUserData,
    UserListResponse,
)
from swm_dashboard.services.auth_provider import AuthProvider, decode_session_list

logger = get_logger("services.user_admin")

SELF_ROLE_CHANGE = "You cannot change your own role"
SELF_DELETE = "You cannot delete your own account"
SELF_BAN = "You cannot ban yourself"


def _validate(model, data):
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise validation_failed(e)


def _parse_reply(model, payload):
    """Parse an authentication server reply; malformed replies are provider failures."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Unexpected {model.__name__} reply from authentication service: {e}")
        raise AuthProviderError(
            f"Authentication service returned an invalid {model.__name__} record",
            errors=jsonable_encoder(e.errors()),
        )


def _reply_user(body):
    return _parse_reply(AdminUser, body.get("user", body) if isinstance(body, dict) else {})


class UserAdminService:
    """
    Validated facade over the authentication server's admin API.

    Every call forwards the acting admin's credentials. Operations that must not
    target the acting user (delete, ban, role change) compare ids before the
    server is asked to do anything.
    """

    def __init__(
        self,
        auth_provider: AuthProvider,
        auth_headers: Optional[Mapping[str, str]] = None,
        acting_user_id: Optional[str] = None,
    ):
        self.auth_provider = auth_provider
        self.auth_headers = dict(auth_headers or {})
        self._acting_user_id = acting_user_id

    def _current_user_id(self) -> Optional[str]:
        if self._acting_user_id is None:
            session = self.auth_provider.get_session(headers=self.auth_headers)
            user = (session or {}).get("user") or {}
            if user.get("id"):
                self._acting_user_id = str(user["id"])
        return self._acting_user_id

    def _forbid_self(self, user_id: str, message: str) -> None:
        current_user_id = self._current_user_id()
        if current_user_id is not None and current_user_id == user_id:
            logger.warning(f"Self action rejected for user {user_id}: {message}")
            raise SelfActionForbiddenError(message)

    @staticmethod
    def _require_user_id(user_id: str) -> None:
        if not user_id or not str(user_id).strip():
            raise ValidationFailedError("userId is required")

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def list_users(self, query: Union[ListUsersQuery, Mapping[str, Any], None] = None) -> UserListResponse:
        query = _validate(ListUsersQuery, query or {})
        body = self.auth_provider.list_users(query.to_provider_params(), headers=self.auth_headers)
        body = body if isinstance(body, dict) else {}

        return _parse_reply(
            UserListResponse,
            {
                "users": body.get("users") or [],
                "total": body.get("total") or 0,
                "limit": body.get("limit"),
                "offset": body.get("offset"),
            },
        )

    def create_user(self, data: Union[CreateUserInput, Mapping[str, Any]]) -> AdminUser:
        payload = _validate(CreateUserInput, data)
        logger.info(f"Creating user {payload.email} with role {payload.role}")

        body = self.auth_provider.create_user(payload.to_provider_payload(), headers=self.auth_headers)
        user = body.get("user") if isinstance(body, dict) else None
        if not user:
            raise AuthProviderError("Failed to create user")

        logger.info(f"User {user.get('id')} created")
        return _parse_reply(AdminUser, user)

    def update_user(self, user_id: str, data: Union[UpdateUserData, Mapping[str, Any]]) -> AdminUser:
        self._require_user_id(user_id)
        changes = _validate(UpdateUserData, data)
        provider_data = changes.to_provider_data()
        if "role" in provider_data:
            self._forbid_self(user_id, SELF_ROLE_CHANGE)

        body = self.auth_provider.update_user(user_id, provider_data, headers=self.auth_headers)
        invalidate_cached_user(user_id)
        logger.info(f"User {user_id} updated")
        return _reply_user(body)

    def delete_user(self, user_id: str) -> bool:
        self._require_user_id(user_id)
        self._forbid_self(user_id, SELF_DELETE)

        self.auth_provider.remove_user(user_id, headers=self.auth_headers)
        invalidate_cached_user(user_id)
        logger.info(f"User {user_id} removed")
        return True

    def set_role(self, user_id: str, role: Union[str, SetRoleInput, Mapping[str, Any]]) -> AdminUser:
        self._require_user_id(user_id)
        payload = _validate(SetRoleInput, {"role": role} if isinstance(role, str) else role)
        self._forbid_self(user_id, SELF_ROLE_CHANGE)

        body = self.auth_provider.set_role(user_id, payload.role, headers=self.auth_headers)
        invalidate_cached_user(user_id)
        logger.info(f"User {user_id} role set to {payload.role}")
        return _reply_user(body)

    def set_password(self, user_id: str, new_password: Union[str, SetPasswordInput, Mapping[str, Any]]) -> bool:
        self._require_user_id(user_id)
        payload = _validate(
            SetPasswordInput,
            {"new_password": new_password} if isinstance(new_password, str) else new_password,
        )

        self.auth_provider.set_user_password(user_id, payload.new_password, headers=self.auth_headers)
        logger.info(f"Password reset for user {user_id}")
        return True

    def ban_user(
        self,
        user_id: str,
        ban_reason: Optional[str] = None,
        ban_expires_in: Optional[int] = None,
    ) -> AdminUser:
        self._require_user_id(user_id)
        payload = _validate(BanUserInput, {"ban_reason": ban_reason, "ban_expires_in": ban_expires_in})
        self._forbid_self(user_id, SELF_BAN)

        body = self.auth_provider.ban_user(
            user_id,
            ban_reason=payload.ban_reason,
            ban_expires_in=payload.ban_expires_in,
            headers=self.auth_headers,
        )
        # Banning revokes the user's sessions on the server
        invalidate_cached_user(user_id)
        logger.info(f"User {user_id} banned")
        return _reply_user(body)

    def unban_user(self, user_id: str) -> AdminUser:
        self._require_user_id(user_id)
        body = self.auth_provider.unban_user(user_id, headers=self.auth_headers)
        logger.info(f"User {user_id} unbanned")
        return _reply_user(body)

    # ------------------------------------------------------------------
    # Impersonation
    # ------------------------------------------------------------------

    def impersonate_user(self, user_id: str) -> ImpersonationResult:
        """Start a session as another user. The caller must reload its session afterwards."""
        self._require_user_id(user_id)
        body, set_cookies = self.auth_provider.impersonate_user(user_id, headers=self.auth_headers)
        logger.info(f"Impersonation of user {user_id} started")
        return ImpersonationResult(
            session=body.get("session"),
            user=body.get("user"),
            set_cookies=set_cookies,
        )

    def stop_impersonating(self) -> ImpersonationResult:
        body, set_cookies = self.auth_provider.stop_impersonating(headers=self.auth_headers)
        logger.info("Impersonation stopped")
        return ImpersonationResult(
            session=body.get("session"),
            user=body.get("user"),
            set_cookies=set_cookies,
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def list_sessions(self, user_id: str) -> List[AuthSession]:
        self._require_user_id(user_id)
        body = self.auth_provider.list_user_sessions(user_id, headers=self.auth_headers)
        return [_parse_reply(AuthSession, session) for session in decode_session_list(body)]

    def revoke_session(self, session_token: str) -> bool:
        if not session_token:
            raise ValidationFailedError("sessionToken is required")
        self.auth_provider.revoke_user_session(session_token, headers=self.auth_headers)
        invalidate_cached_session(session_token)
        logger.info("Session revoked")
        return True

    def revoke_all_sessions(self, user_id: str) -> bool:
        self._require_user_id(user_id)
        self.auth_provider.revoke_user_sessions(user_id, headers=self.auth_headers)
        invalidate_cached_user(user_id)
        logger.info(f"All sessions revoked for user {user_id}")
        return True

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    def bulk_action(
        self,
        action: str,
        request: Union[BulkActionRequest, Mapping[str, Any]],
    ) -> BulkActionResult:
        """
        Apply one action to many users, one independent call per user.

        The acting user's own id is skipped. A failure for one user is recorded
        and does not stop or undo the others.
        """
        payload = _validate(BulkActionRequest, request)

        handlers: Dict[str, Callable[[str], Any]] = {
            "ban": lambda user_id: self.ban_user(user_id, payload.ban_reason, payload.ban_expires_in),
            "unban": self.unban_user,
            "delete": self.delete_user,
            "set_role": lambda user_id: self.set_role(user_id, payload.role),
        }
        if action not in handlers:
            raise ValidationFailedError(f"Unsupported bulk action: {action}")
        if action == "set_role" and payload.role is None:
            raise ValidationFailedError("role is required for set_role")

        result = BulkActionResult(action=action)
        current_user_id = self._current_user_id()

        for user_id in dict.fromkeys(payload.user_ids):
            if user_id == current_user_id:
                result.skipped.append(user_id)
                continue
            try:
                handlers[action](user_id)
            except (AuthProviderError, ValidationFailedError) as e:
                logger.error(f"Bulk {action} failed for user {user_id}: {e.message}")
                result.failed[user_id] = e.message
            else:
                result.succeeded.append(user_id)

        logger.info(
            f"Bulk {action}: {len(result.succeeded)} succeeded, "
            f"{len(result.failed)} failed, {len(result.skipped)} skipped"
        )
        return result
