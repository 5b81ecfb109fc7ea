"""
Tests for UserAdminService.

Tests cover:
- Self-action restrictions (no provider call when rejected)
- Query validation before the provider is reached
- Session list normalization and cache eviction
- Impersonation results
- Bulk actions
"""

import pytest

from swm_dashboard.core.auth import CurrentUser, cache_session, get_cached_session
from swm_dashboard.core.exceptions import (
    AuthProviderError,
    SelfActionForbiddenError,
    ValidationFailedError,
)
from swm_dashboard.services.user_admin_service import UserAdminService

HEADERS = {"cookie": "better-auth.session_token=admin-token"}


@pytest.fixture
def auth_provider(auth_provider, make_user):
    auth_provider.get_session.return_value = {
        "session": {"token": "admin-token", "userId": "admin-1"},
        "user": make_user("admin-1", role="admin"),
    }
    auth_provider.set_role.side_effect = lambda user_id, role, headers=None: {
        "user": make_user(user_id, role=role)
    }
    auth_provider.ban_user.side_effect = lambda user_id, ban_reason=None, ban_expires_in=None, headers=None: {
        "user": make_user(user_id, banned=True, banReason=ban_reason)
    }
    auth_provider.unban_user.side_effect = lambda user_id, headers=None: {"user": make_user(user_id)}
    auth_provider.remove_user.return_value = {"success": True}
    auth_provider.list_users.return_value = {
        "users": [make_user("admin-1", role="admin"), make_user("user-2")],
        "total": 2,
        "limit": 10,
        "offset": 0,
    }
    return auth_provider


@pytest.fixture
def service(auth_provider):
    return UserAdminService(auth_provider, HEADERS)


# =============================================================
# TEST: Self-action restrictions
# =============================================================

class TestSelfActions:

    def test_cannot_change_own_role(self, service, auth_provider):
        with pytest.raises(SelfActionForbiddenError) as exc_info:
            service.set_role("admin-1", "admin")

        assert exc_info.value.message == "You cannot change your own role"
        assert exc_info.value.status_code == 403
        assert auth_provider.set_role.call_count == 0

    def test_cannot_ban_self(self, service, auth_provider):
        with pytest.raises(SelfActionForbiddenError) as exc_info:
            service.ban_user("admin-1")

        assert exc_info.value.message == "You cannot ban yourself"
        auth_provider.ban_user.assert_not_called()

    def test_ban_other_user_calls_provider_once(self, service, auth_provider):
        banned = service.ban_user("user-2", "spam", 3600)

        assert banned.banned is True
        auth_provider.ban_user.assert_called_once_with(
            "user-2", ban_reason="spam", ban_expires_in=3600, headers=HEADERS
        )

    def test_cannot_delete_self(self, service, auth_provider):
        with pytest.raises(SelfActionForbiddenError) as exc_info:
            service.delete_user("admin-1")

        assert exc_info.value.message == "You cannot delete your own account"
        auth_provider.remove_user.assert_not_called()

    def test_delete_other_user(self, service, auth_provider):
        assert service.delete_user("user-2") is True
        auth_provider.remove_user.assert_called_once_with("user-2", headers=HEADERS)

    def test_update_own_role_rejected(self, service, auth_provider):
        with pytest.raises(SelfActionForbiddenError):
            service.update_user("admin-1", {"role": "user"})

        auth_provider.update_user.assert_not_called()

    def test_update_own_name_allowed(self, service, auth_provider, make_user):
        auth_provider.update_user.return_value = make_user("admin-1", name="New Name", role="admin")

        updated = service.update_user("admin-1", {"name": "New Name"})

        assert updated.name == "New Name"
        auth_provider.update_user.assert_called_once_with("admin-1", {"name": "New Name"}, headers=HEADERS)

    @pytest.mark.parametrize("key", ["role", "email", "name"])
    def test_extra_data_cannot_carry_user_fields(self, service, auth_provider, key):
        with pytest.raises(ValidationFailedError):
            service.update_user("admin-1", {"data": {key: "admin"}})

        auth_provider.update_user.assert_not_called()

    def test_extra_data_stays_nested(self, service, auth_provider, make_user):
        auth_provider.update_user.return_value = {"user": make_user("user-2", name="Ravi")}

        service.update_user("user-2", {"name": "Ravi", "data": {"contactDetails": "98450"}})

        auth_provider.update_user.assert_called_once_with(
            "user-2", {"name": "Ravi", "data": {"contactDetails": "98450"}}, headers=HEADERS
        )

    def test_set_password_has_no_self_restriction(self, service, auth_provider):
        assert service.set_password("admin-1", "new-secret-1") is True
        auth_provider.set_user_password.assert_called_once_with("admin-1", "new-secret-1", headers=HEADERS)

    def test_unban_has_no_self_restriction(self, service, auth_provider):
        service.unban_user("admin-1")
        auth_provider.unban_user.assert_called_once()

    def test_check_skipped_when_no_session(self, service, auth_provider):
        auth_provider.get_session.return_value = None

        service.set_role("admin-1", "user")

        auth_provider.set_role.assert_called_once_with("admin-1", "user", headers=HEADERS)

    def test_known_acting_user_skips_session_lookup(self, auth_provider):
        service = UserAdminService(auth_provider, HEADERS, acting_user_id="admin-1")

        with pytest.raises(SelfActionForbiddenError):
            service.set_role("admin-1", "user")

        auth_provider.get_session.assert_not_called()


# =============================================================
# TEST: Listing and creation
# =============================================================

class TestListAndCreate:

    def test_repeated_list_returns_identical_total(self, service, auth_provider):
        first = service.list_users({"limit": 10, "offset": 0})
        second = service.list_users({"limit": 10, "offset": 0})

        assert first.total == second.total == 2
        assert [u.id for u in first.users] == ["admin-1", "user-2"]
        auth_provider.list_users.assert_called_with({"limit": 10, "offset": 0}, headers=HEADERS)

    def test_query_options_use_provider_names(self, service, auth_provider):
        service.list_users({"searchValue": "ravi", "searchField": "name", "sortDirection": "desc"})

        params = auth_provider.list_users.call_args[0][0]
        assert params == {
            "searchValue": "ravi",
            "searchField": "name",
            "sortDirection": "desc",
            "limit": 10,
            "offset": 0,
        }

    @pytest.mark.parametrize(
        "query",
        [{"limit": 0}, {"limit": 101}, {"offset": -1}, {"searchField": "phone"}, {"filterOperator": "like"}],
    )
    def test_invalid_query_never_reaches_provider(self, service, auth_provider, query):
        with pytest.raises(ValidationFailedError):
            service.list_users(query)

        auth_provider.list_users.assert_not_called()

    def test_create_user(self, service, auth_provider, make_user):
        auth_provider.create_user.return_value = {"user": make_user("user-3", email="new@x.com")}

        created = service.create_user(
            {"email": "new@x.com", "password": "password123", "name": "New", "data": {"contactDetails": "98450"}}
        )

        assert created.id == "user-3"
        auth_provider.create_user.assert_called_once_with(
            {
                "email": "new@x.com",
                "password": "password123",
                "name": "New",
                "role": "user",
                "data": {"contactDetails": "98450"},
            },
            headers=HEADERS,
        )

    def test_create_user_short_password(self, service, auth_provider):
        with pytest.raises(ValidationFailedError):
            service.create_user({"email": "new@x.com", "password": "short", "name": "New"})

        auth_provider.create_user.assert_not_called()

    def test_update_requires_a_field(self, service, auth_provider):
        with pytest.raises(ValidationFailedError):
            service.update_user("user-2", {})

        auth_provider.update_user.assert_not_called()

    def test_null_total_counts_as_zero(self, service, auth_provider):
        auth_provider.list_users.return_value = {"users": [], "total": None}

        assert service.list_users({}).total == 0

    def test_malformed_user_record_is_provider_error(self, service, auth_provider):
        auth_provider.list_users.return_value = {"users": [{"id": "user-2"}], "total": 1}

        with pytest.raises(AuthProviderError) as exc_info:
            service.list_users({})

        assert exc_info.value.status_code == 502


# =============================================================
# TEST: Sessions and impersonation
# =============================================================

SESSION = {
    "id": "s1",
    "token": "tok-1",
    "userId": "user-2",
    "expiresAt": "2024-12-01T00:00:00.000Z",
    "createdAt": "2024-11-01T00:00:00.000Z",
    "userAgent": "Mozilla/5.0",
}


class TestSessions:

    @pytest.mark.parametrize("body", [[SESSION], {"data": [SESSION]}, {"sessions": [SESSION]}])
    def test_session_list_shapes(self, service, auth_provider, body):
        auth_provider.list_user_sessions.return_value = body

        sessions = service.list_sessions("user-2")

        assert [s.token for s in sessions] == ["tok-1"]
        assert sessions[0].user_id == "user-2"

    def test_empty_session_list(self, service, auth_provider):
        auth_provider.list_user_sessions.return_value = None

        assert service.list_sessions("user-2") == []

    def test_revoke_session_evicts_cache(self, service, auth_provider):
        user = CurrentUser(user_id="user-2", role="user", session_token="tok-1")
        cache_session("signed-tok-1", user)

        assert service.revoke_session("tok-1") is True

        auth_provider.revoke_user_session.assert_called_once_with("tok-1", headers=HEADERS)
        assert get_cached_session("signed-tok-1") is None

    def test_revoke_all_sessions_evicts_user(self, service, auth_provider):
        cache_session("a", CurrentUser(user_id="user-2", session_token="a"))
        cache_session("b", CurrentUser(user_id="user-3", session_token="b"))

        service.revoke_all_sessions("user-2")

        assert get_cached_session("a") is None
        assert get_cached_session("b") is not None

    def test_impersonate(self, service, auth_provider, make_user):
        auth_provider.impersonate_user.return_value = (
            {"session": {"token": "imp"}, "user": make_user("user-2")},
            ["better-auth.session_token=imp; Path=/; HttpOnly"],
        )

        result = service.impersonate_user("user-2")

        assert result.refresh_required is True
        assert result.user["id"] == "user-2"
        assert result.set_cookies == ["better-auth.session_token=imp; Path=/; HttpOnly"]
        assert "set_cookies" not in result.model_dump()

    def test_stop_impersonating(self, service, auth_provider, make_user):
        auth_provider.stop_impersonating.return_value = ({"session": {}, "user": make_user("admin-1")}, [])

        result = service.stop_impersonating()

        assert result.user["id"] == "admin-1"


# =============================================================
# TEST: Bulk actions
# =============================================================

class TestBulkActions:

    def test_bulk_ban_skips_acting_user(self, service, auth_provider):
        result = service.bulk_action("ban", {"userIds": ["user-2", "admin-1", "user-3"], "banReason": "spam"})

        assert result.succeeded == ["user-2", "user-3"]
        assert result.skipped == ["admin-1"]
        assert result.failed == {}
        assert auth_provider.ban_user.call_count == 2

    def test_bulk_failure_does_not_stop_others(self, service, auth_provider):
        def remove(user_id, headers=None):
            if user_id == "user-2":
                raise AuthProviderError("User not found", provider_status=404)
            return {"success": True}

        auth_provider.remove_user.side_effect = remove

        result = service.bulk_action("delete", {"userIds": ["user-2", "user-3"]})

        assert result.succeeded == ["user-3"]
        assert result.failed == {"user-2": "User not found"}

    def test_bulk_malformed_reply_does_not_stop_others(self, service, auth_provider, make_user):
        auth_provider.unban_user.side_effect = lambda user_id, headers=None: (
            {"user": {"id": user_id}} if user_id == "user-2" else {"user": make_user(user_id)}
        )

        result = service.bulk_action("unban", {"userIds": ["user-2", "user-3"]})

        assert result.succeeded == ["user-3"]
        assert list(result.failed) == ["user-2"]
        assert auth_provider.unban_user.call_count == 2

    def test_bulk_set_role_requires_role(self, service, auth_provider):
        with pytest.raises(ValidationFailedError):
            service.bulk_action("set_role", {"userIds": ["user-2"]})

        auth_provider.set_role.assert_not_called()

    def test_bulk_set_role(self, service, auth_provider):
        result = service.bulk_action("set_role", {"userIds": ["user-2"], "role": "admin"})

        assert result.succeeded == ["user-2"]
        auth_provider.set_role.assert_called_once_with("user-2", "admin", headers=HEADERS)

    def test_unknown_action(self, service):
        with pytest.raises(ValidationFailedError):
            service.bulk_action("promote", {"userIds": ["user-2"]})
