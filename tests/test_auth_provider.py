"""
Tests for the authentication server client, run against httpx.MockTransport.
"""

import json

import httpx
import pytest

from swm_dashboard.core.exceptions import AuthProviderError
from swm_dashboard.services.auth_provider import (
    AuthProvider,
    decode_session_list,
    forwardable_headers,
)


class Recorder:
    """MockTransport handler that remembers requests and replays one response."""

    def __init__(self, status_code=200, body=None, headers=None, error=None):
        self.status_code = status_code
        self.body = body
        self.headers = headers or []
        self.error = error
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error(f"{self.error.__name__}", request=request)
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body, headers=self.headers)
        return httpx.Response(self.status_code, text=self.body or "", headers=self.headers)

    @property
    def last(self):
        return self.requests[-1]


def provider_for(recorder):
    return AuthProvider(
        "http://auth.local/", api_prefix="/api/auth", transport=httpx.MockTransport(recorder)
    ).connect()


class TestRequests:

    def test_create_user_posts_payload_and_forwards_credentials(self):
        recorder = Recorder(body={"user": {"id": "u1"}})
        provider = provider_for(recorder)

        body = provider.create_user(
            {"email": "a@x.com", "password": "password123", "name": "A"},
            headers={"Cookie": "better-auth.session_token=abc", "Content-Length": "12", "Host": "evil"},
        )

        assert body == {"user": {"id": "u1"}}
        request = recorder.last
        assert request.method == "POST"
        assert request.url.path == "/api/auth/admin/create-user"
        assert json.loads(request.content) == {"email": "a@x.com", "password": "password123", "name": "A"}
        assert request.headers["cookie"] == "better-auth.session_token=abc"
        assert request.headers["host"] == "auth.local"

    def test_list_users_sends_query_params(self):
        recorder = Recorder(body={"users": [], "total": 0})
        provider = provider_for(recorder)

        provider.list_users({"limit": 10, "offset": 20, "searchValue": "ravi"})

        assert recorder.last.method == "GET"
        assert recorder.last.url.path == "/api/auth/admin/list-users"
        assert dict(recorder.last.url.params) == {"limit": "10", "offset": "20", "searchValue": "ravi"}

    def test_ban_user_omits_empty_options(self):
        recorder = Recorder(body={"user": {"id": "u2"}})
        provider = provider_for(recorder)

        provider.ban_user("u2")
        assert json.loads(recorder.last.content) == {"userId": "u2"}

        provider.ban_user("u2", ban_reason="spam", ban_expires_in=60)
        assert json.loads(recorder.last.content) == {"userId": "u2", "banReason": "spam", "banExpiresIn": 60}

    def test_set_user_password_payload(self):
        recorder = Recorder(body={"status": True})
        provider = provider_for(recorder)

        provider.set_user_password("u2", "new-secret")

        assert recorder.last.url.path == "/api/auth/admin/set-user-password"
        assert json.loads(recorder.last.content) == {"userId": "u2", "newPassword": "new-secret"}

    def test_impersonate_returns_set_cookie_headers(self):
        recorder = Recorder(
            body={"session": {"token": "imp"}, "user": {"id": "u2"}},
            headers=[
                ("set-cookie", "better-auth.session_token=imp; Path=/; HttpOnly"),
                ("set-cookie", "better-auth.admin_session=orig; Path=/; HttpOnly"),
            ],
        )
        provider = provider_for(recorder)

        body, cookies = provider.impersonate_user("u2")

        assert body["user"]["id"] == "u2"
        assert len(cookies) == 2
        assert cookies[0].startswith("better-auth.session_token=imp")


class TestSession:

    def test_get_session(self):
        recorder = Recorder(body={"session": {"token": "t"}, "user": {"id": "u1", "role": "admin"}})
        provider = provider_for(recorder)

        session = provider.get_session(headers={"authorization": "Bearer t"})

        assert session["user"]["id"] == "u1"
        assert recorder.last.url.path == "/api/auth/get-session"
        assert recorder.last.headers["authorization"] == "Bearer t"

    def test_get_session_unauthorized_is_none(self):
        provider = provider_for(Recorder(status_code=401, body={"message": "Unauthorized"}))

        assert provider.get_session() is None

    def test_get_session_null_body_is_none(self):
        provider = provider_for(Recorder(body="null"))

        assert provider.get_session() is None


class TestErrors:

    def test_provider_message_and_code_are_kept(self):
        provider = provider_for(
            Recorder(status_code=400, body={"message": "User already exists", "code": "USER_ALREADY_EXISTS"})
        )

        with pytest.raises(AuthProviderError) as exc_info:
            provider.create_user({"email": "a@x.com"})

        error = exc_info.value
        assert error.message == "User already exists"
        assert error.code == "USER_ALREADY_EXISTS"
        assert error.provider_status == 400
        assert error.status_code == 400

    def test_fallback_message_when_body_is_empty(self):
        provider = provider_for(Recorder(status_code=500, body=""))

        with pytest.raises(AuthProviderError) as exc_info:
            provider.remove_user("u1")

        assert exc_info.value.message == "Failed to delete user"
        assert exc_info.value.status_code == 502

    def test_transport_failure(self):
        provider = provider_for(Recorder(error=httpx.ConnectError))

        with pytest.raises(AuthProviderError) as exc_info:
            provider.unban_user("u1")

        assert exc_info.value.status_code == 502
        assert "unavailable" in exc_info.value.message

    def test_client_requires_connect(self):
        provider = AuthProvider("http://auth.local")

        with pytest.raises(RuntimeError):
            provider.list_users({})

    def test_close_is_idempotent(self):
        provider = provider_for(Recorder())

        provider.close()
        provider.close()


class TestDecodeSessionList:

    SESSION = {"id": "s1", "token": "t1"}

    @pytest.mark.parametrize(
        "payload",
        [[SESSION], {"data": [SESSION]}, {"sessions": [SESSION]}],
    )
    def test_known_shapes(self, payload):
        assert decode_session_list(payload) == [self.SESSION]

    @pytest.mark.parametrize("payload", [None, {}, {"total": 0}])
    def test_empty_shapes(self, payload):
        assert decode_session_list(payload) == []

    def test_unexpected_type(self):
        with pytest.raises(AuthProviderError):
            decode_session_list("sessions")


def test_forwardable_headers_keeps_credentials_only():
    headers = {
        "Authorization": "Bearer t",
        "Cookie": "a=b",
        "Content-Type": "application/json",
        "User-Agent": "pytest",
        "X-Forwarded-For": "",
    }

    assert forwardable_headers(headers) == {
        "authorization": "Bearer t",
        "cookie": "a=b",
        "user-agent": "pytest",
    }
    assert forwardable_headers(None) == {}
