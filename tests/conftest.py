"""
Shared fixtures: an in-memory SQLite database per test, a mocked
authentication server client and an API client wired to both.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from swm_dashboard.core.auth import CurrentUser, clear_session_cache, get_current_user
from swm_dashboard.core.database import Database
from swm_dashboard.services.auth_provider import AuthProvider


def _make_user(user_id, **overrides):
    """An admin-API user record as the authentication server returns it."""
    user = {
        "id": user_id,
        "name": f"User {user_id}",
        "email": f"{user_id}@example.com",
        "emailVerified": True,
        "createdAt": "2024-11-01T10:00:00.000Z",
        "updatedAt": "2024-11-01T10:00:00.000Z",
        "role": "user",
        "banned": False,
    }
    user.update(overrides)
    return user


@pytest.fixture
def make_user():
    return _make_user


@pytest.fixture(autouse=True)
def _empty_session_cache():
    clear_session_cache()
    yield
    clear_session_cache()


@pytest.fixture
def database():
    database = Database("sqlite://").connect()
    database.create_all()
    yield database
    database.close()


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def auth_provider():
    provider = MagicMock(spec=AuthProvider)
    provider.get_session.return_value = None
    provider.create_user.return_value = {"user": _make_user("user-1")}
    return provider


@pytest.fixture
def admin_user():
    return CurrentUser(user_id="admin-1", name="Admin", email="admin@example.com", role="admin")


@pytest.fixture
def app(database, auth_provider, admin_user):
    from swm_dashboard.main import create_app

    app = create_app(database=database, auth_provider=auth_provider, require_auth=False)
    app.dependency_overrides[get_current_user] = lambda: admin_user
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
