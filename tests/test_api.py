"""
HTTP API tests through FastAPI's TestClient with an admin acting user.
"""

import pytest

from swm_dashboard.core.exceptions import AuthProviderError
from swm_dashboard.utils.ids import new_id

API = "/api/v1"

CREATE_BODY = {
    "email": "a@x.com",
    "password": "password123",
    "data": {
        "name": "Hosahalli",
        "taluk": "Anekal",
        "village": "V1",
        "sarpanch": "S1",
        "status": "Active",
        "mrfMapped": False,
    },
}


@pytest.fixture
def gram_panchayat(client):
    response = client.post(f"{API}/gram-panchayats/", json=CREATE_BODY)
    assert response.status_code == 201
    return response.json()["data"]


class TestRoot:

    def test_root(self, client):
        assert "message" in client.get("/").json()

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy", "database": True}


class TestGramPanchayats:

    def test_create_returns_camel_case_record(self, gram_panchayat, auth_provider):
        assert gram_panchayat["name"] == "Hosahalli"
        assert gram_panchayat["mrfMapped"] is False
        assert gram_panchayat["userId"] == "user-1"
        assert gram_panchayat["swmSheds"] == 0
        assert auth_provider.create_user.call_count == 1

    def test_list(self, client, gram_panchayat):
        body = client.get(f"{API}/gram-panchayats/").json()

        assert body["status"] == "success"
        assert body["total"] == 1
        assert body["data"][0]["id"] == gram_panchayat["id"]

    def test_get_missing_is_404(self, client):
        response = client.get(f"{API}/gram-panchayats/{new_id()}")

        assert response.status_code == 404
        assert response.json() == {"status": "error", "message": "Gram Panchayat not found"}

    def test_duplicate_is_409(self, client, gram_panchayat, auth_provider):
        response = client.post(f"{API}/gram-panchayats/", json={**CREATE_BODY, "email": "b@x.com"})

        assert response.status_code == 409
        assert "already exists" in response.json()["message"]
        assert auth_provider.create_user.call_count == 1

    def test_duplicate_email_is_409(self, client, auth_provider):
        auth_provider.create_user.side_effect = AuthProviderError(
            "User with this email already exists", provider_status=422
        )

        response = client.post(f"{API}/gram-panchayats/", json=CREATE_BODY)

        assert response.status_code == 409
        assert response.json()["message"].startswith('A user with email "a@x.com" already exists')

    def test_invalid_body_is_422(self, client, auth_provider):
        body = {**CREATE_BODY, "data": {**CREATE_BODY["data"], "status": "Unknown"}}

        response = client.post(f"{API}/gram-panchayats/", json=body)

        assert response.status_code == 422
        assert response.json()["status"] == "error"
        auth_provider.create_user.assert_not_called()

    def test_patch_only_changes_supplied_fields(self, client, gram_panchayat):
        response = client.patch(f"{API}/gram-panchayats/{gram_panchayat['id']}", json={"households": 50})

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["households"] == 50
        assert data["sarpanch"] == "S1"

    def test_map_and_unmap_mrf(self, client, gram_panchayat):
        url = f"{API}/gram-panchayats/{gram_panchayat['id']}/mrf"

        mapped = client.put(url, json={"mrfUnitId": "MRF-01", "mrfUnitName": "Foo"}).json()["data"]
        assert (mapped["mrfMapped"], mapped["mrfUnitId"], mapped["mrfUnitName"]) == (True, "MRF-01", "Foo")

        unmapped = client.delete(url).json()["data"]
        assert (unmapped["mrfMapped"], unmapped["mrfUnitId"], unmapped["mrfUnitName"]) == (False, None, None)

    def test_delete(self, client, gram_panchayat):
        url = f"{API}/gram-panchayats/{gram_panchayat['id']}"

        assert client.delete(url).status_code == 200
        assert client.get(url).status_code == 404
        assert client.delete(url).status_code == 404

    def test_metrics_record_latest_and_history(self, client, gram_panchayat):
        url = f"{API}/gram-panchayats/{gram_panchayat['id']}/metrics"
        base = {"wetWaste": 10, "dryWaste": 5, "sanitaryWaste": 1, "revenue": 100, "complianceScore": 70}

        assert client.post(url, json={**base, "dateRecorded": "2024-11-20T10:00:00Z"}).status_code == 201
        assert client.post(url, json={**base, "revenue": 200, "dateRecorded": "2024-11-21T10:00:00Z"}).status_code == 201

        latest = client.get(f"{url}/latest").json()["data"]
        assert latest["revenue"] == 200
        assert latest["gramPanchayatId"] == gram_panchayat["id"]

        history = client.get(url, params={"order": "desc"}).json()
        assert history["total"] == 2
        assert [m["revenue"] for m in history["data"]] == [200, 100]

    def test_latest_without_metrics_is_null(self, client, gram_panchayat):
        body = client.get(f"{API}/gram-panchayats/{gram_panchayat['id']}/metrics/latest").json()

        assert body["data"] is None


class TestMRFsAndDashboard:

    def test_mrf_crud_and_options(self, client):
        options = client.get(f"{API}/mrfs/options").json()["data"]
        assert options[0] == {"unitId": "MRF-001", "name": "Anjanapura MRF Unit"}

        created = client.post(f"{API}/mrfs/", json={"unitId": "MRF-100", "name": "Test Unit"})
        assert created.status_code == 201
        mrf_id = created.json()["data"]["id"]

        duplicate = client.post(f"{API}/mrfs/", json={"unitId": "MRF-100", "name": "Again"})
        assert duplicate.status_code == 409

        patched = client.patch(f"{API}/mrfs/{mrf_id}", json={"capacity": 1200})
        assert patched.json()["data"]["capacity"] == 1200

        assert client.get(f"{API}/mrfs/options").json()["data"] == [{"unitId": "MRF-100", "name": "Test Unit"}]
        assert client.delete(f"{API}/mrfs/{mrf_id}").status_code == 200
        assert client.get(f"{API}/mrfs/{mrf_id}").status_code == 404

    def test_dashboard(self, client, gram_panchayat):
        url = f"{API}/gram-panchayats/{gram_panchayat['id']}/metrics"
        client.post(url, json={
            "wetWaste": 10, "dryWaste": 5, "sanitaryWaste": 1, "revenue": 100,
            "complianceScore": 70, "dateRecorded": "2024-11-20T10:00:00Z",
        })

        summary = client.get(f"{API}/dashboard/summary").json()["data"]
        assert summary == {
            "totalPanchayats": 1,
            "activePanchayats": 1,
            "totalHouseholds": 0,
            "totalRevenue": 100,
            "averageComplianceScore": 70,
        }

        trend = client.get(f"{API}/dashboard/waste-trend").json()["data"]
        assert trend == [{"date": "2024-11-20", "wetWaste": 10, "dryWaste": 5, "sanitaryWaste": 1}]


class TestAdminUsers:

    def test_cannot_change_own_role(self, client, auth_provider):
        response = client.put(f"{API}/admin/users/admin-1/role", json={"role": "user"})

        assert response.status_code == 403
        assert response.json() == {"status": "error", "message": "You cannot change your own role"}
        auth_provider.set_role.assert_not_called()

    def test_ban_other_user(self, client, auth_provider, make_user):
        auth_provider.ban_user.return_value = {"user": make_user("user-2", banned=True)}

        response = client.post(f"{API}/admin/users/user-2/ban", json={"banReason": "spam"})

        assert response.status_code == 200
        assert response.json()["data"]["banned"] is True
        auth_provider.ban_user.assert_called_once()

    def test_list_users_validates_query(self, client, auth_provider):
        response = client.get(f"{API}/admin/users/", params={"limit": 500})

        assert response.status_code == 422
        auth_provider.list_users.assert_not_called()

    def test_list_users(self, client, auth_provider, make_user):
        auth_provider.list_users.return_value = {"users": [make_user("user-2")], "total": 1}

        body = client.get(f"{API}/admin/users/", params={"limit": 10, "offset": 0}).json()

        assert body["data"]["total"] == 1
        assert body["data"]["users"][0]["emailVerified"] is True

    def test_impersonate_forwards_cookies(self, client, auth_provider, make_user):
        auth_provider.impersonate_user.return_value = (
            {"session": {"token": "imp"}, "user": make_user("user-2")},
            ["better-auth.session_token=imp; Path=/; HttpOnly"],
        )

        response = client.post(f"{API}/admin/users/user-2/impersonate")

        assert response.status_code == 200
        assert response.json()["data"]["refreshRequired"] is True
        assert "setCookies" not in response.json()["data"]
        assert "better-auth.session_token=imp" in response.headers["set-cookie"]

    def test_bulk_delete_skips_self(self, client, auth_provider):
        auth_provider.remove_user.return_value = {"success": True}

        response = client.post(f"{API}/admin/users/bulk/delete", json={"userIds": ["admin-1", "user-2"]})

        data = response.json()["data"]
        assert data["succeeded"] == ["user-2"]
        assert data["skipped"] == ["admin-1"]
        auth_provider.remove_user.assert_called_once()

    def test_provider_error_status_is_surfaced(self, client, auth_provider):
        auth_provider.unban_user.side_effect = AuthProviderError("User not found", provider_status=404)

        response = client.post(f"{API}/admin/users/missing/unban")

        assert response.status_code == 404
        assert response.json()["message"] == "User not found"
