"""
tests/test_api_users.py -- Integration tests for the /api/v1/users routes.

These exercise the full stack: FastAPI routing -> auth dependency -> MemoryDB
-> response model serialization.

Fixtures used (from conftest.py):
  - api_client: (client, token, uid) -- shared store for the module
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from fastapi.testclient import TestClient


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestUserAuthPolicy:
    """Registration is public; everything else needs a token."""

    def test_list_requires_auth(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/v1/users")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_detail_requires_auth(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, uid = api_client
        assert client.get(f"/api/v1/users/{uid}").status_code == 401

    def test_invalid_token_rejected(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/v1/users", headers=_auth("not-a-jwt"))
        assert resp.status_code == 401

    def test_register_is_public(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post("/api/v1/users", json={"username": "public-signup", "email": "public@example.com"})
        assert resp.status_code == 201, resp.text


class TestUserCreate:
    def test_create_returns_record(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.post(
            "/api/v1/users",
            json={"username": "alice", "email": "alice@example.com", "full_name": "Alice", "password": "wonderland"},
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["username"] == "alice"
        assert data["full_name"] == "Alice"
        assert data["is_active"] is True
        assert data["created_at"]
        assert "hashed_password" not in data
        assert "password" not in data

        detail = client.get(f"/api/v1/users/{data['id']}", headers=_auth(token))
        assert detail.status_code == 200
        assert detail.json() == data

    def test_empty_username_rejected(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post("/api/v1/users", json={"username": "   ", "email": "blank@example.com"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"

    def test_missing_email_rejected(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post("/api/v1/users", json={"username": "no-email"})
        assert resp.status_code == 422

    def test_malformed_email_rejected(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post("/api/v1/users", json={"username": "bad-email", "email": "not-an-email"})
        assert resp.status_code == 422

    def test_short_password_rejected(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/users", json={"username": "shortpw", "email": "shortpw@example.com", "password": "abc"}
        )
        assert resp.status_code == 422

    def test_duplicate_username_conflict(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        first = client.post("/api/v1/users", json={"username": "dupe", "email": "dupe1@example.com"})
        assert first.status_code == 201
        second = client.post("/api/v1/users", json={"username": "dupe", "email": "dupe2@example.com"})
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "username_taken"

    def test_duplicate_email_conflict_is_case_insensitive(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        first = client.post("/api/v1/users", json={"username": "mail1", "email": "shared@example.com"})
        assert first.status_code == 201
        second = client.post("/api/v1/users", json={"username": "mail2", "email": "SHARED@example.com"})
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "email_taken"

    def test_concurrent_registrations_of_same_username(self, api_client: tuple[TestClient, str, int]) -> None:
        """Exactly one of several racing registrations for one username wins."""
        client, _token, _uid = api_client

        def register(n: int) -> int:
            resp = client.post("/api/v1/users", json={"username": "racer", "email": f"racer{n}@example.com"})
            return resp.status_code

        with ThreadPoolExecutor(max_workers=8) as pool:
            codes = list(pool.map(register, range(8)))

        assert codes.count(201) == 1
        assert codes.count(409) == 7


class TestUserReadUpdateDelete:
    def test_list_sorted_by_id(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, uid = api_client
        client.post("/api/v1/users", json={"username": "lister", "email": "lister@example.com"})
        resp = client.get("/api/v1/users", headers=_auth(token))
        assert resp.status_code == 200
        ids = [u["id"] for u in resp.json()]
        assert ids == sorted(ids)
        assert uid in ids

    def test_get_not_found(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.get("/api/v1/users/99999", headers=_auth(token))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "user_not_found"

    def test_non_integer_id_rejected(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.get("/api/v1/users/abc", headers=_auth(token))
        assert resp.status_code == 422

    def test_patch_updates_fields(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        created = client.post("/api/v1/users", json={"username": "patchme", "email": "patchme@example.com"}).json()

        resp = client.patch(
            f"/api/v1/users/{created['id']}",
            json={"full_name": "Patched", "email": "patched@example.com"},
            headers=_auth(token),
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["id"] == created["id"]
        assert data["created_at"] == created["created_at"]
        assert data["full_name"] == "Patched"
        assert data["email"] == "patched@example.com"
        assert data["updated_at"] is not None

    def test_patch_email_conflict(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        client.post("/api/v1/users", json={"username": "owner", "email": "taken@example.com"})
        other = client.post("/api/v1/users", json={"username": "other", "email": "other@example.com"}).json()
        resp = client.patch(
            f"/api/v1/users/{other['id']}", json={"email": "taken@example.com"}, headers=_auth(token)
        )
        assert resp.status_code == 409

    def test_patch_not_found(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.patch("/api/v1/users/99999", json={"full_name": "x"}, headers=_auth(token))
        assert resp.status_code == 404

    def test_delete_then_404(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        created = client.post("/api/v1/users", json={"username": "doomed", "email": "doomed@example.com"}).json()

        resp = client.delete(f"/api/v1/users/{created['id']}", headers=_auth(token))
        assert resp.status_code == 204
        assert client.get(f"/api/v1/users/{created['id']}", headers=_auth(token)).status_code == 404
        assert client.delete(f"/api/v1/users/{created['id']}", headers=_auth(token)).status_code == 404

    def test_deleted_id_not_reused(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        created = client.post("/api/v1/users", json={"username": "gone", "email": "gone@example.com"}).json()
        client.delete(f"/api/v1/users/{created['id']}", headers=_auth(token))

        after = client.post("/api/v1/users", json={"username": "next", "email": "next@example.com"}).json()
        assert after["id"] > created["id"]

    def test_any_authenticated_user_may_modify_others(self, api_client: tuple[TestClient, str, int]) -> None:
        """No role checks: a freshly registered user can edit the admin."""
        client, _token, uid = api_client
        client.post("/api/v1/users", json={"username": "plain", "email": "plain@example.com", "password": "plainpass1"})
        login = client.post("/api/v1/auth/login", json={"username": "plain", "password": "plainpass1"})
        client.cookies.clear()
        plain_token = login.json()["access_token"]

        resp = client.patch(f"/api/v1/users/{uid}", json={"full_name": "Renamed"}, headers=_auth(plain_token))
        assert resp.status_code == 200
        assert resp.json()["full_name"] == "Renamed"

    def test_updates_use_patch_not_put(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, uid = api_client
        resp = client.put(f"/api/v1/users/{uid}", json={"full_name": "x"}, headers=_auth(token))
        assert resp.status_code == 405
