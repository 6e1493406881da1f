from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import as_user
from gamedesk.permissions import Role


def test_first_user_can_be_created_without_acting_user(client: TestClient) -> None:
    response = client.post(
        "/api/users",
        json={"email": "  Lead@Example.COM ", "name": "Lead", "role": "ADMIN"},
    )
    assert response.status_code == 201

    payload = response.json()
    assert payload["email"] == "lead@example.com"
    assert payload["role"] == "ADMIN"
    assert payload["created_at"].endswith("+00:00")


def test_later_users_require_an_administrator(
    client: TestClient, team: dict[Role, str]
) -> None:
    body = {"email": "new@example.com", "name": "Newcomer"}

    anonymous = client.post("/api/users", json=body)
    assert anonymous.status_code == 401

    as_writer = client.post("/api/users", params=as_user(team[Role.WRITER]), json=body)
    assert as_writer.status_code == 403

    as_admin = client.post("/api/users", params=as_user(team[Role.ADMIN]), json=body)
    assert as_admin.status_code == 201
    assert as_admin.json()["role"] == "VIEWER"


def test_duplicate_email_is_a_conflict(client: TestClient, admin_id: str) -> None:
    response = client.post(
        "/api/users",
        params=as_user(admin_id),
        json={"email": "ADMIN@example.com", "name": "Copy"},
    )

    assert response.status_code == 409


def test_invalid_email_is_rejected(client: TestClient, admin_id: str) -> None:
    response = client.post(
        "/api/users",
        params=as_user(admin_id),
        json={"email": "not-an-address", "name": "Nobody"},
    )

    assert response.status_code == 422


def test_list_users_requires_a_known_acting_user(
    client: TestClient, team: dict[Role, str]
) -> None:
    assert client.get("/api/users").status_code == 401
    assert client.get("/api/users", params=as_user("ghost")).status_code == 401

    response = client.get("/api/users", params=as_user(team[Role.VIEWER]))
    assert response.status_code == 200
    names = [user["name"] for user in response.json()["data"]]
    assert names == sorted(names)
    assert len(names) == len(Role)


def test_get_missing_user_returns_404(client: TestClient, admin_id: str) -> None:
    response = client.get("/api/users/missing", params=as_user(admin_id))

    assert response.status_code == 404
    assert response.json()["detail"] == "User 'missing' does not exist."


def test_members_can_update_only_their_own_profile(
    client: TestClient, team: dict[Role, str]
) -> None:
    writer_id = team[Role.WRITER]

    own = client.put(
        f"/api/users/{writer_id}",
        params=as_user(writer_id),
        json={"name": "Renamed Writer", "avatar_url": "/avatars/w.png"},
    )
    assert own.status_code == 200
    assert own.json()["name"] == "Renamed Writer"
    assert own.json()["avatar_url"] == "/avatars/w.png"

    promote_self = client.put(
        f"/api/users/{writer_id}", params=as_user(writer_id), json={"role": "ADMIN"}
    )
    assert promote_self.status_code == 403

    other = client.put(
        f"/api/users/{team[Role.ARTIST]}",
        params=as_user(writer_id),
        json={"name": "Hijacked"},
    )
    assert other.status_code == 403


def test_admin_can_change_roles(client: TestClient, team: dict[Role, str]) -> None:
    response = client.put(
        f"/api/users/{team[Role.VIEWER]}",
        params=as_user(team[Role.ADMIN]),
        json={"role": "WRITER"},
    )

    assert response.status_code == 200
    assert response.json()["role"] == "WRITER"


def test_permissions_endpoint_reflects_role(
    client: TestClient, team: dict[Role, str]
) -> None:
    response = client.get(
        f"/api/users/{team[Role.WRITER]}/permissions",
        params=as_user(team[Role.VIEWER]),
    )
    assert response.status_code == 200

    payload = response.json()
    assert payload["role"] == "WRITER"
    assert payload["level"] == 30
    assert payload["editable_modules"] == ["lore"]
    assert "lore" in payload["visible_modules"]
    assert payload["can_delete"] is False
    assert payload["can_approve_thoughts"] is False
    assert payload["can_upload"] is False
