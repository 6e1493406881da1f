"""Test configuration for the game production dashboard."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient

from gamedesk.api import DashboardApiSettings, create_app
from gamedesk.permissions import Role

DELETE_PASSWORD = "test-delete-phrase"


def as_user(user_id: str, **params: Any) -> dict[str, Any]:
    """Query parameters identifying ``user_id`` as the acting team member."""

    return {"acting_user_id": user_id, **params}


@pytest.fixture()
def settings(tmp_path: Path) -> DashboardApiSettings:
    return DashboardApiSettings(
        database_url=f"sqlite:///{tmp_path / 'gamedesk.db'}",
        delete_password=DELETE_PASSWORD,
    )


@pytest.fixture()
def client(settings: DashboardApiSettings) -> Iterator[TestClient]:
    app = create_app(settings=settings)
    with TestClient(app) as test_client:
        yield test_client
    app.state.database.dispose()


@pytest.fixture()
def team(client: TestClient) -> dict[Role, str]:
    """Register one user per role and return their identifiers."""

    response = client.post(
        "/api/users",
        json={"email": "admin@example.com", "name": "Ada Admin", "role": "ADMIN"},
    )
    assert response.status_code == 201, response.text
    admin_id = response.json()["id"]

    identifiers = {Role.ADMIN: admin_id}
    for role in Role:
        if role is Role.ADMIN:
            continue
        slug = role.value.lower().replace("_", "-")
        response = client.post(
            "/api/users",
            params=as_user(admin_id),
            json={
                "email": f"{slug}@example.com",
                "name": role.value.replace("_", " ").title(),
                "role": role.value,
            },
        )
        assert response.status_code == 201, response.text
        identifiers[role] = response.json()["id"]
    return identifiers


@pytest.fixture()
def admin_id(team: dict[Role, str]) -> str:
    return team[Role.ADMIN]


def create_entity(
    client: TestClient, actor_id: str, *, name: str, type: str = "HERO", **fields: Any
) -> dict[str, Any]:
    response = client.post(
        "/api/entities",
        params=as_user(actor_id),
        json={"name": name, "type": type, **fields},
    )
    assert response.status_code == 201, response.text
    return response.json()


def delete(
    client: TestClient,
    url: str,
    actor_id: str,
    *,
    password: str | None = DELETE_PASSWORD,
):
    body = {"confirm_password": password} if password is not None else None
    return client.request("DELETE", url, params=as_user(actor_id), json=body)


__all__ = ["DELETE_PASSWORD", "as_user", "create_entity", "delete"]
