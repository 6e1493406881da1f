from __future__ import annotations

from typing import Any

from fastapi.testclient import TestClient

from conftest import as_user, create_entity, delete
from gamedesk.permissions import Role


def _create_art(client: TestClient, actor_id: str, **fields: Any) -> dict[str, Any]:
    body = {"title": "Sketch", "image_url": "/concept/sketch.png", **fields}
    response = client.post("/api/concept-arts", params=as_user(actor_id), json=body)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_concept_art_persists_submitted_fields(
    client: TestClient, team: dict[Role, str]
) -> None:
    artist_id = team[Role.ARTIST]
    hero = create_entity(client, team[Role.ADMIN], name="Necromancer")

    created = _create_art(
        client,
        artist_id,
        title="Necromancer - main design",
        description="Full body",
        tags="Hero, undead, HERO",
        entity_id=hero["id"],
    )

    assert created["status"] == "DRAFT"
    assert created["tags"] == ["hero", "undead"]
    assert created["entity"]["code"] == hero["code"]
    assert created["created_by"]["id"] == artist_id
    assert created["comments"] == []

    fetched = client.get(
        f"/api/concept-arts/{created['id']}",
        params=as_user(team[Role.CREATIVE_DIRECTOR]),
    )
    assert fetched.status_code == 200
    assert fetched.json()["title"] == "Necromancer - main design"
    assert fetched.json()["description"] == "Full body"

    hidden = client.get(
        f"/api/concept-arts/{created['id']}", params=as_user(team[Role.VIEWER])
    )
    assert hidden.status_code == 403


def test_image_url_is_required(client: TestClient, admin_id: str) -> None:
    response = client.post(
        "/api/concept-arts",
        params=as_user(admin_id),
        json={"title": "No image", "image_url": "  "},
    )

    assert response.status_code == 422


def test_unknown_entity_is_rejected(client: TestClient, admin_id: str) -> None:
    response = client.post(
        "/api/concept-arts",
        params=as_user(admin_id),
        json={"title": "Orphan", "image_url": "/x.png", "entity_id": "missing"},
    )

    assert response.status_code == 400


def test_writers_cannot_create_concept_art(
    client: TestClient, team: dict[Role, str]
) -> None:
    response = client.post(
        "/api/concept-arts",
        params=as_user(team[Role.WRITER]),
        json={"title": "Nope", "image_url": "/x.png"},
    )

    assert response.status_code == 403


def test_change_status_updates_stored_status_and_logs_activity(
    client: TestClient, admin_id: str
) -> None:
    art = _create_art(client, admin_id)

    response = client.put(
        f"/api/concept-arts/{art['id']}/status",
        params=as_user(admin_id),
        json={"status": "APPROVED"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "APPROVED"

    fetched = client.get(f"/api/concept-arts/{art['id']}", params=as_user(admin_id))
    assert fetched.json()["status"] == "APPROVED"

    activity = client.get("/api/activity", params=as_user(admin_id)).json()["data"]
    assert activity[0]["type"] == "STATUS_CHANGED"
    assert activity[0]["item_type"] == "concept_art"
    assert activity[0]["item_id"] == art["id"]


def test_partial_update_keeps_untouched_fields(
    client: TestClient, admin_id: str
) -> None:
    hero = create_entity(client, admin_id, name="Paladin")
    art = _create_art(
        client, admin_id, description="Armour", tags=["wip"], entity_id=hero["id"]
    )

    response = client.put(
        f"/api/concept-arts/{art['id']}",
        params=as_user(admin_id),
        json={"title": "Paladin armour", "entity_id": None},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["title"] == "Paladin armour"
    assert payload["description"] == "Armour"
    assert payload["tags"] == ["wip"]
    assert payload["entity"] is None


def test_list_filters_and_tags(client: TestClient, admin_id: str) -> None:
    hero = create_entity(client, admin_id, name="Necromancer")
    unit = create_entity(client, admin_id, name="Skeleton", type="UNIT")
    first = _create_art(
        client, admin_id, title="Necro pose", tags="hero,undead", entity_id=hero["id"]
    )
    _create_art(
        client, admin_id, title="Skeleton rows", tags="unit", entity_id=unit["id"]
    )
    _create_art(client, admin_id, title="Moodboard", status="IN_REVIEW")

    by_tag = client.get("/api/concept-arts", params=as_user(admin_id, tag="HERO"))
    assert [row["id"] for row in by_tag.json()["data"]] == [first["id"]]

    by_type = client.get(
        "/api/concept-arts", params=as_user(admin_id, entity_type="UNIT")
    )
    assert [row["title"] for row in by_type.json()["data"]] == ["Skeleton rows"]

    by_status = client.get(
        "/api/concept-arts", params=as_user(admin_id, status="IN_REVIEW")
    )
    assert [row["title"] for row in by_status.json()["data"]] == ["Moodboard"]

    by_search = client.get("/api/concept-arts", params=as_user(admin_id, search="pose"))
    assert by_search.json()["pagination"]["total_items"] == 1

    by_title = client.get("/api/concept-arts", params=as_user(admin_id, sort="title"))
    assert [row["title"] for row in by_title.json()["data"]] == [
        "Moodboard",
        "Necro pose",
        "Skeleton rows",
    ]

    tags = client.get("/api/concept-arts/tags", params=as_user(admin_id)).json()
    assert tags["data"] == ["hero", "undead", "unit"]


def test_grouped_listing_puts_unlinked_art_last(
    client: TestClient, admin_id: str
) -> None:
    hero = create_entity(client, admin_id, name="Necromancer")
    _create_art(client, admin_id, title="Loose sketch")
    _create_art(client, admin_id, title="Pose A", entity_id=hero["id"])
    _create_art(client, admin_id, title="Pose B", entity_id=hero["id"])

    groups = client.get("/api/concept-arts/grouped", params=as_user(admin_id)).json()[
        "data"
    ]

    assert len(groups) == 2
    assert groups[0]["entity"]["id"] == hero["id"]
    assert {item["title"] for item in groups[0]["items"]} == {"Pose A", "Pose B"}
    assert groups[1]["entity"] is None
    assert [item["title"] for item in groups[1]["items"]] == ["Loose sketch"]


def test_stats_count_by_status_and_entity_type(
    client: TestClient, admin_id: str
) -> None:
    hero = create_entity(client, admin_id, name="Necromancer")
    _create_art(client, admin_id, entity_id=hero["id"], status="APPROVED")
    _create_art(client, admin_id)

    stats = client.get("/api/concept-arts/stats", params=as_user(admin_id)).json()

    assert stats["total"] == 2
    assert stats["by_status"]["APPROVED"] == 1
    assert stats["by_status"]["DRAFT"] == 1
    assert stats["by_status"]["REJECTED"] == 0
    assert stats["by_entity_type"] == {"HERO": 1}


def test_comments_can_be_added_listed_and_removed(
    client: TestClient, team: dict[Role, str]
) -> None:
    admin_id = team[Role.ADMIN]
    artist_id = team[Role.ARTIST]
    art = _create_art(client, admin_id)
    url = f"/api/concept-arts/{art['id']}/comments"

    added = client.post(url, params=as_user(artist_id), json={"content": " Love it "})
    assert added.status_code == 201
    comment = added.json()
    assert comment["content"] == "Love it"
    assert comment["author"]["id"] == artist_id

    listing = client.get(url, params=as_user(admin_id)).json()
    assert [entry["id"] for entry in listing["data"]] == [comment["id"]]

    detail = client.get(f"/api/concept-arts/{art['id']}", params=as_user(admin_id))
    assert detail.json()["comment_count"] == 1

    other = client.request(
        "DELETE",
        f"{url}/{comment['id']}",
        params=as_user(team[Role.CREATIVE_DIRECTOR]),
    )
    assert other.status_code == 403

    own = client.request("DELETE", f"{url}/{comment['id']}", params=as_user(artist_id))
    assert own.status_code == 204
    assert client.get(url, params=as_user(admin_id)).json()["data"] == []


def test_comments_require_module_access(
    client: TestClient, team: dict[Role, str]
) -> None:
    art = _create_art(client, team[Role.ADMIN])

    response = client.post(
        f"/api/concept-arts/{art['id']}/comments",
        params=as_user(team[Role.WRITER]),
        json={"content": "Can I see this?"},
    )

    assert response.status_code == 403


def test_delete_concept_art_cascades_comments(
    client: TestClient, admin_id: str
) -> None:
    art = _create_art(client, admin_id)
    client.post(
        f"/api/concept-arts/{art['id']}/comments",
        params=as_user(admin_id),
        json={"content": "First"},
    )

    response = delete(client, f"/api/concept-arts/{art['id']}", admin_id)

    assert response.status_code == 204
    missing = client.get(f"/api/concept-arts/{art['id']}", params=as_user(admin_id))
    assert missing.status_code == 404
