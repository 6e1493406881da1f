from __future__ import annotations

from typing import Any

from fastapi.testclient import TestClient

from conftest import as_user, create_entity, delete
from gamedesk.permissions import Role


def _create_entry(client: TestClient, actor_id: str, **fields: Any) -> dict[str, Any]:
    body = {"title": "The fall", "content": "Line one\nLine two", **fields}
    response = client.post("/api/lore", params=as_user(actor_id), json=body)
    assert response.status_code == 201, response.text
    return response.json()


def _update(client: TestClient, actor_id: str, entry_id: str, **fields: Any):
    return client.put(f"/api/lore/{entry_id}", params=as_user(actor_id), json=fields)


def test_writer_creates_entry_with_initial_version(
    client: TestClient, team: dict[Role, str]
) -> None:
    writer_id = team[Role.WRITER]

    entry = _create_entry(client, writer_id, summary="How it began", tags="story")

    assert entry["version"] == 1
    assert entry["version_count"] == 1
    assert entry["lore_type"] == "OTHER"
    assert entry["status"] == "DRAFT"
    assert entry["created_by"]["id"] == writer_id

    versions = client.get(
        f"/api/lore/{entry['id']}/versions", params=as_user(writer_id)
    ).json()["data"]
    assert len(versions) == 1
    assert versions[0]["version"] == 1
    assert versions[0]["change_note"] == "Initial version"
    assert versions[0]["changed_by"]["id"] == writer_id


def test_artists_cannot_see_lore(client: TestClient, team: dict[Role, str]) -> None:
    response = client.get("/api/lore", params=as_user(team[Role.ARTIST]))

    assert response.status_code == 403


def test_text_changes_create_new_versions(client: TestClient, admin_id: str) -> None:
    entry = _create_entry(client, admin_id)

    response = _update(
        client,
        admin_id,
        entry["id"],
        content="Line one\nLine 2\nLine three",
        change_note="Rewrote the ending",
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["version"] == 2
    assert updated["version_count"] == 2

    versions = client.get(
        f"/api/lore/{entry['id']}/versions", params=as_user(admin_id)
    ).json()["data"]
    assert [snapshot["version"] for snapshot in versions] == [2, 1]
    assert versions[0]["change_note"] == "Rewrote the ending"
    assert versions[1]["content"] == "Line one\nLine two"


def test_metadata_only_update_keeps_version(client: TestClient, admin_id: str) -> None:
    entry = _create_entry(client, admin_id)

    response = _update(client, admin_id, entry["id"], tags=["canon"], status="IN_REVIEW")

    assert response.status_code == 200
    assert response.json()["version"] == 1
    assert response.json()["tags"] == ["canon"]
    assert response.json()["status"] == "IN_REVIEW"


def test_diff_defaults_to_previous_version(client: TestClient, admin_id: str) -> None:
    entry = _create_entry(client, admin_id)
    _update(client, admin_id, entry["id"], content="Line one\nLine 2\nLine three")

    response = client.get(
        f"/api/lore/{entry['id']}/versions/2/diff", params=as_user(admin_id)
    )

    assert response.status_code == 200
    diff = response.json()
    assert diff["from_version"] == 1
    assert diff["to_version"] == 2
    assert diff["title_changed"] is False
    assert diff["added"] == 2
    assert diff["removed"] == 1
    assert [(line["kind"], line["content"]) for line in diff["lines"]] == [
        ("unchanged", "Line one"),
        ("removed", "Line two"),
        ("added", "Line 2"),
        ("added", "Line three"),
    ]
    assert "-Line two" in diff["unified_diff"]
    assert "+Line three" in diff["unified_diff"]


def test_first_version_is_compared_with_empty_text(
    client: TestClient, admin_id: str
) -> None:
    entry = _create_entry(client, admin_id)

    diff = client.get(
        f"/api/lore/{entry['id']}/versions/1/diff", params=as_user(admin_id)
    ).json()

    assert diff["from_version"] is None
    assert diff["added"] == 2
    assert diff["removed"] == 0
    assert diff["title_changed"] is True


def test_diff_against_explicit_version(client: TestClient, admin_id: str) -> None:
    entry = _create_entry(client, admin_id)
    _update(client, admin_id, entry["id"], title="The rise")
    _update(client, admin_id, entry["id"], content="Line one")

    diff = client.get(
        f"/api/lore/{entry['id']}/versions/3/diff",
        params=as_user(admin_id, against=1),
    ).json()

    assert diff["from_version"] == 1
    assert diff["title_changed"] is True
    assert diff["removed"] == 1
    assert diff["added"] == 0


def test_missing_version_returns_404(client: TestClient, admin_id: str) -> None:
    entry = _create_entry(client, admin_id)

    response = client.get(
        f"/api/lore/{entry['id']}/versions/7", params=as_user(admin_id)
    )

    assert response.status_code == 404
    assert response.json()["detail"] == f"Lore entry '{entry['id']}' has no version 7."


def test_restore_copies_snapshot_into_new_version(
    client: TestClient, team: dict[Role, str]
) -> None:
    writer_id = team[Role.WRITER]
    entry = _create_entry(client, writer_id)
    _update(client, writer_id, entry["id"], title="Rewritten", content="Something else")

    response = client.post(
        f"/api/lore/{entry['id']}/versions/1/restore", params=as_user(writer_id)
    )

    assert response.status_code == 200
    restored = response.json()
    assert restored["version"] == 3
    assert restored["title"] == "The fall"
    assert restored["content"] == "Line one\nLine two"

    latest = client.get(
        f"/api/lore/{entry['id']}/versions/3", params=as_user(writer_id)
    ).json()
    assert latest["change_note"] == "Restored from version 1"


def test_linked_entities_filter_and_grouping(client: TestClient, admin_id: str) -> None:
    hero = create_entity(client, admin_id, name="Necromancer")
    faction = create_entity(client, admin_id, name="Undead", type="FACTION")
    primary = _create_entry(client, admin_id, title="Origins", entity_id=hero["id"])
    linked = _create_entry(
        client,
        admin_id,
        title="The host",
        entity_id=faction["id"],
        linked_entity_ids=[hero["id"]],
        lore_type="WORLD_BUILDING",
    )
    _create_entry(client, admin_id, title="Loose notes")

    assert [entity["id"] for entity in linked["linked_entities"]] == [hero["id"]]

    filtered = client.get(
        "/api/lore", params=as_user(admin_id, entity_id=hero["id"], sort="title")
    ).json()["data"]
    assert [row["id"] for row in filtered] == [primary["id"], linked["id"]]

    by_type = client.get(
        "/api/lore", params=as_user(admin_id, lore_type="WORLD_BUILDING")
    ).json()["data"]
    assert [row["title"] for row in by_type] == ["The host"]

    groups = client.get("/api/lore/grouped", params=as_user(admin_id)).json()["data"]
    assert groups[-1]["entity"] is None
    assert len(groups) == 3


def test_unknown_linked_entity_is_rejected(client: TestClient, admin_id: str) -> None:
    response = client.post(
        "/api/lore",
        params=as_user(admin_id),
        json={"title": "Ghost", "content": "Boo", "linked_entity_ids": ["nope"]},
    )

    assert response.status_code == 400


def test_stats_and_search(client: TestClient, admin_id: str) -> None:
    _create_entry(client, admin_id, title="Haven creed", lore_type="MYTHOLOGY")
    _create_entry(client, admin_id, content="A tale of the plague", status="APPROVED")

    stats = client.get("/api/lore/stats", params=as_user(admin_id)).json()
    assert stats["total"] == 2
    assert stats["by_type"]["MYTHOLOGY"] == 1
    assert stats["by_status"]["APPROVED"] == 1

    found = client.get("/api/lore", params=as_user(admin_id, search="PLAGUE")).json()
    assert found["pagination"]["total_items"] == 1


def test_status_change_and_delete(client: TestClient, team: dict[Role, str]) -> None:
    admin_id = team[Role.ADMIN]
    entry = _create_entry(client, admin_id)

    status = client.put(
        f"/api/lore/{entry['id']}/status",
        params=as_user(admin_id),
        json={"status": "APPROVED"},
    )
    assert status.status_code == 200
    assert status.json()["status"] == "APPROVED"
    assert status.json()["version"] == 1

    denied = delete(client, f"/api/lore/{entry['id']}", team[Role.WRITER])
    assert denied.status_code == 403

    wrong = delete(client, f"/api/lore/{entry['id']}", admin_id, password="guess")
    assert wrong.status_code == 403

    removed = delete(client, f"/api/lore/{entry['id']}", admin_id)
    assert removed.status_code == 204
    assert (
        client.get(f"/api/lore/{entry['id']}", params=as_user(admin_id)).status_code
        == 404
    )
