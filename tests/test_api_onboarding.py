from __future__ import annotations

from typing import Any

from fastapi.testclient import TestClient

from conftest import as_user, create_entity, delete
from gamedesk.permissions import Role


def _create_card(client: TestClient, actor_id: str, **fields: Any) -> dict[str, Any]:
    body = {"title": "Welcome", **fields}
    response = client.post("/api/onboarding", params=as_user(actor_id), json=body)
    assert response.status_code == 201, response.text
    return response.json()


def _update(client: TestClient, actor_id: str, card_id: str, **fields: Any):
    return client.put(
        f"/api/onboarding/{card_id}", params=as_user(actor_id), json=fields
    )


def test_create_card_with_images_and_linked_entities(
    client: TestClient, admin_id: str
) -> None:
    hero = create_entity(client, admin_id, name="Necromancer")

    card = _create_card(
        client,
        admin_id,
        description="Read this first",
        category="GUIDELINES",
        tags="art, start-here",
        links=["https://wiki.example/art"],
        images=[
            {"image_url": "/img/a.png", "caption": "Front"},
            {"image_url": "/img/b.png"},
        ],
        linked_entity_ids=[hero["id"]],
    )

    assert card["category"] == "GUIDELINES"
    assert card["status"] == "DRAFT"
    assert card["tags"] == ["art", "start-here"]
    assert [(image["image_url"], image["order"]) for image in card["images"]] == [
        ("/img/a.png", 0),
        ("/img/b.png", 1),
    ]
    assert card["images"][0]["caption"] == "Front"
    assert [entity["id"] for entity in card["linked_entities"]] == [hero["id"]]
    assert card["parent"] is None
    assert card["children"] == []


def test_everyone_can_read_but_only_leads_can_write(
    client: TestClient, team: dict[Role, str]
) -> None:
    card = _create_card(client, team[Role.CREATIVE_DIRECTOR])

    for role in (Role.VIEWER, Role.ARTIST, Role.WRITER, Role.CONCEPT_ARTIST):
        fetched = client.get(f"/api/onboarding/{card['id']}", params=as_user(team[role]))
        assert fetched.status_code == 200
        denied = _update(client, team[role], card["id"], title="Changed")
        assert denied.status_code == 403


def test_root_filter_lists_only_top_level_cards(client: TestClient, admin_id: str) -> None:
    parent = _create_card(client, admin_id, title="Art guidelines")
    child = _create_card(client, admin_id, title="Silhouettes", parent_id=parent["id"])

    roots = client.get(
        "/api/onboarding", params=as_user(admin_id, parent_id="root")
    ).json()["data"]
    assert [card["id"] for card in roots] == [parent["id"]]
    assert roots[0]["child_count"] == 1

    children = client.get(
        "/api/onboarding", params=as_user(admin_id, parent_id=parent["id"])
    ).json()["data"]
    assert [card["id"] for card in children] == [child["id"]]

    detail = client.get(f"/api/onboarding/{child['id']}", params=as_user(admin_id)).json()
    assert detail["parent"]["id"] == parent["id"]


def test_default_ordering_puts_pinned_cards_first(
    client: TestClient, admin_id: str
) -> None:
    second = _create_card(client, admin_id, title="Second", order=2)
    first = _create_card(client, admin_id, title="First", order=1)
    pinned = _create_card(client, admin_id, title="Pinned", order=5, is_pinned=True)

    listing = client.get("/api/onboarding", params=as_user(admin_id)).json()["data"]

    assert [card["id"] for card in listing] == [pinned["id"], first["id"], second["id"]]


def test_nesting_cycles_are_rejected(client: TestClient, admin_id: str) -> None:
    parent = _create_card(client, admin_id, title="Parent")
    child = _create_card(client, admin_id, title="Child", parent_id=parent["id"])

    self_parent = _update(client, admin_id, parent["id"], parent_id=parent["id"])
    assert self_parent.status_code == 400

    cycle = _update(client, admin_id, parent["id"], parent_id=child["id"])
    assert cycle.status_code == 400
    assert cycle.json()["detail"] == "An onboarding card cannot be nested under itself."


def test_unknown_parent_is_rejected(client: TestClient, admin_id: str) -> None:
    response = client.post(
        "/api/onboarding",
        params=as_user(admin_id),
        json={"title": "Lost", "parent_id": "missing"},
    )

    assert response.status_code == 400


def test_deleting_a_parent_promotes_its_children(
    client: TestClient, admin_id: str
) -> None:
    parent = _create_card(client, admin_id, title="Parent")
    child = _create_card(client, admin_id, title="Child", parent_id=parent["id"])

    response = delete(client, f"/api/onboarding/{parent['id']}", admin_id)

    assert response.status_code == 204
    promoted = client.get(f"/api/onboarding/{child['id']}", params=as_user(admin_id))
    assert promoted.status_code == 200
    assert promoted.json()["parent_id"] is None


def test_images_can_be_added_reordered_and_removed(
    client: TestClient, admin_id: str
) -> None:
    card = _create_card(
        client,
        admin_id,
        images=[{"image_url": "/img/a.png"}, {"image_url": "/img/b.png"}],
    )
    base = f"/api/onboarding/{card['id']}/images"

    added = client.post(base, params=as_user(admin_id), json={"image_url": "/img/c.png"})
    assert added.status_code == 201
    assert added.json()["order"] == 2

    ids = [image["id"] for image in card["images"]] + [added.json()["id"]]
    reordered = client.put(
        f"{base}/order",
        params=as_user(admin_id),
        json={"image_ids": [ids[2], ids[0], ids[1]]},
    )
    assert reordered.status_code == 200
    assert [image["image_url"] for image in reordered.json()["images"]] == [
        "/img/c.png",
        "/img/a.png",
        "/img/b.png",
    ]

    incomplete = client.put(
        f"{base}/order", params=as_user(admin_id), json={"image_ids": [ids[0]]}
    )
    assert incomplete.status_code == 400

    removed = client.request("DELETE", f"{base}/{ids[0]}", params=as_user(admin_id))
    assert removed.status_code == 204
    detail = client.get(f"/api/onboarding/{card['id']}", params=as_user(admin_id)).json()
    assert [image["id"] for image in detail["images"]] == [ids[2], ids[1]]

    missing = client.request("DELETE", f"{base}/{ids[0]}", params=as_user(admin_id))
    assert missing.status_code == 404


def test_update_replaces_images_and_keeps_other_fields(
    client: TestClient, admin_id: str
) -> None:
    card = _create_card(
        client,
        admin_id,
        description="Keep me",
        images=[{"image_url": "/img/a.png"}],
    )

    response = _update(
        client,
        admin_id,
        card["id"],
        images=[{"image_url": "/img/new.png", "caption": "New"}],
        status="APPROVED",
    )

    assert response.status_code == 200
    payload = response.json()
    assert [image["image_url"] for image in payload["images"]] == ["/img/new.png"]
    assert payload["description"] == "Keep me"
    assert payload["status"] == "APPROVED"


def test_grouped_follows_category_order(client: TestClient, admin_id: str) -> None:
    _create_card(client, admin_id, title="Misc")
    _create_card(client, admin_id, title="Builds", category="GAME_FILES")
    _create_card(client, admin_id, title="Palette", category="DESIGN_SYSTEM")

    groups = client.get("/api/onboarding/grouped", params=as_user(admin_id)).json()["data"]

    assert [group["category"] for group in groups] == [
        "DESIGN_SYSTEM",
        "GAME_FILES",
        "OTHER",
    ]


def test_pin_stats_and_tags(client: TestClient, admin_id: str) -> None:
    card = _create_card(client, admin_id, tags=["files"], category="TOOLS")
    _create_card(client, admin_id, tags=["art"], status="APPROVED")

    pinned = client.post(f"/api/onboarding/{card['id']}/pin", params=as_user(admin_id))
    assert pinned.json()["is_pinned"] is True

    stats = client.get("/api/onboarding/stats", params=as_user(admin_id)).json()
    assert stats["total"] == 2
    assert stats["by_category"]["TOOLS"] == 1
    assert stats["by_status"]["APPROVED"] == 1

    tags = client.get("/api/onboarding/tags", params=as_user(admin_id)).json()["data"]
    assert tags == ["art", "files"]


def test_pin_and_image_changes_are_logged(client: TestClient, admin_id: str) -> None:
    card = _create_card(client, admin_id, images=[{"image_url": "/img/a.png"}])
    base = f"/api/onboarding/{card['id']}/images"

    client.post(f"/api/onboarding/{card['id']}/pin", params=as_user(admin_id))
    added = client.post(base, params=as_user(admin_id), json={"image_url": "/img/b.png"})
    client.put(
        f"{base}/order",
        params=as_user(admin_id),
        json={"image_ids": [added.json()["id"], card["images"][0]["id"]]},
    )
    client.request("DELETE", f"{base}/{added.json()['id']}", params=as_user(admin_id))

    activity = client.get("/api/activity", params=as_user(admin_id)).json()["data"]
    updates = [
        entry
        for entry in activity
        if entry["item_id"] == card["id"] and entry["type"] == "UPDATED"
    ]
    assert len(updates) == 4
    assert {entry["item_type"] for entry in updates} == {"onboarding_card"}
