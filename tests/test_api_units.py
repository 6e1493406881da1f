from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from conftest import as_user, create_entity, delete
from gamedesk.permissions import Role


@pytest.fixture()
def faction(client: TestClient, admin_id: str) -> dict[str, Any]:
    return create_entity(client, admin_id, name="Haven", type="FACTION")


def _unit_body(faction_id: str, **fields: Any) -> dict[str, Any]:
    return {
        "faction_id": faction_id,
        "name": "Squire",
        "hp_max": 100,
        "attacks": [
            {"name": "Sword Strike", "hit_chance": 0.8, "damage": 25, "initiative": 50}
        ],
        **fields,
    }


def _create_unit(client: TestClient, actor_id: str, body: dict[str, Any]) -> dict[str, Any]:
    response = client.post("/api/units", params=as_user(actor_id), json=body)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_unit_applies_defaults(
    client: TestClient, admin_id: str, faction: dict[str, Any]
) -> None:
    unit = _create_unit(
        client,
        admin_id,
        _unit_body(faction["id"], immunities=["mind"], hp_regen_percent=0.05),
    )

    assert unit["faction"]["id"] == faction["id"]
    assert unit["role"] == "MELEE"
    assert unit["level"] == 1
    assert unit["xp_to_next"] == 80
    assert unit["hp_regen_percent"] == pytest.approx(0.05)
    assert unit["immunities"] == ["MIND"]
    assert unit["attacks"][0]["reach"] == "ADJACENT"
    assert unit["attacks"][0]["damage_source"] == "WEAPON"


@pytest.mark.parametrize(
    "overrides",
    [
        {"hp_max": 0},
        {"attacks": [{"name": "Miss", "hit_chance": 1.5}]},
        {"attacks": [{"name": "Nobody", "hit_chance": 0.5, "targets": 0}]},
        {"wards": ["PLASMA"]},
    ],
)
def test_invalid_stat_blocks_are_rejected(
    client: TestClient, admin_id: str, faction: dict[str, Any], overrides: dict[str, Any]
) -> None:
    response = client.post(
        "/api/units",
        params=as_user(admin_id),
        json=_unit_body(faction["id"], **overrides),
    )

    assert response.status_code == 400


def test_faction_must_be_a_faction_entity(client: TestClient, admin_id: str) -> None:
    hero = create_entity(client, admin_id, name="Paladin")

    wrong_type = client.post(
        "/api/units", params=as_user(admin_id), json=_unit_body(hero["id"])
    )
    missing = client.post(
        "/api/units", params=as_user(admin_id), json=_unit_body("missing")
    )

    assert wrong_type.status_code == 400
    assert wrong_type.json()["detail"] == f"Entity '{hero['id']}' is not a faction."
    assert missing.status_code == 400


def test_unit_entity_can_only_have_one_stat_block(
    client: TestClient, admin_id: str, faction: dict[str, Any]
) -> None:
    skeleton = create_entity(client, admin_id, name="Skeleton", type="UNIT")
    hero = create_entity(client, admin_id, name="Paladin")

    first = _create_unit(
        client, admin_id, _unit_body(faction["id"], entity_id=skeleton["id"])
    )
    assert first["entity"]["id"] == skeleton["id"]

    duplicate = client.post(
        "/api/units",
        params=as_user(admin_id),
        json=_unit_body(faction["id"], entity_id=skeleton["id"]),
    )
    assert duplicate.status_code == 409

    not_a_unit = client.post(
        "/api/units",
        params=as_user(admin_id),
        json=_unit_body(faction["id"], entity_id=hero["id"]),
    )
    assert not_a_unit.status_code == 400


def test_attacks_are_ordered_by_initiative(
    client: TestClient, admin_id: str, faction: dict[str, Any]
) -> None:
    unit = _create_unit(
        client,
        admin_id,
        _unit_body(
            faction["id"],
            attacks=[
                {"name": "Slow", "hit_chance": 0.8, "initiative": 10},
                {"name": "Fast", "hit_chance": 0.8, "initiative": 90},
            ],
        ),
    )

    assert [attack["name"] for attack in unit["attacks"]] == ["Fast", "Slow"]


def test_update_replaces_attacks_only_when_given(
    client: TestClient, admin_id: str, faction: dict[str, Any]
) -> None:
    unit = _create_unit(client, admin_id, _unit_body(faction["id"]))
    url = f"/api/units/{unit['id']}"

    renamed = client.put(url, params=as_user(admin_id), json={"name": "Knight", "armor": 20})
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Knight"
    assert renamed.json()["armor"] == 20
    assert [attack["name"] for attack in renamed.json()["attacks"]] == ["Sword Strike"]

    rearmed = client.put(
        url,
        params=as_user(admin_id),
        json={
            "attacks": [
                {
                    "name": "Holy Strike",
                    "hit_chance": 0.9,
                    "damage": 40,
                    "damage_source": "LIFE",
                }
            ]
        },
    )
    assert rearmed.status_code == 200
    assert [attack["name"] for attack in rearmed.json()["attacks"]] == ["Holy Strike"]

    invalid = client.put(url, params=as_user(admin_id), json={"hp_max": -5})
    assert invalid.status_code == 400


def test_export_uses_game_client_format(
    client: TestClient, admin_id: str, faction: dict[str, Any]
) -> None:
    unit = _create_unit(
        client,
        admin_id,
        _unit_body(
            faction["id"],
            name="Apprentice",
            role="MAGE",
            hp_max=35,
            hp_regen_percent=0.05,
            xp_to_next=75,
            xp_on_kill=15,
            attacks=[
                {
                    "name": "Air Blast",
                    "hit_chance": 0.8,
                    "damage": 15,
                    "damage_source": "AIR",
                    "initiative": 40,
                    "reach": "ANY",
                    "targets": 6,
                }
            ],
        ),
    )

    response = client.get(f"/api/units/{unit['id']}/export", params=as_user(admin_id))

    assert response.status_code == 200
    assert response.json() == {
        "unit": {
            "id": unit["id"],
            "factionId": faction["id"],
            "name": "Apprentice",
            "role": "mage",
            "level": 1,
            "xp": {"current": 0, "toNext": 75},
            "hp": {"max": 35},
            "armor": 0,
            "regenHpPercent": 0.05,
            "immunities": [],
            "wards": [],
            "xpOnKill": 15,
        },
        "attacks": [
            {
                "name": "Air Blast",
                "hitChance": 0.8,
                "damage": 15,
                "heal": None,
                "source": "air",
                "initiative": 40,
                "reach": "any",
                "targets": 6,
            }
        ],
    }


def test_list_filters_stats_and_factions(
    client: TestClient, admin_id: str, faction: dict[str, Any]
) -> None:
    other = create_entity(client, admin_id, name="Undead", type="FACTION")
    _create_unit(client, admin_id, _unit_body(faction["id"], name="Squire", hp_max=100))
    _create_unit(
        client, admin_id, _unit_body(faction["id"], name="Archer", role="RANGED", hp_max=45)
    )
    _create_unit(client, admin_id, _unit_body(other["id"], name="Ghoul", hp_max=120))

    by_faction = client.get(
        "/api/units", params=as_user(admin_id, faction_id=faction["id"], sort="name")
    ).json()["data"]
    assert [unit["name"] for unit in by_faction] == ["Archer", "Squire"]

    by_hp = client.get("/api/units", params=as_user(admin_id, sort="hp")).json()["data"]
    assert [unit["name"] for unit in by_hp] == ["Ghoul", "Squire", "Archer"]

    ranged = client.get("/api/units", params=as_user(admin_id, role="RANGED")).json()
    assert ranged["pagination"]["total_items"] == 1

    stats = client.get("/api/units/stats", params=as_user(admin_id)).json()
    assert stats["total"] == 3
    assert stats["by_role"] == {"MELEE": 2, "RANGED": 1, "MAGE": 0, "SUPPORT": 0}

    factions = client.get("/api/units/factions", params=as_user(admin_id)).json()
    assert [entry["name"] for entry in factions["data"]] == ["Haven", "Undead"]


def test_viewers_read_but_cannot_write_units(
    client: TestClient, team: dict[Role, str], faction: dict[str, Any]
) -> None:
    viewer_id = team[Role.VIEWER]
    unit = _create_unit(client, team[Role.ADMIN], _unit_body(faction["id"]))

    assert client.get(f"/api/units/{unit['id']}", params=as_user(viewer_id)).status_code == 200
    denied = client.post(
        "/api/units", params=as_user(viewer_id), json=_unit_body(faction["id"])
    )
    assert denied.status_code == 403


def test_delete_unit(client: TestClient, admin_id: str, faction: dict[str, Any]) -> None:
    unit = _create_unit(client, admin_id, _unit_body(faction["id"]))

    response = delete(client, f"/api/units/{unit['id']}", admin_id)

    assert response.status_code == 204
    assert client.get(f"/api/units/{unit['id']}", params=as_user(admin_id)).status_code == 404
