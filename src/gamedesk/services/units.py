"""Unit stat blocks and attacks."""

from __future__ import annotations

import logging
from typing import Any, Literal, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..models import (
    ActivityType,
    Attack,
    DamageSource,
    GameEntity,
    GameEntityType,
    Unit,
    UnitRole,
)
from ..permissions import Module
from ..resources import (
    AttackInput,
    AttackResource,
    FactionOptionsResponse,
    UnitCreateRequest,
    UnitListResponse,
    UnitResource,
    UnitStatsResource,
    UnitUpdateRequest,
)
from .common import (
    Actor,
    RecordConflictError,
    ServiceBase,
    count_by,
    entity_reference,
    paginate,
    record_activity,
    search_clause,
    user_reference,
)

logger = logging.getLogger(__name__)

UnitSort = Literal["newest", "oldest", "name", "level", "hp"]

_ORDERING = {
    "newest": (Unit.created_at.desc(),),
    "oldest": (Unit.created_at.asc(),),
    "name": (Unit.name.asc(),),
    "level": (Unit.level.desc(), Unit.name.asc()),
    "hp": (Unit.hp_max.desc(), Unit.name.asc()),
}

# Plain scalar columns copied from create/update payloads.
_SCALAR_FIELDS = (
    "name",
    "role",
    "level",
    "xp_current",
    "xp_to_next",
    "hp_max",
    "armor",
    "hp_regen_percent",
    "xp_on_kill",
)


def _validate_hp(hp_max: int) -> None:
    if hp_max <= 0:
        raise ValueError("HP max must be greater than 0.")


def _validate_attacks(attacks: Sequence[AttackInput]) -> None:
    for attack in attacks:
        if not 0 <= attack.hit_chance <= 1:
            raise ValueError(
                f"Attack '{attack.name}' hit chance must be between 0 and 1."
            )
        if attack.targets < 1:
            raise ValueError(f"Attack '{attack.name}' must have at least 1 target.")


def _validate_sources(values: Sequence[str], *, label: str) -> list[str]:
    valid = {source.value for source in DamageSource}
    unknown = [value for value in values if value not in valid]
    if unknown:
        raise ValueError(f"Unknown {label}: {', '.join(unknown)}.")
    return list(values)


def _build_attacks(attacks: Sequence[AttackInput]) -> list[Attack]:
    return [
        Attack(
            name=attack.name,
            hit_chance=attack.hit_chance,
            damage=attack.damage,
            heal=attack.heal,
            damage_source=attack.damage_source,
            initiative=attack.initiative,
            reach=attack.reach,
            targets=attack.targets,
        )
        for attack in attacks
    ]


def _sorted_attacks(unit: Unit) -> list[Attack]:
    return sorted(unit.attacks, key=lambda attack: attack.initiative, reverse=True)


def build_unit_resource(unit: Unit) -> UnitResource:
    return UnitResource(
        id=unit.id,
        name=unit.name,
        role=unit.role,
        entity=entity_reference(unit.entity),
        faction=entity_reference(unit.faction),
        level=unit.level,
        xp_current=unit.xp_current,
        xp_to_next=unit.xp_to_next,
        hp_max=unit.hp_max,
        armor=unit.armor,
        immunities=list(unit.immunities or []),
        wards=list(unit.wards or []),
        hp_regen_percent=unit.hp_regen_percent,
        xp_on_kill=unit.xp_on_kill,
        description=unit.description,
        prev_evolution_id=unit.prev_evolution_id,
        next_evolution_ids=list(unit.next_evolution_ids or []),
        attacks=[
            AttackResource(
                id=attack.id,
                name=attack.name,
                hit_chance=attack.hit_chance,
                damage=attack.damage,
                heal=attack.heal,
                damage_source=attack.damage_source,
                initiative=attack.initiative,
                reach=attack.reach,
                targets=attack.targets,
            )
            for attack in _sorted_attacks(unit)
        ],
        created_by=user_reference(unit.created_by),
        created_at=unit.created_at,
        updated_at=unit.updated_at,
    )


def export_unit(unit: Unit) -> dict[str, Any]:
    """Render ``unit`` in the game client's data format."""

    return {
        "unit": {
            "id": unit.id,
            "factionId": unit.faction_id,
            "name": unit.name,
            "role": unit.role.value.lower(),
            "level": unit.level,
            "xp": {"current": unit.xp_current, "toNext": unit.xp_to_next},
            "hp": {"max": unit.hp_max},
            "armor": unit.armor,
            "regenHpPercent": unit.hp_regen_percent,
            "immunities": list(unit.immunities or []),
            "wards": list(unit.wards or []),
            "xpOnKill": unit.xp_on_kill,
        },
        "attacks": [
            {
                "name": attack.name,
                "hitChance": attack.hit_chance,
                "damage": attack.damage,
                "heal": attack.heal,
                "source": attack.damage_source.value.lower(),
                "initiative": attack.initiative,
                "reach": attack.reach.value.lower(),
                "targets": attack.targets,
            }
            for attack in _sorted_attacks(unit)
        ],
    }


class UnitService(ServiceBase):
    """Combat statistics for units; access follows the entities module."""

    module = Module.ENTITIES

    def list_units(
        self,
        actor: Actor,
        *,
        faction_id: str | None = None,
        role: UnitRole | None = None,
        search: str | None = None,
        sort: UnitSort = "newest",
        page: int = 1,
        page_size: int = 50,
    ) -> UnitListResponse:
        self._require_view(actor)
        with self._database.session() as session:
            statement = select(Unit).options(
                selectinload(Unit.attacks),
                selectinload(Unit.faction),
                selectinload(Unit.entity),
                selectinload(Unit.created_by),
            )
            if faction_id is not None:
                statement = statement.where(Unit.faction_id == faction_id)
            if role is not None:
                statement = statement.where(Unit.role == role)
            clause = search_clause(search, Unit.name, Unit.description)
            if clause is not None:
                statement = statement.where(clause)
            statement = statement.order_by(*_ORDERING[sort])

            units = session.scalars(statement).all()
            visible, pagination = paginate(units, page=page, page_size=page_size)
            return UnitListResponse(
                data=[build_unit_resource(unit) for unit in visible],
                pagination=pagination,
            )

    def get_unit(self, actor: Actor, unit_id: str) -> UnitResource:
        self._require_view(actor)
        with self._database.session() as session:
            return build_unit_resource(self._get(session, unit_id))

    def export_unit(self, actor: Actor, unit_id: str) -> dict[str, Any]:
        self._require_view(actor)
        with self._database.session() as session:
            return export_unit(self._get(session, unit_id))

    def create_unit(self, actor: Actor, payload: UnitCreateRequest) -> UnitResource:
        self._require_edit(actor)
        _validate_hp(payload.hp_max)
        _validate_attacks(payload.attacks)
        immunities = _validate_sources(payload.immunities, label="immunities")
        wards = _validate_sources(payload.wards, label="wards")

        with self._database.session() as session:
            faction = self._load_faction(session, payload.faction_id)
            entity = self._load_unit_entity(session, payload.entity_id)
            unit = Unit(
                faction=faction,
                entity=entity,
                immunities=immunities,
                wards=wards,
                description=payload.description,
                prev_evolution_id=payload.prev_evolution_id,
                next_evolution_ids=list(payload.next_evolution_ids),
                attacks=_build_attacks(payload.attacks),
                created_by_id=actor.id,
                **{field_name: getattr(payload, field_name) for field_name in _SCALAR_FIELDS},
            )
            session.add(unit)
            session.flush()
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.CREATED,
                description=f'{actor.name} created unit "{unit.name}"',
                item_type="unit",
                item_id=unit.id,
                entity_id=unit.entity_id,
            )
            session.flush()
            logger.info("Created unit %s in faction %s", unit.id, faction.id)
            return build_unit_resource(unit)

    def update_unit(
        self, actor: Actor, unit_id: str, payload: UnitUpdateRequest
    ) -> UnitResource:
        """Apply a partial update; a supplied attack list replaces the old one."""

        self._require_edit(actor)
        fields = payload.model_fields_set
        if "hp_max" in fields and payload.hp_max is not None:
            _validate_hp(payload.hp_max)
        if "attacks" in fields and payload.attacks is not None:
            _validate_attacks(payload.attacks)

        with self._database.session() as session:
            unit = self._get(session, unit_id)

            for field_name in _SCALAR_FIELDS:
                value = getattr(payload, field_name)
                if field_name in fields and value is not None:
                    setattr(unit, field_name, value)
            if "faction_id" in fields and payload.faction_id is not None:
                unit.faction = self._load_faction(session, payload.faction_id)
            if "entity_id" in fields and payload.entity_id != unit.entity_id:
                unit.entity = self._load_unit_entity(session, payload.entity_id)
            if "immunities" in fields:
                unit.immunities = _validate_sources(
                    payload.immunities or [], label="immunities"
                )
            if "wards" in fields:
                unit.wards = _validate_sources(payload.wards or [], label="wards")
            if "description" in fields:
                unit.description = payload.description
            if "prev_evolution_id" in fields:
                unit.prev_evolution_id = payload.prev_evolution_id
            if "next_evolution_ids" in fields:
                unit.next_evolution_ids = list(payload.next_evolution_ids or [])
            if "attacks" in fields:
                unit.attacks = _build_attacks(payload.attacks or [])
            session.flush()

            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.UPDATED,
                description=f'{actor.name} updated unit "{unit.name}"',
                item_type="unit",
                item_id=unit.id,
                entity_id=unit.entity_id,
            )
            session.flush()
            logger.info("Updated unit %s", unit.id)
            return build_unit_resource(unit)

    def delete_unit(self, actor: Actor, unit_id: str, password: str | None) -> None:
        self._require_delete(actor, password)
        with self._database.session() as session:
            unit = self._get(session, unit_id)
            name = unit.name
            entity_id = unit.entity_id
            session.delete(unit)
            session.flush()
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.DELETED,
                description=f'{actor.name} deleted unit "{name}"',
                item_type="unit",
                item_id=unit_id,
                entity_id=entity_id,
            )
            logger.info("Deleted unit %s", unit_id)

    def get_stats(self, actor: Actor) -> UnitStatsResource:
        self._require_view(actor)
        with self._database.session() as session:
            roles = session.scalars(select(Unit.role)).all()
            return UnitStatsResource(total=len(roles), by_role=count_by(roles, UnitRole))

    def list_factions(self, actor: Actor) -> FactionOptionsResponse:
        self._require_view(actor)
        with self._database.session() as session:
            factions = session.scalars(
                select(GameEntity)
                .where(GameEntity.type == GameEntityType.FACTION)
                .order_by(GameEntity.name)
            ).all()
            return FactionOptionsResponse(
                data=[entity_reference(faction) for faction in factions]
            )

    @staticmethod
    def _get(session: Session, unit_id: str) -> Unit:
        unit = session.get(Unit, unit_id)
        if unit is None:
            raise KeyError(f"Unit '{unit_id}' does not exist.")
        return unit

    @staticmethod
    def _load_faction(session: Session, faction_id: str) -> GameEntity:
        faction = session.get(GameEntity, faction_id)
        if faction is None:
            raise ValueError(f"Faction '{faction_id}' does not exist.")
        if faction.type is not GameEntityType.FACTION:
            raise ValueError(f"Entity '{faction_id}' is not a faction.")
        return faction

    @staticmethod
    def _load_unit_entity(session: Session, entity_id: str | None) -> GameEntity | None:
        if entity_id is None:
            return None
        entity = session.get(GameEntity, entity_id)
        if entity is None:
            raise ValueError(f"Entity '{entity_id}' does not exist.")
        if entity.type is not GameEntityType.UNIT:
            raise ValueError(f"Entity '{entity_id}' is not a unit.")
        if entity.unit_profile is not None:
            raise RecordConflictError(
                f"Entity '{entity_id}' already has a unit stat block."
            )
        return entity


__all__ = ["UnitService", "UnitSort", "build_unit_resource", "export_unit"]
