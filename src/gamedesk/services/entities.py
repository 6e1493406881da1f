"""Catalogue of game entities."""

from __future__ import annotations

import logging
import re
from typing import Literal, cast

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models import (
    ActivityType,
    ConceptArt,
    GameEntity,
    GameEntityType,
    LoreEntry,
    Thought,
)
from ..permissions import Module
from ..resources import (
    EntityCreateRequest,
    EntityDetail,
    EntityListResponse,
    EntityOptionsResponse,
    EntityStatsResource,
    EntitySummary,
    EntityUpdateRequest,
    RelatedContentItem,
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

EntitySort = Literal["newest", "oldest", "updated", "name"]

RECENT_ITEMS_LIMIT = 10

_CODE_INVALID_CHARS = re.compile(r"[^0-9A-Z\u0400-\u04ff]")
_CODE_REPEATED_UNDERSCORES = re.compile(r"_{2,}")
_CODE_NAME_LENGTH = 20

_ENTITY_ORDERING = {
    "newest": (GameEntity.created_at.desc(),),
    "oldest": (GameEntity.created_at.asc(),),
    "updated": (GameEntity.updated_at.desc(),),
    "name": (GameEntity.name.asc(),),
}


def entity_code_base(name: str, entity_type: GameEntityType) -> str:
    """Return the code prefix derived from ``entity_type`` and ``name``.

    ``HERO`` + ``"Arthas Menethil"`` becomes ``HER_ARTHAS_MENETHIL``.
    """

    prefix = entity_type.value[:3].upper()
    base_name = _CODE_INVALID_CHARS.sub("_", name.upper())
    base_name = _CODE_REPEATED_UNDERSCORES.sub("_", base_name)[:_CODE_NAME_LENGTH]
    return f"{prefix}_{base_name}"


def _code_exists(session: Session, code: str, *, exclude_id: str | None = None) -> bool:
    statement = select(GameEntity.id).where(GameEntity.code == code)
    if exclude_id is not None:
        statement = statement.where(GameEntity.id != exclude_id)
    return session.scalar(statement) is not None


def generate_entity_code(session: Session, name: str, entity_type: GameEntityType) -> str:
    base = entity_code_base(name, entity_type)
    candidate = base
    counter = 1
    while _code_exists(session, candidate):
        candidate = f"{base}_{counter}"
        counter += 1
    return candidate


def _count_by_entity(session: Session, column: object) -> dict[str, int]:
    rows = session.execute(
        select(column, func.count()).where(column.isnot(None)).group_by(column)
    ).all()
    return {entity_id: count for entity_id, count in rows}


def _build_summary(
    entity: GameEntity,
    *,
    concept_art_count: int = 0,
    lore_count: int = 0,
    thought_count: int = 0,
    model: type[EntitySummary] = EntitySummary,
    **extra: object,
) -> EntitySummary:
    return model(
        id=entity.id,
        code=entity.code,
        name=entity.name,
        type=entity.type,
        description=entity.description,
        short_description=entity.short_description,
        icon_url=entity.icon_url,
        created_by=user_reference(entity.created_by),
        concept_art_count=concept_art_count,
        lore_count=lore_count,
        thought_count=thought_count,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
        **extra,
    )


def _recent(session: Session, model: type, entity_id: str) -> list[RelatedContentItem]:
    rows = session.scalars(
        select(model)
        .where(model.entity_id == entity_id)
        .order_by(model.updated_at.desc())
        .limit(RECENT_ITEMS_LIMIT)
    ).all()
    return [
        RelatedContentItem(
            id=row.id, title=row.title, status=row.status.value, updated_at=row.updated_at
        )
        for row in rows
    ]


class EntityService(ServiceBase):
    """Create, browse and maintain game entities."""

    module = Module.ENTITIES

    def list_entities(
        self,
        actor: Actor,
        *,
        entity_type: GameEntityType | None = None,
        search: str | None = None,
        sort: EntitySort = "newest",
        page: int = 1,
        page_size: int = 50,
    ) -> EntityListResponse:
        self._require_view(actor)
        with self._database.session() as session:
            statement = select(GameEntity)
            if entity_type is not None:
                statement = statement.where(GameEntity.type == entity_type)
            clause = search_clause(
                search, GameEntity.name, GameEntity.code, GameEntity.description
            )
            if clause is not None:
                statement = statement.where(clause)
            statement = statement.order_by(*_ENTITY_ORDERING[sort])

            entities = session.scalars(statement).all()
            visible, pagination = paginate(entities, page=page, page_size=page_size)

            art_counts = _count_by_entity(session, ConceptArt.entity_id)
            lore_counts = _count_by_entity(session, LoreEntry.entity_id)
            thought_counts = _count_by_entity(session, Thought.entity_id)

            return EntityListResponse(
                data=[
                    _build_summary(
                        entity,
                        concept_art_count=art_counts.get(entity.id, 0),
                        lore_count=lore_counts.get(entity.id, 0),
                        thought_count=thought_counts.get(entity.id, 0),
                    )
                    for entity in visible
                ],
                pagination=pagination,
            )

    def get_entity(self, actor: Actor, entity_id: str) -> EntityDetail:
        self._require_view(actor)
        with self._database.session() as session:
            return self._build_detail(session, self._get(session, entity_id))

    def create_entity(self, actor: Actor, payload: EntityCreateRequest) -> EntityDetail:
        self._require_edit(actor)
        with self._database.session() as session:
            if payload.code is None:
                code = generate_entity_code(session, payload.name, payload.type)
            else:
                code = payload.code
                if _code_exists(session, code):
                    raise RecordConflictError(f"Entity code '{code}' is already in use.")

            entity = GameEntity(
                code=code,
                name=payload.name,
                type=payload.type,
                description=payload.description,
                short_description=payload.short_description,
                icon_url=payload.icon_url,
                created_by_id=actor.id,
            )
            session.add(entity)
            session.flush()
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.CREATED,
                description=f'{actor.name} created {entity.type.value.lower()} "{entity.name}"',
                item_type="entity",
                item_id=entity.id,
                entity_id=entity.id,
            )
            session.flush()
            logger.info("Created entity %s (%s)", entity.id, entity.code)
            return self._build_detail(session, entity)

    def update_entity(
        self, actor: Actor, entity_id: str, payload: EntityUpdateRequest
    ) -> EntityDetail:
        self._require_edit(actor)
        with self._database.session() as session:
            entity = self._get(session, entity_id)
            fields = payload.model_fields_set

            if "code" in fields and payload.code is not None and payload.code != entity.code:
                if _code_exists(session, payload.code, exclude_id=entity.id):
                    raise RecordConflictError(
                        f"Entity code '{payload.code}' is already in use."
                    )
                entity.code = payload.code
            if "name" in fields and payload.name is not None:
                entity.name = payload.name
            if "type" in fields and payload.type is not None:
                if payload.type is not GameEntityType.FACTION and entity.faction_units:
                    raise RecordConflictError(
                        f"Entity '{entity.id}' is the faction of existing units."
                    )
                if payload.type is not GameEntityType.UNIT and entity.unit_profile is not None:
                    raise RecordConflictError(
                        f"Entity '{entity.id}' has a unit stat block and must stay a unit."
                    )
                entity.type = payload.type
            for field_name in ("description", "short_description", "icon_url"):
                if field_name in fields:
                    setattr(entity, field_name, getattr(payload, field_name))

            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.UPDATED,
                description=f'{actor.name} updated "{entity.name}"',
                item_type="entity",
                item_id=entity.id,
                entity_id=entity.id,
            )
            session.flush()
            logger.info("Updated entity %s", entity.id)
            return self._build_detail(session, entity)

    def delete_entity(self, actor: Actor, entity_id: str, password: str | None) -> None:
        """Delete an entity.

        Content linked to the entity survives with its link cleared; join
        rows and the unit stat block are removed. Factions that still own
        units cannot be deleted.
        """

        self._require_delete(actor, password)
        with self._database.session() as session:
            entity = self._get(session, entity_id)
            if entity.faction_units:
                raise RecordConflictError(
                    f"Entity '{entity.id}' cannot be deleted while "
                    f"{len(entity.faction_units)} unit(s) belong to it."
                )

            name = entity.name
            session.delete(entity)
            session.flush()
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.DELETED,
                description=f'{actor.name} deleted "{name}"',
                item_type="entity",
                item_id=entity_id,
            )
            logger.info("Deleted entity %s", entity_id)

    def get_stats(self, actor: Actor) -> EntityStatsResource:
        self._require_view(actor)
        with self._database.session() as session:
            types = session.scalars(select(GameEntity.type)).all()
            return EntityStatsResource(
                total=len(types), by_type=count_by(types, GameEntityType)
            )

    def list_options(
        self, actor: Actor, *, entity_type: GameEntityType | None = None
    ) -> EntityOptionsResponse:
        self._require_view(actor)
        with self._database.session() as session:
            statement = select(GameEntity).order_by(GameEntity.name)
            if entity_type is not None:
                statement = statement.where(GameEntity.type == entity_type)
            return EntityOptionsResponse(
                data=[entity_reference(entity) for entity in session.scalars(statement)]
            )

    @staticmethod
    def _get(session: Session, entity_id: str) -> GameEntity:
        entity = session.get(GameEntity, entity_id)
        if entity is None:
            raise KeyError(f"Entity '{entity_id}' does not exist.")
        return entity

    @staticmethod
    def _build_detail(session: Session, entity: GameEntity) -> EntityDetail:
        detail = _build_summary(
            entity,
            concept_art_count=_count_for(session, ConceptArt, entity.id),
            lore_count=_count_for(session, LoreEntry, entity.id),
            thought_count=_count_for(session, Thought, entity.id),
            model=EntityDetail,
            concept_arts=_recent(session, ConceptArt, entity.id),
            lore_entries=_recent(session, LoreEntry, entity.id),
            thoughts=_recent(session, Thought, entity.id),
            unit_id=entity.unit_profile.id if entity.unit_profile is not None else None,
        )
        return cast(EntityDetail, detail)


def _count_for(session: Session, model: type, entity_id: str) -> int:
    return session.scalar(
        select(func.count()).select_from(model).where(model.entity_id == entity_id)
    ) or 0


__all__ = [
    "EntityService",
    "EntitySort",
    "entity_code_base",
    "generate_entity_code",
]
