"""Concept art gallery."""

from __future__ import annotations

import logging
from typing import Literal, cast

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..models import (
    ActivityType,
    AssetStatus,
    ConceptArt,
    ConceptArtComment,
    GameEntity,
    GameEntityType,
)
from ..permissions import Module
from ..resources import (
    ConceptArtCreateRequest,
    ConceptArtDetail,
    ConceptArtGroup,
    ConceptArtGroupedResponse,
    ConceptArtListResponse,
    ConceptArtResource,
    ConceptArtStatsResource,
    ConceptArtUpdateRequest,
)
from .common import (
    Actor,
    ContentService,
    comment_resource,
    count_by,
    entity_reference,
    has_tag,
    load_entity,
    paginate,
    record_activity,
    search_clause,
    user_reference,
)

logger = logging.getLogger(__name__)

ConceptArtSort = Literal["newest", "oldest", "updated", "title"]

_ORDERING = {
    "newest": (ConceptArt.created_at.desc(),),
    "oldest": (ConceptArt.created_at.asc(),),
    "updated": (ConceptArt.updated_at.desc(),),
    "title": (ConceptArt.title.asc(),),
}


def build_concept_art_resource(
    art: ConceptArt,
    *,
    comment_count: int | None = None,
    model: type[ConceptArtResource] = ConceptArtResource,
    **extra: object,
) -> ConceptArtResource:
    return model(
        id=art.id,
        title=art.title,
        description=art.description,
        image_url=art.image_url,
        thumbnail_url=art.thumbnail_url,
        status=art.status,
        tags=list(art.tags or []),
        entity=entity_reference(art.entity),
        created_by=user_reference(art.created_by),
        comment_count=len(art.comments) if comment_count is None else comment_count,
        created_at=art.created_at,
        updated_at=art.updated_at,
        **extra,
    )


def _build_detail(art: ConceptArt) -> ConceptArtDetail:
    detail = build_concept_art_resource(
        art,
        model=ConceptArtDetail,
        comments=[comment_resource(comment) for comment in art.comments],
    )
    return cast(ConceptArtDetail, detail)


class ConceptArtService(ContentService):
    """Browse and curate concept art."""

    module = Module.CONCEPT_ART
    record_model = ConceptArt
    comment_model = ConceptArtComment
    comment_foreign_key = "concept_art_id"
    item_type = "concept_art"
    label = "concept art"

    def _query(
        self,
        session: Session,
        *,
        status: AssetStatus | None,
        entity_id: str | None,
        entity_type: GameEntityType | None,
        search: str | None,
        created_by_id: str | None,
        tag: str | None,
        sort: ConceptArtSort,
    ) -> list[ConceptArt]:
        statement = select(ConceptArt).options(
            selectinload(ConceptArt.entity),
            selectinload(ConceptArt.created_by),
        )
        if status is not None:
            statement = statement.where(ConceptArt.status == status)
        if entity_id is not None:
            statement = statement.where(ConceptArt.entity_id == entity_id)
        if entity_type is not None:
            statement = statement.join(ConceptArt.entity).where(
                GameEntity.type == entity_type
            )
        if created_by_id is not None:
            statement = statement.where(ConceptArt.created_by_id == created_by_id)
        clause = search_clause(search, ConceptArt.title, ConceptArt.description)
        if clause is not None:
            statement = statement.where(clause)
        statement = statement.order_by(*_ORDERING[sort])

        return [art for art in session.scalars(statement) if has_tag(art.tags, tag)]

    def list_concept_arts(
        self,
        actor: Actor,
        *,
        status: AssetStatus | None = None,
        entity_id: str | None = None,
        entity_type: GameEntityType | None = None,
        search: str | None = None,
        created_by_id: str | None = None,
        tag: str | None = None,
        sort: ConceptArtSort = "newest",
        page: int = 1,
        page_size: int = 50,
    ) -> ConceptArtListResponse:
        self._require_view(actor)
        with self._database.session() as session:
            arts = self._query(
                session,
                status=status,
                entity_id=entity_id,
                entity_type=entity_type,
                search=search,
                created_by_id=created_by_id,
                tag=tag,
                sort=sort,
            )
            visible, pagination = paginate(arts, page=page, page_size=page_size)
            counts = self._count_comments(session, [art.id for art in visible])
            return ConceptArtListResponse(
                data=[
                    build_concept_art_resource(art, comment_count=counts.get(art.id, 0))
                    for art in visible
                ],
                pagination=pagination,
            )

    def list_grouped(
        self,
        actor: Actor,
        *,
        status: AssetStatus | None = None,
        entity_type: GameEntityType | None = None,
        search: str | None = None,
        tag: str | None = None,
        sort: ConceptArtSort = "newest",
    ) -> ConceptArtGroupedResponse:
        """Group matching art by entity; unlinked art comes last."""

        self._require_view(actor)
        with self._database.session() as session:
            arts = self._query(
                session,
                status=status,
                entity_id=None,
                entity_type=entity_type,
                search=search,
                created_by_id=None,
                tag=tag,
                sort=sort,
            )
            counts = self._count_comments(session, [art.id for art in arts])

            groups: dict[str, ConceptArtGroup] = {}
            unlinked: list[ConceptArtResource] = []
            for art in arts:
                resource = build_concept_art_resource(
                    art, comment_count=counts.get(art.id, 0)
                )
                if art.entity is None:
                    unlinked.append(resource)
                    continue
                group = groups.get(art.entity.id)
                if group is None:
                    group = ConceptArtGroup(entity=entity_reference(art.entity))
                    groups[art.entity.id] = group
                group.items.append(resource)

            data = list(groups.values())
            if unlinked:
                data.append(ConceptArtGroup(entity=None, items=unlinked))
            return ConceptArtGroupedResponse(data=data)

    def get_concept_art(self, actor: Actor, art_id: str) -> ConceptArtDetail:
        self._require_view(actor)
        with self._database.session() as session:
            return _build_detail(self._get_record(session, art_id))

    def create_concept_art(
        self, actor: Actor, payload: ConceptArtCreateRequest
    ) -> ConceptArtDetail:
        self._require_edit(actor)
        with self._database.session() as session:
            entity = load_entity(session, payload.entity_id)
            art = ConceptArt(
                title=payload.title,
                description=payload.description,
                image_url=payload.image_url,
                thumbnail_url=payload.thumbnail_url,
                status=payload.status,
                tags=list(payload.tags),
                entity=entity,
                created_by_id=actor.id,
            )
            session.add(art)
            session.flush()
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.CREATED,
                description=f'{actor.name} added concept art "{art.title}"',
                item_type=self.item_type,
                item_id=art.id,
                entity_id=art.entity_id,
            )
            session.flush()
            session.refresh(art)
            logger.info("Created concept art %s", art.id)
            return _build_detail(art)

    def update_concept_art(
        self, actor: Actor, art_id: str, payload: ConceptArtUpdateRequest
    ) -> ConceptArtDetail:
        self._require_edit(actor)
        with self._database.session() as session:
            art = self._get_record(session, art_id)
            fields = payload.model_fields_set
            previous_status = art.status

            for field_name in ("title", "image_url", "status"):
                value = getattr(payload, field_name)
                if field_name in fields and value is not None:
                    setattr(art, field_name, value)
            for field_name in ("description", "thumbnail_url"):
                if field_name in fields:
                    setattr(art, field_name, getattr(payload, field_name))
            if "tags" in fields:
                art.tags = list(payload.tags or [])
            if "entity_id" in fields:
                art.entity = load_entity(session, payload.entity_id)
            session.flush()

            if art.status is not previous_status:
                activity_type = ActivityType.STATUS_CHANGED
                description = (
                    f'{actor.name} changed status of "{art.title}" to {art.status.value}'
                )
            else:
                activity_type = ActivityType.UPDATED
                description = f'{actor.name} updated concept art "{art.title}"'
            record_activity(
                session,
                actor=actor,
                activity_type=activity_type,
                description=description,
                item_type=self.item_type,
                item_id=art.id,
                entity_id=art.entity_id,
            )
            session.flush()
            logger.info("Updated concept art %s", art.id)
            return _build_detail(art)

    def change_status(
        self, actor: Actor, art_id: str, status: AssetStatus
    ) -> ConceptArtDetail:
        self._require_edit(actor)
        with self._database.session() as session:
            art = self._get_record(session, art_id)
            previous = art.status
            art.status = status
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.STATUS_CHANGED,
                description=f'{actor.name} changed status of "{art.title}" to {status.value}',
                item_type=self.item_type,
                item_id=art.id,
                entity_id=art.entity_id,
            )
            session.flush()
            logger.info(
                "Concept art %s status %s -> %s", art.id, previous.value, status.value
            )
            return _build_detail(art)

    def delete_concept_art(self, actor: Actor, art_id: str, password: str | None) -> None:
        self._require_delete(actor, password)
        with self._database.session() as session:
            art = self._get_record(session, art_id)
            title = art.title
            entity_id = art.entity_id
            session.delete(art)
            session.flush()
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.DELETED,
                description=f'{actor.name} deleted concept art "{title}"',
                item_type=self.item_type,
                item_id=art_id,
                entity_id=entity_id,
            )
            logger.info("Deleted concept art %s", art_id)

    def get_stats(self, actor: Actor) -> ConceptArtStatsResource:
        self._require_view(actor)
        with self._database.session() as session:
            statuses = session.scalars(select(ConceptArt.status)).all()
            entity_types = session.scalars(
                select(GameEntity.type).join(ConceptArt, ConceptArt.entity_id == GameEntity.id)
            ).all()
            return ConceptArtStatsResource(
                total=len(statuses),
                by_status=count_by(statuses, AssetStatus),
                by_entity_type=count_by(entity_types),
            )

    def recent(self, session: Session, limit: int) -> list[ConceptArtResource]:
        arts = session.scalars(
            select(ConceptArt).order_by(ConceptArt.created_at.desc()).limit(limit)
        ).all()
        counts = self._count_comments(session, [art.id for art in arts])
        return [
            build_concept_art_resource(art, comment_count=counts.get(art.id, 0))
            for art in arts
        ]


__all__ = ["ConceptArtService", "ConceptArtSort", "build_concept_art_resource"]
