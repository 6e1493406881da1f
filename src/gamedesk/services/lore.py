"""Versioned lore entries."""

from __future__ import annotations

import logging
from typing import Literal, cast

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from ..lore_diff import compare_versions, format_unified_diff
from ..models import (
    ActivityType,
    AssetStatus,
    GameEntity,
    GameEntityType,
    LoreComment,
    LoreEntry,
    LoreEntryEntity,
    LoreEntryVersion,
    LoreType,
)
from ..permissions import Module
from ..resources import (
    DiffLineResource,
    LoreEntryCreateRequest,
    LoreEntryDetail,
    LoreEntryListResponse,
    LoreEntryResource,
    LoreEntryUpdateRequest,
    LoreGroup,
    LoreGroupedResponse,
    LoreStatsResource,
    LoreVersionDiffResponse,
    LoreVersionListResponse,
    LoreVersionResource,
)
from .common import (
    Actor,
    ContentService,
    comment_resource,
    count_by,
    entity_reference,
    has_tag,
    load_entities,
    load_entity,
    paginate,
    record_activity,
    search_clause,
    user_reference,
)

logger = logging.getLogger(__name__)

LoreSort = Literal["newest", "oldest", "updated", "title", "version"]

INITIAL_VERSION_NOTE = "Initial version"

_ORDERING = {
    "newest": (LoreEntry.created_at.desc(),),
    "oldest": (LoreEntry.created_at.asc(),),
    "updated": (LoreEntry.updated_at.desc(),),
    "title": (LoreEntry.title.asc(),),
    "version": (LoreEntry.version.desc(), LoreEntry.updated_at.desc()),
}


def build_lore_resource(
    entry: LoreEntry,
    *,
    comment_count: int | None = None,
    model: type[LoreEntryResource] = LoreEntryResource,
    **extra: object,
) -> LoreEntryResource:
    return model(
        id=entry.id,
        title=entry.title,
        content=entry.content,
        summary=entry.summary,
        lore_type=entry.lore_type,
        status=entry.status,
        tags=list(entry.tags or []),
        version=entry.version,
        entity=entity_reference(entry.entity),
        linked_entities=[entity_reference(link.entity) for link in entry.linked_entities],
        created_by=user_reference(entry.created_by),
        comment_count=len(entry.comments) if comment_count is None else comment_count,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
        **extra,
    )


def _build_detail(entry: LoreEntry) -> LoreEntryDetail:
    detail = build_lore_resource(
        entry,
        model=LoreEntryDetail,
        comments=[comment_resource(comment) for comment in entry.comments],
        version_count=len(entry.versions),
    )
    return cast(LoreEntryDetail, detail)


def _build_version(snapshot: LoreEntryVersion) -> LoreVersionResource:
    return LoreVersionResource(
        id=snapshot.id,
        version=snapshot.version,
        title=snapshot.title,
        content=snapshot.content,
        summary=snapshot.summary,
        change_note=snapshot.change_note,
        changed_by=user_reference(snapshot.changed_by),
        created_at=snapshot.created_at,
    )


def _replace_links(session: Session, entry: LoreEntry, entity_ids: list[str]) -> None:
    entities = load_entities(session, entity_ids)
    existing = {link.entity_id: link for link in entry.linked_entities}
    entry.linked_entities = [
        existing.get(entity.id) or LoreEntryEntity(entity=entity) for entity in entities
    ]


class LoreService(ContentService):
    """Write, version and review lore."""

    module = Module.LORE
    record_model = LoreEntry
    comment_model = LoreComment
    comment_foreign_key = "lore_entry_id"
    item_type = "lore_entry"
    label = "lore entry"

    def _query(
        self,
        session: Session,
        *,
        status: AssetStatus | None = None,
        lore_type: LoreType | None = None,
        entity_id: str | None = None,
        entity_type: GameEntityType | None = None,
        search: str | None = None,
        created_by_id: str | None = None,
        tag: str | None = None,
        sort: LoreSort = "newest",
    ) -> list[LoreEntry]:
        statement = select(LoreEntry).options(
            selectinload(LoreEntry.entity),
            selectinload(LoreEntry.created_by),
            selectinload(LoreEntry.linked_entities).selectinload(LoreEntryEntity.entity),
        )
        if status is not None:
            statement = statement.where(LoreEntry.status == status)
        if lore_type is not None:
            statement = statement.where(LoreEntry.lore_type == lore_type)
        if entity_id is not None:
            statement = statement.where(
                or_(
                    LoreEntry.entity_id == entity_id,
                    LoreEntry.linked_entities.any(LoreEntryEntity.entity_id == entity_id),
                )
            )
        if entity_type is not None:
            statement = statement.join(LoreEntry.entity).where(
                GameEntity.type == entity_type
            )
        if created_by_id is not None:
            statement = statement.where(LoreEntry.created_by_id == created_by_id)
        clause = search_clause(
            search, LoreEntry.title, LoreEntry.content, LoreEntry.summary
        )
        if clause is not None:
            statement = statement.where(clause)
        statement = statement.order_by(*_ORDERING[sort])

        return [entry for entry in session.scalars(statement) if has_tag(entry.tags, tag)]

    def list_entries(
        self,
        actor: Actor,
        *,
        status: AssetStatus | None = None,
        lore_type: LoreType | None = None,
        entity_id: str | None = None,
        entity_type: GameEntityType | None = None,
        search: str | None = None,
        created_by_id: str | None = None,
        tag: str | None = None,
        sort: LoreSort = "newest",
        page: int = 1,
        page_size: int = 50,
    ) -> LoreEntryListResponse:
        self._require_view(actor)
        with self._database.session() as session:
            entries = self._query(
                session,
                status=status,
                lore_type=lore_type,
                entity_id=entity_id,
                entity_type=entity_type,
                search=search,
                created_by_id=created_by_id,
                tag=tag,
                sort=sort,
            )
            visible, pagination = paginate(entries, page=page, page_size=page_size)
            counts = self._count_comments(session, [entry.id for entry in visible])
            return LoreEntryListResponse(
                data=[
                    build_lore_resource(entry, comment_count=counts.get(entry.id, 0))
                    for entry in visible
                ],
                pagination=pagination,
            )

    def list_grouped(
        self,
        actor: Actor,
        *,
        status: AssetStatus | None = None,
        lore_type: LoreType | None = None,
        search: str | None = None,
        tag: str | None = None,
        sort: LoreSort = "newest",
    ) -> LoreGroupedResponse:
        """Group entries by their primary entity; entries without one come last."""

        self._require_view(actor)
        with self._database.session() as session:
            entries = self._query(
                session,
                status=status,
                lore_type=lore_type,
                search=search,
                tag=tag,
                sort=sort,
            )
            counts = self._count_comments(session, [entry.id for entry in entries])

            groups: dict[str, LoreGroup] = {}
            unlinked: list[LoreEntryResource] = []
            for entry in entries:
                resource = build_lore_resource(entry, comment_count=counts.get(entry.id, 0))
                if entry.entity is None:
                    unlinked.append(resource)
                    continue
                group = groups.setdefault(
                    entry.entity.id, LoreGroup(entity=entity_reference(entry.entity))
                )
                group.items.append(resource)

            data = list(groups.values())
            if unlinked:
                data.append(LoreGroup(entity=None, items=unlinked))
            return LoreGroupedResponse(data=data)

    def get_entry(self, actor: Actor, entry_id: str) -> LoreEntryDetail:
        self._require_view(actor)
        with self._database.session() as session:
            return _build_detail(self._get_record(session, entry_id))

    def create_entry(self, actor: Actor, payload: LoreEntryCreateRequest) -> LoreEntryDetail:
        self._require_edit(actor)
        with self._database.session() as session:
            entry = LoreEntry(
                title=payload.title,
                content=payload.content,
                summary=payload.summary,
                lore_type=payload.lore_type,
                status=payload.status,
                tags=list(payload.tags),
                version=1,
                entity=load_entity(session, payload.entity_id),
                created_by_id=actor.id,
            )
            _replace_links(session, entry, payload.linked_entity_ids)
            entry.versions.append(
                LoreEntryVersion(
                    version=1,
                    title=entry.title,
                    content=entry.content,
                    summary=entry.summary,
                    change_note=INITIAL_VERSION_NOTE,
                    changed_by_id=actor.id,
                )
            )
            session.add(entry)
            session.flush()
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.CREATED,
                description=f'{actor.name} wrote lore entry "{entry.title}"',
                item_type=self.item_type,
                item_id=entry.id,
                entity_id=entry.entity_id,
            )
            session.flush()
            logger.info("Created lore entry %s", entry.id)
            return _build_detail(entry)

    def update_entry(
        self, actor: Actor, entry_id: str, payload: LoreEntryUpdateRequest
    ) -> LoreEntryDetail:
        self._require_edit(actor)
        with self._database.session() as session:
            entry = self._get_record(session, entry_id)
            self._apply_update(session, actor, entry, payload)
            return _build_detail(entry)

    def _apply_update(
        self,
        session: Session,
        actor: Actor,
        entry: LoreEntry,
        payload: LoreEntryUpdateRequest,
    ) -> None:
        fields = payload.model_fields_set
        previous_status = entry.status

        text_changed = False
        for field_name in ("title", "content"):
            value = getattr(payload, field_name)
            if field_name in fields and value is not None and value != getattr(entry, field_name):
                setattr(entry, field_name, value)
                text_changed = True
        if "summary" in fields and payload.summary != entry.summary:
            entry.summary = payload.summary
            text_changed = True

        if "lore_type" in fields and payload.lore_type is not None:
            entry.lore_type = payload.lore_type
        if "status" in fields and payload.status is not None:
            entry.status = payload.status
        if "tags" in fields:
            entry.tags = list(payload.tags or [])
        if "entity_id" in fields:
            entry.entity = load_entity(session, payload.entity_id)
        if "linked_entity_ids" in fields:
            _replace_links(session, entry, payload.linked_entity_ids or [])

        if text_changed:
            entry.version += 1
            entry.versions.insert(
                0,
                LoreEntryVersion(
                    version=entry.version,
                    title=entry.title,
                    content=entry.content,
                    summary=entry.summary,
                    change_note=payload.change_note,
                    changed_by_id=actor.id,
                ),
            )
        session.flush()

        if entry.status is not previous_status and not text_changed:
            activity_type = ActivityType.STATUS_CHANGED
            description = (
                f'{actor.name} changed status of "{entry.title}" to {entry.status.value}'
            )
        else:
            activity_type = ActivityType.UPDATED
            description = f'{actor.name} updated lore entry "{entry.title}"'
            if text_changed:
                description += f" (version {entry.version})"
        record_activity(
            session,
            actor=actor,
            activity_type=activity_type,
            description=description,
            item_type=self.item_type,
            item_id=entry.id,
            entity_id=entry.entity_id,
        )
        session.flush()
        logger.info("Updated lore entry %s (version %d)", entry.id, entry.version)

    def change_status(
        self, actor: Actor, entry_id: str, status: AssetStatus
    ) -> LoreEntryDetail:
        self._require_edit(actor)
        with self._database.session() as session:
            entry = self._get_record(session, entry_id)
            entry.status = status
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.STATUS_CHANGED,
                description=f'{actor.name} changed status of "{entry.title}" to {status.value}',
                item_type=self.item_type,
                item_id=entry.id,
                entity_id=entry.entity_id,
            )
            session.flush()
            logger.info("Lore entry %s status set to %s", entry.id, status.value)
            return _build_detail(entry)

    def delete_entry(self, actor: Actor, entry_id: str, password: str | None) -> None:
        self._require_delete(actor, password)
        with self._database.session() as session:
            entry = self._get_record(session, entry_id)
            title = entry.title
            entity_id = entry.entity_id
            session.delete(entry)
            session.flush()
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.DELETED,
                description=f'{actor.name} deleted lore entry "{title}"',
                item_type=self.item_type,
                item_id=entry_id,
                entity_id=entity_id,
            )
            logger.info("Deleted lore entry %s", entry_id)

    def list_versions(self, actor: Actor, entry_id: str) -> LoreVersionListResponse:
        self._require_view(actor)
        with self._database.session() as session:
            entry = self._get_record(session, entry_id)
            return LoreVersionListResponse(
                data=[_build_version(snapshot) for snapshot in entry.versions]
            )

    def get_version(self, actor: Actor, entry_id: str, version: int) -> LoreVersionResource:
        self._require_view(actor)
        with self._database.session() as session:
            return _build_version(self._get_version(session, entry_id, version))

    def diff_versions(
        self,
        actor: Actor,
        entry_id: str,
        version: int,
        *,
        against: int | None = None,
    ) -> LoreVersionDiffResponse:
        """Compare ``version`` with ``against`` or, by default, its predecessor.

        The first version has no predecessor and is compared with empty text.
        """

        self._require_view(actor)
        with self._database.session() as session:
            current = self._get_version(session, entry_id, version)
            if against is None and version > 1:
                against = version - 1

            if against is None:
                previous_title, previous_summary, previous_content = "", None, ""
            else:
                previous = self._get_version(session, entry_id, against)
                previous_title = previous.title
                previous_summary = previous.summary
                previous_content = previous.content

            comparison = compare_versions(
                previous_title=previous_title,
                previous_summary=previous_summary,
                previous_content=previous_content,
                current_title=current.title,
                current_summary=current.summary,
                current_content=current.content,
            )
            unified = format_unified_diff(
                previous_content,
                current.content,
                fromfile=f"v{against}" if against is not None else "empty",
                tofile=f"v{version}",
            )

        return LoreVersionDiffResponse(
            from_version=against,
            to_version=version,
            title_changed=comparison.title_changed,
            summary_changed=comparison.summary_changed,
            added=comparison.content.added,
            removed=comparison.content.removed,
            lines=[
                DiffLineResource(
                    kind=line.kind, content=line.content, line_number=line.line_number
                )
                for line in comparison.content.lines
            ],
            unified_diff=unified,
        )

    def restore_version(self, actor: Actor, entry_id: str, version: int) -> LoreEntryDetail:
        """Copy a snapshot's text back onto the entry as a new version."""

        self._require_edit(actor)
        with self._database.session() as session:
            entry = self._get_record(session, entry_id)
            snapshot = self._get_version(session, entry_id, version)
            payload = LoreEntryUpdateRequest(
                title=snapshot.title,
                content=snapshot.content,
                summary=snapshot.summary,
                change_note=f"Restored from version {version}",
            )
            self._apply_update(session, actor, entry, payload)
            logger.info("Restored lore entry %s to version %d", entry.id, version)
            return _build_detail(entry)

    def get_stats(self, actor: Actor) -> LoreStatsResource:
        self._require_view(actor)
        with self._database.session() as session:
            rows = session.execute(select(LoreEntry.status, LoreEntry.lore_type)).all()
            entity_types = session.scalars(
                select(GameEntity.type).join(LoreEntry, LoreEntry.entity_id == GameEntity.id)
            ).all()
            return LoreStatsResource(
                total=len(rows),
                by_status=count_by((row[0] for row in rows), AssetStatus),
                by_type=count_by((row[1] for row in rows), LoreType),
                by_entity_type=count_by(entity_types),
            )

    @staticmethod
    def _get_version(session: Session, entry_id: str, version: int) -> LoreEntryVersion:
        snapshot = session.scalar(
            select(LoreEntryVersion).where(
                LoreEntryVersion.lore_entry_id == entry_id,
                LoreEntryVersion.version == version,
            )
        )
        if snapshot is None:
            if session.get(LoreEntry, entry_id) is None:
                raise KeyError(f"Lore entry '{entry_id}' does not exist.")
            raise KeyError(f"Lore entry '{entry_id}' has no version {version}.")
        return snapshot


__all__ = ["INITIAL_VERSION_NOTE", "LoreService", "LoreSort", "build_lore_resource"]
