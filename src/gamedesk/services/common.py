"""Helpers shared by the dashboard services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Sequence, TypeVar

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..resources import (
    CommentListResponse,
    CommentResource,
    EntityReference,
    Pagination,
    TagListResponse,
    UserReference,
)
from ..db import DatabaseManager
from ..models import ActivityLog, ActivityType, GameEntity, User
from ..permissions import (
    DEFAULT_DELETE_PASSWORD,
    Module,
    PermissionDeniedError,
    Role,
    is_admin,
    require_delete,
    require_edit,
    require_view,
)
from ..tags import collect_tags

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


class AuthenticationRequiredError(RuntimeError):
    """Raised when a request does not identify a known team member."""


class RecordConflictError(RuntimeError):
    """Raised when a write would violate a uniqueness or dependency rule."""


@dataclass(frozen=True)
class Actor:
    """The team member performing an operation."""

    id: str
    name: str
    role: Role

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, name=user.name, role=user.role)


def _compute_total_pages(total_items: int, page_size: int) -> int:
    if total_items == 0:
        return 0
    return (total_items + page_size - 1) // page_size


def paginate(items: Sequence[T], *, page: int, page_size: int) -> tuple[list[T], Pagination]:
    if page < 1:
        raise ValueError("page must be greater than or equal to 1.")
    if page_size < 1:
        raise ValueError("page_size must be greater than or equal to 1.")

    total_items = len(items)
    start_index = (page - 1) * page_size
    visible = list(items[start_index : start_index + page_size])
    return visible, Pagination(
        page=page,
        page_size=page_size,
        total_items=total_items,
        total_pages=_compute_total_pages(total_items, page_size),
    )


def search_clause(term: str | None, *columns: Any) -> Any | None:
    """Return a case-insensitive ``LIKE`` across ``columns`` or ``None``."""

    if term is None:
        return None
    trimmed = term.strip()
    if not trimmed:
        return None
    pattern = f"%{trimmed}%"
    return or_(*(column.ilike(pattern) for column in columns))


def has_tag(tags: Iterable[str] | None, tag: str | None) -> bool:
    if not tag:
        return True
    return tag.strip().lower() in (tags or [])


def count_by(values: Iterable[Any], keys: Iterable[Enum] = ()) -> dict[str, int]:
    """Tally ``values`` by their string value, seeding ``keys`` with zero."""

    counts: dict[str, int] = {key.value: 0 for key in keys}
    for value in values:
        label = value.value if isinstance(value, Enum) else str(value)
        counts[label] = counts.get(label, 0) + 1
    return counts


def user_reference(user: User | None) -> UserReference | None:
    if user is None:
        return None
    return UserReference(id=user.id, name=user.name, avatar_url=user.avatar_url)


def entity_reference(entity: GameEntity | None) -> EntityReference | None:
    if entity is None:
        return None
    return EntityReference(
        id=entity.id, code=entity.code, name=entity.name, type=entity.type
    )


def comment_resource(comment: Any) -> CommentResource:
    return CommentResource(
        id=comment.id,
        content=comment.content,
        author=user_reference(comment.author),
        created_at=comment.created_at,
    )


def load_entity(session: Session, entity_id: str | None) -> GameEntity | None:
    """Return the entity referenced by a payload, rejecting unknown identifiers."""

    if entity_id is None:
        return None
    entity = session.get(GameEntity, entity_id)
    if entity is None:
        raise ValueError(f"Entity '{entity_id}' does not exist.")
    return entity


def load_entities(session: Session, entity_ids: Sequence[str]) -> list[GameEntity]:
    if not entity_ids:
        return []
    found = {
        entity.id: entity
        for entity in session.scalars(
            select(GameEntity).where(GameEntity.id.in_(entity_ids))
        )
    }
    missing = [entity_id for entity_id in entity_ids if entity_id not in found]
    if missing:
        raise ValueError(f"Entities do not exist: {', '.join(missing)}.")
    return [found[entity_id] for entity_id in entity_ids]


def record_activity(
    session: Session,
    *,
    actor: Actor,
    activity_type: ActivityType,
    description: str,
    item_type: str,
    item_id: str,
    entity_id: str | None = None,
) -> ActivityLog:
    entry = ActivityLog(
        type=activity_type,
        description=description,
        entity_id=entity_id,
        user_id=actor.id,
        details={"item_type": item_type, "item_id": item_id},
    )
    session.add(entry)
    return entry


class ServiceBase:
    """Common plumbing for services that read and write through the ORM."""

    module: Module = Module.DASHBOARD

    def __init__(
        self,
        database: DatabaseManager,
        *,
        delete_password: str = DEFAULT_DELETE_PASSWORD,
    ) -> None:
        self._database = database
        self._delete_password = delete_password

    def _require_view(self, actor: Actor) -> None:
        try:
            require_view(actor.role, self.module)
        except PermissionDeniedError:
            logger.warning(
                "User %s (%s) denied access to %s",
                actor.id,
                actor.role.value,
                self.module.value,
            )
            raise

    def _require_edit(self, actor: Actor) -> None:
        try:
            require_edit(actor.role, self.module)
        except PermissionDeniedError:
            logger.warning(
                "User %s (%s) denied changes to %s",
                actor.id,
                actor.role.value,
                self.module.value,
            )
            raise

    def _require_delete(self, actor: Actor, password: str | None) -> None:
        try:
            require_delete(actor.role, password, expected=self._delete_password)
        except PermissionDeniedError:
            logger.warning(
                "User %s (%s) denied deletion in %s",
                actor.id,
                actor.role.value,
                self.module.value,
            )
            raise


class ContentService(ServiceBase):
    """Base for services managing tagged, commentable records.

    Subclasses describe their table with ``record_model``, ``comment_model``
    and the name of the comment foreign key so listing, adding and removing
    comments and the tag cloud are shared.
    """

    record_model: Any
    comment_model: Any
    comment_foreign_key: str
    item_type: str
    label: str

    def _get_record(self, session: Session, record_id: str) -> Any:
        record = session.get(self.record_model, record_id)
        if record is None:
            raise KeyError(f"{self.label.capitalize()} '{record_id}' does not exist.")
        return record

    @staticmethod
    def _record_title(record: Any) -> str:
        return record.title

    @staticmethod
    def _record_entity_id(record: Any) -> str | None:
        return getattr(record, "entity_id", None)

    def list_tags(self, actor: Actor) -> TagListResponse:
        self._require_view(actor)
        with self._database.session() as session:
            tag_lists = session.scalars(select(self.record_model.tags)).all()
            return TagListResponse(data=collect_tags(tag_lists))

    def list_comments(self, actor: Actor, record_id: str) -> CommentListResponse:
        self._require_view(actor)
        with self._database.session() as session:
            record = self._get_record(session, record_id)
            return CommentListResponse(
                data=[comment_resource(comment) for comment in record.comments]
            )

    def add_comment(self, actor: Actor, record_id: str, content: str) -> CommentResource:
        self._require_view(actor)
        with self._database.session() as session:
            record = self._get_record(session, record_id)
            comment = self.comment_model(
                content=content,
                author_id=actor.id,
                **{self.comment_foreign_key: record.id},
            )
            session.add(comment)
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.COMMENTED,
                description=f'{actor.name} commented on {self.label} "{self._record_title(record)}"',
                item_type=self.item_type,
                item_id=record.id,
                entity_id=self._record_entity_id(record),
            )
            session.flush()
            session.refresh(comment)
            logger.info("User %s commented on %s %s", actor.id, self.label, record.id)
            return comment_resource(comment)

    def delete_comment(self, actor: Actor, record_id: str, comment_id: str) -> None:
        self._require_view(actor)
        with self._database.session() as session:
            comment = session.get(self.comment_model, comment_id)
            if comment is None or getattr(comment, self.comment_foreign_key) != record_id:
                raise KeyError(f"Comment '{comment_id}' does not exist.")
            if comment.author_id != actor.id and not is_admin(actor.role):
                raise PermissionDeniedError(
                    "Only the author or an administrator can delete a comment.",
                    role=actor.role,
                )
            session.delete(comment)
            logger.info("User %s deleted comment %s", actor.id, comment_id)

    def _count_comments(self, session: Session, record_ids: Sequence[str]) -> dict[str, int]:
        if not record_ids:
            return {}
        foreign_key = getattr(self.comment_model, self.comment_foreign_key)
        rows = session.execute(
            select(foreign_key, func.count())
            .where(foreign_key.in_(record_ids))
            .group_by(foreign_key)
        ).all()
        return {record_id: count for record_id, count in rows}


__all__ = [
    "Actor",
    "AuthenticationRequiredError",
    "ContentService",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "RecordConflictError",
    "ServiceBase",
    "count_by",
    "comment_resource",
    "entity_reference",
    "has_tag",
    "load_entities",
    "load_entity",
    "paginate",
    "record_activity",
    "search_clause",
    "user_reference",
]
