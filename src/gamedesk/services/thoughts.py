"""Team thoughts: notes and tasks with a review workflow."""

from __future__ import annotations

import logging
from typing import Literal, cast

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..models import (
    THOUGHT_PRIORITY_RANK,
    ActivityType,
    Thought,
    ThoughtCategory,
    ThoughtComment,
    ThoughtPriority,
    ThoughtStatus,
    User,
)
from ..permissions import Module, PermissionDeniedError, Role, can_approve_thoughts
from ..resources import (
    ThoughtCategoryCreateRequest,
    ThoughtCategoryListResponse,
    ThoughtCategoryReference,
    ThoughtCategoryResource,
    ThoughtCreateRequest,
    ThoughtDetail,
    ThoughtListResponse,
    ThoughtResource,
    ThoughtStatsResource,
    ThoughtUpdateRequest,
    UserListResponse,
    UserResource,
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

ThoughtSort = Literal["newest", "oldest", "updated", "priority"]

DEFAULT_CATEGORY_ICON = "Lightbulb"
DEFAULT_CATEGORY_COLOR = "#6366f1"

_DECISION_STATUSES = frozenset({ThoughtStatus.APPROVED, ThoughtStatus.REJECTED})
_UNASSIGNABLE_ROLES = (Role.VIEWER, Role.CONCEPT_ARTIST)

_ORDERING = {
    "newest": (Thought.created_at.desc(),),
    "oldest": (Thought.created_at.asc(),),
    "updated": (Thought.updated_at.desc(),),
    "priority": (Thought.created_at.desc(),),
}


def _category_reference(category: ThoughtCategory | None) -> ThoughtCategoryReference | None:
    if category is None:
        return None
    return ThoughtCategoryReference(
        id=category.id, name=category.name, icon=category.icon, color=category.color
    )


def build_thought_resource(
    thought: Thought,
    *,
    comment_count: int | None = None,
    model: type[ThoughtResource] = ThoughtResource,
    **extra: object,
) -> ThoughtResource:
    return model(
        id=thought.id,
        title=thought.title,
        content=thought.content,
        status=thought.status,
        priority=thought.priority,
        tags=list(thought.tags or []),
        links=list(thought.links or []),
        color=thought.color,
        is_pinned=thought.is_pinned,
        rejection_reason=thought.rejection_reason,
        entity=entity_reference(thought.entity),
        category=_category_reference(thought.category),
        assignee=user_reference(thought.assignee),
        created_by=user_reference(thought.created_by),
        comment_count=len(thought.comments) if comment_count is None else comment_count,
        created_at=thought.created_at,
        updated_at=thought.updated_at,
        **extra,
    )


def _build_detail(thought: Thought) -> ThoughtDetail:
    detail = build_thought_resource(
        thought,
        model=ThoughtDetail,
        comments=[comment_resource(comment) for comment in thought.comments],
    )
    return cast(ThoughtDetail, detail)


def _load_category(session: Session, category_id: str | None) -> ThoughtCategory | None:
    if category_id is None:
        return None
    category = session.get(ThoughtCategory, category_id)
    if category is None:
        raise ValueError(f"Thought category '{category_id}' does not exist.")
    return category


def _load_assignee(session: Session, user_id: str | None) -> User | None:
    if user_id is None:
        return None
    user = session.get(User, user_id)
    if user is None:
        raise ValueError(f"User '{user_id}' does not exist.")
    if user.role in _UNASSIGNABLE_ROLES:
        raise ValueError(f"Thoughts cannot be assigned to {user.role.value} users.")
    return user


class ThoughtService(ContentService):
    """Capture, triage and decide on team thoughts."""

    module = Module.THOUGHTS
    record_model = Thought
    comment_model = ThoughtComment
    comment_foreign_key = "thought_id"
    item_type = "thought"
    label = "thought"

    def _require_decision_rights(
        self, actor: Actor, status: ThoughtStatus, current: ThoughtStatus | None
    ) -> None:
        if status in _DECISION_STATUSES and status is not current:
            if not can_approve_thoughts(actor.role):
                logger.warning(
                    "User %s (%s) denied setting thought status %s",
                    actor.id,
                    actor.role.value,
                    status.value,
                )
                raise PermissionDeniedError(
                    f"Role '{actor.role.value}' cannot mark thoughts as {status.value}.",
                    role=actor.role,
                )

    def list_thoughts(
        self,
        actor: Actor,
        *,
        status: ThoughtStatus | None = None,
        priority: ThoughtPriority | None = None,
        entity_id: str | None = None,
        category_id: str | None = None,
        search: str | None = None,
        created_by_id: str | None = None,
        assignee_id: str | None = None,
        tag: str | None = None,
        sort: ThoughtSort = "newest",
        page: int = 1,
        page_size: int = 50,
    ) -> ThoughtListResponse:
        """List thoughts; pinned thoughts always come first."""

        self._require_view(actor)
        with self._database.session() as session:
            statement = select(Thought).options(
                selectinload(Thought.entity),
                selectinload(Thought.category),
                selectinload(Thought.assignee),
                selectinload(Thought.created_by),
            )
            if status is not None:
                statement = statement.where(Thought.status == status)
            if priority is not None:
                statement = statement.where(Thought.priority == priority)
            if entity_id is not None:
                statement = statement.where(Thought.entity_id == entity_id)
            if category_id is not None:
                statement = statement.where(Thought.category_id == category_id)
            if created_by_id is not None:
                statement = statement.where(Thought.created_by_id == created_by_id)
            if assignee_id is not None:
                statement = statement.where(Thought.assignee_id == assignee_id)
            clause = search_clause(search, Thought.title, Thought.content)
            if clause is not None:
                statement = statement.where(clause)
            statement = statement.order_by(*_ORDERING[sort])

            thoughts = [
                thought for thought in session.scalars(statement) if has_tag(thought.tags, tag)
            ]
            # Stable sorts keep the SQL ordering inside each bucket.
            if sort == "priority":
                thoughts.sort(key=lambda item: THOUGHT_PRIORITY_RANK[item.priority], reverse=True)
            thoughts.sort(key=lambda item: not item.is_pinned)

            visible, pagination = paginate(thoughts, page=page, page_size=page_size)
            counts = self._count_comments(session, [thought.id for thought in visible])
            return ThoughtListResponse(
                data=[
                    build_thought_resource(thought, comment_count=counts.get(thought.id, 0))
                    for thought in visible
                ],
                pagination=pagination,
            )

    def get_thought(self, actor: Actor, thought_id: str) -> ThoughtDetail:
        self._require_view(actor)
        with self._database.session() as session:
            return _build_detail(self._get_record(session, thought_id))

    def create_thought(self, actor: Actor, payload: ThoughtCreateRequest) -> ThoughtDetail:
        self._require_edit(actor)
        self._require_decision_rights(actor, payload.status, None)
        with self._database.session() as session:
            thought = Thought(
                title=payload.title,
                content=payload.content,
                status=payload.status,
                priority=payload.priority,
                tags=list(payload.tags),
                links=list(payload.links),
                color=payload.color,
                is_pinned=payload.is_pinned,
                entity=load_entity(session, payload.entity_id),
                category=_load_category(session, payload.category_id),
                assignee=_load_assignee(session, payload.assignee_id),
                created_by_id=actor.id,
            )
            session.add(thought)
            session.flush()
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.CREATED,
                description=f'{actor.name} shared thought "{thought.title}"',
                item_type=self.item_type,
                item_id=thought.id,
                entity_id=thought.entity_id,
            )
            session.flush()
            logger.info("Created thought %s", thought.id)
            return _build_detail(thought)

    def update_thought(
        self, actor: Actor, thought_id: str, payload: ThoughtUpdateRequest
    ) -> ThoughtDetail:
        self._require_edit(actor)
        with self._database.session() as session:
            thought = self._get_record(session, thought_id)
            fields = payload.model_fields_set
            previous_status = thought.status

            reason = (
                payload.rejection_reason
                if "rejection_reason" in fields
                else thought.rejection_reason
            )
            if "status" in fields and payload.status is not None:
                self._require_decision_rights(actor, payload.status, thought.status)
                self._set_status(thought, payload.status, reason)
            elif "rejection_reason" in fields:
                self._set_status(thought, thought.status, reason)
            for field_name in ("title", "content", "priority", "is_pinned"):
                value = getattr(payload, field_name)
                if field_name in fields and value is not None:
                    setattr(thought, field_name, value)
            if "color" in fields:
                thought.color = payload.color
            if "tags" in fields:
                thought.tags = list(payload.tags or [])
            if "links" in fields:
                thought.links = list(payload.links or [])
            if "entity_id" in fields:
                thought.entity = load_entity(session, payload.entity_id)
            if "category_id" in fields:
                thought.category = _load_category(session, payload.category_id)
            if "assignee_id" in fields:
                thought.assignee = _load_assignee(session, payload.assignee_id)
            session.flush()

            if thought.status is not previous_status:
                activity_type = ActivityType.STATUS_CHANGED
                description = (
                    f'{actor.name} changed status of "{thought.title}" to {thought.status.value}'
                )
            else:
                activity_type = ActivityType.UPDATED
                description = f'{actor.name} updated thought "{thought.title}"'
            record_activity(
                session,
                actor=actor,
                activity_type=activity_type,
                description=description,
                item_type=self.item_type,
                item_id=thought.id,
                entity_id=thought.entity_id,
            )
            session.flush()
            logger.info("Updated thought %s", thought.id)
            return _build_detail(thought)

    @staticmethod
    def _set_status(
        thought: Thought, status: ThoughtStatus, rejection_reason: str | None
    ) -> None:
        thought.status = status
        thought.rejection_reason = (
            rejection_reason if status is ThoughtStatus.REJECTED else None
        )

    def change_status(
        self,
        actor: Actor,
        thought_id: str,
        status: ThoughtStatus,
        *,
        rejection_reason: str | None = None,
    ) -> ThoughtDetail:
        """Move a thought through its workflow.

        Approving or rejecting requires decision rights; the rejection reason
        is stored only for rejected thoughts and cleared otherwise.
        """

        self._require_edit(actor)
        with self._database.session() as session:
            thought = self._get_record(session, thought_id)
            self._require_decision_rights(actor, status, thought.status)
            previous = thought.status
            self._set_status(thought, status, rejection_reason)
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.STATUS_CHANGED,
                description=f'{actor.name} changed status of "{thought.title}" to {status.value}',
                item_type=self.item_type,
                item_id=thought.id,
                entity_id=thought.entity_id,
            )
            session.flush()
            logger.info(
                "Thought %s status %s -> %s", thought.id, previous.value, status.value
            )
            return _build_detail(thought)

    def toggle_pin(self, actor: Actor, thought_id: str) -> ThoughtDetail:
        self._require_edit(actor)
        with self._database.session() as session:
            thought = self._get_record(session, thought_id)
            thought.is_pinned = not thought.is_pinned
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.UPDATED,
                description=(
                    f'{actor.name} {"pinned" if thought.is_pinned else "unpinned"} '
                    f'thought "{thought.title}"'
                ),
                item_type=self.item_type,
                item_id=thought.id,
                entity_id=thought.entity_id,
            )
            session.flush()
            logger.info("Thought %s pinned=%s", thought.id, thought.is_pinned)
            return _build_detail(thought)

    def delete_thought(self, actor: Actor, thought_id: str, password: str | None) -> None:
        self._require_delete(actor, password)
        with self._database.session() as session:
            thought = self._get_record(session, thought_id)
            title = thought.title
            entity_id = thought.entity_id
            session.delete(thought)
            session.flush()
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.DELETED,
                description=f'{actor.name} deleted thought "{title}"',
                item_type=self.item_type,
                item_id=thought_id,
                entity_id=entity_id,
            )
            logger.info("Deleted thought %s", thought_id)

    def get_stats(self, actor: Actor) -> ThoughtStatsResource:
        self._require_view(actor)
        with self._database.session() as session:
            rows = session.execute(select(Thought.status, Thought.priority)).all()
            return ThoughtStatsResource(
                total=len(rows),
                by_status=count_by((row[0] for row in rows), ThoughtStatus),
                by_priority=count_by((row[1] for row in rows), ThoughtPriority),
            )

    def list_assignees(self, actor: Actor) -> UserListResponse:
        """Members that thoughts can be assigned to."""

        self._require_view(actor)
        with self._database.session() as session:
            users = session.scalars(
                select(User)
                .where(User.role.not_in(_UNASSIGNABLE_ROLES))
                .order_by(User.name, User.email)
            ).all()
            return UserListResponse(
                data=[
                    UserResource(
                        id=user.id,
                        email=user.email,
                        name=user.name,
                        role=user.role,
                        avatar_url=user.avatar_url,
                        created_at=user.created_at,
                        updated_at=user.updated_at,
                    )
                    for user in users
                ]
            )

    def list_categories(self, actor: Actor) -> ThoughtCategoryListResponse:
        self._require_view(actor)
        with self._database.session() as session:
            categories = session.scalars(
                select(ThoughtCategory).order_by(
                    ThoughtCategory.sort_order, ThoughtCategory.name
                )
            ).all()
            counts = dict(
                session.execute(
                    select(Thought.category_id, func.count())
                    .where(Thought.category_id.isnot(None))
                    .group_by(Thought.category_id)
                ).all()
            )
            return ThoughtCategoryListResponse(
                data=[
                    self._build_category(category, counts.get(category.id, 0))
                    for category in categories
                ]
            )

    def create_category(
        self, actor: Actor, payload: ThoughtCategoryCreateRequest
    ) -> ThoughtCategoryResource:
        self._require_edit(actor)
        with self._database.session() as session:
            highest = session.scalar(select(func.max(ThoughtCategory.sort_order))) or 0
            category = ThoughtCategory(
                name=payload.name,
                name_en=payload.name_en,
                description=payload.description,
                icon=payload.icon or DEFAULT_CATEGORY_ICON,
                color=payload.color or DEFAULT_CATEGORY_COLOR,
                sort_order=highest + 1,
                created_by_id=actor.id,
            )
            session.add(category)
            session.flush()
            logger.info("Created thought category %s (%s)", category.id, category.name)
            return self._build_category(category, 0)

    @staticmethod
    def _build_category(category: ThoughtCategory, thought_count: int) -> ThoughtCategoryResource:
        return ThoughtCategoryResource(
            id=category.id,
            name=category.name,
            name_en=category.name_en,
            description=category.description,
            icon=category.icon,
            color=category.color,
            sort_order=category.sort_order,
            thought_count=thought_count,
            created_at=category.created_at,
        )


__all__ = [
    "DEFAULT_CATEGORY_COLOR",
    "DEFAULT_CATEGORY_ICON",
    "ThoughtService",
    "ThoughtSort",
    "build_thought_resource",
]
