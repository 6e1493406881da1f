"""Onboarding reference cards for new team members."""

from __future__ import annotations

import logging
from typing import Literal, cast

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..models import (
    ActivityType,
    AssetStatus,
    OnboardingCard,
    OnboardingCardEntity,
    OnboardingCategory,
    OnboardingComment,
    OnboardingImage,
)
from ..permissions import Module
from ..resources import (
    OnboardingCardCreateRequest,
    OnboardingCardDetail,
    OnboardingCardListResponse,
    OnboardingCardReference,
    OnboardingCardResource,
    OnboardingCardUpdateRequest,
    OnboardingGroup,
    OnboardingGroupedResponse,
    OnboardingImageInput,
    OnboardingImageResource,
    OnboardingStatsResource,
)
from .common import (
    Actor,
    ContentService,
    comment_resource,
    count_by,
    entity_reference,
    has_tag,
    load_entities,
    paginate,
    record_activity,
    search_clause,
    user_reference,
)

logger = logging.getLogger(__name__)

OnboardingSort = Literal["newest", "oldest", "updated", "title", "order"]

ROOT_PARENT = "root"

CATEGORY_ORDER: tuple[OnboardingCategory, ...] = (
    OnboardingCategory.DESIGN_SYSTEM,
    OnboardingCategory.GAME_FILES,
    OnboardingCategory.GUIDELINES,
    OnboardingCategory.TOOLS,
    OnboardingCategory.REFERENCES,
    OnboardingCategory.OTHER,
)

_ORDERING = {
    "newest": (OnboardingCard.created_at.desc(),),
    "oldest": (OnboardingCard.created_at.asc(),),
    "updated": (OnboardingCard.updated_at.desc(),),
    "title": (OnboardingCard.title.asc(),),
    "order": (OnboardingCard.order.asc(), OnboardingCard.created_at.desc()),
}
_DEFAULT_ORDERING = (
    OnboardingCard.is_pinned.desc(),
    OnboardingCard.order.asc(),
    OnboardingCard.created_at.desc(),
)


def _card_reference(card: OnboardingCard) -> OnboardingCardReference:
    return OnboardingCardReference(
        id=card.id, title=card.title, category=card.category, status=card.status
    )


def _image_resource(image: OnboardingImage) -> OnboardingImageResource:
    return OnboardingImageResource(
        id=image.id, image_url=image.image_url, caption=image.caption, order=image.order
    )


def build_card_resource(
    card: OnboardingCard,
    *,
    model: type[OnboardingCardResource] = OnboardingCardResource,
    **extra: object,
) -> OnboardingCardResource:
    return model(
        id=card.id,
        title=card.title,
        description=card.description,
        category=card.category,
        status=card.status,
        order=card.order,
        is_pinned=card.is_pinned,
        tags=list(card.tags or []),
        links=list(card.links or []),
        parent_id=card.parent_id,
        images=[_image_resource(image) for image in card.images],
        linked_entities=[entity_reference(link.entity) for link in card.linked_entities],
        created_by=user_reference(card.created_by),
        child_count=len(card.children),
        comment_count=len(card.comments),
        created_at=card.created_at,
        updated_at=card.updated_at,
        **extra,
    )


def _build_detail(card: OnboardingCard) -> OnboardingCardDetail:
    detail = build_card_resource(
        card,
        model=OnboardingCardDetail,
        parent=_card_reference(card.parent) if card.parent is not None else None,
        children=[_card_reference(child) for child in card.children],
        comments=[comment_resource(comment) for comment in card.comments],
    )
    return cast(OnboardingCardDetail, detail)


def _build_images(images: list[OnboardingImageInput]) -> list[OnboardingImage]:
    return [
        OnboardingImage(
            image_url=image.image_url,
            caption=image.caption,
            order=image.order if image.order is not None else index,
        )
        for index, image in enumerate(images)
    ]


def _replace_links(session: Session, card: OnboardingCard, entity_ids: list[str]) -> None:
    entities = load_entities(session, entity_ids)
    existing = {link.entity_id: link for link in card.linked_entities}
    card.linked_entities = [
        existing.get(entity.id) or OnboardingCardEntity(entity=entity) for entity in entities
    ]


class OnboardingService(ContentService):
    """Maintain the onboarding knowledge base."""

    module = Module.ONBOARDING
    record_model = OnboardingCard
    comment_model = OnboardingComment
    comment_foreign_key = "card_id"
    item_type = "onboarding_card"
    label = "onboarding card"

    def _query(
        self,
        session: Session,
        *,
        status: AssetStatus | None = None,
        category: OnboardingCategory | None = None,
        search: str | None = None,
        created_by_id: str | None = None,
        tag: str | None = None,
        parent_id: str | None = None,
        sort: OnboardingSort | None = None,
    ) -> list[OnboardingCard]:
        statement = select(OnboardingCard).options(
            selectinload(OnboardingCard.images),
            selectinload(OnboardingCard.linked_entities).selectinload(
                OnboardingCardEntity.entity
            ),
            selectinload(OnboardingCard.created_by),
            selectinload(OnboardingCard.children),
            selectinload(OnboardingCard.comments),
        )
        if status is not None:
            statement = statement.where(OnboardingCard.status == status)
        if category is not None:
            statement = statement.where(OnboardingCard.category == category)
        if created_by_id is not None:
            statement = statement.where(OnboardingCard.created_by_id == created_by_id)
        if parent_id == ROOT_PARENT:
            statement = statement.where(OnboardingCard.parent_id.is_(None))
        elif parent_id is not None:
            statement = statement.where(OnboardingCard.parent_id == parent_id)
        clause = search_clause(search, OnboardingCard.title, OnboardingCard.description)
        if clause is not None:
            statement = statement.where(clause)
        ordering = _ORDERING[sort] if sort is not None else _DEFAULT_ORDERING
        statement = statement.order_by(*ordering)

        return [card for card in session.scalars(statement) if has_tag(card.tags, tag)]

    def list_cards(
        self,
        actor: Actor,
        *,
        status: AssetStatus | None = None,
        category: OnboardingCategory | None = None,
        search: str | None = None,
        created_by_id: str | None = None,
        tag: str | None = None,
        parent_id: str | None = None,
        sort: OnboardingSort | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> OnboardingCardListResponse:
        """List cards.

        ``parent_id`` set to ``"root"`` restricts the list to top-level cards.
        Without ``sort`` pinned cards come first, then by order and recency.
        """

        self._require_view(actor)
        with self._database.session() as session:
            cards = self._query(
                session,
                status=status,
                category=category,
                search=search,
                created_by_id=created_by_id,
                tag=tag,
                parent_id=parent_id,
                sort=sort,
            )
            visible, pagination = paginate(cards, page=page, page_size=page_size)
            return OnboardingCardListResponse(
                data=[build_card_resource(card) for card in visible],
                pagination=pagination,
            )

    def list_grouped(
        self,
        actor: Actor,
        *,
        status: AssetStatus | None = None,
        search: str | None = None,
        tag: str | None = None,
        parent_id: str | None = None,
    ) -> OnboardingGroupedResponse:
        self._require_view(actor)
        with self._database.session() as session:
            cards = self._query(
                session, status=status, search=search, tag=tag, parent_id=parent_id
            )
            buckets: dict[OnboardingCategory, list[OnboardingCardResource]] = {}
            for card in cards:
                buckets.setdefault(card.category, []).append(build_card_resource(card))
            return OnboardingGroupedResponse(
                data=[
                    OnboardingGroup(category=category, items=buckets[category])
                    for category in CATEGORY_ORDER
                    if category in buckets
                ]
            )

    def get_card(self, actor: Actor, card_id: str) -> OnboardingCardDetail:
        self._require_view(actor)
        with self._database.session() as session:
            return _build_detail(self._get_record(session, card_id))

    def create_card(
        self, actor: Actor, payload: OnboardingCardCreateRequest
    ) -> OnboardingCardDetail:
        self._require_edit(actor)
        with self._database.session() as session:
            parent = self._load_parent(session, payload.parent_id)
            card = OnboardingCard(
                title=payload.title,
                description=payload.description,
                category=payload.category,
                status=payload.status,
                order=payload.order,
                is_pinned=payload.is_pinned,
                tags=list(payload.tags),
                links=list(payload.links),
                parent=parent,
                images=_build_images(payload.images),
                created_by_id=actor.id,
            )
            _replace_links(session, card, payload.linked_entity_ids)
            session.add(card)
            session.flush()
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.CREATED,
                description=f'{actor.name} created onboarding card "{card.title}"',
                item_type=self.item_type,
                item_id=card.id,
            )
            session.flush()
            logger.info("Created onboarding card %s", card.id)
            return _build_detail(card)

    def update_card(
        self, actor: Actor, card_id: str, payload: OnboardingCardUpdateRequest
    ) -> OnboardingCardDetail:
        self._require_edit(actor)
        with self._database.session() as session:
            card = self._get_record(session, card_id)
            fields = payload.model_fields_set
            previous_status = card.status

            for field_name in ("title", "category", "status", "order", "is_pinned"):
                value = getattr(payload, field_name)
                if field_name in fields and value is not None:
                    setattr(card, field_name, value)
            if "description" in fields:
                card.description = payload.description
            if "tags" in fields:
                card.tags = list(payload.tags or [])
            if "links" in fields:
                card.links = list(payload.links or [])
            if "parent_id" in fields:
                card.parent = self._load_parent(session, payload.parent_id, card=card)
            if "images" in fields:
                card.images = _build_images(payload.images or [])
            if "linked_entity_ids" in fields:
                _replace_links(session, card, payload.linked_entity_ids or [])
            session.flush()

            if card.status is not previous_status:
                activity_type = ActivityType.STATUS_CHANGED
                description = (
                    f'{actor.name} changed status of "{card.title}" to {card.status.value}'
                )
            else:
                activity_type = ActivityType.UPDATED
                description = f'{actor.name} updated onboarding card "{card.title}"'
            record_activity(
                session,
                actor=actor,
                activity_type=activity_type,
                description=description,
                item_type=self.item_type,
                item_id=card.id,
            )
            session.flush()
            logger.info("Updated onboarding card %s", card.id)
            return _build_detail(card)

    def change_status(
        self, actor: Actor, card_id: str, status: AssetStatus
    ) -> OnboardingCardDetail:
        self._require_edit(actor)
        with self._database.session() as session:
            card = self._get_record(session, card_id)
            card.status = status
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.STATUS_CHANGED,
                description=f'{actor.name} changed status of "{card.title}" to {status.value}',
                item_type=self.item_type,
                item_id=card.id,
            )
            session.flush()
            logger.info("Onboarding card %s status set to %s", card.id, status.value)
            return _build_detail(card)

    def toggle_pin(self, actor: Actor, card_id: str) -> OnboardingCardDetail:
        self._require_edit(actor)
        with self._database.session() as session:
            card = self._get_record(session, card_id)
            card.is_pinned = not card.is_pinned
            self._record_change(
                session, actor, card, "pinned" if card.is_pinned else "unpinned"
            )
            session.flush()
            return _build_detail(card)

    def delete_card(self, actor: Actor, card_id: str, password: str | None) -> None:
        """Delete a card; its children are promoted to top level."""

        self._require_delete(actor, password)
        with self._database.session() as session:
            card = self._get_record(session, card_id)
            title = card.title
            for child in list(card.children):
                child.parent = None
            session.delete(card)
            session.flush()
            record_activity(
                session,
                actor=actor,
                activity_type=ActivityType.DELETED,
                description=f'{actor.name} deleted onboarding card "{title}"',
                item_type=self.item_type,
                item_id=card_id,
            )
            logger.info("Deleted onboarding card %s", card_id)

    def add_image(
        self, actor: Actor, card_id: str, payload: OnboardingImageInput
    ) -> OnboardingImageResource:
        """Append an image; without an explicit order it goes after the last one."""

        self._require_edit(actor)
        with self._database.session() as session:
            card = self._get_record(session, card_id)
            if payload.order is not None:
                order = payload.order
            else:
                highest = session.scalar(
                    select(func.max(OnboardingImage.order)).where(
                        OnboardingImage.card_id == card.id
                    )
                )
                order = 0 if highest is None else highest + 1
            image = OnboardingImage(
                card_id=card.id,
                image_url=payload.image_url,
                caption=payload.caption,
                order=order,
            )
            session.add(image)
            self._record_change(session, actor, card, "added an image to")
            session.flush()
            logger.info("Added image %s to onboarding card %s", image.id, card.id)
            return _image_resource(image)

    def remove_image(self, actor: Actor, card_id: str, image_id: str) -> None:
        self._require_edit(actor)
        with self._database.session() as session:
            image = session.get(OnboardingImage, image_id)
            if image is None or image.card_id != card_id:
                raise KeyError(f"Image '{image_id}' does not exist on card '{card_id}'.")
            card = self._get_record(session, card_id)
            session.delete(image)
            self._record_change(session, actor, card, "removed an image from")
            logger.info("Removed image %s from onboarding card %s", image_id, card_id)

    def reorder_images(
        self, actor: Actor, card_id: str, image_ids: list[str]
    ) -> OnboardingCardDetail:
        """Assign each image its position in ``image_ids``."""

        self._require_edit(actor)
        with self._database.session() as session:
            card = self._get_record(session, card_id)
            images = {image.id: image for image in card.images}
            if len(image_ids) != len(set(image_ids)) or set(image_ids) != set(images):
                raise ValueError("image_ids must list every image of the card exactly once.")
            for index, image_id in enumerate(image_ids):
                images[image_id].order = index
            self._record_change(session, actor, card, "reordered images of")
            session.flush()
            session.expire(card, ["images"])
            return _build_detail(card)

    def _record_change(
        self, session: Session, actor: Actor, card: OnboardingCard, action: str
    ) -> None:
        record_activity(
            session,
            actor=actor,
            activity_type=ActivityType.UPDATED,
            description=f'{actor.name} {action} onboarding card "{card.title}"',
            item_type=self.item_type,
            item_id=card.id,
        )

    def get_stats(self, actor: Actor) -> OnboardingStatsResource:
        self._require_view(actor)
        with self._database.session() as session:
            rows = session.execute(
                select(OnboardingCard.status, OnboardingCard.category)
            ).all()
            return OnboardingStatsResource(
                total=len(rows),
                by_status=count_by((row[0] for row in rows), AssetStatus),
                by_category=count_by((row[1] for row in rows), OnboardingCategory),
            )

    def _load_parent(
        self,
        session: Session,
        parent_id: str | None,
        *,
        card: OnboardingCard | None = None,
    ) -> OnboardingCard | None:
        """Resolve ``parent_id``, refusing links that would form a cycle."""

        if parent_id is None:
            return None
        parent = session.get(OnboardingCard, parent_id)
        if parent is None:
            raise ValueError(f"Onboarding card '{parent_id}' does not exist.")
        if card is not None:
            ancestor: OnboardingCard | None = parent
            while ancestor is not None:
                if ancestor.id == card.id:
                    raise ValueError("An onboarding card cannot be nested under itself.")
                ancestor = ancestor.parent
        return parent


__all__ = ["CATEGORY_ORDER", "OnboardingService", "OnboardingSort", "ROOT_PARENT"]
