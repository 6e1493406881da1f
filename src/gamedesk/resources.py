"""Request and response models exposed by the dashboard API."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator

from .lore_diff import DiffKind
from .models import (
    ActivityType,
    AssetStatus,
    AttackReach,
    DamageSource,
    GameEntityType,
    LoreType,
    OnboardingCategory,
    ThoughtPriority,
    ThoughtStatus,
    UnitRole,
)
from .permissions import Module, Role
from .tags import parse_tags


def _serialise_timestamp(value: datetime) -> str:
    # SQLite drops tzinfo on the way back out; stored values are always UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _require_text(value: Any, *, label: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{label} must be provided as a string.")
    trimmed = value.strip()
    if not trimmed:
        raise ValueError(f"{label} must be a non-empty string.")
    return trimmed


def _optional_text(value: Any, *, label: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{label} must be a string or null.")
    trimmed = value.strip()
    return trimmed or None


def _normalise_links(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.splitlines()
    links: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError("Links must be provided as strings.")
        trimmed = item.strip()
        if trimmed and trimmed not in links:
            links.append(trimmed)
    return links


def _normalise_id_list(value: Any) -> list[str]:
    if value is None:
        return []
    identifiers: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError("Identifiers must be provided as strings.")
        trimmed = item.strip()
        if trimmed and trimmed not in identifiers:
            identifiers.append(trimmed)
    return identifiers


class Pagination(BaseModel):
    """Pagination metadata returned alongside collection responses."""

    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_items: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)


class UserReference(BaseModel):
    """Compact description of a team member attached to a record."""

    id: str
    name: str
    avatar_url: str | None = None


class EntityReference(BaseModel):
    """Compact description of a game entity attached to a record."""

    id: str
    code: str
    name: str
    type: GameEntityType


class RelatedContentItem(BaseModel):
    """Short listing row used on the entity detail page."""

    id: str
    title: str
    status: str
    updated_at: datetime

    @field_serializer("updated_at")
    def _serialise_updated_at(self, value: datetime) -> str:
        return _serialise_timestamp(value)


class TagListResponse(BaseModel):
    data: list[str] = Field(default_factory=list)


class CommentResource(BaseModel):
    """A comment left on a concept art, lore entry, thought or onboarding card."""

    id: str
    content: str
    author: UserReference | None = None
    created_at: datetime

    @field_serializer("created_at")
    def _serialise_created_at(self, value: datetime) -> str:
        return _serialise_timestamp(value)


class CommentListResponse(BaseModel):
    data: list[CommentResource] = Field(
        default_factory=list,
        description="Comments ordered from oldest to newest.",
    )


class CommentCreateRequest(BaseModel):
    """Request payload for adding a comment to a record."""

    content: str = Field(..., description="Text of the comment.")

    @field_validator("content", mode="before")
    @classmethod
    def _validate_content(cls, value: Any) -> str:
        return _require_text(value, label="Comment content")


class DeleteConfirmationRequest(BaseModel):
    """Body accompanying destructive requests."""

    confirm_password: str | None = Field(
        None,
        description="Confirmation phrase configured for destructive operations.",
    )


class StatusChangeRequest(BaseModel):
    status: AssetStatus = Field(..., description="Workflow status to apply.")


# --- Users -------------------------------------------------------------------


class UserResource(BaseModel):
    """Representation of a team member account."""

    id: str = Field(..., description="Stable identifier for the user.")
    email: str = Field(..., description="Unique, lower-cased contact address.")
    name: str = Field(..., description="Display name shown next to records.")
    role: Role = Field(..., description="Role driving module access.")
    avatar_url: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _serialise_timestamps(self, value: datetime) -> str:
        return _serialise_timestamp(value)


class UserListResponse(BaseModel):
    data: list[UserResource] = Field(
        default_factory=list,
        description="Team members ordered by name.",
    )


class UserCreateRequest(BaseModel):
    """Request payload for registering a team member."""

    email: str = Field(..., description="Contact address, stored lower-cased.")
    name: str = Field(..., description="Display name for the team member.")
    role: Role = Field(Role.VIEWER, description="Role assigned to the new account.")
    avatar_url: str | None = None

    @field_validator("email", mode="before")
    @classmethod
    def _normalise_email(cls, value: Any) -> str:
        trimmed = _require_text(value, label="Email address").lower()
        if "@" not in trimmed:
            raise ValueError("Email address must contain an '@' symbol.")
        return trimmed

    @field_validator("name", mode="before")
    @classmethod
    def _normalise_name(cls, value: Any) -> str:
        return _require_text(value, label="Name")

    @field_validator("avatar_url", mode="before")
    @classmethod
    def _normalise_avatar(cls, value: Any) -> str | None:
        return _optional_text(value, label="Avatar URL")


class UserUpdateRequest(BaseModel):
    """Partial update of a team member; omitted fields are left untouched."""

    name: str | None = None
    role: Role | None = None
    avatar_url: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _normalise_name(cls, value: Any) -> str:
        if value is None:
            raise ValueError("Name cannot be null when provided.")
        return _require_text(value, label="Name")

    @field_validator("role", mode="before")
    @classmethod
    def _reject_null_role(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Role cannot be null when provided.")
        return value

    @field_validator("avatar_url", mode="before")
    @classmethod
    def _normalise_avatar(cls, value: Any) -> str | None:
        return _optional_text(value, label="Avatar URL")


class UserPermissionsResource(BaseModel):
    """Effective permissions derived from a user's role."""

    user_id: str
    role: Role
    level: int
    visible_modules: list[Module]
    editable_modules: list[Module]
    can_delete: bool
    can_approve_thoughts: bool
    can_upload: bool


# --- Entities ----------------------------------------------------------------


class EntitySummary(BaseModel):
    """Game entity row with counts of the content attached to it."""

    id: str
    code: str
    name: str
    type: GameEntityType
    description: str | None = None
    short_description: str | None = None
    icon_url: str | None = None
    created_by: UserReference | None = None
    concept_art_count: int = 0
    lore_count: int = 0
    thought_count: int = 0
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _serialise_timestamps(self, value: datetime) -> str:
        return _serialise_timestamp(value)


class EntityDetail(EntitySummary):
    """Entity including its most recent attached content."""

    concept_arts: list[RelatedContentItem] = Field(default_factory=list)
    lore_entries: list[RelatedContentItem] = Field(default_factory=list)
    thoughts: list[RelatedContentItem] = Field(default_factory=list)
    unit_id: str | None = Field(
        None, description="Identifier of the unit stat block linked to the entity."
    )


class EntityListResponse(BaseModel):
    data: list[EntitySummary] = Field(default_factory=list)
    pagination: Pagination


class EntityOptionsResponse(BaseModel):
    data: list[EntityReference] = Field(
        default_factory=list,
        description="Entities ordered by name for selection lists.",
    )


class EntityCreateRequest(BaseModel):
    """Request payload for cataloguing a game entity."""

    name: str
    type: GameEntityType
    code: str | None = Field(
        None,
        description="Unique code. Generated from the type and name when omitted.",
    )
    description: str | None = None
    short_description: str | None = None
    icon_url: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        return _require_text(value, label="Entity name")

    @field_validator("code", mode="before")
    @classmethod
    def _normalise_code(cls, value: Any) -> str | None:
        trimmed = _optional_text(value, label="Entity code")
        return trimmed.upper() if trimmed else None

    @field_validator("description", "short_description", "icon_url", mode="before")
    @classmethod
    def _normalise_optional(cls, value: Any) -> str | None:
        return _optional_text(value, label="Field")


class EntityUpdateRequest(BaseModel):
    """Partial update of a game entity."""

    name: str | None = None
    type: GameEntityType | None = None
    code: str | None = None
    description: str | None = None
    short_description: str | None = None
    icon_url: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        return _require_text(value, label="Entity name")

    @field_validator("type", mode="before")
    @classmethod
    def _reject_null_type(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Entity type cannot be null when provided.")
        return value

    @field_validator("code", mode="before")
    @classmethod
    def _normalise_code(cls, value: Any) -> str:
        return _require_text(value, label="Entity code").upper()

    @field_validator("description", "short_description", "icon_url", mode="before")
    @classmethod
    def _normalise_optional(cls, value: Any) -> str | None:
        return _optional_text(value, label="Field")


class EntityStatsResource(BaseModel):
    total: int
    by_type: dict[str, int]


# --- Concept art -------------------------------------------------------------


class ConceptArtResource(BaseModel):
    id: str
    title: str
    description: str | None = None
    image_url: str
    thumbnail_url: str | None = None
    status: AssetStatus
    tags: list[str] = Field(default_factory=list)
    entity: EntityReference | None = None
    created_by: UserReference | None = None
    comment_count: int = 0
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _serialise_timestamps(self, value: datetime) -> str:
        return _serialise_timestamp(value)


class ConceptArtDetail(ConceptArtResource):
    comments: list[CommentResource] = Field(default_factory=list)


class ConceptArtListResponse(BaseModel):
    data: list[ConceptArtResource] = Field(default_factory=list)
    pagination: Pagination


class ConceptArtGroup(BaseModel):
    """Concept art sharing the same entity; ``entity`` is null for unlinked art."""

    entity: EntityReference | None = None
    items: list[ConceptArtResource] = Field(default_factory=list)


class ConceptArtGroupedResponse(BaseModel):
    data: list[ConceptArtGroup] = Field(default_factory=list)


class ConceptArtCreateRequest(BaseModel):
    title: str
    image_url: str = Field(..., description="Location of the full size artwork.")
    description: str | None = None
    thumbnail_url: str | None = None
    status: AssetStatus = AssetStatus.DRAFT
    tags: list[str] = Field(
        default_factory=list,
        description="Tags as a list or comma separated string.",
    )
    entity_id: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> str:
        return _require_text(value, label="Title")

    @field_validator("image_url", mode="before")
    @classmethod
    def _validate_image_url(cls, value: Any) -> str:
        return _require_text(value, label="Image URL")

    @field_validator("description", "thumbnail_url", "entity_id", mode="before")
    @classmethod
    def _normalise_optional(cls, value: Any) -> str | None:
        return _optional_text(value, label="Field")

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> list[str]:
        return parse_tags(value)


class ConceptArtUpdateRequest(BaseModel):
    title: str | None = None
    image_url: str | None = None
    description: str | None = None
    thumbnail_url: str | None = None
    status: AssetStatus | None = None
    tags: list[str] | None = None
    entity_id: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> str:
        return _require_text(value, label="Title")

    @field_validator("image_url", mode="before")
    @classmethod
    def _validate_image_url(cls, value: Any) -> str:
        return _require_text(value, label="Image URL")

    @field_validator("description", "thumbnail_url", "entity_id", mode="before")
    @classmethod
    def _normalise_optional(cls, value: Any) -> str | None:
        return _optional_text(value, label="Field")

    @field_validator("status", mode="before")
    @classmethod
    def _reject_null_status(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Status cannot be null when provided.")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> list[str]:
        return parse_tags(value)


class ConceptArtStatsResource(BaseModel):
    total: int
    by_status: dict[str, int]
    by_entity_type: dict[str, int]


# --- Lore --------------------------------------------------------------------


class LoreEntryResource(BaseModel):
    id: str
    title: str
    content: str
    summary: str | None = None
    lore_type: LoreType
    status: AssetStatus
    tags: list[str] = Field(default_factory=list)
    version: int
    entity: EntityReference | None = None
    linked_entities: list[EntityReference] = Field(default_factory=list)
    created_by: UserReference | None = None
    comment_count: int = 0
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _serialise_timestamps(self, value: datetime) -> str:
        return _serialise_timestamp(value)


class LoreEntryDetail(LoreEntryResource):
    comments: list[CommentResource] = Field(default_factory=list)
    version_count: int = 0


class LoreEntryListResponse(BaseModel):
    data: list[LoreEntryResource] = Field(default_factory=list)
    pagination: Pagination


class LoreGroup(BaseModel):
    entity: EntityReference | None = None
    items: list[LoreEntryResource] = Field(default_factory=list)


class LoreGroupedResponse(BaseModel):
    data: list[LoreGroup] = Field(default_factory=list)


class LoreEntryCreateRequest(BaseModel):
    title: str
    content: str
    summary: str | None = None
    lore_type: LoreType = LoreType.OTHER
    status: AssetStatus = AssetStatus.DRAFT
    tags: list[str] = Field(default_factory=list)
    entity_id: str | None = Field(None, description="Primary entity of the entry.")
    linked_entity_ids: list[str] = Field(
        default_factory=list,
        description="Additional entities mentioned by the entry.",
    )

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> str:
        return _require_text(value, label="Title")

    @field_validator("content", mode="before")
    @classmethod
    def _validate_content(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Lore content must be a non-empty string.")
        return value

    @field_validator("summary", "entity_id", mode="before")
    @classmethod
    def _normalise_optional(cls, value: Any) -> str | None:
        return _optional_text(value, label="Field")

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> list[str]:
        return parse_tags(value)

    @field_validator("linked_entity_ids", mode="before")
    @classmethod
    def _normalise_linked(cls, value: Any) -> list[str]:
        return _normalise_id_list(value)


class LoreEntryUpdateRequest(BaseModel):
    """Partial lore update. Text changes create a new version snapshot."""

    title: str | None = None
    content: str | None = None
    summary: str | None = None
    lore_type: LoreType | None = None
    status: AssetStatus | None = None
    tags: list[str] | None = None
    entity_id: str | None = None
    linked_entity_ids: list[str] | None = None
    change_note: str | None = Field(
        None, description="Note stored with the version snapshot."
    )

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> str:
        return _require_text(value, label="Title")

    @field_validator("content", mode="before")
    @classmethod
    def _validate_content(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Lore content must be a non-empty string.")
        return value

    @field_validator("summary", "entity_id", "change_note", mode="before")
    @classmethod
    def _normalise_optional(cls, value: Any) -> str | None:
        return _optional_text(value, label="Field")

    @field_validator("lore_type", "status", mode="before")
    @classmethod
    def _reject_null_enum(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Enumerated fields cannot be null when provided.")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> list[str]:
        return parse_tags(value)

    @field_validator("linked_entity_ids", mode="before")
    @classmethod
    def _normalise_linked(cls, value: Any) -> list[str]:
        return _normalise_id_list(value)


class LoreVersionResource(BaseModel):
    id: str
    version: int
    title: str
    content: str
    summary: str | None = None
    change_note: str | None = None
    changed_by: UserReference | None = None
    created_at: datetime

    @field_serializer("created_at")
    def _serialise_created_at(self, value: datetime) -> str:
        return _serialise_timestamp(value)


class LoreVersionListResponse(BaseModel):
    data: list[LoreVersionResource] = Field(
        default_factory=list,
        description="Snapshots ordered from newest to oldest.",
    )


class DiffLineResource(BaseModel):
    kind: DiffKind
    content: str
    line_number: int | None = None


class LoreVersionDiffResponse(BaseModel):
    """Line level comparison between two snapshots of a lore entry."""

    from_version: int | None = Field(
        None, description="Older snapshot; null when diffing the first version."
    )
    to_version: int
    title_changed: bool
    summary_changed: bool
    added: int
    removed: int
    lines: list[DiffLineResource] = Field(default_factory=list)
    unified_diff: str = ""


class LoreStatsResource(BaseModel):
    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    by_entity_type: dict[str, int]


# --- Thoughts ----------------------------------------------------------------


class ThoughtCategoryReference(BaseModel):
    id: str
    name: str
    icon: str
    color: str


class ThoughtCategoryResource(ThoughtCategoryReference):
    name_en: str | None = None
    description: str | None = None
    sort_order: int
    thought_count: int = 0
    created_at: datetime

    @field_serializer("created_at")
    def _serialise_created_at(self, value: datetime) -> str:
        return _serialise_timestamp(value)


class ThoughtCategoryListResponse(BaseModel):
    data: list[ThoughtCategoryResource] = Field(default_factory=list)


class ThoughtCategoryCreateRequest(BaseModel):
    name: str
    name_en: str | None = None
    description: str | None = None
    icon: str | None = None
    color: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        return _require_text(value, label="Category name")

    @field_validator("name_en", "description", "icon", "color", mode="before")
    @classmethod
    def _normalise_optional(cls, value: Any) -> str | None:
        return _optional_text(value, label="Field")


class ThoughtResource(BaseModel):
    id: str
    title: str
    content: str
    status: ThoughtStatus
    priority: ThoughtPriority
    tags: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    color: str | None = None
    is_pinned: bool = False
    rejection_reason: str | None = None
    entity: EntityReference | None = None
    category: ThoughtCategoryReference | None = None
    assignee: UserReference | None = None
    created_by: UserReference | None = None
    comment_count: int = 0
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _serialise_timestamps(self, value: datetime) -> str:
        return _serialise_timestamp(value)


class ThoughtDetail(ThoughtResource):
    comments: list[CommentResource] = Field(default_factory=list)


class ThoughtListResponse(BaseModel):
    data: list[ThoughtResource] = Field(default_factory=list)
    pagination: Pagination


class ThoughtCreateRequest(BaseModel):
    title: str
    content: str
    status: ThoughtStatus = ThoughtStatus.DRAFT
    priority: ThoughtPriority = ThoughtPriority.MEDIUM
    tags: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    color: str | None = None
    is_pinned: bool = False
    entity_id: str | None = None
    category_id: str | None = None
    assignee_id: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> str:
        return _require_text(value, label="Title")

    @field_validator("content", mode="before")
    @classmethod
    def _validate_content(cls, value: Any) -> str:
        return _require_text(value, label="Content")

    @field_validator("color", "entity_id", "category_id", "assignee_id", mode="before")
    @classmethod
    def _normalise_optional(cls, value: Any) -> str | None:
        return _optional_text(value, label="Field")

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> list[str]:
        return parse_tags(value)

    @field_validator("links", mode="before")
    @classmethod
    def _normalise_links(cls, value: Any) -> list[str]:
        return _normalise_links(value)


class ThoughtUpdateRequest(BaseModel):
    title: str | None = None
    content: str | None = None
    status: ThoughtStatus | None = None
    priority: ThoughtPriority | None = None
    tags: list[str] | None = None
    links: list[str] | None = None
    color: str | None = None
    is_pinned: bool | None = None
    entity_id: str | None = None
    category_id: str | None = None
    assignee_id: str | None = None
    rejection_reason: str | None = Field(
        None, description="Kept only when the status is REJECTED."
    )

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> str:
        return _require_text(value, label="Title")

    @field_validator("content", mode="before")
    @classmethod
    def _validate_content(cls, value: Any) -> str:
        return _require_text(value, label="Content")

    @field_validator("status", "priority", "is_pinned", mode="before")
    @classmethod
    def _reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Field cannot be null when provided.")
        return value

    @field_validator(
        "color", "entity_id", "category_id", "assignee_id", "rejection_reason", mode="before"
    )
    @classmethod
    def _normalise_optional(cls, value: Any) -> str | None:
        return _optional_text(value, label="Field")

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> list[str]:
        return parse_tags(value)

    @field_validator("links", mode="before")
    @classmethod
    def _normalise_links(cls, value: Any) -> list[str]:
        return _normalise_links(value)


class ThoughtStatusChangeRequest(BaseModel):
    status: ThoughtStatus
    rejection_reason: str | None = Field(
        None, description="Kept only when the status is REJECTED."
    )

    @field_validator("rejection_reason", mode="before")
    @classmethod
    def _normalise_reason(cls, value: Any) -> str | None:
        return _optional_text(value, label="Rejection reason")


class ThoughtStatsResource(BaseModel):
    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]


# --- Onboarding --------------------------------------------------------------


class OnboardingImageResource(BaseModel):
    id: str
    image_url: str
    caption: str | None = None
    order: int


class OnboardingImageInput(BaseModel):
    image_url: str
    caption: str | None = None
    order: int | None = Field(
        None, description="Display position. Defaults to the position in the list."
    )

    @field_validator("image_url", mode="before")
    @classmethod
    def _validate_image_url(cls, value: Any) -> str:
        return _require_text(value, label="Image URL")

    @field_validator("caption", mode="before")
    @classmethod
    def _normalise_caption(cls, value: Any) -> str | None:
        return _optional_text(value, label="Caption")


class OnboardingImageOrderRequest(BaseModel):
    image_ids: list[str] = Field(
        ..., description="Every image identifier of the card in display order."
    )


class OnboardingCardReference(BaseModel):
    id: str
    title: str
    category: OnboardingCategory
    status: AssetStatus


class OnboardingCardResource(BaseModel):
    id: str
    title: str
    description: str | None = None
    category: OnboardingCategory
    status: AssetStatus
    order: int
    is_pinned: bool
    tags: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    parent_id: str | None = None
    images: list[OnboardingImageResource] = Field(default_factory=list)
    linked_entities: list[EntityReference] = Field(default_factory=list)
    created_by: UserReference | None = None
    child_count: int = 0
    comment_count: int = 0
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _serialise_timestamps(self, value: datetime) -> str:
        return _serialise_timestamp(value)


class OnboardingCardDetail(OnboardingCardResource):
    parent: OnboardingCardReference | None = None
    children: list[OnboardingCardReference] = Field(default_factory=list)
    comments: list[CommentResource] = Field(default_factory=list)


class OnboardingCardListResponse(BaseModel):
    data: list[OnboardingCardResource] = Field(default_factory=list)
    pagination: Pagination


class OnboardingGroup(BaseModel):
    category: OnboardingCategory
    items: list[OnboardingCardResource] = Field(default_factory=list)


class OnboardingGroupedResponse(BaseModel):
    data: list[OnboardingGroup] = Field(default_factory=list)


class OnboardingCardCreateRequest(BaseModel):
    title: str
    description: str | None = None
    category: OnboardingCategory = OnboardingCategory.OTHER
    status: AssetStatus = AssetStatus.DRAFT
    order: int = 0
    is_pinned: bool = False
    tags: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    parent_id: str | None = None
    images: list[OnboardingImageInput] = Field(default_factory=list)
    linked_entity_ids: list[str] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> str:
        return _require_text(value, label="Title")

    @field_validator("description", "parent_id", mode="before")
    @classmethod
    def _normalise_optional(cls, value: Any) -> str | None:
        return _optional_text(value, label="Field")

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> list[str]:
        return parse_tags(value)

    @field_validator("links", mode="before")
    @classmethod
    def _normalise_links(cls, value: Any) -> list[str]:
        return _normalise_links(value)

    @field_validator("linked_entity_ids", mode="before")
    @classmethod
    def _normalise_linked(cls, value: Any) -> list[str]:
        return _normalise_id_list(value)


class OnboardingCardUpdateRequest(BaseModel):
    """Partial update; ``images`` and ``linked_entity_ids`` replace existing rows."""

    title: str | None = None
    description: str | None = None
    category: OnboardingCategory | None = None
    status: AssetStatus | None = None
    order: int | None = None
    is_pinned: bool | None = None
    tags: list[str] | None = None
    links: list[str] | None = None
    parent_id: str | None = None
    images: list[OnboardingImageInput] | None = None
    linked_entity_ids: list[str] | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> str:
        return _require_text(value, label="Title")

    @field_validator("description", "parent_id", mode="before")
    @classmethod
    def _normalise_optional(cls, value: Any) -> str | None:
        return _optional_text(value, label="Field")

    @field_validator("category", "status", "order", "is_pinned", mode="before")
    @classmethod
    def _reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Field cannot be null when provided.")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> list[str]:
        return parse_tags(value)

    @field_validator("links", mode="before")
    @classmethod
    def _normalise_links(cls, value: Any) -> list[str]:
        return _normalise_links(value)

    @field_validator("linked_entity_ids", mode="before")
    @classmethod
    def _normalise_linked(cls, value: Any) -> list[str]:
        return _normalise_id_list(value)


class OnboardingStatsResource(BaseModel):
    total: int
    by_status: dict[str, int]
    by_category: dict[str, int]


# --- Units -------------------------------------------------------------------


class AttackInput(BaseModel):
    name: str
    hit_chance: float = Field(..., description="Probability of hitting, 0 to 1.")
    damage: int | None = None
    heal: int | None = None
    damage_source: DamageSource = DamageSource.WEAPON
    initiative: int = 50
    reach: AttackReach = AttackReach.ADJACENT
    targets: int = 1

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        return _require_text(value, label="Attack name")


class AttackResource(AttackInput):
    id: str


class UnitResource(BaseModel):
    id: str
    name: str
    role: UnitRole
    entity: EntityReference | None = None
    faction: EntityReference
    level: int
    xp_current: int
    xp_to_next: int
    hp_max: int
    armor: int
    immunities: list[str] = Field(default_factory=list)
    wards: list[str] = Field(default_factory=list)
    hp_regen_percent: float
    xp_on_kill: int
    description: str | None = None
    prev_evolution_id: str | None = None
    next_evolution_ids: list[str] = Field(default_factory=list)
    attacks: list[AttackResource] = Field(
        default_factory=list,
        description="Attacks ordered by descending initiative.",
    )
    created_by: UserReference | None = None
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _serialise_timestamps(self, value: datetime) -> str:
        return _serialise_timestamp(value)


class UnitListResponse(BaseModel):
    data: list[UnitResource] = Field(default_factory=list)
    pagination: Pagination


class UnitCreateRequest(BaseModel):
    faction_id: str
    name: str
    role: UnitRole = UnitRole.MELEE
    entity_id: str | None = Field(
        None, description="UNIT entity that this stat block describes."
    )
    level: int = 1
    xp_current: int = 0
    xp_to_next: int = 80
    hp_max: int
    armor: int = 0
    immunities: list[str] = Field(default_factory=list)
    wards: list[str] = Field(default_factory=list)
    hp_regen_percent: float = 0.0
    xp_on_kill: int = 0
    description: str | None = None
    prev_evolution_id: str | None = None
    next_evolution_ids: list[str] = Field(default_factory=list)
    attacks: list[AttackInput] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        return _require_text(value, label="Unit name")

    @field_validator("faction_id", mode="before")
    @classmethod
    def _validate_faction(cls, value: Any) -> str:
        return _require_text(value, label="Faction")

    @field_validator("entity_id", "description", "prev_evolution_id", mode="before")
    @classmethod
    def _normalise_optional(cls, value: Any) -> str | None:
        return _optional_text(value, label="Field")

    @field_validator("immunities", "wards", mode="before")
    @classmethod
    def _normalise_sources(cls, value: Any) -> list[str]:
        return [item.upper() for item in _normalise_id_list(value)]

    @field_validator("next_evolution_ids", mode="before")
    @classmethod
    def _normalise_evolutions(cls, value: Any) -> list[str]:
        return _normalise_id_list(value)


class UnitUpdateRequest(BaseModel):
    """Partial update; ``attacks`` replaces the whole attack list when given."""

    faction_id: str | None = None
    name: str | None = None
    role: UnitRole | None = None
    entity_id: str | None = None
    level: int | None = None
    xp_current: int | None = None
    xp_to_next: int | None = None
    hp_max: int | None = None
    armor: int | None = None
    immunities: list[str] | None = None
    wards: list[str] | None = None
    hp_regen_percent: float | None = None
    xp_on_kill: int | None = None
    description: str | None = None
    prev_evolution_id: str | None = None
    next_evolution_ids: list[str] | None = None
    attacks: list[AttackInput] | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        return _require_text(value, label="Unit name")

    @field_validator("faction_id", mode="before")
    @classmethod
    def _validate_faction(cls, value: Any) -> str:
        return _require_text(value, label="Faction")

    @field_validator(
        "role",
        "level",
        "xp_current",
        "xp_to_next",
        "hp_max",
        "armor",
        "hp_regen_percent",
        "xp_on_kill",
        mode="before",
    )
    @classmethod
    def _reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Field cannot be null when provided.")
        return value

    @field_validator("entity_id", "description", "prev_evolution_id", mode="before")
    @classmethod
    def _normalise_optional(cls, value: Any) -> str | None:
        return _optional_text(value, label="Field")

    @field_validator("immunities", "wards", mode="before")
    @classmethod
    def _normalise_sources(cls, value: Any) -> list[str]:
        return [item.upper() for item in _normalise_id_list(value)]

    @field_validator("next_evolution_ids", mode="before")
    @classmethod
    def _normalise_evolutions(cls, value: Any) -> list[str]:
        return _normalise_id_list(value)


class UnitStatsResource(BaseModel):
    total: int
    by_role: dict[str, int]


class FactionOptionsResponse(BaseModel):
    data: list[EntityReference] = Field(default_factory=list)


# --- Activity and dashboard --------------------------------------------------


class ActivityResource(BaseModel):
    id: str
    type: ActivityType
    description: str
    entity: EntityReference | None = None
    user: UserReference | None = None
    item_type: str | None = None
    item_id: str | None = None
    created_at: datetime

    @field_serializer("created_at")
    def _serialise_created_at(self, value: datetime) -> str:
        return _serialise_timestamp(value)


class ActivityListResponse(BaseModel):
    data: list[ActivityResource] = Field(default_factory=list)


class DashboardCounts(BaseModel):
    entities: int
    concept_arts: int
    lore_entries: int
    thoughts: int


class DashboardResource(BaseModel):
    """Overview shown on the dashboard landing page."""

    counts: DashboardCounts
    thoughts_by_status: dict[str, int]
    recent_activity: list[ActivityResource] = Field(default_factory=list)
    recent_concept_arts: list[ConceptArtResource] = Field(default_factory=list)


