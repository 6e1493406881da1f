"""Relational models backing the dashboard."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base
from .permissions import Role


class GameEntityType(str, Enum):
    UNIT = "UNIT"
    HERO = "HERO"
    FACTION = "FACTION"
    SPELL = "SPELL"
    ARTIFACT = "ARTIFACT"
    LOCATION = "LOCATION"
    OBJECT = "OBJECT"
    OTHER = "OTHER"


class AssetStatus(str, Enum):
    """Review workflow shared by concept art, lore and onboarding cards."""

    DRAFT = "DRAFT"
    IN_REVIEW = "IN_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ARCHIVED = "ARCHIVED"


class LoreType(str, Enum):
    BACKSTORY = "BACKSTORY"
    BIOGRAPHY = "BIOGRAPHY"
    WORLD_BUILDING = "WORLD_BUILDING"
    DIALOGUE = "DIALOGUE"
    QUEST_TEXT = "QUEST_TEXT"
    FLAVOR_TEXT = "FLAVOR_TEXT"
    EVENT = "EVENT"
    MYTHOLOGY = "MYTHOLOGY"
    OTHER = "OTHER"


class ThoughtStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ThoughtPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class OnboardingCategory(str, Enum):
    DESIGN_SYSTEM = "DESIGN_SYSTEM"
    GAME_FILES = "GAME_FILES"
    GUIDELINES = "GUIDELINES"
    TOOLS = "TOOLS"
    REFERENCES = "REFERENCES"
    OTHER = "OTHER"


class UnitRole(str, Enum):
    MELEE = "MELEE"
    RANGED = "RANGED"
    MAGE = "MAGE"
    SUPPORT = "SUPPORT"


class DamageSource(str, Enum):
    WEAPON = "WEAPON"
    AIR = "AIR"
    FIRE = "FIRE"
    WATER = "WATER"
    EARTH = "EARTH"
    LIFE = "LIFE"
    DEATH = "DEATH"
    MIND = "MIND"


class AttackReach(str, Enum):
    ADJACENT = "ADJACENT"
    ANY = "ANY"


class ActivityType(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
    STATUS_CHANGED = "STATUS_CHANGED"
    COMMENTED = "COMMENTED"


THOUGHT_PRIORITY_RANK: dict[ThoughtPriority, int] = {
    ThoughtPriority.LOW: 0,
    ThoughtPriority.MEDIUM: 1,
    ThoughtPriority.HIGH: 2,
    ThoughtPriority.CRITICAL: 3,
}


def _generate_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_column(enum_type: type[Enum]) -> SAEnum:
    return SAEnum(enum_type, native_enum=False, length=32, validate_strings=True)


def _user_fk() -> ForeignKey:
    return ForeignKey("users.id", ondelete="SET NULL")


def _entity_fk(ondelete: str = "SET NULL") -> ForeignKey:
    return ForeignKey("game_entities.id", ondelete=ondelete)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[Role] = mapped_column(_enum_column(Role), default=Role.VIEWER)
    avatar_url: Mapped[str | None] = mapped_column(String(1024))


class GameEntity(TimestampMixin, Base):
    """A catalogued game object such as a hero, unit or faction."""

    __tablename__ = "game_entities"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[GameEntityType] = mapped_column(
        _enum_column(GameEntityType), nullable=False
    )
    description: Mapped[str | None] = mapped_column(Text)
    short_description: Mapped[str | None] = mapped_column(String(500))
    icon_url: Mapped[str | None] = mapped_column(String(1024))
    created_by_id: Mapped[str | None] = mapped_column(_user_fk())

    created_by: Mapped[User | None] = relationship()
    concept_arts: Mapped[list["ConceptArt"]] = relationship(back_populates="entity")
    lore_entries: Mapped[list["LoreEntry"]] = relationship(back_populates="entity")
    thoughts: Mapped[list["Thought"]] = relationship(back_populates="entity")
    lore_links: Mapped[list["LoreEntryEntity"]] = relationship(
        back_populates="entity", cascade="all, delete-orphan"
    )
    onboarding_links: Mapped[list["OnboardingCardEntity"]] = relationship(
        back_populates="entity", cascade="all, delete-orphan"
    )
    unit_profile: Mapped["Unit | None"] = relationship(
        back_populates="entity",
        foreign_keys="Unit.entity_id",
        cascade="all, delete-orphan",
        uselist=False,
    )
    faction_units: Mapped[list["Unit"]] = relationship(
        back_populates="faction", foreign_keys="Unit.faction_id"
    )
    activity_logs: Mapped[list["ActivityLog"]] = relationship(back_populates="entity")


class ConceptArt(TimestampMixin, Base):
    __tablename__ = "concept_arts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    thumbnail_url: Mapped[str | None] = mapped_column(String(1024))
    status: Mapped[AssetStatus] = mapped_column(
        _enum_column(AssetStatus), default=AssetStatus.DRAFT
    )
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    entity_id: Mapped[str | None] = mapped_column(_entity_fk())
    created_by_id: Mapped[str | None] = mapped_column(_user_fk())

    entity: Mapped[GameEntity | None] = relationship(back_populates="concept_arts")
    created_by: Mapped[User | None] = relationship()
    comments: Mapped[list["ConceptArtComment"]] = relationship(
        back_populates="concept_art",
        cascade="all, delete-orphan",
        order_by="ConceptArtComment.created_at",
    )


class LoreEntry(TimestampMixin, Base):
    __tablename__ = "lore_entries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str | None] = mapped_column(Text)
    lore_type: Mapped[LoreType] = mapped_column(_enum_column(LoreType), default=LoreType.OTHER)
    status: Mapped[AssetStatus] = mapped_column(
        _enum_column(AssetStatus), default=AssetStatus.DRAFT
    )
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    entity_id: Mapped[str | None] = mapped_column(_entity_fk())
    created_by_id: Mapped[str | None] = mapped_column(_user_fk())

    entity: Mapped[GameEntity | None] = relationship(back_populates="lore_entries")
    created_by: Mapped[User | None] = relationship()
    linked_entities: Mapped[list["LoreEntryEntity"]] = relationship(
        back_populates="lore_entry", cascade="all, delete-orphan"
    )
    versions: Mapped[list["LoreEntryVersion"]] = relationship(
        back_populates="lore_entry",
        cascade="all, delete-orphan",
        order_by="desc(LoreEntryVersion.version)",
    )
    comments: Mapped[list["LoreComment"]] = relationship(
        back_populates="lore_entry",
        cascade="all, delete-orphan",
        order_by="LoreComment.created_at",
    )


class LoreEntryEntity(Base):
    """Secondary links between a lore entry and the entities it mentions."""

    __tablename__ = "lore_entry_entities"

    lore_entry_id: Mapped[str] = mapped_column(
        ForeignKey("lore_entries.id", ondelete="CASCADE"), primary_key=True
    )
    entity_id: Mapped[str] = mapped_column(_entity_fk("CASCADE"), primary_key=True)

    lore_entry: Mapped[LoreEntry] = relationship(back_populates="linked_entities")
    entity: Mapped[GameEntity] = relationship(back_populates="lore_links")


class LoreEntryVersion(Base):
    __tablename__ = "lore_entry_versions"
    __table_args__ = (UniqueConstraint("lore_entry_id", "version"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    lore_entry_id: Mapped[str] = mapped_column(
        ForeignKey("lore_entries.id", ondelete="CASCADE"), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str | None] = mapped_column(Text)
    change_note: Mapped[str | None] = mapped_column(Text)
    changed_by_id: Mapped[str | None] = mapped_column(_user_fk())
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    lore_entry: Mapped[LoreEntry] = relationship(back_populates="versions")
    changed_by: Mapped[User | None] = relationship()


class ThoughtCategory(Base):
    __tablename__ = "thought_categories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    name_en: Mapped[str | None] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text)
    icon: Mapped[str] = mapped_column(String(100), default="Lightbulb")
    color: Mapped[str] = mapped_column(String(32), default="#6366f1")
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_by_id: Mapped[str | None] = mapped_column(_user_fk())
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    thoughts: Mapped[list["Thought"]] = relationship(back_populates="category")


class Thought(TimestampMixin, Base):
    __tablename__ = "thoughts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ThoughtStatus] = mapped_column(
        _enum_column(ThoughtStatus), default=ThoughtStatus.DRAFT
    )
    priority: Mapped[ThoughtPriority] = mapped_column(
        _enum_column(ThoughtPriority), default=ThoughtPriority.MEDIUM
    )
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    links: Mapped[list[str]] = mapped_column(JSON, default=list)
    color: Mapped[str | None] = mapped_column(String(32))
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    entity_id: Mapped[str | None] = mapped_column(_entity_fk())
    category_id: Mapped[str | None] = mapped_column(
        ForeignKey("thought_categories.id", ondelete="SET NULL")
    )
    assignee_id: Mapped[str | None] = mapped_column(_user_fk())
    created_by_id: Mapped[str | None] = mapped_column(_user_fk())

    entity: Mapped[GameEntity | None] = relationship(back_populates="thoughts")
    category: Mapped[ThoughtCategory | None] = relationship(back_populates="thoughts")
    assignee: Mapped[User | None] = relationship(foreign_keys=[assignee_id])
    created_by: Mapped[User | None] = relationship(foreign_keys=[created_by_id])
    comments: Mapped[list["ThoughtComment"]] = relationship(
        back_populates="thought",
        cascade="all, delete-orphan",
        order_by="ThoughtComment.created_at",
    )


class OnboardingCard(TimestampMixin, Base):
    """Reference material for new team members, optionally nested under a parent."""

    __tablename__ = "onboarding_cards"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[OnboardingCategory] = mapped_column(
        _enum_column(OnboardingCategory), default=OnboardingCategory.OTHER
    )
    status: Mapped[AssetStatus] = mapped_column(
        _enum_column(AssetStatus), default=AssetStatus.DRAFT
    )
    order: Mapped[int] = mapped_column(Integer, default=0)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    links: Mapped[list[str]] = mapped_column(JSON, default=list)
    parent_id: Mapped[str | None] = mapped_column(
        ForeignKey("onboarding_cards.id", ondelete="SET NULL")
    )
    created_by_id: Mapped[str | None] = mapped_column(_user_fk())

    parent: Mapped["OnboardingCard | None"] = relationship(
        back_populates="children", remote_side="OnboardingCard.id"
    )
    children: Mapped[list["OnboardingCard"]] = relationship(
        back_populates="parent", order_by="OnboardingCard.order"
    )
    created_by: Mapped[User | None] = relationship()
    images: Mapped[list["OnboardingImage"]] = relationship(
        back_populates="card",
        cascade="all, delete-orphan",
        order_by="OnboardingImage.order",
    )
    linked_entities: Mapped[list["OnboardingCardEntity"]] = relationship(
        back_populates="card", cascade="all, delete-orphan"
    )
    comments: Mapped[list["OnboardingComment"]] = relationship(
        back_populates="card",
        cascade="all, delete-orphan",
        order_by="OnboardingComment.created_at",
    )


class OnboardingImage(Base):
    __tablename__ = "onboarding_images"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    card_id: Mapped[str] = mapped_column(
        ForeignKey("onboarding_cards.id", ondelete="CASCADE"), nullable=False
    )
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    caption: Mapped[str | None] = mapped_column(String(500))
    order: Mapped[int] = mapped_column(Integer, default=0)

    card: Mapped[OnboardingCard] = relationship(back_populates="images")


class OnboardingCardEntity(Base):
    __tablename__ = "onboarding_card_entities"

    card_id: Mapped[str] = mapped_column(
        ForeignKey("onboarding_cards.id", ondelete="CASCADE"), primary_key=True
    )
    entity_id: Mapped[str] = mapped_column(_entity_fk("CASCADE"), primary_key=True)

    card: Mapped[OnboardingCard] = relationship(back_populates="linked_entities")
    entity: Mapped[GameEntity] = relationship(back_populates="onboarding_links")


class ConceptArtComment(Base):
    __tablename__ = "concept_art_comments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    concept_art_id: Mapped[str] = mapped_column(
        ForeignKey("concept_arts.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[str | None] = mapped_column(_user_fk())
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    concept_art: Mapped[ConceptArt] = relationship(back_populates="comments")
    author: Mapped[User | None] = relationship()


class LoreComment(Base):
    __tablename__ = "lore_comments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    lore_entry_id: Mapped[str] = mapped_column(
        ForeignKey("lore_entries.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[str | None] = mapped_column(_user_fk())
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    lore_entry: Mapped[LoreEntry] = relationship(back_populates="comments")
    author: Mapped[User | None] = relationship()


class ThoughtComment(Base):
    __tablename__ = "thought_comments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    thought_id: Mapped[str] = mapped_column(
        ForeignKey("thoughts.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[str | None] = mapped_column(_user_fk())
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    thought: Mapped[Thought] = relationship(back_populates="comments")
    author: Mapped[User | None] = relationship()


class OnboardingComment(Base):
    __tablename__ = "onboarding_comments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    card_id: Mapped[str] = mapped_column(
        ForeignKey("onboarding_cards.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[str | None] = mapped_column(_user_fk())
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    card: Mapped[OnboardingCard] = relationship(back_populates="comments")
    author: Mapped[User | None] = relationship()


class Unit(TimestampMixin, Base):
    """Combat statistics for a unit belonging to a faction."""

    __tablename__ = "units"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    entity_id: Mapped[str | None] = mapped_column(_entity_fk("CASCADE"), unique=True)
    faction_id: Mapped[str] = mapped_column(
        ForeignKey("game_entities.id", ondelete="RESTRICT"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[UnitRole] = mapped_column(_enum_column(UnitRole), default=UnitRole.MELEE)
    level: Mapped[int] = mapped_column(Integer, default=1)
    xp_current: Mapped[int] = mapped_column(Integer, default=0)
    xp_to_next: Mapped[int] = mapped_column(Integer, default=80)
    hp_max: Mapped[int] = mapped_column(Integer, nullable=False)
    armor: Mapped[int] = mapped_column(Integer, default=0)
    immunities: Mapped[list[str]] = mapped_column(JSON, default=list)
    wards: Mapped[list[str]] = mapped_column(JSON, default=list)
    hp_regen_percent: Mapped[float] = mapped_column(Float, default=0.0)
    xp_on_kill: Mapped[int] = mapped_column(Integer, default=0)
    description: Mapped[str | None] = mapped_column(Text)
    prev_evolution_id: Mapped[str | None] = mapped_column(String(64))
    next_evolution_ids: Mapped[list[str]] = mapped_column(JSON, default=list)
    created_by_id: Mapped[str | None] = mapped_column(_user_fk())

    entity: Mapped[GameEntity | None] = relationship(
        back_populates="unit_profile", foreign_keys=[entity_id]
    )
    faction: Mapped[GameEntity] = relationship(
        back_populates="faction_units", foreign_keys=[faction_id]
    )
    created_by: Mapped[User | None] = relationship()
    attacks: Mapped[list["Attack"]] = relationship(
        back_populates="unit",
        cascade="all, delete-orphan",
        order_by="desc(Attack.initiative)",
    )


class Attack(Base):
    __tablename__ = "attacks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    unit_id: Mapped[str] = mapped_column(
        ForeignKey("units.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    hit_chance: Mapped[float] = mapped_column(Float, nullable=False)
    damage: Mapped[int | None] = mapped_column(Integer)
    heal: Mapped[int | None] = mapped_column(Integer)
    damage_source: Mapped[DamageSource] = mapped_column(
        _enum_column(DamageSource), default=DamageSource.WEAPON
    )
    initiative: Mapped[int] = mapped_column(Integer, default=50)
    reach: Mapped[AttackReach] = mapped_column(
        _enum_column(AttackReach), default=AttackReach.ADJACENT
    )
    targets: Mapped[int] = mapped_column(Integer, default=1)

    unit: Mapped[Unit] = relationship(back_populates="attacks")


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_generate_id)
    type: Mapped[ActivityType] = mapped_column(_enum_column(ActivityType), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    entity_id: Mapped[str | None] = mapped_column(_entity_fk())
    user_id: Mapped[str | None] = mapped_column(_user_fk())
    # ``metadata`` is reserved on declarative classes.
    details: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    entity: Mapped[GameEntity | None] = relationship(back_populates="activity_logs")
    user: Mapped[User | None] = relationship()


__all__ = [
    "ActivityLog",
    "ActivityType",
    "AssetStatus",
    "Attack",
    "AttackReach",
    "ConceptArt",
    "ConceptArtComment",
    "DamageSource",
    "GameEntity",
    "GameEntityType",
    "LoreComment",
    "LoreEntry",
    "LoreEntryEntity",
    "LoreEntryVersion",
    "LoreType",
    "OnboardingCard",
    "OnboardingCardEntity",
    "OnboardingCategory",
    "OnboardingComment",
    "OnboardingImage",
    "THOUGHT_PRIORITY_RANK",
    "Thought",
    "ThoughtCategory",
    "ThoughtComment",
    "ThoughtPriority",
    "ThoughtStatus",
    "Unit",
    "UnitRole",
    "User",
]
