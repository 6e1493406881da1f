"""Demo data for a fresh dashboard database."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .db import DatabaseManager
from .models import (
    AssetStatus,
    Attack,
    AttackReach,
    ConceptArt,
    DamageSource,
    GameEntity,
    GameEntityType,
    LoreEntry,
    LoreEntryVersion,
    LoreType,
    OnboardingCard,
    OnboardingCategory,
    Thought,
    ThoughtCategory,
    ThoughtPriority,
    ThoughtStatus,
    Unit,
    UnitRole,
    User,
)
from .permissions import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeedSummary:
    users: int = 0
    entities: int = 0
    units: int = 0
    concept_arts: int = 0
    lore_entries: int = 0
    thoughts: int = 0
    onboarding_cards: int = 0

    @property
    def skipped(self) -> bool:
        return self.users == 0


_USERS = (
    ("admin@gamedesk.dev", "Alex Morozov", Role.ADMIN),
    ("producer@gamedesk.dev", "Elena Sokolova", Role.EXECUTIVE_PRODUCER),
    ("artist@gamedesk.dev", "Maria Ivanova", Role.ARTIST),
    ("writer@gamedesk.dev", "Dmitry Petrov", Role.WRITER),
)

_ENTITIES = (
    (
        "HERO_NECROMANCER",
        "Necromancer",
        GameEntityType.HERO,
        "Master of the dark arts who raises the dead and commands the undead host.",
        "Lord of the undead",
    ),
    (
        "HERO_PALADIN",
        "Paladin",
        GameEntityType.HERO,
        "Holy warrior who blesses allies and deals heavy damage to the undead.",
        "Holy warrior of light",
    ),
    (
        "UNIT_SKELETON",
        "Skeleton Warrior",
        GameEntityType.UNIT,
        "Basic undead infantry. Cheap and numerous but weak alone.",
        "Basic undead unit",
    ),
    (
        "FACTION_UNDEAD",
        "Undead",
        GameEntityType.FACTION,
        "An army of the dead led by powerful necromancers.",
        "Army of darkness",
    ),
    (
        "FACTION_HAVEN",
        "Haven",
        GameEntityType.FACTION,
        "A human kingdom founded on faith and honour, strong in defence and healing.",
        "Kingdom of men",
    ),
    (
        "SPELL_DARK_RITUAL",
        "Dark Ritual",
        GameEntityType.SPELL,
        "Resurrects fallen enemies as allies of the caster.",
        "Raise the fallen",
    ),
)

# name, role, xp_to_next, hp_max, xp_on_kill, description, attack
_HAVEN_UNITS = (
    (
        "Acolyte",
        UnitRole.SUPPORT,
        80,
        50,
        20,
        "A devoted healer who channels life energy to restore wounded allies.",
        ("Healing Light", 1.0, None, 20, DamageSource.LIFE, 10, AttackReach.ANY, 1),
    ),
    (
        "Titan",
        UnitRole.MELEE,
        475,
        250,
        120,
        "A towering giant that crushes enemies with devastating blows.",
        ("Crushing Blow", 0.8, 60, None, DamageSource.WEAPON, 50, AttackReach.ADJACENT, 1),
    ),
    (
        "Squire",
        UnitRole.MELEE,
        80,
        100,
        20,
        "A young warrior in training and the backbone of the infantry.",
        ("Sword Strike", 0.8, 25, None, DamageSource.WEAPON, 50, AttackReach.ADJACENT, 1),
    ),
    (
        "Archer",
        UnitRole.RANGED,
        70,
        45,
        20,
        "A skilled marksman who strikes enemies from afar.",
        ("Arrow Shot", 0.8, 25, None, DamageSource.WEAPON, 60, AttackReach.ANY, 1),
    ),
    (
        "Apprentice",
        UnitRole.MAGE,
        75,
        35,
        15,
        "A novice air mage able to strike several targets at once.",
        ("Air Blast", 0.8, 15, None, DamageSource.AIR, 40, AttackReach.ANY, 6),
    ),
)

_NECROMANCER_STORY = """# Valoris, Lord of the Dead

Valoris was once a great healer of Haven.
The loss of his family to the plague set him on a dark path.

## Early years
Born to a family of herbalists, he showed a gift for life magic.

## The fall
After the plague he turned to forbidden texts."""

_CATEGORIES = (
    ("Balance", "Scale", "#ef4444"),
    ("Mechanics", "Cog", "#f59e0b"),
    ("Visuals", "Palette", "#6366f1"),
)


def _create_users(session: Session) -> dict[str, User]:
    users: dict[str, User] = {}
    for email, name, role in _USERS:
        user = User(email=email, name=name, role=role)
        session.add(user)
        users[role.value] = user
    return users


def _create_entities(session: Session, admin: User) -> dict[str, GameEntity]:
    entities: dict[str, GameEntity] = {}
    for code, name, entity_type, description, short_description in _ENTITIES:
        entity = GameEntity(
            code=code,
            name=name,
            type=entity_type,
            description=description,
            short_description=short_description,
            created_by=admin,
        )
        session.add(entity)
        entities[code] = entity
    return entities


def _create_units(session: Session, faction: GameEntity, admin: User) -> int:
    for name, role, xp_to_next, hp_max, xp_on_kill, description, attack in _HAVEN_UNITS:
        attack_name, hit_chance, damage, heal, source, initiative, reach, targets = attack
        session.add(
            Unit(
                faction=faction,
                name=name,
                role=role,
                xp_to_next=xp_to_next,
                hp_max=hp_max,
                hp_regen_percent=0.05,
                xp_on_kill=xp_on_kill,
                description=description,
                created_by=admin,
                attacks=[
                    Attack(
                        name=attack_name,
                        hit_chance=hit_chance,
                        damage=damage,
                        heal=heal,
                        damage_source=source,
                        initiative=initiative,
                        reach=reach,
                        targets=targets,
                    )
                ],
            )
        )
    return len(_HAVEN_UNITS)


def _create_concept_arts(
    session: Session, entities: dict[str, GameEntity], artist: User
) -> int:
    arts = [
        ConceptArt(
            title="Necromancer - main design",
            description="Final full-length design of the Necromancer hero.",
            image_url="/concept/necromancer.jpg",
            status=AssetStatus.APPROVED,
            tags=["hero", "undead", "final"],
            entity=entities["HERO_NECROMANCER"],
            created_by=artist,
        ),
        ConceptArt(
            title="Skeleton Warrior - variations",
            description="Three design variants of the skeleton warrior.",
            image_url="/concept/skeleton.jpg",
            status=AssetStatus.IN_REVIEW,
            tags=["unit", "undead"],
            entity=entities["UNIT_SKELETON"],
            created_by=artist,
        ),
        ConceptArt(
            title="Paladin - armour",
            description="Armour detail sheet for the Paladin.",
            image_url="/concept/paladin-armor.jpg",
            status=AssetStatus.DRAFT,
            tags=["hero", "haven", "wip"],
            entity=entities["HERO_PALADIN"],
            created_by=artist,
        ),
    ]
    session.add_all(arts)
    return len(arts)


def _create_lore(session: Session, entities: dict[str, GameEntity], admin: User) -> int:
    entries = [
        LoreEntry(
            title="The story of Valoris",
            content=_NECROMANCER_STORY,
            summary="Backstory of the game's main necromancer",
            lore_type=LoreType.BACKSTORY,
            status=AssetStatus.APPROVED,
            tags=["hero", "undead", "backstory"],
            entity=entities["HERO_NECROMANCER"],
            created_by=admin,
        ),
        LoreEntry(
            title="Structure of the Undead faction",
            content="# Undead hierarchy\n\nThe undead army is ranked by power and age.",
            summary="How the faction is organised",
            lore_type=LoreType.WORLD_BUILDING,
            status=AssetStatus.IN_REVIEW,
            tags=["faction", "lore"],
            entity=entities["FACTION_UNDEAD"],
            created_by=admin,
        ),
    ]
    for entry in entries:
        entry.versions.append(
            LoreEntryVersion(
                version=1,
                title=entry.title,
                content=entry.content,
                summary=entry.summary,
                change_note="Initial version",
                changed_by=admin,
            )
        )
    session.add_all(entries)
    return len(entries)


def _create_thoughts(
    session: Session, entities: dict[str, GameEntity], users: dict[str, User]
) -> int:
    admin = users[Role.ADMIN.value]
    categories = [
        ThoughtCategory(name=name, icon=icon, color=color, sort_order=index)
        for index, (name, icon, color) in enumerate(_CATEGORIES)
    ]
    session.add_all(categories)
    thoughts = [
        Thought(
            title="Necromancer PvP balance",
            content=(
                "Late game spell damage scales too hard after level 15. "
                "Cut base spell damage by 15% and lengthen cooldowns."
            ),
            status=ThoughtStatus.IN_PROGRESS,
            priority=ThoughtPriority.HIGH,
            entity=entities["HERO_NECROMANCER"],
            category=categories[0],
            tags=["balance", "pvp", "urgent"],
            color="#FF375F",
            is_pinned=True,
            assignee=users[Role.EXECUTIVE_PRODUCER.value],
            created_by=admin,
        ),
        Thought(
            title="New summoning mechanic",
            content="Let players sacrifice HP to empower summoned creatures.",
            status=ThoughtStatus.PENDING,
            priority=ThoughtPriority.MEDIUM,
            entity=entities["HERO_NECROMANCER"],
            category=categories[1],
            tags=["mechanics", "idea"],
            color="#FF9F0A",
            created_by=admin,
        ),
        Thought(
            title="Faction colour palette",
            content="Use colder blues and purples for the undead instead of green.",
            status=ThoughtStatus.APPROVED,
            priority=ThoughtPriority.LOW,
            entity=entities["FACTION_UNDEAD"],
            category=categories[2],
            tags=["visuals"],
            created_by=admin,
        ),
    ]
    session.add_all(thoughts)
    return len(thoughts)


def _create_onboarding(session: Session, admin: User) -> int:
    guidelines = OnboardingCard(
        title="Art guidelines",
        description="Start here before producing any concept art.",
        category=OnboardingCategory.GUIDELINES,
        status=AssetStatus.APPROVED,
        tags=["art", "start-here"],
        is_pinned=True,
        order=0,
        created_by=admin,
    )
    cards = [
        guidelines,
        OnboardingCard(
            title="Silhouette rules",
            description="Every unit must read clearly at 64px.",
            category=OnboardingCategory.GUIDELINES,
            status=AssetStatus.APPROVED,
            tags=["art"],
            order=1,
            parent=guidelines,
            created_by=admin,
        ),
        OnboardingCard(
            title="Where the game files live",
            description="Builds and source assets are on the studio share.",
            category=OnboardingCategory.GAME_FILES,
            status=AssetStatus.DRAFT,
            tags=["files"],
            order=0,
            links=["smb://studio/builds"],
            created_by=admin,
        ),
    ]
    session.add_all(cards)
    return len(cards)


def seed_database(database: DatabaseManager) -> SeedSummary:
    """Insert demo content unless the database already has users."""

    database.create_all()
    with database.session() as session:
        existing = session.scalar(select(func.count()).select_from(User)) or 0
        if existing:
            logger.info("Database already contains %d users; skipping seed", existing)
            return SeedSummary()

        users = _create_users(session)
        admin = users[Role.ADMIN.value]
        entities = _create_entities(session, admin)
        summary = SeedSummary(
            users=len(users),
            entities=len(entities),
            units=_create_units(session, entities["FACTION_HAVEN"], admin),
            concept_arts=_create_concept_arts(session, entities, users[Role.ARTIST.value]),
            lore_entries=_create_lore(session, entities, admin),
            thoughts=_create_thoughts(session, entities, users),
            onboarding_cards=_create_onboarding(session, admin),
        )
        session.flush()
    logger.info("Seeded demo data: %s", summary)
    return summary


__all__ = ["SeedSummary", "seed_database"]
