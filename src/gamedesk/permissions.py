"""Role based access rules for the dashboard modules."""

from __future__ import annotations

import hmac
from enum import Enum


class Role(str, Enum):
    """Team roles recognised by the dashboard."""

    ADMIN = "ADMIN"
    EXECUTIVE_PRODUCER = "EXECUTIVE_PRODUCER"
    CREATIVE_DIRECTOR = "CREATIVE_DIRECTOR"
    CONCEPT_ARTIST = "CONCEPT_ARTIST"
    ARTIST = "ARTIST"
    WRITER = "WRITER"
    VIEWER = "VIEWER"


class Module(str, Enum):
    """Top level areas of the dashboard that access rules are expressed for."""

    DASHBOARD = "dashboard"
    ONBOARDING = "onboarding"
    ENTITIES = "entities"
    THOUGHTS = "thoughts"
    CONCEPT_ART = "concept-art"
    LORE = "lore"


class PermissionDeniedError(RuntimeError):
    """Raised when a user attempts an action their role does not allow."""

    def __init__(self, message: str, *, role: Role | None = None) -> None:
        super().__init__(message)
        self.role = role


DEFAULT_DELETE_PASSWORD = "deleteit"

ROLE_LEVELS: dict[Role, int] = {
    Role.ADMIN: 100,
    Role.EXECUTIVE_PRODUCER: 80,
    Role.CREATIVE_DIRECTOR: 70,
    Role.CONCEPT_ARTIST: 35,
    Role.ARTIST: 30,
    Role.WRITER: 30,
    Role.VIEWER: 10,
}

_ALL_MODULES: tuple[Module, ...] = (
    Module.DASHBOARD,
    Module.ONBOARDING,
    Module.ENTITIES,
    Module.THOUGHTS,
    Module.CONCEPT_ART,
    Module.LORE,
)

MODULE_VIEW_ACCESS: dict[Role, tuple[Module, ...]] = {
    Role.ADMIN: _ALL_MODULES,
    Role.EXECUTIVE_PRODUCER: _ALL_MODULES,
    Role.CREATIVE_DIRECTOR: _ALL_MODULES,
    Role.CONCEPT_ARTIST: (
        Module.DASHBOARD,
        Module.ONBOARDING,
        Module.ENTITIES,
        Module.CONCEPT_ART,
    ),
    Role.ARTIST: (
        Module.DASHBOARD,
        Module.ONBOARDING,
        Module.ENTITIES,
        Module.CONCEPT_ART,
    ),
    Role.WRITER: (Module.DASHBOARD, Module.ONBOARDING, Module.ENTITIES, Module.LORE),
    Role.VIEWER: (Module.DASHBOARD, Module.ONBOARDING, Module.ENTITIES),
}

MODULE_EDIT_ACCESS: dict[Role, tuple[Module, ...]] = {
    Role.ADMIN: _ALL_MODULES,
    Role.EXECUTIVE_PRODUCER: _ALL_MODULES,
    Role.CREATIVE_DIRECTOR: _ALL_MODULES,
    Role.CONCEPT_ARTIST: (Module.CONCEPT_ART,),
    Role.ARTIST: (Module.CONCEPT_ART,),
    Role.WRITER: (Module.LORE,),
    Role.VIEWER: (),
}

_THOUGHT_APPROVER_ROLES = frozenset({Role.ADMIN, Role.EXECUTIVE_PRODUCER})


def has_role(user_role: Role, required_role: Role) -> bool:
    """Return ``True`` when ``user_role`` ranks at least as high as ``required_role``."""

    return ROLE_LEVELS[user_role] >= ROLE_LEVELS[required_role]


def is_admin(role: Role) -> bool:
    return role is Role.ADMIN


def can_view_module(role: Role, module: Module) -> bool:
    return module in MODULE_VIEW_ACCESS.get(role, ())


def can_edit_module(role: Role, module: Module) -> bool:
    return module in MODULE_EDIT_ACCESS.get(role, ())


def visible_modules(role: Role) -> list[Module]:
    return list(MODULE_VIEW_ACCESS.get(role, ()))


def editable_modules(role: Role) -> list[Module]:
    return list(MODULE_EDIT_ACCESS.get(role, ()))


def can_delete(role: Role) -> bool:
    """Only administrators may delete records."""

    return role is Role.ADMIN


def verify_delete_password(
    password: str | None, *, expected: str = DEFAULT_DELETE_PASSWORD
) -> bool:
    """Return ``True`` when ``password`` matches the configured confirmation phrase."""

    if not password:
        return False
    return hmac.compare_digest(password.encode("utf-8"), expected.encode("utf-8"))


def can_delete_with_password(
    role: Role, password: str | None, *, expected: str = DEFAULT_DELETE_PASSWORD
) -> bool:
    return can_delete(role) and verify_delete_password(password, expected=expected)


def can_comment(role: Role, module: Module) -> bool:
    """Anyone able to see a module may comment on its records."""

    return can_view_module(role, module)


def can_approve_thoughts(role: Role) -> bool:
    return role in _THOUGHT_APPROVER_ROLES


def can_upload(role: Role) -> bool:
    return can_edit_module(role, Module.CONCEPT_ART) or has_role(
        role, Role.CREATIVE_DIRECTOR
    )


def require_view(role: Role, module: Module) -> None:
    if not can_view_module(role, module):
        raise PermissionDeniedError(
            f"Role '{role.value}' cannot access the {module.value} module.", role=role
        )


def require_edit(role: Role, module: Module) -> None:
    if not can_edit_module(role, module):
        raise PermissionDeniedError(
            f"Role '{role.value}' cannot modify records in the {module.value} module.",
            role=role,
        )


def require_delete(
    role: Role, password: str | None, *, expected: str = DEFAULT_DELETE_PASSWORD
) -> None:
    if not can_delete(role):
        raise PermissionDeniedError("Only administrators can delete records.", role=role)
    if not verify_delete_password(password, expected=expected):
        raise PermissionDeniedError("Delete confirmation password is incorrect.", role=role)


__all__ = [
    "DEFAULT_DELETE_PASSWORD",
    "MODULE_EDIT_ACCESS",
    "MODULE_VIEW_ACCESS",
    "Module",
    "PermissionDeniedError",
    "ROLE_LEVELS",
    "Role",
    "can_approve_thoughts",
    "can_comment",
    "can_delete",
    "can_delete_with_password",
    "can_edit_module",
    "can_upload",
    "can_view_module",
    "editable_modules",
    "has_role",
    "is_admin",
    "require_delete",
    "require_edit",
    "require_view",
    "verify_delete_password",
    "visible_modules",
]
