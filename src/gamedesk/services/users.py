"""Team member accounts and the acting-user lookup used by every endpoint."""

from __future__ import annotations

import logging

from sqlalchemy import func, select

from ..models import User
from ..permissions import (
    ROLE_LEVELS,
    PermissionDeniedError,
    can_approve_thoughts,
    can_delete,
    can_upload,
    editable_modules,
    is_admin,
    visible_modules,
)
from ..resources import (
    UserCreateRequest,
    UserListResponse,
    UserPermissionsResource,
    UserResource,
    UserUpdateRequest,
)
from .common import Actor, AuthenticationRequiredError, RecordConflictError, ServiceBase

logger = logging.getLogger(__name__)


def _build_user_resource(user: User) -> UserResource:
    return UserResource(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        avatar_url=user.avatar_url,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class UserService(ServiceBase):
    """Manage team member accounts."""

    def resolve_actor(self, user_id: str | None) -> Actor:
        """Return the :class:`Actor` for ``user_id``.

        Raises:
            AuthenticationRequiredError: When ``user_id`` is missing or does not
                identify a registered user.
        """

        if user_id is None or not user_id.strip():
            raise AuthenticationRequiredError("An acting user must be provided.")

        with self._database.session() as session:
            user = session.get(User, user_id.strip())
            if user is None:
                raise AuthenticationRequiredError(
                    f"User '{user_id}' is not a registered team member."
                )
            return Actor.from_user(user)

    def list_users(self, actor: Actor) -> UserListResponse:
        del actor  # Any registered member may see the team list.
        with self._database.session() as session:
            users = session.scalars(select(User).order_by(User.name, User.email)).all()
            return UserListResponse(data=[_build_user_resource(user) for user in users])

    def get_user(self, actor: Actor, user_id: str) -> UserResource:
        del actor
        with self._database.session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise KeyError(f"User '{user_id}' does not exist.")
            return _build_user_resource(user)

    def create_user(self, actor: Actor | None, payload: UserCreateRequest) -> UserResource:
        """Register a team member.

        The very first account may be created without an acting user so a
        fresh installation can bootstrap its administrator. Afterwards only
        administrators may add accounts.
        """

        with self._database.session() as session:
            existing_count = session.scalar(select(func.count()).select_from(User)) or 0
            if existing_count:
                if actor is None:
                    raise AuthenticationRequiredError("An acting user must be provided.")
                if not is_admin(actor.role):
                    logger.warning("User %s denied account creation", actor.id)
                    raise PermissionDeniedError(
                        "Only administrators can register team members.", role=actor.role
                    )

            duplicate = session.scalar(select(User).where(User.email == payload.email))
            if duplicate is not None:
                raise RecordConflictError(
                    f"A user with email '{payload.email}' already exists."
                )

            user = User(
                email=payload.email,
                name=payload.name,
                role=payload.role,
                avatar_url=payload.avatar_url,
            )
            session.add(user)
            session.flush()
            logger.info("Registered user %s with role %s", user.id, user.role.value)
            return _build_user_resource(user)

    def update_user(
        self, actor: Actor, user_id: str, payload: UserUpdateRequest
    ) -> UserResource:
        """Update a profile. Members may edit their own name and avatar only."""

        with self._database.session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise KeyError(f"User '{user_id}' does not exist.")

            fields = payload.model_fields_set
            if not is_admin(actor.role):
                if actor.id != user.id or "role" in fields:
                    logger.warning("User %s denied update of user %s", actor.id, user_id)
                    raise PermissionDeniedError(
                        "Only administrators can change other accounts or roles.",
                        role=actor.role,
                    )

            if "name" in fields and payload.name is not None:
                user.name = payload.name
            if "role" in fields and payload.role is not None:
                user.role = payload.role
            if "avatar_url" in fields:
                user.avatar_url = payload.avatar_url

            session.flush()
            logger.info("Updated user %s", user.id)
            return _build_user_resource(user)

    def get_permissions(self, actor: Actor, user_id: str) -> UserPermissionsResource:
        del actor
        with self._database.session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise KeyError(f"User '{user_id}' does not exist.")
            role = user.role

        return UserPermissionsResource(
            user_id=user_id,
            role=role,
            level=ROLE_LEVELS[role],
            visible_modules=visible_modules(role),
            editable_modules=editable_modules(role),
            can_delete=can_delete(role),
            can_approve_thoughts=can_approve_thoughts(role),
            can_upload=can_upload(role),
        )


__all__ = ["UserService"]
