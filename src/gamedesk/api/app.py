"""FastAPI application exposing the game production dashboard."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import Body, Depends, FastAPI, HTTPException, Query

from ..db import DatabaseManager
from ..logging_config import setup_logging
from ..models import (
    AssetStatus,
    GameEntityType,
    LoreType,
    OnboardingCategory,
    ThoughtPriority,
    ThoughtStatus,
    UnitRole,
)
from ..permissions import PermissionDeniedError
from ..resources import (
    ActivityListResponse,
    CommentCreateRequest,
    CommentListResponse,
    CommentResource,
    ConceptArtCreateRequest,
    ConceptArtDetail,
    ConceptArtGroupedResponse,
    ConceptArtListResponse,
    ConceptArtStatsResource,
    ConceptArtUpdateRequest,
    DashboardResource,
    DeleteConfirmationRequest,
    EntityCreateRequest,
    EntityDetail,
    EntityListResponse,
    EntityOptionsResponse,
    EntityStatsResource,
    EntityUpdateRequest,
    FactionOptionsResponse,
    LoreEntryCreateRequest,
    LoreEntryDetail,
    LoreEntryListResponse,
    LoreEntryUpdateRequest,
    LoreGroupedResponse,
    LoreStatsResource,
    LoreVersionDiffResponse,
    LoreVersionListResponse,
    LoreVersionResource,
    OnboardingCardCreateRequest,
    OnboardingCardDetail,
    OnboardingCardListResponse,
    OnboardingCardUpdateRequest,
    OnboardingGroupedResponse,
    OnboardingImageInput,
    OnboardingImageOrderRequest,
    OnboardingImageResource,
    OnboardingStatsResource,
    StatusChangeRequest,
    TagListResponse,
    ThoughtCategoryCreateRequest,
    ThoughtCategoryListResponse,
    ThoughtCategoryResource,
    ThoughtCreateRequest,
    ThoughtDetail,
    ThoughtListResponse,
    ThoughtStatsResource,
    ThoughtStatusChangeRequest,
    ThoughtUpdateRequest,
    UnitCreateRequest,
    UnitListResponse,
    UnitResource,
    UnitStatsResource,
    UnitUpdateRequest,
    UserCreateRequest,
    UserListResponse,
    UserPermissionsResource,
    UserResource,
    UserUpdateRequest,
)
from ..services import (
    Actor,
    AuthenticationRequiredError,
    ConceptArtService,
    DashboardService,
    EntityService,
    LoreService,
    OnboardingService,
    RecordConflictError,
    ThoughtService,
    UnitService,
    UserService,
)
from ..services.common import MAX_PAGE_SIZE
from ..services.concept_art import ConceptArtSort
from ..services.entities import EntitySort
from ..services.lore import LoreSort
from ..services.onboarding import OnboardingSort
from ..services.thoughts import ThoughtSort
from ..services.units import UnitSort
from .settings import DashboardApiSettings

logger = logging.getLogger(__name__)

MAX_ACTIVITY_LIMIT = 100


@contextmanager
def _translate_errors() -> Iterator[None]:
    """Map service exceptions onto HTTP error responses."""

    try:
        yield
    except KeyError as exc:
        # ``str(KeyError)`` wraps the message in quotes.
        detail = exc.args[0] if exc.args else "Not found."
        raise HTTPException(status_code=404, detail=str(detail)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except AuthenticationRequiredError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except RecordConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except RuntimeError as exc:
        logger.exception("Unexpected error while handling request")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


def _confirm_password(payload: DeleteConfirmationRequest | None) -> str | None:
    return payload.confirm_password if payload is not None else None


def create_app(
    settings: DashboardApiSettings | None = None,
    *,
    database: DatabaseManager | None = None,
) -> FastAPI:
    """Create a FastAPI app exposing the dashboard endpoints."""

    resolved_settings = settings or DashboardApiSettings.from_env()
    setup_logging(resolved_settings.log_level)

    db = database
    if db is None:
        db = DatabaseManager(
            resolved_settings.database_url, echo=resolved_settings.echo_sql
        )
    db.create_all()

    service_options: dict[str, Any] = {
        "delete_password": resolved_settings.delete_password
    }
    users = UserService(db, **service_options)
    entities = EntityService(db, **service_options)
    concept_art = ConceptArtService(db, **service_options)
    lore = LoreService(db, **service_options)
    thoughts = ThoughtService(db, **service_options)
    onboarding = OnboardingService(db, **service_options)
    units = UnitService(db, **service_options)
    dashboard = DashboardService(db, concept_art=concept_art, **service_options)
    default_activity_limit = min(
        resolved_settings.recent_activity_limit, MAX_ACTIVITY_LIMIT
    )

    def current_actor(
        acting_user_id: str | None = Query(
            None,
            description="Identifier of the team member performing the request.",
        ),
    ) -> Actor:
        with _translate_errors():
            return users.resolve_actor(acting_user_id)

    tags_metadata = [
        {
            "name": "Users",
            "description": "Team member accounts, roles and module permissions.",
        },
        {
            "name": "Entities",
            "description": (
                "Catalogue of heroes, units, factions, spells, artifacts and "
                "locations that other content links to."
            ),
        },
        {
            "name": "Concept Art",
            "description": "Concept art gallery with review workflow and comments.",
        },
        {
            "name": "Lore",
            "description": (
                "Narrative entries with version history, line diffs and restore."
            ),
        },
        {
            "name": "Thoughts",
            "description": "Ideas and tasks with priorities, assignees and approval.",
        },
        {
            "name": "Onboarding",
            "description": "Reference cards for new team members, with images.",
        },
        {
            "name": "Units",
            "description": "Combat stat blocks and attacks for faction units.",
        },
        {
            "name": "Dashboard",
            "description": "Overview counts and the team activity feed.",
        },
    ]

    app = FastAPI(
        title="Game Production Dashboard API",
        version="0.1.0",
        description=(
            "HTTP API for cataloguing game entities and the concept art, lore, "
            "thoughts and onboarding material attached to them."
        ),
        openapi_tags=tags_metadata,
    )
    app.state.settings = resolved_settings
    app.state.database = db

    # --- Users ---------------------------------------------------------------

    @app.get("/api/users", response_model=UserListResponse, tags=["Users"])
    def list_users(actor: Actor = Depends(current_actor)) -> UserListResponse:
        with _translate_errors():
            return users.list_users(actor)

    @app.post(
        "/api/users",
        response_model=UserResource,
        status_code=201,
        tags=["Users"],
    )
    def create_user(
        payload: UserCreateRequest,
        acting_user_id: str | None = Query(
            None,
            description=(
                "Administrator registering the account. Optional only while no "
                "users exist."
            ),
        ),
    ) -> UserResource:
        with _translate_errors():
            actor = users.resolve_actor(acting_user_id) if acting_user_id else None
            return users.create_user(actor, payload)

    @app.get("/api/users/{user_id}", response_model=UserResource, tags=["Users"])
    def get_user(user_id: str, actor: Actor = Depends(current_actor)) -> UserResource:
        with _translate_errors():
            return users.get_user(actor, user_id)

    @app.put("/api/users/{user_id}", response_model=UserResource, tags=["Users"])
    def update_user(
        user_id: str,
        payload: UserUpdateRequest,
        actor: Actor = Depends(current_actor),
    ) -> UserResource:
        with _translate_errors():
            return users.update_user(actor, user_id, payload)

    @app.get(
        "/api/users/{user_id}/permissions",
        response_model=UserPermissionsResource,
        tags=["Users"],
    )
    def get_user_permissions(
        user_id: str, actor: Actor = Depends(current_actor)
    ) -> UserPermissionsResource:
        with _translate_errors():
            return users.get_permissions(actor, user_id)

    # --- Entities ------------------------------------------------------------

    @app.get("/api/entities", response_model=EntityListResponse, tags=["Entities"])
    def list_entities(
        *,
        entity_type: GameEntityType | None = Query(None, alias="type"),
        search: str | None = Query(
            None, description="Case-insensitive match on name, code or description."
        ),
        sort: EntitySort = Query("newest"),
        page: int = Query(1, ge=1),
        page_size: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
        actor: Actor = Depends(current_actor),
    ) -> EntityListResponse:
        with _translate_errors():
            return entities.list_entities(
                actor,
                entity_type=entity_type,
                search=search,
                sort=sort,
                page=page,
                page_size=page_size,
            )

    @app.get(
        "/api/entities/stats", response_model=EntityStatsResource, tags=["Entities"]
    )
    def get_entity_stats(actor: Actor = Depends(current_actor)) -> EntityStatsResource:
        with _translate_errors():
            return entities.get_stats(actor)

    @app.get(
        "/api/entities/options",
        response_model=EntityOptionsResponse,
        tags=["Entities"],
    )
    def list_entity_options(
        entity_type: GameEntityType | None = Query(None, alias="type"),
        actor: Actor = Depends(current_actor),
    ) -> EntityOptionsResponse:
        with _translate_errors():
            return entities.list_options(actor, entity_type=entity_type)

    @app.post(
        "/api/entities",
        response_model=EntityDetail,
        status_code=201,
        tags=["Entities"],
    )
    def create_entity(
        payload: EntityCreateRequest, actor: Actor = Depends(current_actor)
    ) -> EntityDetail:
        with _translate_errors():
            return entities.create_entity(actor, payload)

    @app.get("/api/entities/{entity_id}", response_model=EntityDetail, tags=["Entities"])
    def get_entity(entity_id: str, actor: Actor = Depends(current_actor)) -> EntityDetail:
        with _translate_errors():
            return entities.get_entity(actor, entity_id)

    @app.put("/api/entities/{entity_id}", response_model=EntityDetail, tags=["Entities"])
    def update_entity(
        entity_id: str,
        payload: EntityUpdateRequest,
        actor: Actor = Depends(current_actor),
    ) -> EntityDetail:
        with _translate_errors():
            return entities.update_entity(actor, entity_id, payload)

    @app.delete("/api/entities/{entity_id}", status_code=204, tags=["Entities"])
    def delete_entity(
        entity_id: str,
        payload: DeleteConfirmationRequest | None = Body(None),
        actor: Actor = Depends(current_actor),
    ) -> None:
        with _translate_errors():
            entities.delete_entity(actor, entity_id, _confirm_password(payload))

    # --- Concept art ---------------------------------------------------------

    @app.get(
        "/api/concept-arts",
        response_model=ConceptArtListResponse,
        tags=["Concept Art"],
    )
    def list_concept_arts(
        *,
        status: AssetStatus | None = Query(None),
        entity_id: str | None = Query(None),
        entity_type: GameEntityType | None = Query(None),
        search: str | None = Query(
            None, description="Case-insensitive match on title or description."
        ),
        created_by_id: str | None = Query(None),
        tag: str | None = Query(None),
        sort: ConceptArtSort = Query("newest"),
        page: int = Query(1, ge=1),
        page_size: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
        actor: Actor = Depends(current_actor),
    ) -> ConceptArtListResponse:
        with _translate_errors():
            return concept_art.list_concept_arts(
                actor,
                status=status,
                entity_id=entity_id,
                entity_type=entity_type,
                search=search,
                created_by_id=created_by_id,
                tag=tag,
                sort=sort,
                page=page,
                page_size=page_size,
            )

    @app.get(
        "/api/concept-arts/stats",
        response_model=ConceptArtStatsResource,
        tags=["Concept Art"],
    )
    def get_concept_art_stats(
        actor: Actor = Depends(current_actor),
    ) -> ConceptArtStatsResource:
        with _translate_errors():
            return concept_art.get_stats(actor)

    @app.get(
        "/api/concept-arts/tags", response_model=TagListResponse, tags=["Concept Art"]
    )
    def list_concept_art_tags(actor: Actor = Depends(current_actor)) -> TagListResponse:
        with _translate_errors():
            return concept_art.list_tags(actor)

    @app.get(
        "/api/concept-arts/grouped",
        response_model=ConceptArtGroupedResponse,
        tags=["Concept Art"],
    )
    def list_grouped_concept_arts(
        *,
        status: AssetStatus | None = Query(None),
        entity_type: GameEntityType | None = Query(None),
        search: str | None = Query(None),
        tag: str | None = Query(None),
        sort: ConceptArtSort = Query("newest"),
        actor: Actor = Depends(current_actor),
    ) -> ConceptArtGroupedResponse:
        with _translate_errors():
            return concept_art.list_grouped(
                actor,
                status=status,
                entity_type=entity_type,
                search=search,
                tag=tag,
                sort=sort,
            )

    @app.post(
        "/api/concept-arts",
        response_model=ConceptArtDetail,
        status_code=201,
        tags=["Concept Art"],
    )
    def create_concept_art(
        payload: ConceptArtCreateRequest, actor: Actor = Depends(current_actor)
    ) -> ConceptArtDetail:
        with _translate_errors():
            return concept_art.create_concept_art(actor, payload)

    @app.get(
        "/api/concept-arts/{art_id}",
        response_model=ConceptArtDetail,
        tags=["Concept Art"],
    )
    def get_concept_art(
        art_id: str, actor: Actor = Depends(current_actor)
    ) -> ConceptArtDetail:
        with _translate_errors():
            return concept_art.get_concept_art(actor, art_id)

    @app.put(
        "/api/concept-arts/{art_id}",
        response_model=ConceptArtDetail,
        tags=["Concept Art"],
    )
    def update_concept_art(
        art_id: str,
        payload: ConceptArtUpdateRequest,
        actor: Actor = Depends(current_actor),
    ) -> ConceptArtDetail:
        with _translate_errors():
            return concept_art.update_concept_art(actor, art_id, payload)

    @app.put(
        "/api/concept-arts/{art_id}/status",
        response_model=ConceptArtDetail,
        tags=["Concept Art"],
    )
    def change_concept_art_status(
        art_id: str,
        payload: StatusChangeRequest,
        actor: Actor = Depends(current_actor),
    ) -> ConceptArtDetail:
        with _translate_errors():
            return concept_art.change_status(actor, art_id, payload.status)

    @app.delete("/api/concept-arts/{art_id}", status_code=204, tags=["Concept Art"])
    def delete_concept_art(
        art_id: str,
        payload: DeleteConfirmationRequest | None = Body(None),
        actor: Actor = Depends(current_actor),
    ) -> None:
        with _translate_errors():
            concept_art.delete_concept_art(actor, art_id, _confirm_password(payload))

    @app.get(
        "/api/concept-arts/{art_id}/comments",
        response_model=CommentListResponse,
        tags=["Concept Art"],
    )
    def list_concept_art_comments(
        art_id: str, actor: Actor = Depends(current_actor)
    ) -> CommentListResponse:
        with _translate_errors():
            return concept_art.list_comments(actor, art_id)

    @app.post(
        "/api/concept-arts/{art_id}/comments",
        response_model=CommentResource,
        status_code=201,
        tags=["Concept Art"],
    )
    def add_concept_art_comment(
        art_id: str,
        payload: CommentCreateRequest,
        actor: Actor = Depends(current_actor),
    ) -> CommentResource:
        with _translate_errors():
            return concept_art.add_comment(actor, art_id, payload.content)

    @app.delete(
        "/api/concept-arts/{art_id}/comments/{comment_id}",
        status_code=204,
        tags=["Concept Art"],
    )
    def delete_concept_art_comment(
        art_id: str, comment_id: str, actor: Actor = Depends(current_actor)
    ) -> None:
        with _translate_errors():
            concept_art.delete_comment(actor, art_id, comment_id)

    # --- Lore ----------------------------------------------------------------

    @app.get("/api/lore", response_model=LoreEntryListResponse, tags=["Lore"])
    def list_lore_entries(
        *,
        status: AssetStatus | None = Query(None),
        lore_type: LoreType | None = Query(None),
        entity_id: str | None = Query(
            None, description="Primary or linked entity of the entry."
        ),
        entity_type: GameEntityType | None = Query(None),
        search: str | None = Query(
            None, description="Case-insensitive match on title, content or summary."
        ),
        created_by_id: str | None = Query(None),
        tag: str | None = Query(None),
        sort: LoreSort = Query("newest"),
        page: int = Query(1, ge=1),
        page_size: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
        actor: Actor = Depends(current_actor),
    ) -> LoreEntryListResponse:
        with _translate_errors():
            return lore.list_entries(
                actor,
                status=status,
                lore_type=lore_type,
                entity_id=entity_id,
                entity_type=entity_type,
                search=search,
                created_by_id=created_by_id,
                tag=tag,
                sort=sort,
                page=page,
                page_size=page_size,
            )

    @app.get("/api/lore/stats", response_model=LoreStatsResource, tags=["Lore"])
    def get_lore_stats(actor: Actor = Depends(current_actor)) -> LoreStatsResource:
        with _translate_errors():
            return lore.get_stats(actor)

    @app.get("/api/lore/tags", response_model=TagListResponse, tags=["Lore"])
    def list_lore_tags(actor: Actor = Depends(current_actor)) -> TagListResponse:
        with _translate_errors():
            return lore.list_tags(actor)

    @app.get("/api/lore/grouped", response_model=LoreGroupedResponse, tags=["Lore"])
    def list_grouped_lore(
        *,
        status: AssetStatus | None = Query(None),
        lore_type: LoreType | None = Query(None),
        search: str | None = Query(None),
        tag: str | None = Query(None),
        sort: LoreSort = Query("newest"),
        actor: Actor = Depends(current_actor),
    ) -> LoreGroupedResponse:
        with _translate_errors():
            return lore.list_grouped(
                actor,
                status=status,
                lore_type=lore_type,
                search=search,
                tag=tag,
                sort=sort,
            )

    @app.post(
        "/api/lore", response_model=LoreEntryDetail, status_code=201, tags=["Lore"]
    )
    def create_lore_entry(
        payload: LoreEntryCreateRequest, actor: Actor = Depends(current_actor)
    ) -> LoreEntryDetail:
        with _translate_errors():
            return lore.create_entry(actor, payload)

    @app.get("/api/lore/{entry_id}", response_model=LoreEntryDetail, tags=["Lore"])
    def get_lore_entry(
        entry_id: str, actor: Actor = Depends(current_actor)
    ) -> LoreEntryDetail:
        with _translate_errors():
            return lore.get_entry(actor, entry_id)

    @app.put("/api/lore/{entry_id}", response_model=LoreEntryDetail, tags=["Lore"])
    def update_lore_entry(
        entry_id: str,
        payload: LoreEntryUpdateRequest,
        actor: Actor = Depends(current_actor),
    ) -> LoreEntryDetail:
        with _translate_errors():
            return lore.update_entry(actor, entry_id, payload)

    @app.put(
        "/api/lore/{entry_id}/status", response_model=LoreEntryDetail, tags=["Lore"]
    )
    def change_lore_status(
        entry_id: str,
        payload: StatusChangeRequest,
        actor: Actor = Depends(current_actor),
    ) -> LoreEntryDetail:
        with _translate_errors():
            return lore.change_status(actor, entry_id, payload.status)

    @app.delete("/api/lore/{entry_id}", status_code=204, tags=["Lore"])
    def delete_lore_entry(
        entry_id: str,
        payload: DeleteConfirmationRequest | None = Body(None),
        actor: Actor = Depends(current_actor),
    ) -> None:
        with _translate_errors():
            lore.delete_entry(actor, entry_id, _confirm_password(payload))

    @app.get(
        "/api/lore/{entry_id}/versions",
        response_model=LoreVersionListResponse,
        tags=["Lore"],
    )
    def list_lore_versions(
        entry_id: str, actor: Actor = Depends(current_actor)
    ) -> LoreVersionListResponse:
        with _translate_errors():
            return lore.list_versions(actor, entry_id)

    @app.get(
        "/api/lore/{entry_id}/versions/{version}",
        response_model=LoreVersionResource,
        tags=["Lore"],
    )
    def get_lore_version(
        entry_id: str, version: int, actor: Actor = Depends(current_actor)
    ) -> LoreVersionResource:
        with _translate_errors():
            return lore.get_version(actor, entry_id, version)

    @app.get(
        "/api/lore/{entry_id}/versions/{version}/diff",
        response_model=LoreVersionDiffResponse,
        tags=["Lore"],
    )
    def diff_lore_version(
        entry_id: str,
        version: int,
        against: int | None = Query(
            None,
            ge=1,
            description="Version to compare with. Defaults to the preceding version.",
        ),
        actor: Actor = Depends(current_actor),
    ) -> LoreVersionDiffResponse:
        with _translate_errors():
            return lore.diff_versions(actor, entry_id, version, against=against)

    @app.post(
        "/api/lore/{entry_id}/versions/{version}/restore",
        response_model=LoreEntryDetail,
        tags=["Lore"],
    )
    def restore_lore_version(
        entry_id: str, version: int, actor: Actor = Depends(current_actor)
    ) -> LoreEntryDetail:
        with _translate_errors():
            return lore.restore_version(actor, entry_id, version)

    @app.get(
        "/api/lore/{entry_id}/comments",
        response_model=CommentListResponse,
        tags=["Lore"],
    )
    def list_lore_comments(
        entry_id: str, actor: Actor = Depends(current_actor)
    ) -> CommentListResponse:
        with _translate_errors():
            return lore.list_comments(actor, entry_id)

    @app.post(
        "/api/lore/{entry_id}/comments",
        response_model=CommentResource,
        status_code=201,
        tags=["Lore"],
    )
    def add_lore_comment(
        entry_id: str,
        payload: CommentCreateRequest,
        actor: Actor = Depends(current_actor),
    ) -> CommentResource:
        with _translate_errors():
            return lore.add_comment(actor, entry_id, payload.content)

    @app.delete(
        "/api/lore/{entry_id}/comments/{comment_id}",
        status_code=204,
        tags=["Lore"],
    )
    def delete_lore_comment(
        entry_id: str, comment_id: str, actor: Actor = Depends(current_actor)
    ) -> None:
        with _translate_errors():
            lore.delete_comment(actor, entry_id, comment_id)

    # --- Thoughts ------------------------------------------------------------

    @app.get("/api/thoughts", response_model=ThoughtListResponse, tags=["Thoughts"])
    def list_thoughts(
        *,
        status: ThoughtStatus | None = Query(None),
        priority: ThoughtPriority | None = Query(None),
        entity_id: str | None = Query(None),
        category_id: str | None = Query(None),
        search: str | None = Query(
            None, description="Case-insensitive match on title or content."
        ),
        created_by_id: str | None = Query(None),
        assignee_id: str | None = Query(None),
        tag: str | None = Query(None),
        sort: ThoughtSort = Query("newest"),
        page: int = Query(1, ge=1),
        page_size: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
        actor: Actor = Depends(current_actor),
    ) -> ThoughtListResponse:
        with _translate_errors():
            return thoughts.list_thoughts(
                actor,
                status=status,
                priority=priority,
                entity_id=entity_id,
                category_id=category_id,
                search=search,
                created_by_id=created_by_id,
                assignee_id=assignee_id,
                tag=tag,
                sort=sort,
                page=page,
                page_size=page_size,
            )

    @app.get(
        "/api/thoughts/stats", response_model=ThoughtStatsResource, tags=["Thoughts"]
    )
    def get_thought_stats(actor: Actor = Depends(current_actor)) -> ThoughtStatsResource:
        with _translate_errors():
            return thoughts.get_stats(actor)

    @app.get("/api/thoughts/tags", response_model=TagListResponse, tags=["Thoughts"])
    def list_thought_tags(actor: Actor = Depends(current_actor)) -> TagListResponse:
        with _translate_errors():
            return thoughts.list_tags(actor)

    @app.get(
        "/api/thoughts/assignees", response_model=UserListResponse, tags=["Thoughts"]
    )
    def list_thought_assignees(
        actor: Actor = Depends(current_actor),
    ) -> UserListResponse:
        with _translate_errors():
            return thoughts.list_assignees(actor)

    @app.get(
        "/api/thought-categories",
        response_model=ThoughtCategoryListResponse,
        tags=["Thoughts"],
    )
    def list_thought_categories(
        actor: Actor = Depends(current_actor),
    ) -> ThoughtCategoryListResponse:
        with _translate_errors():
            return thoughts.list_categories(actor)

    @app.post(
        "/api/thought-categories",
        response_model=ThoughtCategoryResource,
        status_code=201,
        tags=["Thoughts"],
    )
    def create_thought_category(
        payload: ThoughtCategoryCreateRequest,
        actor: Actor = Depends(current_actor),
    ) -> ThoughtCategoryResource:
        with _translate_errors():
            return thoughts.create_category(actor, payload)

    @app.post(
        "/api/thoughts",
        response_model=ThoughtDetail,
        status_code=201,
        tags=["Thoughts"],
    )
    def create_thought(
        payload: ThoughtCreateRequest, actor: Actor = Depends(current_actor)
    ) -> ThoughtDetail:
        with _translate_errors():
            return thoughts.create_thought(actor, payload)

    @app.get(
        "/api/thoughts/{thought_id}", response_model=ThoughtDetail, tags=["Thoughts"]
    )
    def get_thought(
        thought_id: str, actor: Actor = Depends(current_actor)
    ) -> ThoughtDetail:
        with _translate_errors():
            return thoughts.get_thought(actor, thought_id)

    @app.put(
        "/api/thoughts/{thought_id}", response_model=ThoughtDetail, tags=["Thoughts"]
    )
    def update_thought(
        thought_id: str,
        payload: ThoughtUpdateRequest,
        actor: Actor = Depends(current_actor),
    ) -> ThoughtDetail:
        with _translate_errors():
            return thoughts.update_thought(actor, thought_id, payload)

    @app.put(
        "/api/thoughts/{thought_id}/status",
        response_model=ThoughtDetail,
        tags=["Thoughts"],
    )
    def change_thought_status(
        thought_id: str,
        payload: ThoughtStatusChangeRequest,
        actor: Actor = Depends(current_actor),
    ) -> ThoughtDetail:
        with _translate_errors():
            return thoughts.change_status(
                actor,
                thought_id,
                payload.status,
                rejection_reason=payload.rejection_reason,
            )

    @app.post(
        "/api/thoughts/{thought_id}/pin",
        response_model=ThoughtDetail,
        tags=["Thoughts"],
    )
    def toggle_thought_pin(
        thought_id: str, actor: Actor = Depends(current_actor)
    ) -> ThoughtDetail:
        with _translate_errors():
            return thoughts.toggle_pin(actor, thought_id)

    @app.delete("/api/thoughts/{thought_id}", status_code=204, tags=["Thoughts"])
    def delete_thought(
        thought_id: str,
        payload: DeleteConfirmationRequest | None = Body(None),
        actor: Actor = Depends(current_actor),
    ) -> None:
        with _translate_errors():
            thoughts.delete_thought(actor, thought_id, _confirm_password(payload))

    @app.get(
        "/api/thoughts/{thought_id}/comments",
        response_model=CommentListResponse,
        tags=["Thoughts"],
    )
    def list_thought_comments(
        thought_id: str, actor: Actor = Depends(current_actor)
    ) -> CommentListResponse:
        with _translate_errors():
            return thoughts.list_comments(actor, thought_id)

    @app.post(
        "/api/thoughts/{thought_id}/comments",
        response_model=CommentResource,
        status_code=201,
        tags=["Thoughts"],
    )
    def add_thought_comment(
        thought_id: str,
        payload: CommentCreateRequest,
        actor: Actor = Depends(current_actor),
    ) -> CommentResource:
        with _translate_errors():
            return thoughts.add_comment(actor, thought_id, payload.content)

    @app.delete(
        "/api/thoughts/{thought_id}/comments/{comment_id}",
        status_code=204,
        tags=["Thoughts"],
    )
    def delete_thought_comment(
        thought_id: str, comment_id: str, actor: Actor = Depends(current_actor)
    ) -> None:
        with _translate_errors():
            thoughts.delete_comment(actor, thought_id, comment_id)

    # --- Onboarding ----------------------------------------------------------

    @app.get(
        "/api/onboarding",
        response_model=OnboardingCardListResponse,
        tags=["Onboarding"],
    )
    def list_onboarding_cards(
        *,
        status: AssetStatus | None = Query(None),
        category: OnboardingCategory | None = Query(None),
        search: str | None = Query(None),
        created_by_id: str | None = Query(None),
        tag: str | None = Query(None),
        parent_id: str | None = Query(
            None, description="Parent card id, or 'root' for top-level cards."
        ),
        sort: OnboardingSort | None = Query(
            None, description="Defaults to pinned cards, then display order."
        ),
        page: int = Query(1, ge=1),
        page_size: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
        actor: Actor = Depends(current_actor),
    ) -> OnboardingCardListResponse:
        with _translate_errors():
            return onboarding.list_cards(
                actor,
                status=status,
                category=category,
                search=search,
                created_by_id=created_by_id,
                tag=tag,
                parent_id=parent_id,
                sort=sort,
                page=page,
                page_size=page_size,
            )

    @app.get(
        "/api/onboarding/stats",
        response_model=OnboardingStatsResource,
        tags=["Onboarding"],
    )
    def get_onboarding_stats(
        actor: Actor = Depends(current_actor),
    ) -> OnboardingStatsResource:
        with _translate_errors():
            return onboarding.get_stats(actor)

    @app.get(
        "/api/onboarding/tags", response_model=TagListResponse, tags=["Onboarding"]
    )
    def list_onboarding_tags(actor: Actor = Depends(current_actor)) -> TagListResponse:
        with _translate_errors():
            return onboarding.list_tags(actor)

    @app.get(
        "/api/onboarding/grouped",
        response_model=OnboardingGroupedResponse,
        tags=["Onboarding"],
    )
    def list_grouped_onboarding(
        *,
        status: AssetStatus | None = Query(None),
        search: str | None = Query(None),
        tag: str | None = Query(None),
        parent_id: str | None = Query(None),
        actor: Actor = Depends(current_actor),
    ) -> OnboardingGroupedResponse:
        with _translate_errors():
            return onboarding.list_grouped(
                actor, status=status, search=search, tag=tag, parent_id=parent_id
            )

    @app.post(
        "/api/onboarding",
        response_model=OnboardingCardDetail,
        status_code=201,
        tags=["Onboarding"],
    )
    def create_onboarding_card(
        payload: OnboardingCardCreateRequest, actor: Actor = Depends(current_actor)
    ) -> OnboardingCardDetail:
        with _translate_errors():
            return onboarding.create_card(actor, payload)

    @app.get(
        "/api/onboarding/{card_id}",
        response_model=OnboardingCardDetail,
        tags=["Onboarding"],
    )
    def get_onboarding_card(
        card_id: str, actor: Actor = Depends(current_actor)
    ) -> OnboardingCardDetail:
        with _translate_errors():
            return onboarding.get_card(actor, card_id)

    @app.put(
        "/api/onboarding/{card_id}",
        response_model=OnboardingCardDetail,
        tags=["Onboarding"],
    )
    def update_onboarding_card(
        card_id: str,
        payload: OnboardingCardUpdateRequest,
        actor: Actor = Depends(current_actor),
    ) -> OnboardingCardDetail:
        with _translate_errors():
            return onboarding.update_card(actor, card_id, payload)

    @app.put(
        "/api/onboarding/{card_id}/status",
        response_model=OnboardingCardDetail,
        tags=["Onboarding"],
    )
    def change_onboarding_status(
        card_id: str,
        payload: StatusChangeRequest,
        actor: Actor = Depends(current_actor),
    ) -> OnboardingCardDetail:
        with _translate_errors():
            return onboarding.change_status(actor, card_id, payload.status)

    @app.post(
        "/api/onboarding/{card_id}/pin",
        response_model=OnboardingCardDetail,
        tags=["Onboarding"],
    )
    def toggle_onboarding_pin(
        card_id: str, actor: Actor = Depends(current_actor)
    ) -> OnboardingCardDetail:
        with _translate_errors():
            return onboarding.toggle_pin(actor, card_id)

    @app.delete("/api/onboarding/{card_id}", status_code=204, tags=["Onboarding"])
    def delete_onboarding_card(
        card_id: str,
        payload: DeleteConfirmationRequest | None = Body(None),
        actor: Actor = Depends(current_actor),
    ) -> None:
        with _translate_errors():
            onboarding.delete_card(actor, card_id, _confirm_password(payload))

    @app.post(
        "/api/onboarding/{card_id}/images",
        response_model=OnboardingImageResource,
        status_code=201,
        tags=["Onboarding"],
    )
    def add_onboarding_image(
        card_id: str,
        payload: OnboardingImageInput,
        actor: Actor = Depends(current_actor),
    ) -> OnboardingImageResource:
        with _translate_errors():
            return onboarding.add_image(actor, card_id, payload)

    @app.put(
        "/api/onboarding/{card_id}/images/order",
        response_model=OnboardingCardDetail,
        tags=["Onboarding"],
    )
    def reorder_onboarding_images(
        card_id: str,
        payload: OnboardingImageOrderRequest,
        actor: Actor = Depends(current_actor),
    ) -> OnboardingCardDetail:
        with _translate_errors():
            return onboarding.reorder_images(actor, card_id, payload.image_ids)

    @app.delete(
        "/api/onboarding/{card_id}/images/{image_id}",
        status_code=204,
        tags=["Onboarding"],
    )
    def remove_onboarding_image(
        card_id: str, image_id: str, actor: Actor = Depends(current_actor)
    ) -> None:
        with _translate_errors():
            onboarding.remove_image(actor, card_id, image_id)

    @app.get(
        "/api/onboarding/{card_id}/comments",
        response_model=CommentListResponse,
        tags=["Onboarding"],
    )
    def list_onboarding_comments(
        card_id: str, actor: Actor = Depends(current_actor)
    ) -> CommentListResponse:
        with _translate_errors():
            return onboarding.list_comments(actor, card_id)

    @app.post(
        "/api/onboarding/{card_id}/comments",
        response_model=CommentResource,
        status_code=201,
        tags=["Onboarding"],
    )
    def add_onboarding_comment(
        card_id: str,
        payload: CommentCreateRequest,
        actor: Actor = Depends(current_actor),
    ) -> CommentResource:
        with _translate_errors():
            return onboarding.add_comment(actor, card_id, payload.content)

    @app.delete(
        "/api/onboarding/{card_id}/comments/{comment_id}",
        status_code=204,
        tags=["Onboarding"],
    )
    def delete_onboarding_comment(
        card_id: str, comment_id: str, actor: Actor = Depends(current_actor)
    ) -> None:
        with _translate_errors():
            onboarding.delete_comment(actor, card_id, comment_id)

    # --- Units ---------------------------------------------------------------

    @app.get("/api/units", response_model=UnitListResponse, tags=["Units"])
    def list_units(
        *,
        faction_id: str | None = Query(None),
        role: UnitRole | None = Query(None),
        search: str | None = Query(None),
        sort: UnitSort = Query("newest"),
        page: int = Query(1, ge=1),
        page_size: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
        actor: Actor = Depends(current_actor),
    ) -> UnitListResponse:
        with _translate_errors():
            return units.list_units(
                actor,
                faction_id=faction_id,
                role=role,
                search=search,
                sort=sort,
                page=page,
                page_size=page_size,
            )

    @app.get("/api/units/stats", response_model=UnitStatsResource, tags=["Units"])
    def get_unit_stats(actor: Actor = Depends(current_actor)) -> UnitStatsResource:
        with _translate_errors():
            return units.get_stats(actor)

    @app.get(
        "/api/units/factions", response_model=FactionOptionsResponse, tags=["Units"]
    )
    def list_unit_factions(
        actor: Actor = Depends(current_actor),
    ) -> FactionOptionsResponse:
        with _translate_errors():
            return units.list_factions(actor)

    @app.post(
        "/api/units", response_model=UnitResource, status_code=201, tags=["Units"]
    )
    def create_unit(
        payload: UnitCreateRequest, actor: Actor = Depends(current_actor)
    ) -> UnitResource:
        with _translate_errors():
            return units.create_unit(actor, payload)

    @app.get("/api/units/{unit_id}", response_model=UnitResource, tags=["Units"])
    def get_unit(unit_id: str, actor: Actor = Depends(current_actor)) -> UnitResource:
        with _translate_errors():
            return units.get_unit(actor, unit_id)

    @app.get("/api/units/{unit_id}/export", tags=["Units"])
    def export_unit(
        unit_id: str, actor: Actor = Depends(current_actor)
    ) -> dict[str, Any]:
        with _translate_errors():
            return units.export_unit(actor, unit_id)

    @app.put("/api/units/{unit_id}", response_model=UnitResource, tags=["Units"])
    def update_unit(
        unit_id: str,
        payload: UnitUpdateRequest,
        actor: Actor = Depends(current_actor),
    ) -> UnitResource:
        with _translate_errors():
            return units.update_unit(actor, unit_id, payload)

    @app.delete("/api/units/{unit_id}", status_code=204, tags=["Units"])
    def delete_unit(
        unit_id: str,
        payload: DeleteConfirmationRequest | None = Body(None),
        actor: Actor = Depends(current_actor),
    ) -> None:
        with _translate_errors():
            units.delete_unit(actor, unit_id, _confirm_password(payload))

    # --- Dashboard -----------------------------------------------------------

    @app.get("/api/dashboard", response_model=DashboardResource, tags=["Dashboard"])
    def get_dashboard(actor: Actor = Depends(current_actor)) -> DashboardResource:
        with _translate_errors():
            return dashboard.get_dashboard(
                actor, activity_limit=default_activity_limit
            )

    @app.get(
        "/api/activity", response_model=ActivityListResponse, tags=["Dashboard"]
    )
    def list_activity(
        limit: int | None = Query(None, ge=1, le=MAX_ACTIVITY_LIMIT),
        actor: Actor = Depends(current_actor),
    ) -> ActivityListResponse:
        with _translate_errors():
            return dashboard.list_activity(
                actor, limit=limit or default_activity_limit
            )

    return app


__all__ = ["create_app"]
