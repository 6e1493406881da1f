"""Landing page overview and the activity feed."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..db import DatabaseManager
from ..models import ActivityLog, ConceptArt, GameEntity, LoreEntry, Thought, ThoughtStatus
from ..permissions import DEFAULT_DELETE_PASSWORD, Module
from ..resources import (
    ActivityListResponse,
    ActivityResource,
    DashboardCounts,
    DashboardResource,
)
from .common import Actor, ServiceBase, count_by, entity_reference, user_reference
from .concept_art import ConceptArtService

RECENT_CONCEPT_ART_LIMIT = 6


def build_activity_resource(entry: ActivityLog) -> ActivityResource:
    details = entry.details or {}
    return ActivityResource(
        id=entry.id,
        type=entry.type,
        description=entry.description,
        entity=entity_reference(entry.entity),
        user=user_reference(entry.user),
        item_type=details.get("item_type"),
        item_id=details.get("item_id"),
        created_at=entry.created_at,
    )


class DashboardService(ServiceBase):
    module = Module.DASHBOARD

    def __init__(
        self,
        database: DatabaseManager,
        *,
        concept_art: ConceptArtService,
        delete_password: str = DEFAULT_DELETE_PASSWORD,
    ) -> None:
        super().__init__(database, delete_password=delete_password)
        self._concept_art = concept_art

    def get_dashboard(self, actor: Actor, *, activity_limit: int) -> DashboardResource:
        self._require_view(actor)
        with self._database.session() as session:
            statuses = session.scalars(select(Thought.status)).all()
            return DashboardResource(
                counts=DashboardCounts(
                    entities=self._count(session, GameEntity),
                    concept_arts=self._count(session, ConceptArt),
                    lore_entries=self._count(session, LoreEntry),
                    thoughts=len(statuses),
                ),
                thoughts_by_status=count_by(statuses, ThoughtStatus),
                recent_activity=self._recent_activity(session, activity_limit),
                recent_concept_arts=self._concept_art.recent(
                    session, RECENT_CONCEPT_ART_LIMIT
                ),
            )

    def list_activity(self, actor: Actor, *, limit: int) -> ActivityListResponse:
        """Most recent activity first."""

        self._require_view(actor)
        if limit < 1:
            raise ValueError("limit must be greater than or equal to 1.")
        with self._database.session() as session:
            return ActivityListResponse(data=self._recent_activity(session, limit))

    @staticmethod
    def _count(session: Session, model: type) -> int:
        return session.scalar(select(func.count()).select_from(model)) or 0

    @staticmethod
    def _recent_activity(session: Session, limit: int) -> list[ActivityResource]:
        entries = session.scalars(
            select(ActivityLog)
            .options(selectinload(ActivityLog.entity), selectinload(ActivityLog.user))
            .order_by(ActivityLog.created_at.desc())
            .limit(limit)
        ).all()
        return [build_activity_resource(entry) for entry in entries]


__all__ = ["DashboardService", "RECENT_CONCEPT_ART_LIMIT", "build_activity_resource"]
