"""Configuration helpers for deploying the dashboard API."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from ..permissions import DEFAULT_DELETE_PASSWORD

DEFAULT_DATABASE_URL = "sqlite:///gamedesk.db"
DEFAULT_RECENT_ACTIVITY_LIMIT = 15

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _normalise_string(value: str | None, *, default: str) -> str:
    if value is None:
        return default

    trimmed = value.strip()
    return trimmed or default


def _normalise_optional(value: str | None) -> str | None:
    if value is None:
        return None

    trimmed = value.strip()
    return trimmed or None


def _parse_positive_int(value: str | None, *, name: str, default: int) -> int:
    if value is None:
        return default

    trimmed = value.strip()
    if not trimmed:
        return default

    try:
        parsed = int(trimmed)
    except ValueError as exc:
        raise ValueError(f"{name} must be a positive integer.") from exc
    if parsed < 1:
        raise ValueError(f"{name} must be greater than zero.")
    return parsed


def _parse_flag(value: str | None, *, name: str) -> bool:
    if value is None:
        return False

    trimmed = value.strip().lower()
    if not trimmed or trimmed in _FALSE_VALUES:
        return False
    if trimmed in _TRUE_VALUES:
        return True
    raise ValueError(f"{name} must be a boolean flag (true/false).")


@dataclass(frozen=True)
class DashboardApiSettings:
    """Deployment settings for the FastAPI application.

    Values are read from ``GAMEDESK_*`` environment variables so the service
    can be configured without touching application code. Blank values are
    treated as if the variable was unset.
    """

    database_url: str = DEFAULT_DATABASE_URL
    delete_password: str = DEFAULT_DELETE_PASSWORD
    log_level: str | None = None
    recent_activity_limit: int = DEFAULT_RECENT_ACTIVITY_LIMIT
    echo_sql: bool = False

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None
    ) -> "DashboardApiSettings":
        """Return settings populated from ``environ``.

        Args:
            environ: Optional mapping of environment variables. When omitted,
                :data:`os.environ` is used.
        """

        source = environ if environ is not None else os.environ

        return cls(
            database_url=_normalise_string(
                source.get("GAMEDESK_DATABASE_URL"), default=DEFAULT_DATABASE_URL
            ),
            delete_password=_normalise_string(
                source.get("GAMEDESK_DELETE_PASSWORD"),
                default=DEFAULT_DELETE_PASSWORD,
            ),
            log_level=_normalise_optional(source.get("GAMEDESK_LOG_LEVEL")),
            recent_activity_limit=_parse_positive_int(
                source.get("GAMEDESK_RECENT_ACTIVITY_LIMIT"),
                name="GAMEDESK_RECENT_ACTIVITY_LIMIT",
                default=DEFAULT_RECENT_ACTIVITY_LIMIT,
            ),
            echo_sql=_parse_flag(
                source.get("GAMEDESK_ECHO_SQL"), name="GAMEDESK_ECHO_SQL"
            ),
        )


__all__ = [
    "DEFAULT_DATABASE_URL",
    "DEFAULT_RECENT_ACTIVITY_LIMIT",
    "DashboardApiSettings",
]
