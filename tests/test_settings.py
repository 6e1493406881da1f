from __future__ import annotations

import pytest

from gamedesk.api.settings import (
    DEFAULT_DATABASE_URL,
    DEFAULT_RECENT_ACTIVITY_LIMIT,
    DashboardApiSettings,
)
from gamedesk.permissions import DEFAULT_DELETE_PASSWORD


def test_from_env_uses_defaults_when_unset() -> None:
    settings = DashboardApiSettings.from_env({})

    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.delete_password == DEFAULT_DELETE_PASSWORD
    assert settings.log_level is None
    assert settings.recent_activity_limit == DEFAULT_RECENT_ACTIVITY_LIMIT
    assert settings.echo_sql is False


def test_from_env_reads_and_trims_values() -> None:
    settings = DashboardApiSettings.from_env(
        {
            "GAMEDESK_DATABASE_URL": " sqlite:///custom.db ",
            "GAMEDESK_DELETE_PASSWORD": " secret ",
            "GAMEDESK_LOG_LEVEL": " debug ",
            "GAMEDESK_RECENT_ACTIVITY_LIMIT": " 25 ",
            "GAMEDESK_ECHO_SQL": "yes",
        }
    )

    assert settings.database_url == "sqlite:///custom.db"
    assert settings.delete_password == "secret"
    assert settings.log_level == "debug"
    assert settings.recent_activity_limit == 25
    assert settings.echo_sql is True


def test_from_env_treats_blank_values_as_unset() -> None:
    settings = DashboardApiSettings.from_env(
        {
            "GAMEDESK_DATABASE_URL": "   ",
            "GAMEDESK_LOG_LEVEL": "",
            "GAMEDESK_RECENT_ACTIVITY_LIMIT": " ",
        }
    )

    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.log_level is None
    assert settings.recent_activity_limit == DEFAULT_RECENT_ACTIVITY_LIMIT


@pytest.mark.parametrize(
    "value, message",
    [
        ("many", "must be a positive integer"),
        ("0", "must be greater than zero"),
        ("-3", "must be greater than zero"),
    ],
)
def test_from_env_rejects_invalid_activity_limit(value: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        DashboardApiSettings.from_env({"GAMEDESK_RECENT_ACTIVITY_LIMIT": value})


def test_from_env_rejects_invalid_flag() -> None:
    with pytest.raises(ValueError, match="boolean flag"):
        DashboardApiSettings.from_env({"GAMEDESK_ECHO_SQL": "sometimes"})
