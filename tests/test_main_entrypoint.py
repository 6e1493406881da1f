"""Tests covering the command-line entry point."""

from __future__ import annotations

from pathlib import Path

import pytest

from gamedesk.db import DatabaseManager
from gamedesk.services import UserService
from gamedesk.services.common import Actor
from gamedesk.permissions import Role
from main import main


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'cli.db'}"


def _list_users(database_url: str):
    database = DatabaseManager(database_url)
    try:
        operator = Actor(id="test", name="Test", role=Role.ADMIN)
        return UserService(database).list_users(operator).data
    finally:
        database.dispose()


def test_subcommand_is_required(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main([])

    assert excinfo.value.code == 2
    assert "required" in capsys.readouterr().err


def test_init_db_creates_tables(database_url: str, tmp_path: Path, capsys) -> None:
    main(["init-db", "--database-url", database_url])

    assert (tmp_path / "cli.db").exists()
    assert f"Database ready at {database_url}" in capsys.readouterr().out
    assert _list_users(database_url) == []


def test_seed_inserts_demo_data_once(database_url: str, capsys) -> None:
    main(["seed", "--database-url", database_url])
    first = capsys.readouterr().out

    main(["seed", "--database-url", database_url])
    second = capsys.readouterr().out

    assert first.startswith("Seeded 4 users, 6 entities, 5 units")
    assert "Database already has users" in second
    assert len(_list_users(database_url)) == 4


def test_create_user_registers_team_member(database_url: str, capsys) -> None:
    main(
        [
            "create-user",
            "--database-url",
            database_url,
            "--email",
            "Lead@Example.com",
            "--name",
            "Lead Writer",
            "--role",
            "WRITER",
        ]
    )

    output = capsys.readouterr().out
    users = _list_users(database_url)
    assert len(users) == 1
    assert users[0].role is Role.WRITER
    assert users[0].email == "lead@example.com"
    assert output.startswith("Created WRITER user lead@example.com with id ")


def test_create_user_reports_duplicates(database_url: str, capsys) -> None:
    arguments = [
        "create-user",
        "--database-url",
        database_url,
        "--email",
        "admin@example.com",
        "--name",
        "Admin",
    ]
    main(arguments)
    capsys.readouterr()

    with pytest.raises(SystemExit) as excinfo:
        main(arguments)

    assert excinfo.value.code == 2
    assert capsys.readouterr().out.startswith("Failed to create user:")


def test_create_user_rejects_unknown_role(database_url: str) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(
            [
                "create-user",
                "--database-url",
                database_url,
                "--email",
                "x@example.com",
                "--name",
                "X",
                "--role",
                "OVERLORD",
            ]
        )

    assert excinfo.value.code == 2


def test_serve_runs_uvicorn_with_app_factory(monkeypatch, capsys) -> None:
    calls: list[tuple[str, dict]] = []

    def fake_run(app: str, **kwargs) -> None:
        calls.append((app, kwargs))

    monkeypatch.setattr("uvicorn.run", fake_run)

    main(["serve", "--host", "::1", "--port", "9000"])

    assert calls == [
        (
            "gamedesk.api.app:create_app",
            {"factory": True, "host": "::1", "port": 9000, "reload": False},
        )
    ]
    assert "http://[::1]:9000" in capsys.readouterr().out
