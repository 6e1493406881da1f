"""Command-line entry point for the game production dashboard."""

from __future__ import annotations

import argparse
from typing import Sequence

from gamedesk.api.settings import DashboardApiSettings
from gamedesk.db import DatabaseManager
from gamedesk.logging_config import setup_logging
from gamedesk.permissions import Role
from gamedesk.resources import UserCreateRequest
from gamedesk.seed import seed_database
from gamedesk.services import Actor, RecordConflictError, UserService

APP_FACTORY = "gamedesk.api.app:create_app"

# Whoever can run the command line already controls the database.
CLI_OPERATOR = Actor(id="cli", name="Command line", role=Role.ADMIN)


def _format_host_for_url(host: str) -> str:
    """Return a host suitable for inclusion in an HTTP URL."""

    if ":" in host and not host.startswith("["):
        return f"[{host}]"
    return host


def _database_for(args: argparse.Namespace) -> DatabaseManager:
    settings = DashboardApiSettings.from_env()
    return DatabaseManager(args.database_url or settings.database_url)


def _run_serve(args: argparse.Namespace) -> None:
    import uvicorn

    print(
        "Serving the dashboard API at http://{host}:{port}".format(
            host=_format_host_for_url(args.host), port=args.port
        )
    )
    uvicorn.run(
        APP_FACTORY,
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


def _run_init_db(args: argparse.Namespace) -> None:
    database = _database_for(args)
    try:
        database.create_all()
    finally:
        database.dispose()
    print(f"Database ready at {database.database_url}")


def _run_seed(args: argparse.Namespace) -> None:
    database = _database_for(args)
    try:
        summary = seed_database(database)
    finally:
        database.dispose()

    if summary.skipped:
        print("Database already has users; demo data was not inserted.")
        return
    print(
        "Seeded {users} users, {entities} entities, {units} units, "
        "{concept_arts} concept arts, {lore_entries} lore entries, "
        "{thoughts} thoughts and {onboarding_cards} onboarding cards.".format(
            users=summary.users,
            entities=summary.entities,
            units=summary.units,
            concept_arts=summary.concept_arts,
            lore_entries=summary.lore_entries,
            thoughts=summary.thoughts,
            onboarding_cards=summary.onboarding_cards,
        )
    )


def _run_create_user(args: argparse.Namespace) -> None:
    database = _database_for(args)
    try:
        database.create_all()
        service = UserService(database)
        payload = UserCreateRequest(
            email=args.email, name=args.name, role=Role(args.role)
        )
        user = service.create_user(CLI_OPERATOR, payload)
    except (ValueError, RecordConflictError) as exc:
        print(f"Failed to create user: {exc}")
        raise SystemExit(2) from exc
    finally:
        database.dispose()

    print(f"Created {user.role.value} user {user.email} with id {user.id}")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Game production dashboard")
    parser.add_argument(
        "--log-level",
        help="Logging level name. Defaults to GAMEDESK_LOG_LEVEL or INFO.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API with uvicorn.")
    serve.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host interface for the API server.",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port where the API server should listen.",
    )
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change.",
    )
    serve.set_defaults(handler=_run_serve)

    database_help = "SQLAlchemy database URL. Defaults to GAMEDESK_DATABASE_URL."

    init_db = subparsers.add_parser("init-db", help="Create the database tables.")
    init_db.add_argument("--database-url", help=database_help)
    init_db.set_defaults(handler=_run_init_db)

    seed = subparsers.add_parser(
        "seed", help="Insert demo users, entities and content into an empty database."
    )
    seed.add_argument("--database-url", help=database_help)
    seed.set_defaults(handler=_run_seed)

    create_user = subparsers.add_parser("create-user", help="Register a team member.")
    create_user.add_argument("--database-url", help=database_help)
    create_user.add_argument("--email", required=True)
    create_user.add_argument("--name", required=True)
    create_user.add_argument(
        "--role",
        choices=[role.value for role in Role],
        default=Role.ADMIN.value,
        help="Role granted to the new user (default: ADMIN).",
    )
    create_user.set_defaults(handler=_run_create_user)

    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    """Dispatch the requested sub-command."""

    args = _parse_args(argv)
    setup_logging(args.log_level)
    args.handler(args)


if __name__ == "__main__":  # pragma: no cover - manual invocation entry point
    main()
