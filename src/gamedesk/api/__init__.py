"""FastAPI application exposing the game production dashboard."""

from .app import create_app
from .settings import DashboardApiSettings

__all__ = ["create_app", "DashboardApiSettings"]
