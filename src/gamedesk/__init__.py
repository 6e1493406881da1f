"""Content management backend for a small game production team."""

from .db import Base, DatabaseManager
from .lore_diff import DiffLine, LineDiff, compare_versions, compute_line_diff
from .permissions import Module, PermissionDeniedError, Role
from .tags import collect_tags, parse_tags

__all__ = [
    "Base",
    "DatabaseManager",
    "DiffLine",
    "LineDiff",
    "Module",
    "PermissionDeniedError",
    "Role",
    "collect_tags",
    "compare_versions",
    "compute_line_diff",
    "parse_tags",
]
