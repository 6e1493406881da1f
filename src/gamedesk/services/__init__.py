"""Domain services used by the HTTP layer and the command line."""

from .common import Actor, AuthenticationRequiredError, RecordConflictError
from .concept_art import ConceptArtService
from .dashboard import DashboardService
from .entities import EntityService
from .lore import LoreService
from .onboarding import OnboardingService
from .thoughts import ThoughtService
from .units import UnitService
from .users import UserService

__all__ = [
    "Actor",
    "AuthenticationRequiredError",
    "ConceptArtService",
    "DashboardService",
    "EntityService",
    "LoreService",
    "OnboardingService",
    "RecordConflictError",
    "ThoughtService",
    "UnitService",
    "UserService",
]
