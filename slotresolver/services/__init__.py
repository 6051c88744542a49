"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .factory import build_collaborators, build_service
from .slot_resolution import ProviderSource, RuleRepository, SlotResolutionService

__all__ = [
    "ProviderSource",
    "RuleRepository",
    "SlotResolutionService",
    "build_collaborators",
    "build_service",
]
