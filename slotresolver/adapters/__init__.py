"""
Adapters layer - External integrations (provider API, rule store, sample files).
"""

from .file_sources import FileProviderSource, FileRuleRepository, load_sample_data
from .free_slot_client import FreeSlotClient
from .retry import RetryingProviderSource
from .rule_store import RestRuleRepository

__all__ = [
    "FileProviderSource",
    "FileRuleRepository",
    "FreeSlotClient",
    "RestRuleRepository",
    "RetryingProviderSource",
    "load_sample_data",
]
