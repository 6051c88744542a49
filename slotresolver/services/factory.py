"""
Wiring of the resolution service from configuration.
"""

from pathlib import Path
from typing import Optional, Tuple

from ..adapters.file_sources import FileProviderSource, FileRuleRepository, load_sample_data
from ..adapters.free_slot_client import FreeSlotClient
from ..adapters.retry import RetryingProviderSource
from ..adapters.rule_store import RestRuleRepository
from ..config import AppConfig
from ..domain.time_arithmetic import TimeArithmetic
from .slot_resolution import ProviderSource, RuleRepository, SlotResolutionService


def build_collaborators(
    config: AppConfig,
    sample_file: Optional[Path] = None,
) -> Tuple[ProviderSource, RuleRepository]:
    """
    Create the provider and rule repository described by ``config``.

    With ``sample_file`` both collaborators read from that file instead.

    Raises:
        ValueError: If the upstream settings are incomplete
    """
    if sample_file is not None:
        data = load_sample_data(sample_file)
        return FileProviderSource(data), FileRuleRepository(data)

    if not config.provider.access_token:
        raise ValueError("provider.access_token is not configured")
    if not config.rule_store.url or not config.rule_store.api_key:
        raise ValueError("rule_store.url and rule_store.api_key must be configured")

    provider = RetryingProviderSource(
        FreeSlotClient(
            access_token=config.provider.access_token,
            base_url=config.provider.base_url,
            api_version=config.provider.api_version,
            timeout_seconds=config.provider.timeout_seconds,
        ),
        max_retries=config.provider.max_retries,
        initial_delay=config.provider.initial_backoff_seconds,
    )
    store = config.rule_store
    repository = RestRuleRepository(
        url=store.url,
        api_key=store.api_key,
        timeout_seconds=store.timeout_seconds,
        store_hours_table=store.store_hours_table,
        staff_hours_table=store.staff_hours_table,
        time_off_table=store.time_off_table,
        time_block_table=store.time_block_table,
        staff_leave_table=store.staff_leave_table,
    )
    return provider, repository


def build_service(config: AppConfig, sample_file: Optional[Path] = None) -> SlotResolutionService:
    """Create a ``SlotResolutionService`` wired from ``config``."""
    provider, repository = build_collaborators(config, sample_file)
    return SlotResolutionService(
        provider=provider,
        repository=repository,
        time=TimeArithmetic(config.timezone),
        total_days=config.defaults.total_days,
        timeout=config.defaults.request_timeout_seconds,
    )
