"""
Configuration management using Pydantic models loaded from YAML.
"""

import logging
from pathlib import Path
from typing import Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.date_range import MAX_TOTAL_DAYS


class ResolutionDefaults(BaseModel):
    """Default settings for a resolution request."""
    total_days: int = 30
    request_timeout_seconds: float = 20.0

    @field_validator("total_days")
    @classmethod
    def validate_total_days(cls, value: int) -> int:
        """Ensure the window covers between one day and a year."""
        if not 1 <= value <= MAX_TOTAL_DAYS:
            raise ValueError(f"total_days must be between 1 and {MAX_TOTAL_DAYS}, got {value}")
        return value

    @field_validator("request_timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Ensure the deadline is positive."""
        if value <= 0:
            raise ValueError("request_timeout_seconds must be greater than zero")
        return value


class ProviderConfig(BaseModel):
    """Free-slot provider connection settings."""
    base_url: str = "https://services.leadconnectorhq.com"
    api_version: str = "2021-04-15"
    access_token: str = ""
    timeout_seconds: float = 30.0
    max_retries: int = 3
    initial_backoff_seconds: float = 0.5

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("max_retries")
    @classmethod
    def validate_retries(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max_retries cannot be negative")
        return value


class RuleStoreConfig(BaseModel):
    """Rule store (PostgREST) connection settings and table names."""
    url: str = ""
    api_key: str = ""
    timeout_seconds: float = 15.0
    store_hours_table: str = "business_hours"
    staff_hours_table: str = "barber_hours"
    time_off_table: str = "time_off"
    time_block_table: str = "time_block"
    staff_leave_table: str = "staff_leaves"

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "America/Denver"
    defaults: ResolutionDefaults = Field(default_factory=ResolutionDefaults)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    rule_store: RuleStoreConfig = Field(default_factory=RuleStoreConfig)
    log_level: str = "WARNING"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the operating timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    @classmethod
    def load_or_default(cls, config_path: Optional[Path]) -> "AppConfig":
        """Load ``config_path`` when it exists, otherwise use built-in defaults."""
        if config_path is not None and config_path.exists():
            return cls.load_from_yaml(config_path)
        return cls()


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
