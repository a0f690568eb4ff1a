"""
Configuration management and loading.

Reads the console's YAML settings: deployment environment, retention,
day-boundary timezone and the optional event log path.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from analytics_console.storage.buffer import DEFAULT_MAX_RECORDS, DEFAULT_RECENT_LIMIT


class Environment(Enum):
    """Deployment environments."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


@dataclass(frozen=True)
class RetentionConfig:
    """Retention limits for the ingest buffer."""
    max_records: Optional[int] = DEFAULT_MAX_RECORDS
    max_age_days: Optional[float] = None

    def __post_init__(self):
        """Validate retention values."""
        if self.max_records is None and self.max_age_days is None:
            raise ValueError("retention needs max_records or max_age_days")
        if self.max_records is not None and self.max_records <= 0:
            raise ValueError("max_records must be > 0")
        if self.max_age_days is not None and self.max_age_days <= 0:
            raise ValueError("max_age_days must be > 0")

    @property
    def max_age(self) -> Optional[timedelta]:
        if self.max_age_days is None:
            return None
        return timedelta(days=self.max_age_days)


@dataclass(frozen=True)
class ConsoleConfig:
    """Complete console configuration.

    ``clear_enabled`` left as None follows the environment: allowed in
    development, refused in production.
    """
    environment: Environment = Environment.DEVELOPMENT
    timezone: str = "UTC"
    recent_limit: int = DEFAULT_RECENT_LIMIT
    clear_enabled: Optional[bool] = None
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    database: Optional[str] = None

    def __post_init__(self):
        """Validate cross-field rules."""
        if self.clear_enabled is None:
            object.__setattr__(self, "clear_enabled", self.environment != Environment.PRODUCTION)
        if self.recent_limit <= 0:
            raise ValueError("recent_limit must be > 0")
        if self.environment == Environment.PRODUCTION and self.clear_enabled:
            raise ValueError("clear_enabled cannot be true in production")


def load_console_config(path: str) -> ConsoleConfig:
    """Load and validate console configuration from a YAML file.

    Unknown keys and wrong types are rejected rather than ignored.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated ConsoleConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Console config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'environment', 'timezone', 'recent_limit', 'clear_enabled', 'retention', 'database'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    env_str = raw_config.get('environment', Environment.DEVELOPMENT.value)
    if not isinstance(env_str, str):
        raise ValueError("'environment' must be a string")
    try:
        environment = Environment(env_str.lower())
    except ValueError:
        valid = [env.value for env in Environment]
        raise ValueError(f"'environment' must be one of: {valid}")

    timezone_name = raw_config.get('timezone', "UTC")
    if not isinstance(timezone_name, str):
        raise ValueError("'timezone' must be a string")
    if timezone_name.upper() != "UTC":
        try:
            ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {timezone_name}")

    recent_limit = raw_config.get('recent_limit', DEFAULT_RECENT_LIMIT)
    if isinstance(recent_limit, bool) or not isinstance(recent_limit, int):
        raise ValueError("'recent_limit' must be an integer")

    clear_enabled = raw_config.get('clear_enabled')
    if clear_enabled is not None and not isinstance(clear_enabled, bool):
        raise ValueError("'clear_enabled' must be a boolean")

    database = raw_config.get('database')
    if database is not None and not isinstance(database, str):
        raise ValueError("'database' must be a string path")

    retention_data = raw_config.get('retention', {}) or {}
    if not isinstance(retention_data, dict):
        raise ValueError("'retention' must be a dictionary")
    retention = _parse_retention_config(retention_data)

    return ConsoleConfig(
        environment=environment,
        timezone=timezone_name,
        recent_limit=recent_limit,
        clear_enabled=clear_enabled,
        retention=retention,
        database=database
    )


def _parse_retention_config(data: Dict) -> RetentionConfig:
    """Parse and validate the retention section.

    Args:
        data: Retention configuration data

    Returns:
        Validated RetentionConfig

    Raises:
        ValueError: If configuration is invalid
    """
    allowed_keys = {'max_records', 'max_age_days'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in retention: {unknown_keys}")

    max_records = data.get('max_records', DEFAULT_MAX_RECORDS)
    if max_records is not None and (isinstance(max_records, bool) or not isinstance(max_records, int)):
        raise ValueError("'max_records' in retention must be an integer")

    max_age_days = data.get('max_age_days')
    if max_age_days is not None and (isinstance(max_age_days, bool) or not isinstance(max_age_days, (int, float))):
        raise ValueError("'max_age_days' in retention must be a number")

    return RetentionConfig(
        max_records=max_records,
        max_age_days=float(max_age_days) if max_age_days is not None else None
    )
