"""
Console Settings

Provides:
- Settings dataclass with defaults
- YAML file loading
- ITOT_* environment overrides
- Store construction and logging setup
"""

import logging
import os
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from persistence.storage import (
    InMemoryModificationStore,
    JsonFileModificationStore,
    ModificationStore,
    get_default_storage_path
)

logger = logging.getLogger("ConsoleSettings")

ENV_PREFIX = "ITOT_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Environment(Enum):
    """Deployment environments"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class StorageBackend(Enum):
    """Modification store implementations"""
    MEMORY = "memory"
    JSON = "json"


@dataclass
class ConsoleSettings:
    """
    Runtime settings

    Resolution order: defaults, then YAML file, then ITOT_* environment
    variables (e.g. ITOT_API_PORT, ITOT_STORAGE_BACKEND).
    """
    environment: Environment = Environment.DEVELOPMENT
    storage_backend: StorageBackend = StorageBackend.MEMORY
    storage_path: Optional[Path] = None
    log_level: str = "INFO"
    audit_limit: int = 10000
    event_history_size: int = 1000
    notification_history_size: int = 10000
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    def validate(self) -> None:
        """Raise ValueError on out-of-range values"""
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")
        if not 0 < self.api_port < 65536:
            raise ValueError(f"Invalid api_port: {self.api_port}")
        if self.audit_limit <= 0:
            raise ValueError("audit_limit must be positive")
        if self.event_history_size <= 0:
            raise ValueError("event_history_size must be positive")
        if self.notification_history_size <= 0:
            raise ValueError("notification_history_size must be positive")

    @property
    def resolved_storage_path(self) -> Path:
        return self.storage_path or get_default_storage_path()

    def to_dict(self) -> dict:
        return {
            "environment": self.environment.value,
            "storage_backend": self.storage_backend.value,
            "storage_path": str(self.storage_path) if self.storage_path else None,
            "log_level": self.log_level,
            "audit_limit": self.audit_limit,
            "event_history_size": self.event_history_size,
            "notification_history_size": self.notification_history_size,
            "api_host": self.api_host,
            "api_port": self.api_port
        }


_FIELD_NAMES = tuple(f.name for f in fields(ConsoleSettings))


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw YAML or environment value to the field's type"""
    if value is None:
        return None
    try:
        if name == "environment":
            return Environment(str(value).lower())
        if name == "storage_backend":
            return StorageBackend(str(value).lower())
        if name == "storage_path":
            return Path(value).expanduser()
        if name in ("audit_limit", "event_history_size", "notification_history_size", "api_port"):
            return int(value)
        if name == "log_level":
            return str(value).upper()
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {value!r}") from None
    return str(value)


def load_settings(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None
) -> ConsoleSettings:
    """
    Load settings

    Args:
        path: Optional YAML file
        env: Environment mapping (default: os.environ)

    Returns:
        Validated ConsoleSettings

    Raises:
        ValueError: on unknown keys or invalid values
        FileNotFoundError: if path does not exist
    """
    env = os.environ if env is None else env
    raw: Dict[str, Any] = {}

    if path is not None:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must contain a mapping")
        unknown = sorted(set(data) - set(_FIELD_NAMES))
        if unknown:
            raise ValueError(f"Unknown settings in {path}: {', '.join(unknown)}")
        raw.update(data)
        logger.debug(f"Loaded settings from {path}")

    for name in _FIELD_NAMES:
        key = ENV_PREFIX + name.upper()
        if key in env:
            raw[name] = env[key]

    settings = ConsoleSettings(**{
        name: _coerce(name, value) for name, value in raw.items() if value is not None
    })
    settings.validate()
    return settings


def build_store(settings: ConsoleSettings) -> ModificationStore:
    """Create the configured modification store"""
    if settings.storage_backend == StorageBackend.JSON:
        logger.info(f"Using JSON file store at {settings.resolved_storage_path}")
        return JsonFileModificationStore(settings.resolved_storage_path)
    return InMemoryModificationStore()


def setup_logging(log_level: str = "INFO"):
    """
    Setup logging configuration

    Args:
        log_level: Logging level
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
