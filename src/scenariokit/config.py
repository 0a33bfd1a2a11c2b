"""Client configuration loading.

Resolution order for every setting (highest first):
1. Explicit overrides (CLI flags)
2. Environment variables (``SCENARIOKIT_*``, a ``.env`` file is loaded by the CLI)
3. User config at ~/.config/scenariokit/config.yaml (``api:`` mapping)
4. Built-in defaults
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from scenariokit.errors import ConfigError
from scenariokit.observability.logging import get_logger

log = get_logger(__name__)

DEFAULT_API_URL = "http://localhost:4000/api"
DEFAULT_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_POLL_ATTEMPTS = 600  # ~20 minutes at the default interval

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "scenariokit"

ENV_VARS: dict[str, str] = {
    "api_url": "SCENARIOKIT_API_URL",
    "timeout": "SCENARIOKIT_TIMEOUT",
    "poll_interval": "SCENARIOKIT_POLL_INTERVAL",
    "max_poll_attempts": "SCENARIOKIT_MAX_POLL_ATTEMPTS",
}


@dataclass(frozen=True)
class ClientConfig:
    """Settings for talking to the admin backend.

    Attributes:
        api_url: Base URL of the REST API (paths in the client are relative to it).
        timeout: Per-request timeout in seconds.
        poll_interval: Seconds between ingestion status polls.
        max_poll_attempts: Hard cap on ingestion status polls.
    """

    api_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS

    def __post_init__(self) -> None:
        if not self.api_url:
            raise ConfigError("api_url", "must not be empty")
        if self.timeout <= 0:
            raise ConfigError("timeout", "must be positive")
        if self.poll_interval < 0:
            raise ConfigError("poll_interval", "must not be negative")
        if self.max_poll_attempts < 1:
            raise ConfigError("max_poll_attempts", "must be at least 1")
        # Normalize so paths can always be appended with a leading slash
        object.__setattr__(self, "api_url", self.api_url.rstrip("/"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClientConfig:
        """Create config from a mapping, coercing string values.

        Unknown keys are ignored.

        Raises:
            ConfigError: If a value cannot be converted.
        """
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name in data and data[f.name] is not None:
                kwargs[f.name] = _coerce(f.name, data[f.name])
        return cls(**kwargs)


def _coerce(key: str, value: Any) -> Any:
    try:
        if key in ("timeout", "poll_interval"):
            return float(value)
        if key == "max_poll_attempts":
            return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(key, f"expected a number, got {value!r}") from e
    return str(value)


def load_user_config(config_dir: Path | None = None) -> dict[str, Any]:
    """Load the ``api:`` mapping from the user config file.

    Args:
        config_dir: Override config directory (for testing).
            Defaults to ~/.config/scenariokit/.

    Returns:
        The raw settings mapping, empty if the file is missing or unreadable.
    """
    config_dir = config_dir or _DEFAULT_CONFIG_DIR
    config_path = config_dir / "config.yaml"

    if not config_path.exists():
        return {}

    from ruamel.yaml import YAML
    from ruamel.yaml.error import YAMLError

    yaml = YAML(typ="safe")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
    except OSError as e:
        log.warning("user_config_load_failed", path=str(config_path), error=str(e))
        return {}
    except YAMLError as e:
        log.warning("user_config_parse_failed", path=str(config_path), error=str(e))
        return {}

    if not isinstance(data, dict):
        return {}

    api_data = data.get("api") or {}
    if not isinstance(api_data, dict):
        log.warning("user_config_invalid_section", path=str(config_path), section="api")
        return {}

    log.debug("user_config_loaded", path=str(config_path))
    return dict(api_data)


def _env_settings() -> dict[str, str]:
    settings: dict[str, str] = {}
    for key, env_name in ENV_VARS.items():
        value = os.getenv(env_name)
        if value:
            settings[key] = value
    return settings


def resolve_config(
    config_dir: Path | None = None,
    **overrides: Any,
) -> ClientConfig:
    """Build the effective client configuration.

    Args:
        config_dir: Override user config directory (for testing).
        **overrides: Explicit values; ``None`` entries are ignored.

    Returns:
        Resolved ClientConfig.

    Raises:
        ConfigError: If any resolved value is invalid.
    """
    merged: dict[str, Any] = {}
    merged.update(load_user_config(config_dir))
    merged.update(_env_settings())
    merged.update({k: v for k, v in overrides.items() if v is not None})
    config = ClientConfig.from_dict(merged)
    log.debug("client_config_resolved", api_url=config.api_url, timeout=config.timeout)
    return config


def with_overrides(config: ClientConfig, **overrides: Any) -> ClientConfig:
    """Return a copy of *config* with the non-None overrides applied."""
    values = {k: _coerce(k, v) for k, v in overrides.items() if v is not None}
    return replace(config, **values)
