"""Discovery configuration.

Reads an optional YAML file (top-level ``discovery:`` section or a flat
mapping) and applies environment overrides. The resulting
``DiscoveryConfig`` is passed explicitly to every component.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from ..errors import ConfigError

logger = logging.getLogger(__name__)

LOG_LEVELS = ("debug", "info", "warning", "warn", "error")

# Environment variable -> (config field, converter)
ENV_OVERRIDES: dict[str, tuple[str, Any]] = {
    "TWENTY_API_URL": ("api_base_url", str),
    "TWENTY_API_KEY": ("api_key", str),
    "MAX_CONCURRENT_REQUESTS": ("max_concurrent_requests", int),
    "REQUEST_TIMEOUT_MS": ("request_timeout_seconds", lambda v: int(v) / 1000),
    "TEST_ITERATIONS": ("test_iterations", int),
    "LOG_LEVEL": ("log_level", str),
}


@dataclass(frozen=True)
class DiscoveryConfig:
    """Configuration for one discovery run."""

    api_base_url: str = ""
    api_key: str = ""
    max_concurrent_requests: int = 10
    test_iterations: int = 5
    request_timeout_seconds: float = 10.0
    log_level: str = "info"
    rate_limit_budget_seconds: float = 30.0
    rate_limit_delay_seconds: float = 0.1
    output_dir: str = "reports"
    markdown_report: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiscoveryConfig":
        """Build a config from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})

    @property
    def base_url(self) -> str:
        return self.api_base_url.rstrip("/")

    @property
    def auth_headers(self) -> dict[str, str]:
        """Bearer authentication headers."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def validate(self) -> "DiscoveryConfig":
        """Check required and range-bound values.

        Raises:
            ConfigError: A value is missing or out of range
        """
        parsed = urlparse(self.api_base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"api_base_url must be an http(s) URL, got {self.api_base_url!r}")
        if not self.api_key:
            raise ConfigError("api_key is required (set TWENTY_API_KEY)")
        if self.max_concurrent_requests < 1:
            raise ConfigError("max_concurrent_requests must be at least 1")
        if self.test_iterations < 0:
            raise ConfigError("test_iterations must be non-negative")
        if self.request_timeout_seconds <= 0:
            raise ConfigError("request_timeout_seconds must be positive")
        if self.rate_limit_budget_seconds <= 0:
            raise ConfigError("rate_limit_budget_seconds must be positive")
        if self.rate_limit_delay_seconds < 0:
            raise ConfigError("rate_limit_delay_seconds must be non-negative")
        if self.log_level.lower() not in LOG_LEVELS:
            raise ConfigError(f"Unknown log level: {self.log_level}")
        return self


def apply_env_overrides(
    config: DiscoveryConfig,
    environ: dict[str, str] | None = None,
) -> DiscoveryConfig:
    """Override config values from environment variables."""
    environ = os.environ if environ is None else environ
    changes: dict[str, Any] = {}
    for var, (name, convert) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            try:
                changes[name] = convert(value)
            except ValueError as e:
                raise ConfigError(f"Invalid value for {var}: {value!r}") from e
    return replace(config, **changes) if changes else config


def load_config(
    config_path: Path | None = None,
    environ: dict[str, str] | None = None,
) -> DiscoveryConfig:
    """Load discovery configuration from YAML and the environment.

    Args:
        config_path: Optional YAML file
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Unvalidated configuration
    """
    data: dict[str, Any] = {}
    if config_path is not None:
        try:
            with config_path.open() as f:
                loaded = yaml.safe_load(f) or {}
            logger.info("Loaded discovery configuration from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s. Using defaults.", config_path)
            loaded = {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing {config_path}: {e}") from e

        if not isinstance(loaded, dict):
            raise ConfigError(f"{config_path} must contain a mapping")
        data = loaded.get("discovery", loaded)
        if not isinstance(data, dict):
            raise ConfigError(f"'discovery' section of {config_path} must be a mapping")

    return apply_env_overrides(DiscoveryConfig.from_dict(data), environ)
