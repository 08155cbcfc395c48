"""Configuration dataclasses and loader for the PunchOut console."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from src.punchout_orchestrator.exceptions import ConfigurationError
from src.shared.config import ConsoleSettings
from src.shared.constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_GATEWAY_BASE_URL,
    DEFAULT_SETUP_PATH,
    ENVIRONMENTS,
)


@dataclass
class EndpointConfig:
    """Base URLs of the gateway and the backend REST API."""

    api_base_url: str = DEFAULT_API_BASE_URL
    gateway_base_url: str = DEFAULT_GATEWAY_BASE_URL
    setup_path: str = DEFAULT_SETUP_PATH

    @property
    def setup_url(self) -> str:
        return self.gateway_base_url.rstrip("/") + self.setup_path


@dataclass
class DispatchConfig:
    """Configuration for the setup-request dispatch."""

    timeout: float = 30.0
    content_type: str = "text/xml"


@dataclass
class PollingConfig:
    """Configuration for audit-log polling."""

    max_attempts: int = 10
    interval_ms: int = 800
    initial_delay_ms: int = 500
    request_timeout: float = 10.0
    exhaustion_is_failure: bool = True


@dataclass
class RedirectConfig:
    """Configuration for the catalog redirect countdown."""

    enabled: bool = True
    countdown_seconds: int = 3
    tick_ms: int = 1000


@dataclass
class RecordingConfig:
    """Configuration for persisting test results to the backend."""

    enabled: bool = True
    default_tester: str = "developer@waters.com"


@dataclass
class ConsoleConfig:
    """Top-level configuration composing all sub-configs."""

    endpoints: EndpointConfig = field(default_factory=EndpointConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    redirect: RedirectConfig = field(default_factory=RedirectConfig)
    recording: RecordingConfig = field(default_factory=RecordingConfig)
    environments: list[str] = field(default_factory=lambda: list(ENVIRONMENTS))

    def to_dict(self) -> dict[str, Any]:
        """Serialise the configuration to a plain dictionary."""
        return asdict(self)


_SECTIONS: dict[str, type] = {
    "endpoints": EndpointConfig,
    "dispatch": DispatchConfig,
    "polling": PollingConfig,
    "redirect": RedirectConfig,
    "recording": RecordingConfig,
}


def _pick(data: dict[str, Any], cls: type) -> dict[str, Any]:
    """Filter *data* to only keys accepted by *cls*."""
    valid = {f.name for f in cls.__dataclass_fields__.values()}
    return {k: v for k, v in data.items() if k in valid}


def validate_config(cfg: ConsoleConfig) -> ConsoleConfig:
    """Reject values the orchestrator cannot run with.

    Raises:
        ConfigurationError: On the first invalid value found.
    """
    polling = cfg.polling
    if polling.max_attempts < 1:
        raise ConfigurationError("polling.max_attempts must be at least 1")
    if polling.interval_ms < 0 or polling.initial_delay_ms < 0:
        raise ConfigurationError("polling delays must not be negative")
    if cfg.dispatch.timeout <= 0 or polling.request_timeout <= 0:
        raise ConfigurationError("timeouts must be positive")
    if cfg.redirect.countdown_seconds < 0 or cfg.redirect.tick_ms < 0:
        raise ConfigurationError("redirect countdown values must not be negative")
    if not cfg.environments:
        raise ConfigurationError("at least one environment must be configured")
    return cfg


def load_console_config(
    path: Path | str | None = None,
    settings: ConsoleSettings | None = None,
) -> ConsoleConfig:
    """Load console configuration from a YAML file.

    Missing sections fall back to defaults.  Unknown keys are silently
    ignored so that forward-compatible config files work.  Endpoint URLs
    set through *settings* (environment variables) override the file.

    Args:
        path: Path to config YAML.  If ``None`` or the file does not
              exist, defaults are used.
        settings: Environment-level settings.  When ``None`` they are
              read from the process environment.

    Returns:
        Populated and validated configuration dataclass.

    Raises:
        ConfigurationError: If the file is not valid YAML, is not a
            mapping, or holds invalid values.
    """
    if settings is None:
        settings = ConsoleSettings()

    raw: dict[str, Any] = {}
    if path is not None and Path(path).exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        raw = loaded or {}

    sections: dict[str, Any] = {}
    for key, cls in _SECTIONS.items():
        section_raw = raw.get(key) or {}
        if not isinstance(section_raw, dict):
            raise ConfigurationError(f"Config section '{key}' must be a mapping")
        try:
            sections[key] = cls(**_pick(section_raw, cls))
        except TypeError as exc:
            raise ConfigurationError(f"Invalid '{key}' section: {exc}") from exc

    cfg = ConsoleConfig(**sections)
    if isinstance(raw.get("environments"), list):
        cfg.environments = [str(env) for env in raw["environments"]]

    if settings.api_base_url:
        cfg.endpoints.api_base_url = settings.api_base_url
    if settings.gateway_base_url:
        cfg.endpoints.gateway_base_url = settings.gateway_base_url

    return validate_config(cfg)
