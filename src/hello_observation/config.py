"""Configuration for observation bootstrap and the greeting demo."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

ENV_PREFIX = "HELLO_OBSERVATION_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ObservationConfig:
    """Process configuration.

    Attributes:
        service_name: Reported in structured logs.
        log_level: Level name for the package root logger.
        log_json: Render logs as JSON lines instead of text.
        log_events: Publish observation events to the log.
        tracing_enabled: Register the OpenTelemetry handler.
        metrics_enabled: Register the Prometheus handler.
        sentry_enabled: Register the Sentry handler.
        greeting_base_url: Base URL of the greeting service the poller calls.
        poller_enabled: Start the greeting poller with the web app.
        poller_name: Name the poller asks to be greeted.
        poll_interval: Seconds between two poller calls.
        poll_initial_delay: Seconds before the first poller call.
        default_language: Greeting language when the request names none.
    """

    service_name: str = "hello-observation"
    log_level: str = "INFO"
    log_json: bool = False
    log_events: bool = False
    tracing_enabled: bool = True
    metrics_enabled: bool = False
    sentry_enabled: bool = False
    greeting_base_url: str = "http://localhost:8787"
    poller_enabled: bool = False
    poller_name: str = "C3PO"
    poll_interval: float = 2.0
    poll_initial_delay: float = 2.0
    default_language: str = "en"

    def __post_init__(self) -> None:
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigurationError(f"Unknown log level: {self.log_level!r}")
        if self.poll_interval <= 0:
            raise ConfigurationError("poll_interval must be positive")
        if self.poll_initial_delay < 0:
            raise ConfigurationError("poll_initial_delay must not be negative")

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        prefix: str = ENV_PREFIX,
    ) -> ObservationConfig:
        """Build a config from ``{prefix}{FIELD_NAME}`` environment variables."""
        env = os.environ if environ is None else environ
        defaults = cls()
        values: dict[str, object] = {}
        for name, default in vars(defaults).items():
            raw = env.get(f"{prefix}{name.upper()}")
            if raw is None:
                continue
            values[name] = _coerce(name, raw, default)
        return cls(**values)  # type: ignore[arg-type]


def _coerce(name: str, raw: str, default: object) -> object:
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ConfigurationError(f"{name}: expected a boolean, got {raw!r}")
    if isinstance(default, float):
        try:
            return float(raw)
        except ValueError as exc:
            raise ConfigurationError(f"{name}: expected a number, got {raw!r}") from exc
    return raw.strip()
