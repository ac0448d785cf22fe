"""
Configuration management for the ethprovider runtime.

Handles loading configuration from environment variables and validation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any
from urllib.parse import urlsplit

from ethprovider.core.exceptions import ConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _get_env_var(name: str, default: str | None = None) -> str | None:
    """Get environment variable with optional default."""
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Environment variable {name} must be a boolean, got {value!r}")


def _parse_number(name: str, value: str, kind: type) -> Any:
    try:
        return kind(value)
    except ValueError:
        raise ConfigurationError(
            f"Environment variable {name} must be {kind.__name__}, got {value!r}"
        ) from None


def _parse_methods(value: str) -> frozenset[str]:
    return frozenset(m.strip() for m in value.split(",") if m.strip())


@dataclass(frozen=True)
class ProviderConfig:
    """Provider runtime configuration."""

    rpc_url: str | None = None
    # Timeouts (seconds)
    request_timeout: float = 30.0
    # Connectivity monitor
    poll_interval: float = 4.0
    probe_attempts: int = 3
    # Request policy
    reject_when_disconnected: bool = True
    enforce_chain: bool = True
    supported_methods: frozenset[str] | None = None
    # Deprecated close/networkChanged/notification events
    legacy_events: bool = True
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")
        if self.poll_interval <= 0:
            raise ConfigurationError("poll_interval must be positive")
        if self.probe_attempts < 1:
            raise ConfigurationError("probe_attempts must be at least 1")
        if str(self.log_level).upper() not in _LOG_LEVELS:
            raise ConfigurationError(f"Unknown log_level: {self.log_level!r}")
        if self.supported_methods is not None and not isinstance(
            self.supported_methods, frozenset
        ):
            object.__setattr__(self, "supported_methods", frozenset(self.supported_methods))

    @classmethod
    def from_env(cls, **overrides: Any) -> ProviderConfig:
        """Load configuration from ETHPROVIDER_* environment variables."""
        values: dict[str, Any] = {}

        rpc_url = _get_env_var("ETHPROVIDER_RPC_URL")
        if rpc_url:
            values["rpc_url"] = rpc_url

        for name, kind in (
            ("request_timeout", float),
            ("poll_interval", float),
            ("probe_attempts", int),
        ):
            env_name = f"ETHPROVIDER_{name.upper()}"
            raw = _get_env_var(env_name)
            if raw is not None:
                values[name] = _parse_number(env_name, raw, kind)

        for name in ("reject_when_disconnected", "enforce_chain", "legacy_events"):
            env_name = f"ETHPROVIDER_{name.upper()}"
            raw = _get_env_var(env_name)
            if raw is not None:
                values[name] = _parse_bool(env_name, raw)

        methods = _get_env_var("ETHPROVIDER_SUPPORTED_METHODS")
        if methods:
            values["supported_methods"] = _parse_methods(methods)

        values["log_level"] = _get_env_var("ETHPROVIDER_LOG_LEVEL", default="INFO")

        values.update(overrides)
        return cls(**values)

    def with_updates(self, **updates: Any) -> ProviderConfig:
        """Create a new ProviderConfig with updated values."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(updates)
        return ProviderConfig(**current)

    def supports(self, method: str) -> bool:
        """True when no allowlist is configured or the method is on it."""
        return self.supported_methods is None or method in self.supported_methods

    def masked_rpc_url(self) -> str:
        """Return the RPC URL without credentials or path for safe logging."""
        if not self.rpc_url:
            return "<unset>"
        parts = urlsplit(self.rpc_url)
        host = parts.hostname or ""
        if parts.port:
            host = f"{host}:{parts.port}"
        suffix = "/..." if parts.path.strip("/") or parts.query else ""
        return f"{parts.scheme}://{host}{suffix}"
