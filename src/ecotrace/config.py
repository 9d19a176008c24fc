"""Runtime configuration: YAML file + env var overrides.

Priority: env var > YAML file > default.
Env vars use the ECOTRACE_ prefix (ECOTRACE_CACHE_TTL_SECONDS=3600), except
provider API keys, which keep the names the providers document
(ELECTRICITY_MAPS_API_KEY, AWS_CARBON_API_KEY, EPA_EGRID_API_KEY).
YAML file default: ~/.ecotrace/config.yaml
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from ecotrace.observability.logging import get_logger

logger = get_logger(__name__)

_TRUTHY = {"1", "true", "on", "yes"}
_FALSY = {"0", "false", "off", "no"}
_DEFAULT_PATH = Path("~/.ecotrace/config.yaml").expanduser()

DEFAULT_PROVIDER_ORDER: tuple[str, ...] = ("electricity_maps", "aws_carbon", "epa_egrid")


def _int_env(name: str, default: str, *, min_val: int = 0) -> int:
    raw = os.environ.get(name, default)
    try:
        val = int(raw)
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {raw!r}.") from None
    if val < min_val:
        raise ValueError(f"{name}={val} is below minimum {min_val}.")
    return val


def _float_env(name: str, default: str, *, min_val: float = 0.0) -> float:
    raw = os.environ.get(name, default)
    try:
        val = float(raw)
    except ValueError:
        raise ValueError(f"Invalid float for {name}: {raw!r}.") from None
    if val < min_val:
        raise ValueError(f"{name}={val} is below minimum {min_val}.")
    return val


def _optional_float_env(name: str) -> float | None:
    if not os.environ.get(name):
        return None
    return _float_env(name, "0", min_val=0.0)


def _bool_env(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


def _list_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if not raw:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass
class EcotraceConfig:
    """Settings for the cache, breaker, providers and resolver."""

    # --- Cache ---
    cache_ttl_seconds: float = field(
        default_factory=lambda: _float_env("ECOTRACE_CACHE_TTL_SECONDS", "86400", min_val=1.0),
        metadata={"env": "ECOTRACE_CACHE_TTL_SECONDS"},
    )
    cache_max_size: int = field(
        default_factory=lambda: _int_env("ECOTRACE_CACHE_MAX_SIZE", "1000", min_val=1),
        metadata={"env": "ECOTRACE_CACHE_MAX_SIZE"},
    )
    # 0 disables the background sweeper; expired entries are then only dropped on read
    cache_sweep_interval_seconds: float = field(
        default_factory=lambda: _float_env("ECOTRACE_CACHE_SWEEP_INTERVAL_SECONDS", "300"),
        metadata={"env": "ECOTRACE_CACHE_SWEEP_INTERVAL_SECONDS"},
    )

    # --- Circuit breaker ---
    breaker_failure_threshold: int = field(
        default_factory=lambda: _int_env("ECOTRACE_BREAKER_FAILURE_THRESHOLD", "5", min_val=1),
        metadata={"env": "ECOTRACE_BREAKER_FAILURE_THRESHOLD"},
    )
    breaker_cooldown_seconds: float = field(
        default_factory=lambda: _float_env("ECOTRACE_BREAKER_COOLDOWN_SECONDS", "60"),
        metadata={"env": "ECOTRACE_BREAKER_COOLDOWN_SECONDS"},
    )
    breaker_failure_memory_seconds: float = field(
        default_factory=lambda: _float_env("ECOTRACE_BREAKER_FAILURE_MEMORY_SECONDS", "300"),
        metadata={"env": "ECOTRACE_BREAKER_FAILURE_MEMORY_SECONDS"},
    )

    # --- Providers / resolver ---
    providers: tuple[str, ...] = field(
        default_factory=lambda: _list_env("ECOTRACE_PROVIDERS", DEFAULT_PROVIDER_ORDER),
        metadata={"env": "ECOTRACE_PROVIDERS"},
    )
    provider_timeout_seconds: float = field(
        default_factory=lambda: _float_env("ECOTRACE_PROVIDER_TIMEOUT_SECONDS", "10", min_val=0.1),
        metadata={"env": "ECOTRACE_PROVIDER_TIMEOUT_SECONDS"},
    )
    # None = no overall deadline; worst case is providers × provider timeout
    resolve_deadline_seconds: float | None = field(
        default_factory=lambda: _optional_float_env("ECOTRACE_RESOLVE_DEADLINE_SECONDS"),
        metadata={"env": "ECOTRACE_RESOLVE_DEADLINE_SECONDS"},
    )
    coalesce_requests: bool = field(
        default_factory=lambda: _bool_env("ECOTRACE_COALESCE_REQUESTS", True),
        metadata={"env": "ECOTRACE_COALESCE_REQUESTS"},
    )

    # --- API keys (never shown in repr) ---
    electricity_maps_api_key: str | None = field(
        default_factory=lambda: os.environ.get("ELECTRICITY_MAPS_API_KEY"),
        repr=False,
        metadata={"env": "ELECTRICITY_MAPS_API_KEY", "secret": True},
    )
    aws_carbon_api_key: str | None = field(
        default_factory=lambda: os.environ.get("AWS_CARBON_API_KEY"),
        repr=False,
        metadata={"env": "AWS_CARBON_API_KEY", "secret": True},
    )
    epa_egrid_api_key: str | None = field(
        default_factory=lambda: os.environ.get("EPA_EGRID_API_KEY"),
        repr=False,
        metadata={"env": "EPA_EGRID_API_KEY", "secret": True},
    )

    @classmethod
    def load(cls, path: Path | None = None) -> EcotraceConfig:
        """Load from a YAML file; env vars still win for any key they set."""
        file_path = path or _DEFAULT_PATH
        kwargs: dict[str, Any] = {}

        if file_path.exists():
            raw = yaml.safe_load(file_path.read_text()) or {}
            if not isinstance(raw, dict):
                raise ValueError(f"{file_path}: expected a mapping, got {type(raw).__name__}")
            known = {f.name: f for f in fields(cls)}
            for key, value in raw.items():
                f = known.get(key)
                if f is None:
                    logger.warning("config.unknown_key", key=key, path=str(file_path))
                    continue
                if f.metadata.get("env") in os.environ:
                    continue
                kwargs[key] = tuple(value) if isinstance(value, list) else value

        return cls(**kwargs)

    def to_dict(self, *, redact: bool = True) -> dict[str, Any]:
        """Plain dict of settings. API keys become "***" (or None) when redacted."""
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if redact and f.metadata.get("secret"):
                value = "***" if value else None
            out[f.name] = list(value) if isinstance(value, tuple) else value
        return out


# Process-wide instance for the CLI and service bootstrap
_config: EcotraceConfig | None = None


def get_config(path: Path | None = None) -> EcotraceConfig:
    global _config
    if _config is None:
        _config = EcotraceConfig.load(path)
    return _config


def reset_config() -> None:
    """Reset for testing."""
    global _config
    _config = None
