"""Typed events published by ecotrace.

All events are frozen dataclasses holding plain values. Core modules emit
them; subscribers decide whether they become log lines, JSONL audit records,
or realtime pushes to clients.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


# ---------------------------------------------------------------------------
# Emission-factor resolution
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FactorResolved:
    region_key: str
    source: str
    confidence: str  # "high" | "medium" | "low"
    factor_kg_per_kwh: float
    cached: bool
    attempts: int  # providers actually called
    latency_ms: float
    timestamp: str


@dataclass(frozen=True)
class ProviderFailed:
    provider: str
    region_key: str
    error_type: str  # "ProviderUnavailable" | "ProviderDataMissing" | "CircuitOpen"
    reason: str
    timestamp: str


@dataclass(frozen=True)
class ResolutionFellBack:
    """Every provider failed or was skipped; the global default was used."""

    region_key: str
    attempted: tuple[str, ...]
    reason: str
    timestamp: str


# ---------------------------------------------------------------------------
# Circuit breaker transitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CircuitOpened:
    key: str
    failure_count: int
    cooldown_seconds: float
    timestamp: str


@dataclass(frozen=True)
class CircuitHalfOpened:
    key: str
    timestamp: str


@dataclass(frozen=True)
class CircuitClosed:
    key: str
    previous_state: str
    reason: str  # "success" | "decay"
    timestamp: str


# ---------------------------------------------------------------------------
# Cache maintenance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CacheSwept:
    removed: int
    size: int
    timestamp: str


# ---------------------------------------------------------------------------
# Calculation results (outbound channel)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CarbonCalculated:
    """Published once per finished calculation for realtime/audit consumers."""

    activity_id: str | None
    activity_type: str
    region_key: str | None
    carbon_kg: float
    total_kwh: float
    confidence: str
    factor_source: str
    methodology_version: str
    timestamp: str


ALL_EVENTS: tuple[type, ...] = (
    FactorResolved,
    ProviderFailed,
    ResolutionFellBack,
    CircuitOpened,
    CircuitHalfOpened,
    CircuitClosed,
    CacheSwept,
    CarbonCalculated,
)
