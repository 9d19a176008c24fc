"""Always-on subscriber that turns every event into one structured log line."""

from __future__ import annotations

from dataclasses import asdict

from ecotrace.observability.events import (
    CacheSwept,
    CarbonCalculated,
    CircuitClosed,
    CircuitHalfOpened,
    CircuitOpened,
    FactorResolved,
    ProviderFailed,
    ResolutionFellBack,
)
from ecotrace.observability.linker import EcotraceEventLinker
from ecotrace.observability.logging import get_logger

# event type -> (log level, event name)
_ROUTES: dict[type, tuple[str, str]] = {
    FactorResolved: ("info", "factor.resolved"),
    ProviderFailed: ("warning", "provider.failed"),
    ResolutionFellBack: ("warning", "resolution.fell_back"),
    CircuitOpened: ("warning", "circuit.opened"),
    CircuitHalfOpened: ("info", "circuit.half_opened"),
    CircuitClosed: ("info", "circuit.closed"),
    CacheSwept: ("debug", "cache.swept"),
    CarbonCalculated: ("info", "carbon.calculated"),
}


def _get_logger():
    # Looked up per call so a later setup_logging() takes effect.
    return get_logger("ecotrace.events")


def register_structlog_subscriber() -> None:
    @EcotraceEventLinker.on(*_ROUTES)
    def _log_event(event: object) -> None:
        level, name = _ROUTES[type(event)]
        getattr(_get_logger(), level)(name, **asdict(event))  # type: ignore[call-overload]
