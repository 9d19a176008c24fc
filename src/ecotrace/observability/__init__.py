"""ecotrace observability: structured logs and a typed event channel.

Public API:
    emit(event)     : publish an event (no-op if not configured)
    configure(cfg)  : set up logging, emitter and subscribers (once, at startup)
    reset()         : tear everything down (tests)
    get_logger(name) : structured logger, usable before configure()

Collaborators subscribe to events on EcotraceEventLinker.
"""

from ecotrace.observability.emitter import configure, emit, is_configured, reset
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
from ecotrace.observability.logging import (
    LogDestination,
    LogFormatter,
    get_logger,
    register_destination,
    register_formatter,
)

__all__ = [
    "emit",
    "configure",
    "is_configured",
    "reset",
    "get_logger",
    "LogFormatter",
    "LogDestination",
    "register_formatter",
    "register_destination",
    "EcotraceEventLinker",
    # Events
    "FactorResolved",
    "ProviderFailed",
    "ResolutionFellBack",
    "CircuitOpened",
    "CircuitHalfOpened",
    "CircuitClosed",
    "CacheSwept",
    "CarbonCalculated",
]
