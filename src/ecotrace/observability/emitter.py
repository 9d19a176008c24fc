"""Process-wide event emitter: configure once, emit everywhere.

emit() is a no-op until configure() runs, so library code and tests can
publish events without any setup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pyventus.events import EventEmitter

if TYPE_CHECKING:
    from ecotrace.observability.config import ObservabilityConfig

_emitter: EventEmitter | None = None
_configured: bool = False


def emit(event: Any) -> None:
    """Publish an event to every subscriber. No-op if not configured."""
    if _emitter is not None:
        _emitter.emit(event)


def configure(config: ObservabilityConfig | None = None) -> EventEmitter:
    """Set up logging, the emitter, and the built-in subscribers.

    Idempotent: a second call returns the existing emitter.
    """
    global _emitter, _configured

    if _configured and _emitter is not None:
        return _emitter

    from pyventus.core.processing.asyncio import AsyncIOProcessingService

    from ecotrace.observability.config import ObservabilityConfig
    from ecotrace.observability.linker import EcotraceEventLinker
    from ecotrace.observability.logging import get_logger, setup_logging
    from ecotrace.observability.subscribers.structlog_sub import register_structlog_subscriber

    cfg = config or ObservabilityConfig()
    setup_logging(cfg)

    _emitter = EventEmitter(
        event_linker=EcotraceEventLinker,
        event_processor=AsyncIOProcessingService(),
    )

    register_structlog_subscriber()

    if cfg.event_log_path:
        from ecotrace.observability.subscribers.jsonl import register_jsonl_subscriber

        register_jsonl_subscriber(cfg.event_log_path)
        get_logger(__name__).info("events.jsonl.registered", path=cfg.event_log_path)

    _configured = True
    return _emitter


def is_configured() -> bool:
    return _configured


def reset() -> None:
    """Drop the emitter and every subscriber. For tests and teardown."""
    global _emitter, _configured

    from ecotrace.observability.linker import EcotraceEventLinker
    from ecotrace.observability.logging import shutdown_logging

    shutdown_logging()
    EcotraceEventLinker.remove_all()
    _emitter = None
    _configured = False
