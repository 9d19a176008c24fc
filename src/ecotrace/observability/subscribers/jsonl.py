"""Writes every published event to a JSONL file (audit trail of factors and results)."""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path

from ecotrace.observability.events import ALL_EVENTS
from ecotrace.observability.linker import EcotraceEventLinker
from ecotrace.observability.sinks.jsonl_sink import JsonlSink


def register_jsonl_subscriber(path: str) -> None:
    sink = JsonlSink(Path(path))

    @EcotraceEventLinker.on(*ALL_EVENTS)
    def _write_jsonl(event: object) -> None:
        sink.write({"event": type(event).__name__, **asdict(event)})  # type: ignore[call-overload]
