"""Logging and event-sink configuration, env-var driven.

Zero config gives structured JSON logs on stderr.

    ECOTRACE_LOG_FORMATTER=structlog (default) | stdlib
    ECOTRACE_LOG_DESTINATION=stderr (default) | jsonl
    ECOTRACE_LOG_FORMAT=json (default) | console
    ECOTRACE_LOG_LEVEL=INFO
    ECOTRACE_LOG_PATH=<file>   jsonl log destination
    ECOTRACE_EVENT_LOG=<file>  append every published event as a JSON line
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass
class ObservabilityConfig:
    """Where logs and events go."""

    log_formatter: str = field(
        default_factory=lambda: os.environ.get("ECOTRACE_LOG_FORMATTER", "structlog")
    )  # "structlog" | "stdlib"

    log_destination: str = field(
        default_factory=lambda: os.environ.get("ECOTRACE_LOG_DESTINATION", "stderr")
    )  # "stderr" | "jsonl"

    log_level: str = field(
        default_factory=lambda: os.environ.get("ECOTRACE_LOG_LEVEL", "INFO")
    )

    log_format: str = field(
        default_factory=lambda: os.environ.get("ECOTRACE_LOG_FORMAT", "json")
    )  # "json" | "console"

    log_path: str | None = field(
        default_factory=lambda: os.environ.get("ECOTRACE_LOG_PATH")
    )

    # Audit trail of resolved factors and calculations
    event_log_path: str | None = field(
        default_factory=lambda: os.environ.get("ECOTRACE_EVENT_LOG")
    )
