"""Per-provider call metrics and rate-limit tracking.

HttpProvider records every fetch here: latency, outcome, the last error with
its Retry-After hint, and the x-ratelimit-* headers the provider returned.
The resolver reports these through health().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ecotrace.errors import EcotraceError, ProviderUnavailable

NEAR_LIMIT_PERCENT = 80


def _header_int(headers: Any, name: str) -> int | None:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def retry_after_seconds(headers: Any) -> float | None:
    """Retry-After in seconds. HTTP-date values are ignored."""
    value = _header_int(headers, "retry-after")
    return float(value) if value is not None and value >= 0 else None


@dataclass
class RateLimit:
    """Quota usage as last reported by the provider's x-ratelimit-* headers."""

    limit: int | None = None
    remaining: int | None = None
    reset_at: datetime | None = None

    def update(self, headers: Any) -> None:
        limit = _header_int(headers, "x-ratelimit-limit")
        remaining = _header_int(headers, "x-ratelimit-remaining")
        reset = _header_int(headers, "x-ratelimit-reset")
        if limit is not None:
            self.limit = limit
        if remaining is not None:
            self.remaining = remaining
        if reset is not None:
            # epoch seconds
            self.reset_at = datetime.fromtimestamp(reset, UTC)

    @property
    def used(self) -> int | None:
        if self.limit is None or self.remaining is None:
            return None
        return max(0, self.limit - self.remaining)

    @property
    def percentage_used(self) -> int | None:
        used = self.used
        if used is None or not self.limit:
            return None
        return round(used / self.limit * 100)

    @property
    def is_near_limit(self) -> bool:
        pct = self.percentage_used
        return pct is not None and pct >= NEAR_LIMIT_PERCENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "limit": self.limit,
            "remaining": self.remaining,
            "used": self.used,
            "reset_at": self.reset_at.isoformat() if self.reset_at else None,
            "percentage_used": self.percentage_used,
            "is_near_limit": self.is_near_limit,
        }


@dataclass
class ErrorRecord:
    error_type: str
    message: str
    at: datetime
    status_code: int | None = None
    retry_after_seconds: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.error_type,
            "message": self.message,
            "at": self.at.isoformat(),
            "status_code": self.status_code,
            "retry_after_seconds": self.retry_after_seconds,
        }


@dataclass
class ProviderMetrics:
    requests: int = 0
    successes: int = 0
    errors: int = 0
    last_response_ms: float | None = None
    last_success: datetime | None = None
    last_error: ErrorRecord | None = None
    rate_limit: RateLimit = field(default_factory=RateLimit)

    @property
    def success_rate(self) -> float:
        return self.successes / self.requests if self.requests else 1.0

    def record_success(self, elapsed_ms: float, at: datetime) -> None:
        self.requests += 1
        self.successes += 1
        self.last_response_ms = elapsed_ms
        self.last_success = at

    def record_failure(self, exc: EcotraceError, elapsed_ms: float, at: datetime) -> None:
        self.requests += 1
        self.errors += 1
        self.last_response_ms = elapsed_ms
        status_code: int | None = None
        retry_after: float | None = None
        if isinstance(exc, ProviderUnavailable):
            status_code, retry_after = exc.status_code, exc.retry_after
        self.last_error = ErrorRecord(
            error_type=type(exc).__name__,
            message=str(exc),
            at=at,
            status_code=status_code,
            retry_after_seconds=retry_after,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "requests": self.requests,
            "successes": self.successes,
            "errors": self.errors,
            "success_rate": round(self.success_rate, 4),
            "last_response_ms": (
                round(self.last_response_ms, 3) if self.last_response_ms is not None else None
            ),
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "last_error": self.last_error.to_dict() if self.last_error else None,
            "rate_limit": self.rate_limit.to_dict(),
        }
