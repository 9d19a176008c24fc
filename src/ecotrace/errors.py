"""Error taxonomy for emission-factor resolution.

ProviderUnavailable and ProviderDataMissing are raised by provider adapters
and advance the resolver to the next provider. CircuitOpen is raised by the
breaker without any I/O. ResolutionExhausted is built by the resolver when
the whole chain fails; it is logged and absorbed, never raised to callers.
"""

from __future__ import annotations


class EcotraceError(Exception):
    """Base class for every ecotrace error."""


class ProviderError(EcotraceError):
    """A provider could not produce a usable emission factor."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


class ProviderUnavailable(ProviderError):
    """Timeout, transport failure, non-2xx status, or missing credentials."""

    def __init__(
        self,
        provider: str,
        reason: str,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(provider, reason)
        self.status_code = status_code
        self.retry_after = retry_after


class ProviderDataMissing(ProviderError):
    """The response arrived but lacks required fields or holds invalid values."""


class CircuitOpen(EcotraceError):
    """The breaker for ``key`` is open; the operation was not invoked."""

    def __init__(self, key: str, retry_after: float = 0.0) -> None:
        super().__init__(f"circuit open for {key} (retry in {retry_after:.1f}s)")
        self.key = key
        self.retry_after = retry_after


class ResolutionExhausted(EcotraceError):
    """Every provider in the chain failed or was skipped for a region."""

    def __init__(self, region_key: str, failures: dict[str, str]) -> None:
        detail = ", ".join(f"{name}={reason}" for name, reason in failures.items()) or "no providers"
        super().__init__(f"no provider produced a factor for {region_key}: {detail}")
        self.region_key = region_key
        self.failures = dict(failures)
