"""Provider protocol and the shared HTTP adapter.

An adapter turns a Region into a canonical EmissionFactor or raises:
    ProviderUnavailable  : timeout, transport error, non-2xx, no API key
    ProviderDataMissing  : body is not JSON, fields missing or out of range

Adapters do not retry and do not know about the circuit breaker; the
resolver wraps every fetch() in breaker.execute(provider.name, ...). Each
HttpProvider keeps ``metrics`` on its own calls and quota for health reports.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import Any, ClassVar, Protocol, runtime_checkable

import httpx

from ecotrace.carbon.types import ConfidenceRating, EmissionFactor, FactorSource, Region
from ecotrace.errors import EcotraceError, ProviderDataMissing, ProviderUnavailable
from ecotrace.observability.logging import get_logger
from ecotrace.providers.metrics import ProviderMetrics, retry_after_seconds
from ecotrace.providers.payloads import ProviderPayload, intensity_kg_per_kwh

logger = get_logger(__name__)

USER_AGENT = "ecotrace-carbon-calculator/1.0"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@runtime_checkable
class EmissionFactorProvider(Protocol):
    """Anything the resolver can ask for an emission factor."""

    name: str

    @property
    def configured(self) -> bool: ...

    def supports(self, region: Region) -> bool: ...

    async def fetch(self, region: Region) -> EmissionFactor: ...


@dataclass(frozen=True)
class ProviderRequest:
    url: str
    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)


class HttpProvider:
    """JSON-over-HTTP provider with a hard per-call timeout.

    Subclasses describe the request, parse the payload, and say how much
    the provider is trusted; fetch() does the rest.
    """

    name: ClassVar[str]
    source: ClassVar[FactorSource]
    confidence: ClassVar[ConfidenceRating]

    def __init__(
        self,
        api_key: str | None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        factor_ttl: timedelta = timedelta(hours=24),
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._api_key = api_key
        self._client = client
        self.timeout = timeout
        self.factor_ttl = factor_ttl
        self._now = now
        self.metrics = ProviderMetrics()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(configured={self.configured}, timeout={self.timeout})"

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def supports(self, region: Region) -> bool:
        return True

    # -- subclass hooks -------------------------------------------------------

    def build_request(self, region: Region, api_key: str) -> ProviderRequest:
        raise NotImplementedError

    def parse(self, raw: Any) -> ProviderPayload:
        raise NotImplementedError

    def describe_region(self, payload: ProviderPayload, region: Region) -> Region:
        """Region stamped on the factor; defaults to the requested one."""
        return region

    def confidence_for(self, payload: ProviderPayload, region: Region) -> ConfidenceRating:
        return self.confidence

    def last_updated(self, payload: ProviderPayload) -> datetime | None:
        return None

    # -- fetch ----------------------------------------------------------------

    async def fetch(self, region: Region) -> EmissionFactor:
        if not self._api_key:
            raise ProviderUnavailable(self.name, "API key not configured")
        request = self.build_request(region, self._api_key)
        logger.debug("provider.fetch", provider=self.name, region=region.cache_key, url=request.url)
        t0 = time.perf_counter()
        try:
            raw = await self._get_json(request)
            factor = self.to_factor(self.parse(raw), region)
        except EcotraceError as exc:
            self.metrics.record_failure(exc, (time.perf_counter() - t0) * 1000, self._now())
            raise
        self.metrics.record_success((time.perf_counter() - t0) * 1000, self._now())
        return factor

    def to_factor(self, payload: ProviderPayload, region: Region) -> EmissionFactor:
        now = self._now()
        renewable = payload.renewable_percentage
        try:
            return EmissionFactor(
                region=self.describe_region(payload, region),
                factor_kg_per_kwh=intensity_kg_per_kwh(payload),
                renewable_share_percent=0.0 if renewable is None else renewable,
                source=self.source,
                confidence_rating=self.confidence_for(payload, region),
                valid_from=now,
                valid_until=now + self.factor_ttl,
                last_updated=self.last_updated(payload) or now,
            )
        except ValueError as exc:
            raise ProviderDataMissing(self.name, str(exc)) from exc

    async def _get_json(self, request: ProviderRequest) -> Any:
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT, **request.headers}
        try:
            response = await asyncio.wait_for(
                self._send(request.url, request.params, headers), timeout=self.timeout
            )
        except (TimeoutError, httpx.TimeoutException):
            raise ProviderUnavailable(self.name, f"timed out after {self.timeout}s") from None
        except httpx.HTTPError as exc:
            raise ProviderUnavailable(self.name, f"{type(exc).__name__}: {exc}") from exc

        self.metrics.rate_limit.update(response.headers)
        if not response.is_success:
            raise ProviderUnavailable(
                self.name,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                retry_after=retry_after_seconds(response.headers),
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderDataMissing(self.name, "response body is not valid JSON") from exc

    async def _send(self, url: str, params: dict[str, str], headers: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, params=params, headers=headers)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url, params=params, headers=headers)


def with_grid_region(region: Region, grid_region: str) -> Region:
    return replace(region, grid_region=grid_region or region.grid_region)
