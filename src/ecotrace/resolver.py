"""Emission-factor resolution: cache, then providers in trust order, then default.

Usage:
    resolver = EmissionFactorResolver(providers, cache, breaker)
    factor = await resolver.resolve(Region("US", "CA"))

resolve() never raises for provider problems. Each provider call goes
through breaker.execute(provider.name, ...); the first success wins and is
cached. When no provider produces a factor, the conservative global default
(low confidence) is cached and returned instead.

Concurrent resolve() calls for the same uncached region share one in-flight
resolution, so a burst of identical requests costs one provider call each.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from ecotrace.carbon.config import global_default_factor
from ecotrace.carbon.types import EmissionFactor, Region
from ecotrace.errors import CircuitOpen, EcotraceError, ProviderUnavailable, ResolutionExhausted
from ecotrace.observability import emit
from ecotrace.observability.events import (
    FactorResolved,
    ProviderFailed,
    ResolutionFellBack,
    now_iso,
)
from ecotrace.observability.logging import get_logger
from ecotrace.providers.base import EmissionFactorProvider
from ecotrace.providers.metrics import ProviderMetrics
from ecotrace.resilience.breaker import BreakerState, CircuitBreaker, CircuitState
from ecotrace.resilience.cache import CacheStats, TTLCache

logger = get_logger(__name__)

PROBE_REGION = Region(country="US")


def _utcnow() -> datetime:
    return datetime.now(UTC)


async def _fetch(provider: EmissionFactorProvider, region: Region) -> EmissionFactor:
    # A provider's own timeout is a provider failure, never the resolve deadline
    try:
        return await provider.fetch(region)
    except TimeoutError as exc:
        raise ProviderUnavailable(provider.name, "timed out") from exc


def _metrics_of(provider: EmissionFactorProvider) -> ProviderMetrics | None:
    metrics = getattr(provider, "metrics", None)
    return metrics if isinstance(metrics, ProviderMetrics) else None


@dataclass
class ProviderHealth:
    name: str
    configured: bool
    state: str
    failure_count: int
    ready: bool
    metrics: ProviderMetrics | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "configured": self.configured,
            "state": self.state,
            "failure_count": self.failure_count,
            "ready": self.ready,
        }
        if self.metrics is not None:
            d["metrics"] = self.metrics.to_dict()
        return d


@dataclass
class ResolverHealth:
    """healthy: every configured provider ready; degraded: some; unhealthy: none."""

    status: str
    providers: list[ProviderHealth] = field(default_factory=list)
    cache: CacheStats = field(default_factory=CacheStats)

    @property
    def near_rate_limit(self) -> list[str]:
        """Providers that have used 80% or more of their reported quota."""
        return [p.name for p in self.providers if p.metrics and p.metrics.rate_limit.is_near_limit]

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "providers": {p.name: p.to_dict() for p in self.providers},
            "near_rate_limit": self.near_rate_limit,
            "cache": self.cache.to_dict(),
        }


class EmissionFactorResolver:
    """Resolve a Region to an EmissionFactor with caching and fallback."""

    def __init__(
        self,
        providers: Sequence[EmissionFactorProvider],
        cache: TTLCache[EmissionFactor],
        breaker: CircuitBreaker,
        *,
        cache_ttl: float | None = None,
        deadline: float | None = None,
        coalesce: bool = True,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._providers = list(providers)
        self._cache = cache
        self._breaker = breaker
        self._cache_ttl = cache_ttl if cache_ttl is not None else cache.default_ttl
        self._deadline = deadline
        self._coalesce = coalesce
        self._now = now
        self._inflight: dict[str, asyncio.Task[EmissionFactor]] = {}

    @property
    def providers(self) -> list[EmissionFactorProvider]:
        return list(self._providers)

    async def resolve(self, region: Region) -> EmissionFactor:
        key = region.cache_key
        t0 = time.perf_counter()

        cached = self._cache.get(key)
        if cached is not None:
            self._announce(key, cached, cached=True, attempts=0, t0=t0)
            return cached

        if not self._coalesce:
            return await self._resolve_uncached(region, t0)

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._resolve_uncached(region, t0))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            logger.debug("resolver.coalesced", region=key)
        # A caller giving up must not cancel the resolution others are awaiting
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[EmissionFactor]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _resolve_uncached(self, region: Region, t0: float) -> EmissionFactor:
        key = region.cache_key
        loop = asyncio.get_running_loop()
        deadline_at = loop.time() + self._deadline if self._deadline is not None else None
        failures: dict[str, str] = {}
        attempted: list[str] = []

        for provider in self._providers:
            if not provider.supports(region):
                logger.debug("resolver.skip", provider=provider.name, region=key, reason="out_of_scope")
                continue
            if not provider.configured:
                logger.debug("resolver.skip", provider=provider.name, region=key, reason="not_configured")
                continue

            remaining = None if deadline_at is None else deadline_at - loop.time()
            if remaining is not None and remaining <= 0:
                failures[provider.name] = "deadline exceeded"
                break

            attempted.append(provider.name)
            try:
                factor = await asyncio.wait_for(
                    self._breaker.execute(provider.name, lambda p=provider: _fetch(p, region)),
                    timeout=remaining,
                )
            except TimeoutError:
                # _fetch converts provider timeouts, so only the deadline lands here
                self._record_failure(
                    provider.name, key, "DeadlineExceeded", "resolve deadline reached", failures
                )
                break
            except CircuitOpen as exc:
                attempted.pop()
                self._record_failure(provider.name, key, type(exc).__name__, str(exc), failures)
                continue
            except EcotraceError as exc:
                self._record_failure(provider.name, key, type(exc).__name__, str(exc), failures)
                continue
            except Exception as exc:
                logger.exception("resolver.provider_error", provider=provider.name, region=key)
                self._record_failure(provider.name, key, type(exc).__name__, str(exc), failures)
                continue

            self._cache.set(key, factor, self._cache_ttl)
            self._announce(key, factor, cached=False, attempts=len(attempted), t0=t0)
            return factor

        return self._fall_back(region, attempted, failures, t0)

    def _record_failure(
        self, provider: str, key: str, error_type: str, reason: str, failures: dict[str, str]
    ) -> None:
        failures[provider] = reason
        emit(
            ProviderFailed(
                provider=provider,
                region_key=key,
                error_type=error_type,
                reason=reason,
                timestamp=now_iso(),
            )
        )

    def _fall_back(
        self, region: Region, attempted: list[str], failures: dict[str, str], t0: float
    ) -> EmissionFactor:
        key = region.cache_key
        exhausted = ResolutionExhausted(key, failures)
        factor = global_default_factor(region, now=self._now(), ttl=timedelta(seconds=self._cache_ttl))
        self._cache.set(key, factor, self._cache_ttl)
        emit(
            ResolutionFellBack(
                region_key=key,
                attempted=tuple(attempted),
                reason=str(exhausted),
                timestamp=now_iso(),
            )
        )
        self._announce(key, factor, cached=False, attempts=len(attempted), t0=t0)
        return factor

    def _announce(self, key: str, factor: EmissionFactor, *, cached: bool, attempts: int, t0: float) -> None:
        latency_ms = (time.perf_counter() - t0) * 1000
        emit(
            FactorResolved(
                region_key=key,
                source=factor.source.name,
                confidence=factor.confidence_rating.value,
                factor_kg_per_kwh=factor.factor_kg_per_kwh,
                cached=cached,
                attempts=attempts,
                latency_ms=round(latency_ms, 3),
                timestamp=now_iso(),
            )
        )

    # -- maintenance ----------------------------------------------------------

    def invalidate(self, region: Region | str) -> bool:
        """Drop the cached factor for one region so the next resolve() refetches."""
        if isinstance(region, str):
            region = Region.parse(region)
        removed = self._cache.delete(region.cache_key)
        logger.info("resolver.invalidated", region=region.cache_key, removed=removed)
        return removed

    def invalidate_all(self) -> None:
        self._cache.clear()
        logger.info("resolver.invalidated_all")

    async def probe(self, region: Region = PROBE_REGION) -> dict[str, bool]:
        """Fetch once from every configured provider, bypassing the cache."""
        results: dict[str, bool] = {}
        for provider in self._providers:
            if not provider.configured or not provider.supports(region):
                results[provider.name] = False
                continue
            try:
                await self._breaker.execute(provider.name, lambda p=provider: _fetch(p, region))
            except EcotraceError as exc:
                logger.warning("resolver.probe_failed", provider=provider.name, error=str(exc))
                results[provider.name] = False
            else:
                results[provider.name] = True
        logger.info("resolver.probe", results=results)
        return results

    def health(self) -> ResolverHealth:
        states = self._breaker.states()
        providers: list[ProviderHealth] = []
        for provider in self._providers:
            st = states.get(provider.name, CircuitState())
            ready = provider.configured and (
                st.state is BreakerState.CLOSED
                or (st.state is BreakerState.OPEN and self._breaker.retry_after(provider.name) == 0)
            )
            providers.append(
                ProviderHealth(
                    name=provider.name,
                    configured=provider.configured,
                    state=st.state.value,
                    failure_count=st.failure_count,
                    ready=ready,
                    metrics=_metrics_of(provider),
                )
            )

        configured = [p for p in providers if p.configured]
        ready_count = sum(1 for p in configured if p.ready)
        if configured and ready_count == len(configured):
            status = "healthy"
        elif ready_count:
            status = "degraded"
        else:
            status = "unhealthy"
        return ResolverHealth(status=status, providers=providers, cache=self._cache.stats)
