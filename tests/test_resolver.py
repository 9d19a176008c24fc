"""Tests for ecotrace.resolver: cache-first, ordered fallback, breaker, coalescing."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from ecotrace.carbon.config import DEFAULT_FACTOR_KG_PER_KWH
from ecotrace.carbon.types import ConfidenceRating, Region
from ecotrace.errors import ProviderDataMissing, ProviderUnavailable
from ecotrace.observability.events import FactorResolved, ProviderFailed, ResolutionFellBack
from ecotrace.providers import ElectricityMapsProvider
from ecotrace.resilience.breaker import BreakerState, CircuitBreaker
from ecotrace.resilience.cache import TTLCache
from ecotrace.resolver import EmissionFactorResolver

from _helpers import ScriptedProvider, make_factor

US_CA = Region("US", "CA")


def _resolver(providers, *, clock=None, threshold: int = 5, **kwargs) -> EmissionFactorResolver:
    extra = {"clock": clock} if clock is not None else {}
    cache = TTLCache(default_ttl=86_400, **extra)
    breaker = CircuitBreaker(failure_threshold=threshold, **extra)
    return EmissionFactorResolver(providers, cache, breaker, **kwargs)


def _failing(name: str, **kwargs) -> ScriptedProvider:
    return ScriptedProvider(name, error=ProviderUnavailable(name, "HTTP 503", status_code=503), **kwargs)


class TestResolve:
    @pytest.mark.asyncio
    async def test_first_success_wins(self):
        first = ScriptedProvider("a", make_factor(0.35))
        second = ScriptedProvider("b", make_factor(0.9))
        resolver = _resolver([first, second])

        factor = await resolver.resolve(US_CA)

        assert factor.factor_kg_per_kwh == 0.35
        assert len(first.calls) == 1
        assert second.calls == []

    @pytest.mark.asyncio
    async def test_falls_through_failures_in_order(self):
        a = _failing("a")
        b = ScriptedProvider("b", error=ProviderDataMissing("b", "no carbonIntensity"))
        c = ScriptedProvider("c", make_factor(0.2, rating=ConfidenceRating.MEDIUM))
        resolver = _resolver([a, b, c])

        factor = await resolver.resolve(US_CA)

        assert factor.factor_kg_per_kwh == 0.2
        assert [len(p.calls) for p in (a, b, c)] == [1, 1, 1]

    @pytest.mark.asyncio
    async def test_cached_factor_returned_without_provider_calls(self):
        provider = ScriptedProvider("a", make_factor(0.9))
        resolver = _resolver([provider])
        cached = make_factor(0.35)
        resolver._cache.set(US_CA.cache_key, cached)

        assert await resolver.resolve(US_CA) is cached
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_success_is_cached(self):
        provider = ScriptedProvider("a", make_factor(0.35))
        resolver = _resolver([provider])
        first = await resolver.resolve(US_CA)
        second = await resolver.resolve(Region("us", "ca"))
        assert first is second
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_state_is_part_of_cache_key(self):
        provider = ScriptedProvider("a", make_factor(0.35))
        resolver = _resolver([provider])
        await resolver.resolve(Region("US", "CA"))
        await resolver.resolve(Region("US", "TX"))
        await resolver.resolve(Region("US"))
        assert len(provider.calls) == 3

    @pytest.mark.asyncio
    async def test_skips_unconfigured_and_out_of_scope(self):
        unconfigured = ScriptedProvider("a", make_factor(0.1), configured=False)
        elsewhere = ScriptedProvider("b", make_factor(0.1), countries={"DE"})
        good = ScriptedProvider("c", make_factor(0.35))
        resolver = _resolver([unconfigured, elsewhere, good])

        factor = await resolver.resolve(US_CA)

        assert factor.factor_kg_per_kwh == 0.35
        assert unconfigured.calls == [] and elsewhere.calls == []
        assert set(resolver._breaker.states()) == {"c"}


class TestFallback:
    @pytest.mark.asyncio
    async def test_all_failing_returns_low_confidence_default(self, events):
        providers = [_failing("a"), _failing("b"), _failing("c")]
        resolver = _resolver(providers)

        factor = await resolver.resolve(US_CA)

        assert factor.factor_kg_per_kwh == DEFAULT_FACTOR_KG_PER_KWH
        assert factor.confidence_rating is ConfidenceRating.LOW
        assert factor.region == US_CA
        fell_back = [e for e in events if isinstance(e, ResolutionFellBack)]
        assert len(fell_back) == 1
        assert fell_back[0].attempted == ("a", "b", "c")
        assert sum(isinstance(e, ProviderFailed) for e in events) == 3

    @pytest.mark.asyncio
    async def test_default_is_cached(self):
        providers = [_failing("a"), _failing("b")]
        resolver = _resolver(providers)
        await resolver.resolve(US_CA)
        again = await resolver.resolve(US_CA)
        assert again.confidence_rating is ConfidenceRating.LOW
        assert [len(p.calls) for p in providers] == [1, 1]

    @pytest.mark.asyncio
    async def test_no_providers_at_all(self):
        factor = await _resolver([]).resolve(Region("BR"))
        assert factor.confidence_rating is ConfidenceRating.LOW
        assert factor.factor_kg_per_kwh > 0

    @pytest.mark.asyncio
    async def test_unexpected_error_never_escapes(self):
        boom = ScriptedProvider("a", error=RuntimeError("bug"))
        good = ScriptedProvider("b", make_factor(0.35))
        factor = await _resolver([boom, good]).resolve(US_CA)
        assert factor.factor_kg_per_kwh == 0.35

    @pytest.mark.asyncio
    async def test_provider_timeout_error_advances_the_chain(self, events):
        stalled = ScriptedProvider("a", error=TimeoutError())
        good = ScriptedProvider("b", make_factor(0.35))
        resolver = _resolver([stalled, good])

        factor = await resolver.resolve(US_CA)

        assert factor.factor_kg_per_kwh == 0.35
        assert len(good.calls) == 1
        failed = [e for e in events if isinstance(e, ProviderFailed)]
        assert [(e.provider, e.error_type) for e in failed] == [("a", "ProviderUnavailable")]
        assert resolver._breaker.state("a").failure_count == 1

    @pytest.mark.asyncio
    async def test_provider_timeout_error_before_deadline_advances(self):
        stalled = ScriptedProvider("a", error=TimeoutError())
        good = ScriptedProvider("b", make_factor(0.35))
        factor = await _resolver([stalled, good], deadline=5.0).resolve(US_CA)
        assert factor.factor_kg_per_kwh == 0.35

    @pytest.mark.asyncio
    async def test_open_circuit_skips_provider(self, events):
        flaky = _failing("a")
        backup = ScriptedProvider("b", make_factor(0.3))
        resolver = _resolver([flaky, backup], threshold=1)

        await resolver.resolve(US_CA)
        resolver.invalidate(US_CA)
        await resolver.resolve(US_CA)

        assert len(flaky.calls) == 1
        assert len(backup.calls) == 2
        assert resolver._breaker.state("a").state is BreakerState.OPEN
        failed = [e for e in events if isinstance(e, ProviderFailed)]
        assert [e.error_type for e in failed] == ["ProviderUnavailable", "CircuitOpen"]


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_resolves_share_one_call(self):
        provider = ScriptedProvider("a", make_factor(0.35), delay=0.05)
        resolver = _resolver([provider])

        results = await asyncio.gather(*(resolver.resolve(US_CA) for _ in range(5)))

        assert len(provider.calls) == 1
        assert all(r is results[0] for r in results)

    @pytest.mark.asyncio
    async def test_concurrent_fallbacks_share_one_attempt_per_provider(self):
        providers = [_failing("a", delay=0.02), _failing("b", delay=0.02)]
        resolver = _resolver(providers)
        await asyncio.gather(resolver.resolve(US_CA), resolver.resolve(US_CA))
        assert [len(p.calls) for p in providers] == [1, 1]

    @pytest.mark.asyncio
    async def test_coalescing_can_be_disabled(self):
        provider = ScriptedProvider("a", make_factor(0.35), delay=0.05)
        resolver = _resolver([provider], coalesce=False)
        await asyncio.gather(resolver.resolve(US_CA), resolver.resolve(US_CA))
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_resolution(self):
        provider = ScriptedProvider("a", make_factor(0.35), delay=0.05)
        resolver = _resolver([provider])

        impatient = asyncio.create_task(resolver.resolve(US_CA))
        patient = asyncio.create_task(resolver.resolve(US_CA))
        await asyncio.sleep(0.01)
        impatient.cancel()

        factor = await patient
        assert factor.factor_kg_per_kwh == 0.35
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_deadline_returns_default_and_skips_remaining(self):
        slow = ScriptedProvider("a", make_factor(0.35), delay=1.0)
        never = ScriptedProvider("b", make_factor(0.2))
        resolver = _resolver([slow, never], deadline=0.05)

        factor = await resolver.resolve(US_CA)

        assert factor.confidence_rating is ConfidenceRating.LOW
        assert never.calls == []
        # A deadline cut is not the provider's failure
        assert resolver._breaker.state("a").failure_count == 0


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_expired_factor_is_refetched(self, clock):
        provider = ScriptedProvider("a", make_factor(0.35))
        cache = TTLCache(default_ttl=60, clock=clock)
        resolver = EmissionFactorResolver([provider], cache, CircuitBreaker(clock=clock))

        await resolver.resolve(US_CA)
        clock.advance(59)
        await resolver.resolve(US_CA)
        assert len(provider.calls) == 1

        clock.advance(1)
        await resolver.resolve(US_CA)
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self):
        provider = ScriptedProvider("a", make_factor(0.35))
        resolver = _resolver([provider])
        await resolver.resolve(US_CA)

        assert resolver.invalidate("US-CA") is True
        assert resolver.invalidate(US_CA) is False
        await resolver.resolve(US_CA)
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_invalidate_all(self):
        provider = ScriptedProvider("a", make_factor(0.35))
        resolver = _resolver([provider])
        await resolver.resolve(Region("US"))
        await resolver.resolve(Region("DE"))
        resolver.invalidate_all()
        await resolver.resolve(Region("US"))
        assert len(provider.calls) == 3

    @pytest.mark.asyncio
    async def test_probe_bypasses_cache(self):
        ok = ScriptedProvider("a", make_factor(0.35))
        down = _failing("b")
        unconfigured = ScriptedProvider("c", make_factor(0.2), configured=False)
        resolver = _resolver([ok, down, unconfigured])
        await resolver.resolve(Region("US"))

        assert await resolver.probe() == {"a": True, "b": False, "c": False}
        assert len(ok.calls) == 2
        assert unconfigured.calls == []

    @pytest.mark.asyncio
    async def test_health_reflects_breaker_states(self, clock):
        a = _failing("a")
        b = ScriptedProvider("b", make_factor(0.35))
        resolver = _resolver([a, b], clock=clock, threshold=1)
        assert resolver.health().status == "healthy"

        await resolver.resolve(US_CA)
        health = resolver.health()
        assert health.status == "degraded"
        by_name = {p.name: p for p in health.providers}
        assert by_name["a"].state == "open"
        assert not by_name["a"].ready
        assert by_name["b"].ready
        assert health.to_dict()["cache"]["size"] == 1

        clock.advance(60)
        assert resolver.health().status == "healthy"

    def test_health_unhealthy_without_configured_providers(self):
        resolver = _resolver([ScriptedProvider("a", configured=False)])
        assert resolver.health().status == "unhealthy"

    @pytest.mark.asyncio
    async def test_health_reports_provider_metrics(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"zone": "US", "carbonIntensity": 350},
                headers={"x-ratelimit-limit": "10", "x-ratelimit-remaining": "1"},
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            em = ElectricityMapsProvider("k", client=client)
            resolver = _resolver([em, ScriptedProvider("b", make_factor(0.3))])
            await resolver.resolve(Region("US"))

        report = resolver.health().to_dict()
        metrics = report["providers"]["electricity_maps"]["metrics"]
        assert (metrics["requests"], metrics["successes"]) == (1, 1)
        assert metrics["rate_limit"]["percentage_used"] == 90
        assert report["near_rate_limit"] == ["electricity_maps"]
        assert "metrics" not in report["providers"]["b"]


class TestEvents:
    @pytest.mark.asyncio
    async def test_factor_resolved_marks_cache_hits(self, events):
        resolver = _resolver([ScriptedProvider("a", make_factor(0.35))])
        await resolver.resolve(US_CA)
        await resolver.resolve(US_CA)

        resolved = [e for e in events if isinstance(e, FactorResolved)]
        assert [(e.cached, e.attempts) for e in resolved] == [(False, 1), (True, 0)]
        assert resolved[0].region_key == "US/CA"
        assert resolved[0].source == "Test Grid"
