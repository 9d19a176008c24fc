"""Test doubles shared across modules: clock, factors, scripted providers."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

from ecotrace.carbon.types import ConfidenceRating, EmissionFactor, FactorSource, Region
from ecotrace.errors import ProviderUnavailable

T0 = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)

TEST_SOURCE = FactorSource(name="Test Grid", url="https://example.test", methodology="fixture")


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_factor(
    value: float = 0.35,
    *,
    region: Region | None = None,
    rating: ConfidenceRating = ConfidenceRating.HIGH,
    source: FactorSource = TEST_SOURCE,
) -> EmissionFactor:
    return EmissionFactor(
        region=region or Region("US", "CA"),
        factor_kg_per_kwh=value,
        renewable_share_percent=40.0,
        source=source,
        confidence_rating=rating,
        valid_from=T0,
        valid_until=T0 + timedelta(hours=24),
        last_updated=T0,
    )


class ScriptedProvider:
    """In-memory provider: returns a factor, or raises, and counts calls."""

    def __init__(
        self,
        name: str,
        factor: EmissionFactor | None = None,
        *,
        error: Exception | None = None,
        configured: bool = True,
        countries: set[str] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.factor = factor
        self.error = error
        self._configured = configured
        self.countries = countries
        self.delay = delay
        self.calls: list[Region] = []

    @property
    def configured(self) -> bool:
        return self._configured

    def supports(self, region: Region) -> bool:
        return self.countries is None or region.country in self.countries

    async def fetch(self, region: Region) -> EmissionFactor:
        self.calls.append(region)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.factor is None:
            raise ProviderUnavailable(self.name, "no factor scripted")
        return self.factor
