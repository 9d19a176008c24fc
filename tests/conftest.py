"""Shared fixtures: controllable clock, event capture, clean environment."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import patch

import pytest
from _helpers import FakeClock


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _reset_observability() -> Iterator[None]:
    from ecotrace.observability.emitter import reset

    reset()
    yield
    reset()


@pytest.fixture()
def events() -> Iterator[list[object]]:
    """Every event emitted by the core modules, in order."""
    captured: list[object] = []
    targets = [
        "ecotrace.resolver.emit",
        "ecotrace.resilience.breaker.emit",
        "ecotrace.resilience.cache.emit",
        "ecotrace.carbon.calculator.emit",
    ]
    patchers = [patch(t, side_effect=captured.append) for t in targets]
    for p in patchers:
        p.start()
    yield captured
    for p in patchers:
        p.stop()


@pytest.fixture(autouse=True)
def _no_provider_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("ELECTRICITY_MAPS_API_KEY", "AWS_CARBON_API_KEY", "EPA_EGRID_API_KEY"):
        monkeypatch.delenv(var, raising=False)
