"""Emission-factor providers, in trust order.

    electricity_maps   worldwide, live, high confidence
    aws_carbon         mapped AWS regions, high confidence
    epa_egrid          United States only, annual, high confidence
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import httpx

from ecotrace.providers.aws_carbon import AwsCarbonProvider
from ecotrace.providers.base import EmissionFactorProvider, HttpProvider, ProviderRequest
from ecotrace.providers.electricity_maps import ElectricityMapsProvider
from ecotrace.providers.epa_egrid import EpaEgridProvider
from ecotrace.providers.metrics import ProviderMetrics, RateLimit

if TYPE_CHECKING:
    from ecotrace.config import EcotraceConfig

PROVIDER_TYPES: dict[str, type[HttpProvider]] = {
    ElectricityMapsProvider.name: ElectricityMapsProvider,
    AwsCarbonProvider.name: AwsCarbonProvider,
    EpaEgridProvider.name: EpaEgridProvider,
}


def build_default_providers(
    config: EcotraceConfig, client: httpx.AsyncClient | None = None
) -> list[HttpProvider]:
    """Instantiate providers in ``config.providers`` order with their API keys."""
    providers: list[HttpProvider] = []
    for name in config.providers:
        cls = PROVIDER_TYPES.get(name)
        if cls is None:
            raise ValueError(f"Unknown provider {name!r}. Known: {', '.join(PROVIDER_TYPES)}")
        providers.append(
            cls(
                getattr(config, f"{name}_api_key"),
                client=client,
                timeout=config.provider_timeout_seconds,
                factor_ttl=timedelta(seconds=config.cache_ttl_seconds),
            )
        )
    return providers


__all__ = [
    "EmissionFactorProvider",
    "HttpProvider",
    "ProviderRequest",
    "ProviderMetrics",
    "RateLimit",
    "ElectricityMapsProvider",
    "AwsCarbonProvider",
    "EpaEgridProvider",
    "PROVIDER_TYPES",
    "build_default_providers",
]
