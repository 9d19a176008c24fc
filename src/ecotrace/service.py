"""EcotraceService: one explicitly constructed owner of every shared component.

    async with EcotraceService.from_config(get_config()) as service:
        result = await service.calculator.calculate(activity)

The service owns the factor cache, the circuit breaker, one pooled
httpx.AsyncClient, the provider chain, the resolver and the calculator.
Entering it starts the cache sweeper; leaving it stops the sweeper and
closes the HTTP client.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx

from ecotrace.carbon.calculator import CarbonCalculator
from ecotrace.carbon.energy import EnergyModel
from ecotrace.carbon.types import ActivityDescriptor, CarbonCalculationResult, EmissionFactor, Region
from ecotrace.config import EcotraceConfig
from ecotrace.observability.logging import get_logger
from ecotrace.providers import build_default_providers
from ecotrace.providers.base import USER_AGENT, EmissionFactorProvider
from ecotrace.resilience.breaker import CircuitBreaker
from ecotrace.resilience.cache import TTLCache
from ecotrace.resolver import EmissionFactorResolver, ResolverHealth

logger = get_logger(__name__)


@dataclass
class EcotraceService:
    config: EcotraceConfig
    cache: TTLCache[EmissionFactor]
    breaker: CircuitBreaker
    client: httpx.AsyncClient | None
    providers: list[EmissionFactorProvider]
    resolver: EmissionFactorResolver
    calculator: CarbonCalculator
    _started: bool = field(default=False, repr=False)

    @classmethod
    def from_config(
        cls,
        config: EcotraceConfig | None = None,
        *,
        providers: list[EmissionFactorProvider] | None = None,
        client: httpx.AsyncClient | None = None,
        energy_model: EnergyModel | None = None,
    ) -> EcotraceService:
        """Wire the component graph. Pass ``providers`` to replace the HTTP chain."""
        cfg = config or EcotraceConfig()
        cache: TTLCache[EmissionFactor] = TTLCache(
            default_ttl=cfg.cache_ttl_seconds, max_size=cfg.cache_max_size
        )
        breaker = CircuitBreaker(
            failure_threshold=cfg.breaker_failure_threshold,
            cooldown_seconds=cfg.breaker_cooldown_seconds,
            failure_memory_seconds=cfg.breaker_failure_memory_seconds,
        )
        if providers is None:
            if client is None:
                client = httpx.AsyncClient(
                    timeout=httpx.Timeout(cfg.provider_timeout_seconds),
                    headers={"User-Agent": USER_AGENT},
                )
            providers = list(build_default_providers(cfg, client=client))

        resolver = EmissionFactorResolver(
            providers,
            cache,
            breaker,
            cache_ttl=cfg.cache_ttl_seconds,
            deadline=cfg.resolve_deadline_seconds,
            coalesce=cfg.coalesce_requests,
        )
        calculator = CarbonCalculator(resolver, energy_model=energy_model)
        return cls(
            config=cfg,
            cache=cache,
            breaker=breaker,
            client=client,
            providers=providers,
            resolver=resolver,
            calculator=calculator,
        )

    async def start(self) -> None:
        if self._started:
            return
        if self.config.cache_sweep_interval_seconds > 0:
            self.cache.start_sweeper(self.config.cache_sweep_interval_seconds)
        self._started = True
        logger.info(
            "service.started",
            providers=[p.name for p in self.providers],
            configured=[p.name for p in self.providers if p.configured],
        )

    async def close(self) -> None:
        self.cache.close()
        if self.client is not None:
            await self.client.aclose()
        self._started = False
        logger.info("service.closed")

    async def __aenter__(self) -> EcotraceService:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- conveniences ---------------------------------------------------------

    async def calculate(self, activity: ActivityDescriptor) -> CarbonCalculationResult:
        return await self.calculator.calculate(activity)

    async def resolve(self, region: Region | str) -> EmissionFactor:
        if isinstance(region, str):
            region = Region.parse(region)
        return await self.resolver.resolve(region)

    def health(self) -> ResolverHealth:
        return self.resolver.health()
