"""CarbonCalculator: activity -> energy -> emission factor -> carbon + confidence.

    calculator = CarbonCalculator(resolver)
    result = await calculator.calculate(activity)

Activities without a region are costed with the global default factor and
never reach the providers. Every finished calculation is published as a
CarbonCalculated event for realtime and audit subscribers.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from ecotrace.carbon.confidence import ConfidenceEstimator, carbon_mass
from ecotrace.carbon.config import METHODOLOGY_VERSION, global_default_factor
from ecotrace.carbon.energy import EnergyModel
from ecotrace.carbon.types import ActivityDescriptor, CarbonCalculationResult, EmissionFactor
from ecotrace.observability import emit
from ecotrace.observability.events import CarbonCalculated, now_iso

if TYPE_CHECKING:
    from ecotrace.resolver import EmissionFactorResolver


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CarbonCalculator:
    def __init__(
        self,
        resolver: EmissionFactorResolver,
        energy_model: EnergyModel | None = None,
        estimator: ConfidenceEstimator | None = None,
        *,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.resolver = resolver
        self.energy_model = energy_model or EnergyModel()
        self.estimator = estimator or ConfidenceEstimator()
        self._now = now

    async def factor_for(self, activity: ActivityDescriptor) -> EmissionFactor:
        if activity.region is None:
            return global_default_factor(now=self._now())
        return await self.resolver.resolve(activity.region)

    async def calculate(self, activity: ActivityDescriptor) -> CarbonCalculationResult:
        energy = self.energy_model.estimate(activity)
        factor = await self.factor_for(activity)

        factors = self.estimator.factors(
            activity.type_value,
            factor.confidence_rating,
            has_location=activity.region is not None,
        )
        result = CarbonCalculationResult(
            carbon_kg=carbon_mass(energy, factor),
            confidence=self.estimator.tier(factors),
            energy_breakdown=energy,
            emission_factor=factor,
            methodology_version=METHODOLOGY_VERSION,
            confidence_factors=factors,
            activity_id=activity.activity_id,
        )

        region_key = activity.region.cache_key if activity.region else None
        emit(
            CarbonCalculated(
                activity_id=activity.activity_id,
                activity_type=activity.type_value,
                region_key=region_key,
                carbon_kg=result.carbon_kg,
                total_kwh=energy.total_kwh,
                confidence=result.confidence.value,
                factor_source=factor.source.name,
                methodology_version=METHODOLOGY_VERSION,
                timestamp=now_iso(),
            )
        )
        return result
