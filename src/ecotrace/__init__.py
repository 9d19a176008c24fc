"""ecotrace: carbon estimation for software-development activities.

    from ecotrace import EcotraceService, ActivityDescriptor, CiRunStats, Region

    async with EcotraceService.from_config() as service:
        result = await service.calculate(
            ActivityDescriptor("ci_run", region=Region("US", "CA"), ci_run=CiRunStats(600))
        )
"""

from ecotrace.carbon import (
    ActivityDescriptor,
    ActivityType,
    CarbonCalculationResult,
    CarbonCalculator,
    CiRunStats,
    CommitStats,
    ConfidenceEstimator,
    ConfidenceRating,
    ConfidenceTier,
    EmissionFactor,
    EnergyBreakdown,
    EnergyModel,
    PullRequestStats,
    Region,
)
from ecotrace.config import EcotraceConfig, get_config, reset_config
from ecotrace.errors import (
    CircuitOpen,
    EcotraceError,
    ProviderDataMissing,
    ProviderError,
    ProviderUnavailable,
    ResolutionExhausted,
)
from ecotrace.resolver import EmissionFactorResolver, ResolverHealth
from ecotrace.service import EcotraceService

__version__ = "0.1.0"

__all__ = [
    "ActivityDescriptor",
    "ActivityType",
    "CarbonCalculationResult",
    "CarbonCalculator",
    "CiRunStats",
    "CommitStats",
    "ConfidenceEstimator",
    "ConfidenceRating",
    "ConfidenceTier",
    "EmissionFactor",
    "EnergyBreakdown",
    "EnergyModel",
    "PullRequestStats",
    "Region",
    "EcotraceConfig",
    "get_config",
    "reset_config",
    "CircuitOpen",
    "EcotraceError",
    "ProviderDataMissing",
    "ProviderError",
    "ProviderUnavailable",
    "ResolutionExhausted",
    "EmissionFactorResolver",
    "ResolverHealth",
    "EcotraceService",
]
