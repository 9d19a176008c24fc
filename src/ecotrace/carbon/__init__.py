"""Carbon accounting: energy model, confidence, and the calculator."""

from ecotrace.carbon.calculator import CarbonCalculator
from ecotrace.carbon.confidence import ConfidenceEstimator, carbon_mass
from ecotrace.carbon.config import (
    DEFAULT_COEFFICIENTS,
    METHODOLOGY_VERSION,
    EnergyCoefficients,
    global_default_factor,
)
from ecotrace.carbon.energy import EnergyModel
from ecotrace.carbon.types import (
    ActivityDescriptor,
    ActivityType,
    CarbonCalculationResult,
    CiRunStats,
    CommitStats,
    ConfidenceFactors,
    ConfidenceRating,
    ConfidenceTier,
    EmissionFactor,
    EnergyBreakdown,
    FactorSource,
    PullRequestStats,
    Region,
)

__all__ = [
    "CarbonCalculator",
    "ConfidenceEstimator",
    "carbon_mass",
    "EnergyModel",
    "EnergyCoefficients",
    "DEFAULT_COEFFICIENTS",
    "METHODOLOGY_VERSION",
    "global_default_factor",
    "ActivityDescriptor",
    "ActivityType",
    "CarbonCalculationResult",
    "CiRunStats",
    "CommitStats",
    "ConfidenceFactors",
    "ConfidenceRating",
    "ConfidenceTier",
    "EmissionFactor",
    "EnergyBreakdown",
    "FactorSource",
    "PullRequestStats",
    "Region",
]
