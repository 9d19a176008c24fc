"""Confidence quantification for carbon results.

Three signals, each in [0, 1]:
    data_quality           : how precise the activity metadata is
    methodology_certainty  : how trustworthy the emission factor is
    temporal_accuracy      : whether the activity carried a location

The tier is derived from their mean: >= 0.8 high, >= 0.6 medium, else low.
"""

from __future__ import annotations

from ecotrace.carbon.types import (
    ActivityType,
    ConfidenceFactors,
    ConfidenceRating,
    ConfidenceTier,
    EmissionFactor,
    EnergyBreakdown,
)

DATA_QUALITY: dict[str, float] = {
    ActivityType.CI_RUN.value: 0.9,  # exact runtime from the CI provider
    ActivityType.COMMIT.value: 0.7,  # line counts, estimated dev time
    ActivityType.PULL_REQUEST.value: 0.6,
}
DEFAULT_DATA_QUALITY = 0.5

METHODOLOGY_CERTAINTY: dict[ConfidenceRating, float] = {
    ConfidenceRating.HIGH: 0.9,
    ConfidenceRating.MEDIUM: 0.7,
    ConfidenceRating.LOW: 0.5,
}

TEMPORAL_ACCURACY_WITH_LOCATION = 0.8
TEMPORAL_ACCURACY_WITHOUT_LOCATION = 0.6

HIGH_THRESHOLD = 0.8
MEDIUM_THRESHOLD = 0.6

CARBON_DECIMALS = 6


class ConfidenceEstimator:
    """Deterministic mapping from input signals to a confidence tier."""

    def factors(
        self,
        activity_type: str,
        factor_rating: ConfidenceRating | str,
        has_location: bool,
    ) -> ConfidenceFactors:
        rating = ConfidenceRating(factor_rating)
        temporal = (
            TEMPORAL_ACCURACY_WITH_LOCATION if has_location else TEMPORAL_ACCURACY_WITHOUT_LOCATION
        )
        return ConfidenceFactors(
            data_quality=round(DATA_QUALITY.get(activity_type, DEFAULT_DATA_QUALITY), 2),
            methodology_certainty=round(METHODOLOGY_CERTAINTY[rating], 2),
            temporal_accuracy=round(temporal, 2),
        )

    def tier(self, factors: ConfidenceFactors) -> ConfidenceTier:
        average = factors.mean
        if average >= HIGH_THRESHOLD:
            return ConfidenceTier.HIGH
        if average >= MEDIUM_THRESHOLD:
            return ConfidenceTier.MEDIUM
        return ConfidenceTier.LOW


def carbon_mass(energy: EnergyBreakdown, factor: EmissionFactor) -> float:
    """kg CO2e, rounded to 6 decimal places to drop float noise."""
    return round(energy.total_kwh * factor.factor_kg_per_kwh, CARBON_DECIMALS)
