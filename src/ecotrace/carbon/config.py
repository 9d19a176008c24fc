"""Energy coefficients and the conservative global-default emission factor.

Coefficients come from published estimates of developer workstation draw,
CI runner power classes, network transfer intensity (~0.01 Wh/MB) and
storage I/O cost. Data-centre overhead uses a PUE of 1.4.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from ecotrace.carbon.types import (
    GLOBAL_REGION_CODE,
    ConfidenceRating,
    EmissionFactor,
    FactorSource,
    Region,
)

METHODOLOGY_VERSION = "1.0.0"

# Global average grid intensity (IEA), used when no provider answers
DEFAULT_FACTOR_KG_PER_KWH = 0.5
DEFAULT_RENEWABLE_SHARE_PERCENT = 20.0
DEFAULT_FACTOR_TTL = timedelta(hours=24)

GLOBAL_FALLBACK_SOURCE = FactorSource(
    name="Global Fallback",
    url="https://ourworldindata.org/electricity-carbon-footprint",
    methodology="IEA global average electricity carbon intensity",
)


@dataclass(frozen=True)
class EnergyCoefficients:
    """kWh per unit of activity."""

    code_line_kwh: float = 0.00001  # 0.01 Wh per changed line
    network_kwh_per_mb: float = 0.00001  # 0.01 Wh per MB transferred
    storage_read_kwh: float = 0.000001
    storage_write_kwh: float = 0.000002
    workstation_kwh_per_minute: float = 0.0083  # ~0.5 kWh per hour
    runner_kwh_per_minute: dict[str, float] = field(
        default_factory=lambda: {
            "standard": 0.0167,  # ~1 kWh per hour
            "large": 0.0333,
            "xlarge": 0.0667,
        }
    )
    pue: float = 1.4
    cooling_multiplier: float = 0.4
    review_overhead: float = 0.3

    # Commit heuristics
    kb_per_changed_line: float = 1.0
    min_dev_minutes: float = 5.0
    max_dev_minutes: float = 120.0
    lines_per_dev_minute: float = 10.0

    # CI heuristics
    ci_min_transfer_mb: float = 10.0
    ci_transfer_mb_per_minute: float = 2.0
    ci_storage_ops_per_minute: float = 10.0

    def runner_rate(self, runner_class: str | None) -> float:
        """kWh/min for a runner class; unknown classes cost as ``standard``."""
        rates = self.runner_kwh_per_minute
        return rates.get((runner_class or "standard").lower(), rates["standard"])


DEFAULT_COEFFICIENTS = EnergyCoefficients()

# Review overhead split across components for pull requests
PR_OVERHEAD_SPLIT = {"compute": 0.5, "network": 0.3, "storage": 0.2}


def global_default_factor(
    region: Region | None = None,
    *,
    now: datetime | None = None,
    ttl: timedelta = DEFAULT_FACTOR_TTL,
) -> EmissionFactor:
    """Conservative world-average factor, always tagged low confidence."""
    now = now or datetime.now(UTC)
    return EmissionFactor(
        region=region or Region(country=GLOBAL_REGION_CODE),
        factor_kg_per_kwh=DEFAULT_FACTOR_KG_PER_KWH,
        renewable_share_percent=DEFAULT_RENEWABLE_SHARE_PERCENT,
        source=GLOBAL_FALLBACK_SOURCE,
        confidence_rating=ConfidenceRating.LOW,
        valid_from=now,
        valid_until=now + ttl,
        last_updated=now,
    )
