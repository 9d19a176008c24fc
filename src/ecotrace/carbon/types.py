"""Carbon accounting types for development-activity emissions.

Energy in kWh, emission factors in kg CO2e per kWh, carbon mass in kg CO2e.
Every record is a frozen dataclass: a result is never mutated after it is
produced.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ConfidenceRating(str, Enum):
    """Reliability of an emission factor (and, for results, the overall tier)."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# The tier attached to a result uses the same three levels.
ConfidenceTier = ConfidenceRating


class ActivityType(str, Enum):
    COMMIT = "commit"
    PULL_REQUEST = "pr"
    CI_RUN = "ci_run"
    DEPLOYMENT = "deployment"
    LOCAL_DEV = "local_dev"


@dataclass(frozen=True)
class Region:
    """Where the energy was consumed.

    ``country`` is an ISO 3166-1 alpha-2 code. ``state_province`` narrows
    it (US states for eGRID); ``grid_region`` is filled in by providers that
    know the balancing zone.
    """

    country: str
    state_province: str | None = None
    grid_region: str | None = None
    coordinates: tuple[float, float] | None = None

    def __post_init__(self) -> None:
        if not self.country or not self.country.strip():
            raise ValueError("Region.country must be a non-empty country code")
        object.__setattr__(self, "country", self.country.strip().upper())
        if self.state_province is not None:
            object.__setattr__(self, "state_province", self.state_province.strip().upper() or None)

    @property
    def cache_key(self) -> str:
        """``US`` or ``US/CA``."""
        if self.state_province:
            return f"{self.country}/{self.state_province}"
        return self.country

    @classmethod
    def parse(cls, text: str) -> Region:
        """Parse ``"US"``, ``"US/CA"`` or ``"US-CA"``."""
        for sep in ("/", "-"):
            if sep in text:
                country, _, state = text.partition(sep)
                return cls(country=country, state_province=state or None)
        return cls(country=text)


GLOBAL_REGION_CODE = "GLOBAL"


@dataclass(frozen=True)
class FactorSource:
    name: str
    url: str
    methodology: str


@dataclass(frozen=True)
class EmissionFactor:
    """Grid carbon intensity for a region over a validity window."""

    region: Region
    factor_kg_per_kwh: float
    renewable_share_percent: float
    source: FactorSource
    confidence_rating: ConfidenceRating
    valid_from: datetime
    valid_until: datetime
    last_updated: datetime

    def __post_init__(self) -> None:
        if not self.factor_kg_per_kwh > 0:
            raise ValueError(f"factor_kg_per_kwh must be > 0, got {self.factor_kg_per_kwh!r}")
        if not 0.0 <= self.renewable_share_percent <= 100.0:
            raise ValueError(
                f"renewable_share_percent must be within [0, 100], got {self.renewable_share_percent!r}"
            )
        if self.valid_until <= self.valid_from:
            raise ValueError("valid_until must be later than valid_from")

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["confidence_rating"] = self.confidence_rating.value
        for key in ("valid_from", "valid_until", "last_updated"):
            d[key] = getattr(self, key).isoformat()
        return d


@dataclass(frozen=True)
class EnergyBreakdown:
    """Energy per component, kWh.

    ``total_kwh`` is PUE × (compute + network + storage). ``cooling_kwh`` is
    reported for transparency only and is not part of the total.
    """

    compute_kwh: float = 0.0
    network_kwh: float = 0.0
    storage_kwh: float = 0.0
    cooling_kwh: float = 0.0
    total_kwh: float = 0.0

    @property
    def it_kwh(self) -> float:
        return self.compute_kwh + self.network_kwh + self.storage_kwh


@dataclass(frozen=True)
class ConfidenceFactors:
    data_quality: float
    methodology_certainty: float
    temporal_accuracy: float

    @property
    def mean(self) -> float:
        # Rounded so 0.7 + 0.9 + 0.8 lands on 0.8, not 0.7999...
        return round(
            (self.data_quality + self.methodology_certainty + self.temporal_accuracy) / 3, 6
        )


@dataclass(frozen=True)
class CarbonCalculationResult:
    carbon_kg: float
    confidence: ConfidenceTier
    energy_breakdown: EnergyBreakdown
    emission_factor: EmissionFactor
    methodology_version: str
    confidence_factors: ConfidenceFactors
    activity_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "activity_id": self.activity_id,
            "carbon_kg": self.carbon_kg,
            "confidence": self.confidence.value,
            "energy_breakdown": asdict(self.energy_breakdown),
            "emission_factor": self.emission_factor.to_dict(),
            "methodology_version": self.methodology_version,
            "confidence_factors": asdict(self.confidence_factors),
        }


# ── Activity descriptors (produced by the webhook/controller layer) ──


@dataclass(frozen=True)
class CommitStats:
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    transfer_bytes: int | None = None  # measured push size, if known

    @property
    def lines_changed(self) -> int:
        return self.additions + self.deletions


@dataclass(frozen=True)
class PullRequestStats:
    number: int | None = None
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    transfer_bytes: int | None = None

    def as_commit(self) -> CommitStats:
        return CommitStats(
            additions=self.additions,
            deletions=self.deletions,
            changed_files=self.changed_files,
            transfer_bytes=self.transfer_bytes,
        )


@dataclass(frozen=True)
class CiRunStats:
    runtime_seconds: float
    runner_class: str = "standard"
    provider: str | None = None
    success: bool = True


@dataclass(frozen=True)
class ActivityDescriptor:
    """One development activity to be costed.

    Exactly one of ``commit``, ``pull_request`` or ``ci_run`` is expected to
    match ``activity_type``; the others are ignored.
    """

    activity_type: ActivityType | str
    region: Region | None = None
    activity_id: str | None = None
    commit: CommitStats | None = None
    pull_request: PullRequestStats | None = None
    ci_run: CiRunStats | None = None
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def type_value(self) -> str:
        if isinstance(self.activity_type, ActivityType):
            return self.activity_type.value
        return str(self.activity_type)
