"""Provider response payloads as a tagged union.

Each variant is parsed and validated from raw JSON at the adapter boundary.
Anything missing or malformed raises ProviderDataMissing there, so only typed
payloads travel further in.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from ecotrace.errors import ProviderDataMissing


def _mapping(raw: Any, provider: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise ProviderDataMissing(provider, f"expected a JSON object, got {type(raw).__name__}")
    return raw


def _number(raw: dict[str, Any], key: str, provider: str) -> float:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProviderDataMissing(provider, f"missing or non-numeric field {key!r}")
    if not math.isfinite(value):
        raise ProviderDataMissing(provider, f"field {key!r} is not finite")
    return float(value)


def _optional_number(raw: dict[str, Any], key: str, provider: str) -> float | None:
    if raw.get(key) is None:
        return None
    return _number(raw, key, provider)


def _optional_timestamp(raw: dict[str, Any], key: str) -> datetime | None:
    value = raw.get(key)
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class ElectricityMapsPayload:
    """``GET /v3/carbon-intensity/latest``, intensity in g CO2e/kWh."""

    zone: str
    carbon_intensity_g_per_kwh: float
    renewable_percentage: float | None
    updated_at: datetime | None
    kind: Literal["electricity_maps"] = "electricity_maps"

    @classmethod
    def from_json(cls, raw: Any) -> ElectricityMapsPayload:
        data = _mapping(raw, "electricity_maps")
        renewable = _optional_number(data, "renewablePercentage", "electricity_maps")
        if renewable is None:
            renewable = _optional_number(data, "fossilFreePercentage", "electricity_maps")
        return cls(
            zone=str(data.get("zone") or ""),
            carbon_intensity_g_per_kwh=_number(data, "carbonIntensity", "electricity_maps"),
            renewable_percentage=renewable,
            updated_at=_optional_timestamp(data, "updatedAt") or _optional_timestamp(data, "datetime"),
        )


@dataclass(frozen=True)
class AwsCarbonPayload:
    """Regional carbon intensity, already in kg CO2e/kWh."""

    region: str
    carbon_intensity_kg_per_kwh: float
    renewable_percentage: float | None
    last_updated: datetime | None
    kind: Literal["aws_carbon"] = "aws_carbon"

    @classmethod
    def from_json(cls, raw: Any) -> AwsCarbonPayload:
        data = _mapping(raw, "aws_carbon")
        return cls(
            region=str(data.get("region") or ""),
            carbon_intensity_kg_per_kwh=_number(data, "carbon_intensity_kg_per_kwh", "aws_carbon"),
            renewable_percentage=_optional_number(data, "renewable_percentage", "aws_carbon"),
            last_updated=_optional_timestamp(data, "last_updated"),
        )


@dataclass(frozen=True)
class EpaEgridPayload:
    """eGRID subregion output emission rate in kg CO2e/MWh (annual)."""

    region: str
    co2_factor_kg_per_mwh: float
    renewable_percentage: float | None
    data_year: int | None
    kind: Literal["epa_egrid"] = "epa_egrid"

    @classmethod
    def from_json(cls, raw: Any) -> EpaEgridPayload:
        data = _mapping(raw, "epa_egrid")
        year = data.get("data_year")
        return cls(
            region=str(data.get("region") or ""),
            co2_factor_kg_per_mwh=_number(data, "co2_factor_kg_per_mwh", "epa_egrid"),
            renewable_percentage=_optional_number(data, "renewable_percentage", "epa_egrid"),
            data_year=year if isinstance(year, int) and not isinstance(year, bool) else None,
        )


ProviderPayload = ElectricityMapsPayload | AwsCarbonPayload | EpaEgridPayload


def intensity_kg_per_kwh(payload: ProviderPayload) -> float:
    """Canonical kg CO2e/kWh for any payload variant."""
    match payload:
        case ElectricityMapsPayload(carbon_intensity_g_per_kwh=grams):
            return grams / 1000
        case AwsCarbonPayload(carbon_intensity_kg_per_kwh=kg):
            return kg
        case EpaEgridPayload(co2_factor_kg_per_mwh=kg_per_mwh):
            return kg_per_mwh / 1000
    raise TypeError(f"unknown payload type: {type(payload).__name__}")
