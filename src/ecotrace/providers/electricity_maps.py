"""Electricity Maps: live grid carbon intensity per zone, worldwide."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ecotrace.carbon.types import ConfidenceRating, FactorSource, Region
from ecotrace.providers.base import HttpProvider, ProviderRequest, with_grid_region
from ecotrace.providers.payloads import ElectricityMapsPayload

BASE_URL = "https://api.electricitymap.org/v3"


class ElectricityMapsProvider(HttpProvider):
    name = "electricity_maps"
    source = FactorSource(
        name="Electricity Maps",
        url="https://app.electricitymaps.com",
        methodology="Real-time grid carbon intensity (lifecycle, g CO2e/kWh)",
    )
    confidence = ConfidenceRating.HIGH

    def build_request(self, region: Region, api_key: str) -> ProviderRequest:
        return ProviderRequest(
            url=f"{BASE_URL}/carbon-intensity/latest",
            params={"zone": region.grid_region or region.country},
            headers={"auth-token": api_key},
        )

    def parse(self, raw: Any) -> ElectricityMapsPayload:
        return ElectricityMapsPayload.from_json(raw)

    def describe_region(self, payload: ElectricityMapsPayload, region: Region) -> Region:
        return with_grid_region(region, payload.zone)

    def last_updated(self, payload: ElectricityMapsPayload) -> datetime | None:
        return payload.updated_at
