"""EPA eGRID: annual subregion emission rates for the United States."""

from __future__ import annotations

from typing import Any

from ecotrace.carbon.types import ConfidenceRating, FactorSource, Region
from ecotrace.providers.base import HttpProvider, ProviderRequest, with_grid_region
from ecotrace.providers.payloads import EpaEgridPayload

BASE_URL = "https://api.epa.gov/easiur/rest"
EGRID_DATA_YEAR = 2021


class EpaEgridProvider(HttpProvider):
    name = "epa_egrid"
    source = FactorSource(
        name="EPA eGRID",
        url="https://www.epa.gov/egrid",
        methodology="eGRID subregion annual output emission rates",
    )
    confidence = ConfidenceRating.HIGH

    def __init__(self, api_key: str | None, *, data_year: int = EGRID_DATA_YEAR, **kwargs: Any) -> None:
        super().__init__(api_key, **kwargs)
        self.data_year = data_year

    def supports(self, region: Region) -> bool:
        return region.country == "US"

    def build_request(self, region: Region, api_key: str) -> ProviderRequest:
        return ProviderRequest(
            url=f"{BASE_URL}/getEGRIDData",
            params={
                "region": region.state_province or region.country,
                "year": str(self.data_year),
            },
            headers={"X-API-KEY": api_key},
        )

    def parse(self, raw: Any) -> EpaEgridPayload:
        return EpaEgridPayload.from_json(raw)

    def describe_region(self, payload: EpaEgridPayload, region: Region) -> Region:
        return with_grid_region(region, payload.region)
