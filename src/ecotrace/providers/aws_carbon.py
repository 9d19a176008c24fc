"""AWS carbon intensity per cloud region.

Only countries with a mapped AWS region are in scope; anything else is
skipped by the resolver rather than guessed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ecotrace.carbon.types import ConfidenceRating, FactorSource, Region
from ecotrace.providers.base import HttpProvider, ProviderRequest, with_grid_region
from ecotrace.providers.payloads import AwsCarbonPayload

BASE_URL = "https://api.aws.amazon.com/carbon-intensity/v1"

AWS_REGIONS: dict[str, str] = {
    "US": "us-east-1",
    "CA": "ca-central-1",
    "GB": "eu-west-2",
    "DE": "eu-central-1",
    "FR": "eu-west-3",
    "AU": "ap-southeast-2",
    "JP": "ap-northeast-1",
}


class AwsCarbonProvider(HttpProvider):
    name = "aws_carbon"
    source = FactorSource(
        name="AWS Carbon Footprint",
        url="https://aws.amazon.com/aws-cost-management/aws-customer-carbon-footprint-tool/",
        methodology="AWS regional grid intensity (market-based)",
    )
    confidence = ConfidenceRating.HIGH

    def supports(self, region: Region) -> bool:
        return region.country in AWS_REGIONS

    def build_request(self, region: Region, api_key: str) -> ProviderRequest:
        aws_region = AWS_REGIONS[region.country]
        return ProviderRequest(
            url=f"{BASE_URL}/regions/{aws_region}",
            headers={"x-api-key": api_key},
        )

    def parse(self, raw: Any) -> AwsCarbonPayload:
        return AwsCarbonPayload.from_json(raw)

    def describe_region(self, payload: AwsCarbonPayload, region: Region) -> Region:
        return with_grid_region(region, payload.region or AWS_REGIONS.get(region.country, ""))

    def last_updated(self, payload: AwsCarbonPayload) -> datetime | None:
        return payload.last_updated
