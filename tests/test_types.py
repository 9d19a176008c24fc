"""Tests for ecotrace.carbon.types: regions, factor invariants, serialisation."""

from __future__ import annotations

from dataclasses import FrozenInstanceError, replace
from datetime import timedelta

import pytest

from ecotrace.carbon.config import DEFAULT_FACTOR_KG_PER_KWH, global_default_factor
from ecotrace.carbon.types import ConfidenceRating, Region

from _helpers import T0, make_factor


class TestRegion:
    @pytest.mark.parametrize(
        ("text", "key"),
        [("us", "US"), ("US/CA", "US/CA"), ("us-ca", "US/CA"), ("DE/", "DE")],
    )
    def test_parse_and_cache_key(self, text, key):
        assert Region.parse(text).cache_key == key

    def test_empty_country_rejected(self):
        with pytest.raises(ValueError):
            Region("  ")

    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            Region("US").country = "DE"  # type: ignore[misc]


class TestEmissionFactor:
    def test_valid_factor(self):
        factor = make_factor(0.35)
        assert factor.valid_until > factor.valid_from

    @pytest.mark.parametrize("value", [0.0, -0.1])
    def test_factor_must_be_positive(self, value):
        with pytest.raises(ValueError, match="factor_kg_per_kwh"):
            make_factor(value)

    @pytest.mark.parametrize("share", [-1.0, 100.5])
    def test_renewable_share_bounds(self, share):
        with pytest.raises(ValueError, match="renewable_share_percent"):
            replace(make_factor(), renewable_share_percent=share)

    def test_validity_window(self):
        with pytest.raises(ValueError, match="valid_until"):
            replace(make_factor(), valid_until=T0)

    def test_to_dict_is_json_ready(self):
        d = make_factor().to_dict()
        assert d["confidence_rating"] == "high"
        assert d["valid_from"] == T0.isoformat()
        assert d["region"]["state_province"] == "CA"


class TestGlobalDefault:
    def test_default_factor(self):
        factor = global_default_factor(now=T0)
        assert factor.factor_kg_per_kwh == DEFAULT_FACTOR_KG_PER_KWH
        assert factor.renewable_share_percent == 20.0
        assert factor.confidence_rating is ConfidenceRating.LOW
        assert factor.region.country == "GLOBAL"
        assert factor.source.name == "Global Fallback"
        assert factor.valid_until - factor.valid_from == timedelta(hours=24)

    def test_default_keeps_requested_region(self):
        assert global_default_factor(Region("BR"), now=T0).region == Region("BR")
