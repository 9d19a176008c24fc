"""Tests for the ecotrace CLI."""

from __future__ import annotations

import json
from dataclasses import fields

import pytest
from typer.testing import CliRunner

from ecotrace.cli import app
from ecotrace.config import EcotraceConfig

runner = CliRunner()


@pytest.fixture(autouse=True)
def _cli_env(monkeypatch, tmp_path):
    for f in fields(EcotraceConfig):
        monkeypatch.delenv(f.metadata["env"], raising=False)
    monkeypatch.setenv("ECOTRACE_LOG_DESTINATION", "jsonl")
    monkeypatch.setenv("ECOTRACE_LOG_PATH", str(tmp_path / "cli.jsonl"))
    monkeypatch.delenv("ECOTRACE_EVENT_LOG", raising=False)


def _invoke(tmp_path, *args: str):
    return runner.invoke(app, ["--config", str(tmp_path / "absent.yaml"), *args])


class TestEstimate:
    def test_ci_run_without_providers_uses_default(self, tmp_path):
        result = _invoke(
            tmp_path, "estimate", "ci_run", "--runtime", "600", "--region", "US/CA", "--id", "r1"
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["activity_id"] == "r1"
        assert payload["carbon_kg"] == pytest.approx(0.11718)
        assert payload["confidence"] == "medium"
        assert payload["emission_factor"]["source"]["name"] == "Global Fallback"
        assert payload["methodology_version"] == "1.0.0"

    def test_commit_without_region(self, tmp_path):
        result = _invoke(tmp_path, "estimate", "commit", "-a", "120", "-d", "30", "-f", "4")
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["energy_breakdown"]["total_kwh"] > 0
        assert payload["confidence_factors"]["temporal_accuracy"] == 0.6

    def test_ci_run_requires_runtime(self, tmp_path):
        result = _invoke(tmp_path, "estimate", "ci_run")
        assert result.exit_code == 1
        assert "--runtime" in result.output

    def test_unknown_activity_type(self, tmp_path):
        result = _invoke(tmp_path, "estimate", "standup")
        assert result.exit_code != 0


class TestFactors:
    def test_resolve(self, tmp_path):
        result = _invoke(tmp_path, "resolve", "de")
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["region"]["country"] == "DE"
        assert payload["confidence_rating"] == "low"
        assert payload["factor_kg_per_kwh"] == 0.5

    def test_probe_without_keys_fails(self, tmp_path):
        result = _invoke(tmp_path, "probe")
        assert result.exit_code == 1
        assert "electricity_maps" in result.stdout
        assert "unavailable" in result.stdout

    def test_health(self, tmp_path):
        result = _invoke(tmp_path, "health")
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["status"] == "unhealthy"
        assert set(payload["providers"]) == {"electricity_maps", "aws_carbon", "epa_egrid"}
        assert "probe" not in payload

    def test_health_with_probe(self, tmp_path):
        result = _invoke(tmp_path, "health", "--probe")
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["probe"] == {"electricity_maps": False, "aws_carbon": False, "epa_egrid": False}
        metrics = payload["providers"]["electricity_maps"]["metrics"]
        assert metrics["requests"] == 0
        assert metrics["rate_limit"]["is_near_limit"] is False


class TestConfigCommand:
    def test_keys_are_redacted(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ELECTRICITY_MAPS_API_KEY", "super-secret")
        result = _invoke(tmp_path, "config")
        assert result.exit_code == 0, result.output
        assert "super-secret" not in result.stdout
        payload = json.loads(result.stdout)
        assert payload["electricity_maps_api_key"] == "***"
        assert payload["cache_ttl_seconds"] == 86_400

    def test_yaml_file_is_used(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("cache_max_size: 42\n")
        result = runner.invoke(app, ["--config", str(path), "config"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["cache_max_size"] == 42

    def test_invalid_yaml_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- not\n- a mapping\n")
        result = runner.invoke(app, ["--config", str(path), "config"])
        assert result.exit_code == 1
        assert "invalid configuration" in result.output
