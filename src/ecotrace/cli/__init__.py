"""ecotrace CLI -- typer-based command interface.

Commands:
    ecotrace estimate <type> [options]   Energy and carbon for one activity
    ecotrace resolve <region>            Emission factor for a region
    ecotrace probe                       Connectivity per provider
    ecotrace health [--probe]            Breaker states, provider metrics, cache stats
    ecotrace config                      Effective configuration (keys redacted)
"""

from __future__ import annotations

from pathlib import Path

import typer

from ecotrace.cli import _errors, estimate, factors
from ecotrace.observability import configure
from ecotrace.observability.config import ObservabilityConfig

app = typer.Typer(
    name="ecotrace",
    help="Estimate the carbon footprint of commits, pull requests and CI runs.",
    no_args_is_help=True,
)

app.command("estimate")(estimate.estimate)
app.command("resolve")(factors.resolve)
app.command("probe")(factors.probe)
app.command("health")(factors.health)


@app.callback()
def _main(
    config_path: Path = typer.Option(
        None, "--config", "-c", help="YAML config file (default ~/.ecotrace/config.yaml)"
    ),
    log_level: str = typer.Option(None, "--log-level", help="Override ECOTRACE_LOG_LEVEL"),
) -> None:
    obs = ObservabilityConfig()
    if log_level:
        obs.log_level = log_level
    configure(obs)
    _errors.set_config_path(config_path)


@app.command("config")
def show_config() -> None:
    """Print the effective configuration. API keys are shown only as set/unset."""
    _errors.echo_json(_errors.load_config().to_dict(redact=True))


def main() -> None:
    """Entry point for the ecotrace CLI."""
    app()
