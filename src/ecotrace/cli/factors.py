"""ecotrace resolve / probe / health: emission-factor lookups and provider checks."""

from __future__ import annotations

import typer

from ecotrace.carbon.types import Region
from ecotrace.cli._errors import echo_json, handle_error, run_with_service
from ecotrace.service import EcotraceService


def resolve(
    region: str = typer.Argument(..., help="Country or COUNTRY/STATE, e.g. DE or US/CA"),
) -> None:
    """Print the emission factor the resolver would use for REGION."""
    try:
        parsed = Region.parse(region)
    except ValueError as exc:
        handle_error(str(exc))

    async def _resolve(service: EcotraceService) -> dict:
        factor = await service.resolve(parsed)
        return factor.to_dict()

    echo_json(run_with_service(_resolve))


def probe() -> None:
    """Fetch once from every configured provider and report which answered."""

    async def _probe(service: EcotraceService) -> dict[str, bool]:
        return await service.resolver.probe()

    results = run_with_service(_probe)
    for name, ok in results.items():
        typer.echo(f"{name:<20} {'ok' if ok else 'unavailable'}")
    if not any(results.values()):
        raise typer.Exit(1)


def health(
    probe_first: bool = typer.Option(
        False, "--probe", help="Fetch once from each provider first so breakers and metrics are live"
    ),
) -> None:
    """Show provider readiness, breaker states, call metrics and cache statistics.

    Each invocation starts a fresh service, so without --probe the report
    only reflects which providers have API keys.
    """

    async def _health(service: EcotraceService) -> dict:
        results = await service.resolver.probe() if probe_first else None
        report = service.health().to_dict()
        if results is not None:
            report["probe"] = results
        return report

    echo_json(run_with_service(_health))
