"""ecotrace estimate: carbon for one development activity."""

from __future__ import annotations

import typer

from ecotrace.carbon.types import (
    ActivityDescriptor,
    ActivityType,
    CiRunStats,
    CommitStats,
    PullRequestStats,
    Region,
)
from ecotrace.cli._errors import echo_json, handle_error, run_with_service
from ecotrace.service import EcotraceService


def build_activity(
    activity_type: ActivityType,
    region: str | None,
    activity_id: str | None,
    additions: int,
    deletions: int,
    changed_files: int,
    runtime_seconds: float | None,
    runner: str,
) -> ActivityDescriptor:
    parsed_region = Region.parse(region) if region else None
    if activity_type is ActivityType.COMMIT:
        return ActivityDescriptor(
            activity_type,
            region=parsed_region,
            activity_id=activity_id,
            commit=CommitStats(additions=additions, deletions=deletions, changed_files=changed_files),
        )
    if activity_type is ActivityType.PULL_REQUEST:
        return ActivityDescriptor(
            activity_type,
            region=parsed_region,
            activity_id=activity_id,
            pull_request=PullRequestStats(
                additions=additions, deletions=deletions, changed_files=changed_files
            ),
        )
    if activity_type is ActivityType.CI_RUN:
        if runtime_seconds is None:
            handle_error("--runtime is required for ci_run activities")
        return ActivityDescriptor(
            activity_type,
            region=parsed_region,
            activity_id=activity_id,
            ci_run=CiRunStats(runtime_seconds=runtime_seconds, runner_class=runner),
        )
    return ActivityDescriptor(activity_type, region=parsed_region, activity_id=activity_id)


def estimate(
    activity_type: ActivityType = typer.Argument(..., help="commit, pr, ci_run, deployment or local_dev"),
    region: str = typer.Option(None, "--region", "-r", help="Country or COUNTRY/STATE, e.g. US/CA"),
    activity_id: str = typer.Option(None, "--id", help="Identifier echoed in the result"),
    additions: int = typer.Option(0, "--additions", "-a", min=0),
    deletions: int = typer.Option(0, "--deletions", "-d", min=0),
    changed_files: int = typer.Option(0, "--files", "-f", min=0),
    runtime_seconds: float = typer.Option(None, "--runtime", help="CI runtime in seconds", min=0),
    runner: str = typer.Option("standard", "--runner", help="CI runner class: standard, large, xlarge"),
) -> None:
    """Estimate energy and carbon for one activity and print the result as JSON."""
    try:
        activity = build_activity(
            activity_type, region, activity_id, additions, deletions, changed_files, runtime_seconds, runner
        )
    except ValueError as exc:
        handle_error(str(exc))

    async def _calculate(service: EcotraceService) -> dict:
        result = await service.calculate(activity)
        return result.to_dict()

    echo_json(run_with_service(_calculate))
