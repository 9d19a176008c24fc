"""Energy model: activity metadata -> EnergyBreakdown.

All functions are pure. Totals follow one convention everywhere:

    total   = PUE × (compute + network + storage)
    cooling = cooling_multiplier × (compute + network + storage)   # informational

Cooling is already inside the PUE multiplier, so it is never added to the
total a second time.
"""

from __future__ import annotations

from ecotrace.carbon.config import DEFAULT_COEFFICIENTS, PR_OVERHEAD_SPLIT, EnergyCoefficients
from ecotrace.carbon.types import (
    ActivityDescriptor,
    ActivityType,
    CiRunStats,
    CommitStats,
    EnergyBreakdown,
    PullRequestStats,
)
from ecotrace.observability.logging import get_logger

logger = get_logger(__name__)

ZERO_ENERGY = EnergyBreakdown()


class EnergyModel:
    """Per-activity-type energy formulas over a fixed coefficient set."""

    def __init__(self, coefficients: EnergyCoefficients = DEFAULT_COEFFICIENTS) -> None:
        self.coefficients = coefficients

    def _finish(self, compute: float, network: float, storage: float) -> EnergyBreakdown:
        c = self.coefficients
        it_energy = compute + network + storage
        return EnergyBreakdown(
            compute_kwh=compute,
            network_kwh=network,
            storage_kwh=storage,
            cooling_kwh=it_energy * c.cooling_multiplier,
            total_kwh=it_energy * c.pue,
        )

    def _code_change_components(self, stats: CommitStats) -> tuple[float, float, float]:
        c = self.coefficients
        lines = max(stats.lines_changed, 0)

        dev_minutes = min(
            c.max_dev_minutes, max(c.min_dev_minutes, lines / c.lines_per_dev_minute)
        )
        compute = lines * c.code_line_kwh + dev_minutes * c.workstation_kwh_per_minute

        if stats.transfer_bytes is not None:
            transfer_kb = max(stats.transfer_bytes, 0) / 1024
        else:
            transfer_kb = lines * c.kb_per_changed_line
        network = (transfer_kb / 1024) * c.network_kwh_per_mb

        storage = max(stats.changed_files, 0) * c.storage_read_kwh + lines * c.storage_write_kwh
        return compute, network, storage

    def code_change(self, stats: CommitStats | None) -> EnergyBreakdown:
        """Commit: edited lines, developer workstation time, git transfer and disk I/O."""
        if stats is None:
            return ZERO_ENERGY
        return self._finish(*self._code_change_components(stats))

    def pull_request(self, stats: PullRequestStats | None) -> EnergyBreakdown:
        """Pull request: the diff costed as a code change, plus review overhead.

        The overhead is ``review_overhead`` × the diff's IT energy, split
        across compute / network / storage by PR_OVERHEAD_SPLIT.
        """
        if stats is None:
            return ZERO_ENERGY
        compute, network, storage = self._code_change_components(stats.as_commit())
        overhead = (compute + network + storage) * self.coefficients.review_overhead
        return self._finish(
            compute + overhead * PR_OVERHEAD_SPLIT["compute"],
            network + overhead * PR_OVERHEAD_SPLIT["network"],
            storage + overhead * PR_OVERHEAD_SPLIT["storage"],
        )

    def ci_run(self, stats: CiRunStats | None) -> EnergyBreakdown:
        """CI run: runner draw for the runtime, plus artifact transfer and log/cache writes."""
        if stats is None:
            return ZERO_ENERGY
        c = self.coefficients
        minutes = max(stats.runtime_seconds, 0.0) / 60

        compute = minutes * c.runner_rate(stats.runner_class)
        transfer_mb = max(c.ci_min_transfer_mb, minutes * c.ci_transfer_mb_per_minute)
        network = transfer_mb * c.network_kwh_per_mb
        storage = minutes * c.ci_storage_ops_per_minute * c.storage_write_kwh
        return self._finish(compute, network, storage)

    def estimate(self, activity: ActivityDescriptor) -> EnergyBreakdown:
        kind = activity.type_value
        if kind == ActivityType.COMMIT.value:
            return self.code_change(activity.commit)
        if kind == ActivityType.PULL_REQUEST.value:
            return self.pull_request(activity.pull_request)
        if kind == ActivityType.CI_RUN.value:
            return self.ci_run(activity.ci_run)

        logger.debug("energy.unmodelled_activity", activity_type=kind)
        return ZERO_ENERGY
