"""Reduce tier results into summaries, verdicts and printable output."""

import logging
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from crud_load_harness.models.result import ErrorKind, LoadTestReport, TierResult

VERDICT_SYMBOLS = {
    True: "✓",
    False: "✗",
}


@dataclass(frozen=True, kw_only=True)
class TierSummary:
    """Counts and duration of one tier."""

    tier_size: int
    elapsed: float
    success_count: int
    failure_count: int
    requests: int
    errors: Mapping[ErrorKind, int]

    @property
    def success_rate(self) -> float:
        """Fraction of virtual users that completed their whole workload."""
        return self.success_count / self.tier_size


@dataclass(frozen=True, kw_only=True)
class ReportSummary:
    """Overall verdict plus per-tier summaries."""

    overall_passed: bool
    per_tier: Sequence[TierSummary]
    aborted: bool = False
    min_success_rate: float | None = None


def summarize_tier(tier: TierResult) -> TierSummary:
    """Summarize one tier's virtual user results."""
    success_count = sum(1 for user in tier.user_results if user.succeeded)
    errors: Counter[ErrorKind] = Counter(
        outcome.error_kind
        for user in tier.user_results
        for outcome in user.outcomes
        if outcome.error_kind is not None
    )
    return TierSummary(
        tier_size=tier.tier_size,
        elapsed=tier.elapsed,
        success_count=success_count,
        failure_count=tier.tier_size - success_count,
        requests=sum(len(user.outcomes) for user in tier.user_results),
        errors=dict(errors),
    )


def summarize_report(
    report: LoadTestReport,
    min_success_rate: float | None = None,
) -> ReportSummary:
    """Summarize a report and compute its verdict.

    Args:
        report: Report to summarize
        min_success_rate: When given, a tier passes if at least this fraction
            of its virtual users succeeded. When omitted, every virtual user in
            every tier must succeed.

    Returns:
        Summary with the overall verdict

    """
    if min_success_rate is not None and not 0.0 <= min_success_rate <= 1.0:
        raise ValueError(
            f"min_success_rate must be between 0 and 1, got {min_success_rate}"
        )

    per_tier = [summarize_tier(tier) for tier in report.tiers]

    if min_success_rate is None:
        passed = report.passed
    else:
        passed = not report.aborted and all(
            summary.success_rate >= min_success_rate for summary in per_tier
        )

    return ReportSummary(
        overall_passed=passed,
        per_tier=per_tier,
        aborted=report.aborted,
        min_success_rate=min_success_rate,
    )


def tier_passed(summary: TierSummary, min_success_rate: float | None) -> bool:
    """Check a single tier against the strict or relaxed criterion."""
    if min_success_rate is None:
        return summary.failure_count == 0
    return summary.success_rate >= min_success_rate


def log_report_summary(log: logging.Logger, summary: ReportSummary) -> None:
    """Log a formatted per-tier summary of a load test."""
    log.info("=" * 80)
    log.info("Load Test Summary:")
    log.info("=" * 80)

    for tier in summary.per_tier:
        passed = tier_passed(tier, summary.min_success_rate)
        log.info(
            "%s %d users: %s (%.3fs, %d succeeded, %d failed)",
            VERDICT_SYMBOLS[passed],
            tier.tier_size,
            "PASS" if passed else "FAIL",
            tier.elapsed,
            tier.success_count,
            tier.failure_count,
        )
        if tier.errors:
            log.info(
                "  Errors: %s",
                ", ".join(
                    f"{kind}={count}" for kind, count in sorted(tier.errors.items())
                ),
            )

    if summary.aborted:
        log.info("Run aborted before all tiers completed")
    log.info("Overall: %s", "PASS" if summary.overall_passed else "FAIL")


def format_output(summary: ReportSummary) -> dict[str, Any]:
    """Format a report summary for JSON output."""
    tiers: list[dict[str, Any]] = [
        {
            "tier_size": tier.tier_size,
            "elapsed": tier.elapsed,
            "success_count": tier.success_count,
            "failure_count": tier.failure_count,
            "success_rate": tier.success_rate,
            "requests": tier.requests,
            "errors": dict(tier.errors),
        }
        for tier in summary.per_tier
    ]

    return {
        "passed": summary.overall_passed,
        "aborted": summary.aborted,
        "total_users": sum(tier.tier_size for tier in summary.per_tier),
        "succeeded": sum(tier.success_count for tier in summary.per_tier),
        "failed": sum(tier.failure_count for tier in summary.per_tier),
        "tiers": tiers,
    }
