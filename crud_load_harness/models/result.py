"""Models for load test execution results."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

ErrorKind = Literal["network", "http_status", "decode", "error"]


@dataclass(frozen=True, kw_only=True)
class RequestOutcome:
    """Result of executing one operation against the target.

    Contains only execution outcome - the caller knows which workload position
    it belongs to.
    """

    succeeded: bool
    latency: float
    error_kind: ErrorKind | None = None
    status: int | None = None
    message: str | None = None
    captured: Mapping[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True, kw_only=True)
class VirtualUserResult:
    """Outcomes of one virtual user running the workload once."""

    outcomes: Sequence[RequestOutcome]
    succeeded: bool


@dataclass(frozen=True, kw_only=True)
class TierResult:
    """All virtual user results of one concurrency tier, in launch order."""

    tier_size: int
    elapsed: float
    user_results: Sequence[VirtualUserResult]

    def __post_init__(self) -> None:
        if self.tier_size <= 0:
            raise ValueError(f"tier_size must be positive, got {self.tier_size}")
        if len(self.user_results) != self.tier_size:
            raise ValueError(
                f"Expected {self.tier_size} user results, "
                f"got {len(self.user_results)}"
            )

    @property
    def succeeded(self) -> bool:
        """True if every virtual user in the tier completed its workload."""
        return all(result.succeeded for result in self.user_results)


@dataclass(frozen=True, kw_only=True)
class LoadTestReport:
    """Terminal artifact of one orchestrator run."""

    tiers: Sequence[TierResult]
    aborted: bool = False

    @property
    def passed(self) -> bool:
        """Strict verdict: every virtual user at every tier succeeded."""
        return not self.aborted and all(tier.succeeded for tier in self.tiers)
