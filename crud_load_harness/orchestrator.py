"""Load test orchestrator for running concurrency tiers one after another."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from crud_load_harness.errors import ConfigurationError
from crud_load_harness.models.result import LoadTestReport, TierResult
from crud_load_harness.models.workload import Workload
from crud_load_harness.targets.base import Target
from crud_load_harness.tier import TierExecutor

log = logging.getLogger(__name__)

DEFAULT_TIERS: Sequence[int] = (1, 10, 100, 1000)


def validate_tiers(tiers: Sequence[int]) -> Sequence[int]:
    """Reject tier configurations that cannot be run.

    Raises:
        ConfigurationError: If there are no tiers or any tier is not a
            positive integer

    """
    if not tiers:
        raise ConfigurationError("At least one tier is required")

    for tier in tiers:
        if isinstance(tier, bool) or not isinstance(tier, int) or tier <= 0:
            raise ConfigurationError(
                f"Tier sizes must be positive integers, got {tier!r}"
            )
    return tuple(tiers)


@dataclass(frozen=True, kw_only=True)
class LoadTestOrchestrator:
    """Orchestrates tiered load against a single target.

    Tiers run strictly in sequence so each tier's timing reflects only its
    own concurrency level.
    """

    target: Target
    cooldown: float = 0.0
    executor: TierExecutor = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.cooldown < 0:
            raise ConfigurationError(f"cooldown must not be negative: {self.cooldown}")
        object.__setattr__(self, "executor", TierExecutor(target=self.target))

    async def run(
        self,
        workload: Workload,
        tiers: Sequence[int] = DEFAULT_TIERS,
        cancel_event: asyncio.Event | None = None,
    ) -> LoadTestReport:
        """Run every tier in order and collect the results.

        Args:
            workload: Workload each virtual user executes
            tiers: Concurrency levels, run in the given order
            cancel_event: When set, the current tier is cut short and no
                further tiers start

        Returns:
            Report with one tier result per tier that ran

        Raises:
            ConfigurationError: If the tiers or workload are invalid. Nothing
                is dispatched in that case.

        """
        tiers = validate_tiers(tiers)
        if not workload.operations:
            raise ConfigurationError("Workload has no operations")

        log.info(
            "Running %d tier(s) %s with %d operation(s) per virtual user",
            len(tiers),
            list(tiers),
            len(workload.operations),
        )

        results: list[TierResult] = []
        for index, tier_size in enumerate(tiers):
            if cancel_event is not None and cancel_event.is_set():
                break

            if index and self.cooldown:
                log.info("Cooling down for %.1fs", self.cooldown)
                await asyncio.sleep(self.cooldown)

            log.info("Starting tier with %d virtual user(s)", tier_size)
            result = await self.executor.run_tier(workload, tier_size, cancel_event)
            failed = sum(1 for user in result.user_results if not user.succeeded)
            log.info(
                "Tier with %d virtual user(s) finished in %.3fs: %d failed",
                tier_size,
                result.elapsed,
                failed,
            )
            results.append(result)

        aborted = cancel_event is not None and cancel_event.is_set()
        if aborted:
            log.warning(
                "Load test aborted after %d of %d tier(s)", len(results), len(tiers)
            )

        return LoadTestReport(tiers=results, aborted=aborted)
