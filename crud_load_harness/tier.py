"""Tier executor: one wave of concurrent virtual users followed by a full join."""

import asyncio
import logging
import random
from dataclasses import dataclass, field

from crud_load_harness.errors import ConfigurationError
from crud_load_harness.models.result import (
    RequestOutcome,
    TierResult,
    VirtualUserResult,
)
from crud_load_harness.models.workload import Workload
from crud_load_harness.runner import run_virtual_user
from crud_load_harness.targets.base import Target

log = logging.getLogger(__name__)


def cancelled_result() -> VirtualUserResult:
    """Result recorded for a virtual user cancelled while in flight."""
    return VirtualUserResult(
        outcomes=[
            RequestOutcome(
                succeeded=False,
                latency=0.0,
                error_kind="network",
                message="cancelled",
            )
        ],
        succeeded=False,
    )


@dataclass(frozen=True, kw_only=True)
class TierExecutor:
    """Runs one concurrency tier of virtual users against a target."""

    target: Target
    rng: random.Random = field(default_factory=random.Random, repr=False)

    async def run_tier(
        self,
        workload: Workload,
        tier_size: int,
        cancel_event: asyncio.Event | None = None,
    ) -> TierResult:
        """Launch tier_size virtual users at once and wait for all of them.

        Args:
            workload: Workload every virtual user executes
            tier_size: Number of concurrent virtual users
            cancel_event: When set, users still in flight are cancelled and
                recorded as failed

        Returns:
            Tier result with user results in launch order

        """
        if tier_size <= 0:
            raise ConfigurationError(f"tier_size must be positive, got {tier_size}")

        loop = asyncio.get_running_loop()
        started = loop.time()
        tasks = [
            asyncio.create_task(
                run_virtual_user(
                    self.target, workload, workload.bind(index, self.rng)
                ),
                name=f"virtual-user-{index}",
            )
            for index in range(tier_size)
        ]

        try:
            await self._join(tasks, cancel_event)
        finally:
            for task in tasks:
                task.cancel()
        elapsed = loop.time() - started

        user_results = [
            cancelled_result() if task.cancelled() else task.result() for task in tasks
        ]
        cancelled = sum(1 for task in tasks if task.cancelled())
        if cancelled:
            log.warning("Cancelled %d of %d virtual users", cancelled, tier_size)

        return TierResult(
            tier_size=tier_size,
            elapsed=elapsed,
            user_results=user_results,
        )

    @staticmethod
    async def _join(
        tasks: list[asyncio.Task[VirtualUserResult]],
        cancel_event: asyncio.Event | None,
    ) -> None:
        if cancel_event is None:
            await asyncio.wait(tasks)
            return

        abort = asyncio.create_task(cancel_event.wait())
        try:
            pending = set(tasks)
            while pending and not abort.done():
                done, _ = await asyncio.wait(
                    [*pending, abort], return_when=asyncio.FIRST_COMPLETED
                )
                pending -= done
        finally:
            abort.cancel()

        in_flight = [task for task in tasks if not task.done()]
        for task in in_flight:
            task.cancel()
        if in_flight:
            await asyncio.wait(in_flight)
