"""Virtual user runner: one workload execution turned into a result value."""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from crud_load_harness.models.result import RequestOutcome, VirtualUserResult
from crud_load_harness.models.workload import Workload
from crud_load_harness.targets.base import Target

log = logging.getLogger(__name__)


async def run_virtual_user(
    target: Target,
    workload: Workload,
    variables: Mapping[str, Any] | None = None,
) -> VirtualUserResult:
    """Execute the workload once and capture every failure as data.

    Never retries. An exception escaping the target is recorded as a single
    failed outcome so one misbehaving user cannot take down its tier.
    """
    loop = asyncio.get_running_loop()
    started = loop.time()
    try:
        outcomes = list(await target.execute(workload, variables))
    except Exception as e:
        log.warning("Virtual user raised unexpectedly: %s", e, exc_info=e)
        outcomes = [
            RequestOutcome(
                succeeded=False,
                latency=loop.time() - started,
                error_kind="error",
                message=str(e) or type(e).__name__,
            )
        ]

    return VirtualUserResult(
        outcomes=outcomes,
        succeeded=all(outcome.succeeded for outcome in outcomes),
    )
