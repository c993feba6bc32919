"""CLI entry point for the tiered load test harness."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from crud_load_harness.config import HarnessConfig, load_config, parse_config
from crud_load_harness.errors import ConfigurationError
from crud_load_harness.orchestrator import LoadTestOrchestrator
from crud_load_harness.reporter import (
    format_output,
    log_report_summary,
    summarize_report,
)
from crud_load_harness.targets.http import HttpTarget

EXIT_PASSED = 0
EXIT_FAILED = 1
EXIT_CONFIG_ERROR = 2


def parse_tiers(tiers: str) -> Sequence[int]:
    """Parse comma-separated tier sizes."""
    try:
        return tuple(int(t.strip()) for t in tiers.split(",") if t.strip())
    except ValueError as e:
        raise ConfigurationError(f"Invalid tier list '{tiers}'") from e


def apply_overrides(config: HarnessConfig, args: argparse.Namespace) -> HarnessConfig:
    """Apply command line overrides on top of the loaded configuration."""
    data: dict[str, Any] = config.model_dump()
    target = data["target"]

    if args.base_url is not None:
        target["base_url"] = args.base_url
    if args.timeout is not None:
        target["request_timeout"] = args.timeout
    if args.tiers is not None:
        data["tiers"] = parse_tiers(args.tiers)
    if args.cooldown is not None:
        data["cooldown"] = args.cooldown
    if args.min_success_rate is not None:
        data["min_success_rate"] = args.min_success_rate

    return parse_config(data)


async def run(config: HarnessConfig) -> int:
    """Run the configured load test and return exit code."""
    log = logging.getLogger("crud_load_harness")

    log.info("Target: %s", config.target.base_url)

    async with HttpTarget.from_config(config.target) as target:
        orchestrator = LoadTestOrchestrator(target=target, cooldown=config.cooldown)
        report = await orchestrator.run(config.workload, config.tiers)

    summary = summarize_report(report, config.min_success_rate)
    log_report_summary(log, summary)

    print(json.dumps(format_output(summary), indent=2))

    return EXIT_PASSED if summary.overall_passed else EXIT_FAILED


async def load(args: argparse.Namespace) -> HarnessConfig:
    """Build the run configuration from the config file and flags."""
    config = await load_config(args.config) if args.config else HarnessConfig()
    return apply_overrides(config, args)


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Run tiered concurrent load against an HTTP CRUD service"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a YAML harness configuration",
    )
    parser.add_argument(
        "--base-url",
        help="Base URL of the target service (e.g., http://localhost:8080)",
    )
    parser.add_argument(
        "--tiers",
        help="Comma-separated concurrency tiers (e.g., 1,10,100,1000)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-request timeout in seconds",
    )
    parser.add_argument(
        "--cooldown",
        type=float,
        help="Seconds to wait between tiers",
    )
    parser.add_argument(
        "--min-success-rate",
        type=float,
        help="Pass a tier when at least this fraction of users succeed (0-1)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log individual request failures",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = asyncio.run(load(args))
    except (ConfigurationError, OSError) as e:
        logging.getLogger("crud_load_harness").error("%s", e)
        sys.exit(EXIT_CONFIG_ERROR)

    sys.exit(asyncio.run(run(config)))


if __name__ == "__main__":  # pragma: no cover
    main()
