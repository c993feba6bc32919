"""Harness configuration and its YAML loader."""

import asyncio
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError, field_validator

from crud_load_harness.errors import ConfigurationError
from crud_load_harness.models.base import Model
from crud_load_harness.models.workload import Workload
from crud_load_harness.orchestrator import DEFAULT_TIERS, validate_tiers
from crud_load_harness.orders import default_workload
from crud_load_harness.targets.http import HttpTargetConfig


class HarnessConfig(Model):
    """Complete configuration of one load test run."""

    target: HttpTargetConfig = Field(default_factory=HttpTargetConfig)
    tiers: Sequence[int] = Field(default=DEFAULT_TIERS)
    cooldown: float = Field(default=0.0, ge=0, description="Seconds between tiers")
    min_success_rate: float | None = Field(default=None, ge=0, le=1)
    workload: Workload = Field(default_factory=default_workload)

    @field_validator("tiers")
    @classmethod
    def _check_tiers(cls, value: Sequence[int]) -> Sequence[int]:
        return validate_tiers(value)


def parse_config(data: Any) -> HarnessConfig:
    """Validate raw configuration data.

    Raises:
        ConfigurationError: If the data does not describe a valid run

    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping")

    try:
        return HarnessConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


async def load_config(path: Path) -> HarnessConfig:
    """Load and validate a YAML configuration file.

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationError: If the file is not valid YAML or not a valid config

    """
    content = await asyncio.to_thread(path.read_text)

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    return parse_config(data)
