"""HTTP target implementation on aiohttp."""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from pydantic import Field

from crud_load_harness.models.base import Model
from crud_load_harness.models.result import ErrorKind, RequestOutcome
from crud_load_harness.models.workload import Operation, render_template
from crud_load_harness.targets.base import Target

log = logging.getLogger(__name__)


class HttpTargetConfig(Model):
    """Configuration for the HTTP target.

    A connection_limit of 0 leaves the connection pool unbounded so a tier
    dispatches all of its virtual users at once.
    """

    base_url: str = "http://localhost:8080"
    request_timeout: float = Field(default=5.0, gt=0)
    connection_limit: int = Field(default=0, ge=0)
    headers: Mapping[str, str] = Field(default_factory=dict)


@dataclass(frozen=True, kw_only=True)
class HttpTarget(Target):
    """Target that performs operations as HTTP requests against a base URL."""

    config: HttpTargetConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: HttpTargetConfig
    ) -> AsyncGenerator["HttpTarget", None]:
        """Create target with managed session lifecycle."""
        connector = aiohttp.TCPConnector(
            limit=config.connection_limit,
            limit_per_host=config.connection_limit,
        )
        async with aiohttp.ClientSession(
            connector=connector,
            headers=dict(config.headers),
        ) as session:
            yield cls(config=config, session=session)

    def url_for(self, path: str) -> str:
        """Join a rendered path onto the configured base URL."""
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def perform(
        self,
        operation: Operation,
        variables: Mapping[str, Any],
    ) -> RequestOutcome:
        """Send one request and classify the response."""
        path = str(render_template(operation.path, variables))
        body = render_template(operation.body, variables)
        timeout = operation.timeout or self.config.request_timeout
        request = f"{operation.method} {path}"

        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            async with self.session.request(
                operation.method,
                self.url_for(path),
                json=body,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response:
                status = response.status
                content = await response.read()
        except TimeoutError:
            return self._failure(
                "network",
                loop.time() - started,
                f"{request} timed out after {timeout}s",
            )
        except aiohttp.ClientError as e:
            return self._failure("network", loop.time() - started, f"{request}: {e}")
        latency = loop.time() - started

        if not operation.accepts(status):
            return self._failure(
                "http_status",
                latency,
                f"{request} returned unexpected status {status}",
                status=status,
            )

        # 204 and empty bodies carry nothing to decode unless a field is captured
        if not operation.expect_json or (
            not operation.extract and (status == 204 or not content.strip())
        ):
            return RequestOutcome(succeeded=True, latency=latency, status=status)

        try:
            data = json.loads(content)
        except ValueError as e:
            return self._failure(
                "decode",
                latency,
                f"{request} returned invalid JSON: {e}",
                status=status,
            )

        captured: dict[str, Any] = {}
        for variable, key in operation.extract.items():
            if not isinstance(data, dict) or key not in data:
                return self._failure(
                    "decode",
                    latency,
                    f"{request} response has no '{key}' field",
                    status=status,
                )
            captured[variable] = data[key]

        return RequestOutcome(
            succeeded=True, latency=latency, status=status, captured=captured
        )

    @staticmethod
    def _failure(
        kind: ErrorKind,
        latency: float,
        message: str,
        status: int | None = None,
    ) -> RequestOutcome:
        log.debug("Request failed (%s): %s", kind, message)
        return RequestOutcome(
            succeeded=False,
            latency=latency,
            error_kind=kind,
            status=status,
            message=message,
        )
