"""Abstract base class for load test targets."""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from crud_load_harness.models.result import RequestOutcome
from crud_load_harness.models.workload import Operation, Workload


@dataclass(frozen=True, kw_only=True)
class Target(ABC):
    """Abstract base for services a workload is executed against.

    Implementations only know how to perform a single operation. Sequencing,
    fail-fast truncation and variable chaining live in ``execute`` so every
    target behaves the same way for a given workload.
    """

    @abstractmethod
    async def perform(
        self,
        operation: Operation,
        variables: Mapping[str, Any],
    ) -> RequestOutcome:
        """Perform one operation and report its outcome.

        Args:
            operation: Operation to perform
            variables: Template variables available to this operation

        Returns:
            Outcome of the operation. Transport, status and decode failures
            are reported as failed outcomes, never raised.

        """

    async def execute(
        self,
        workload: Workload,
        variables: Mapping[str, Any] | None = None,
    ) -> Sequence[RequestOutcome]:
        """Run the workload's operations in order, stopping at the first failure.

        Args:
            workload: Workload to execute
            variables: Variable scope for this run (defaults to ``workload.bind()``)

        Returns:
            Outcomes of every operation that ran. When an operation fails its
            outcome is the last one included and no later operation is sent.

        """
        scope = dict(variables) if variables is not None else workload.bind()
        outcomes: list[RequestOutcome] = []

        for operation in workload.operations:
            outcome = await self.perform(operation, scope)
            outcomes.append(outcome)
            if not outcome.succeeded:
                break
            scope.update(outcome.captured)

        return outcomes
