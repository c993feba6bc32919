"""Models describing the operations a virtual user executes."""

import random
import string
from collections.abc import Mapping, Sequence
from typing import Any, Literal, Self

from pydantic import Field, field_validator, model_validator

from crud_load_harness.models.base import Model

type HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

USER_VARIABLE = "user"

_formatter = string.Formatter()


def template_fields(template: Any) -> set[str]:
    """Collect placeholder names referenced anywhere in a template value."""
    if isinstance(template, str):
        return {
            name.split(".")[0].split("[")[0]
            for _, name, _, _ in _formatter.parse(template)
            if name
        }
    if isinstance(template, Mapping):
        names: set[str] = set()
        for key, value in template.items():
            names |= template_fields(key) | template_fields(value)
        return names
    if isinstance(template, Sequence):
        names = set()
        for item in template:
            names |= template_fields(item)
        return names
    return set()


def render_template(template: Any, variables: Mapping[str, Any]) -> Any:
    """Substitute variables into a template value.

    A string consisting of a single placeholder (e.g. ``"{amount}"``) is
    replaced by the raw variable so numbers stay numbers in JSON bodies.
    """
    if isinstance(template, str):
        parsed = list(_formatter.parse(template))
        if len(parsed) == 1:
            literal, name, spec, conversion = parsed[0]
            if not literal and name in variables and not spec and not conversion:
                return variables[name]
        return template.format_map(variables)
    if isinstance(template, Mapping):
        return {
            render_template(key, variables): render_template(value, variables)
            for key, value in template.items()
        }
    if isinstance(template, Sequence):
        return [render_template(item, variables) for item in template]
    return template


class Operation(Model):
    """One HTTP-shaped request in a workload."""

    method: HttpMethod = Field(..., description="HTTP method")
    path: str = Field(..., description="Path template relative to the base URL")
    body: Any = Field(default=None, description="JSON body template")
    expected_status: Sequence[int] | None = Field(
        default=None, description="Accepted status codes (None means any 2xx)"
    )
    timeout: float | None = Field(
        default=None, gt=0, description="Per-request timeout in seconds"
    )
    expect_json: bool = Field(
        default=True, description="Whether the response body must decode as JSON"
    )
    extract: Mapping[str, str] = Field(
        default_factory=dict,
        description="Variables captured from top-level keys of the JSON response",
    )

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _extract_requires_json(self) -> Self:
        if self.extract and not self.expect_json:
            raise ValueError("extract requires expect_json")
        return self

    def accepts(self, status: int) -> bool:
        """Check whether a response status counts as success."""
        if self.expected_status is None:
            return 200 <= status < 300
        return status in self.expected_status

    def references(self) -> set[str]:
        """Names of all variables the path and body templates need."""
        return template_fields(self.path) | template_fields(self.body)


class Workload(Model):
    """Ordered, immutable sequence of operations run by every virtual user."""

    operations: Sequence[Operation] = Field(..., min_length=1)
    variables: Mapping[str, Any] = Field(
        default_factory=dict, description="Static template variables"
    )
    choices: Mapping[str, Sequence[Any]] = Field(
        default_factory=dict,
        description="Variables picked at random once per virtual user",
    )

    @model_validator(mode="after")
    def _check_placeholders(self) -> Self:
        for name, candidates in self.choices.items():
            if not candidates:
                raise ValueError(f"choice '{name}' has no candidate values")

        known = {USER_VARIABLE, *self.variables, *self.choices}
        for index, operation in enumerate(self.operations):
            if missing := operation.references() - known:
                raise ValueError(
                    f"operation {index} ({operation.method} {operation.path}) "
                    f"references undefined variables: {sorted(missing)}"
                )
            known |= set(operation.extract)
        return self

    def bind(
        self, user_index: int = 0, rng: random.Random | None = None
    ) -> dict[str, Any]:
        """Build the variable scope for one virtual user."""
        pick = rng.choice if rng is not None else random.choice
        scope: dict[str, Any] = {USER_VARIABLE: user_index, **self.variables}
        for name, candidates in self.choices.items():
            scope[name] = pick(list(candidates))
        return scope
