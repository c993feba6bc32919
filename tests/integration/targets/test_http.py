"""Integration tests for the HTTP target."""

from collections.abc import AsyncGenerator

import aiohttp
import pytest
from aioresponses import aioresponses as aioresponses_cls
from yarl import URL

from crud_load_harness import orders
from crud_load_harness.models.workload import Operation, Workload
from crud_load_harness.targets.http import HttpTarget, HttpTargetConfig
from crud_load_harness.testing.payloads import order, order_list

BASE_URL = "http://orders.test:8080"
ORDERS_URL = f"{BASE_URL}/orders"


@pytest.fixture
def config() -> HttpTargetConfig:
    """Create test configuration."""
    return HttpTargetConfig(base_url=f"{BASE_URL}/", request_timeout=3.0)


@pytest.fixture
async def target(
    config: HttpTargetConfig, aioresponses: aioresponses_cls
) -> AsyncGenerator[HttpTarget, None]:
    """Create target with managed session."""
    async with HttpTarget.from_config(config) as impl:
        yield impl


class TestPerform:
    """Tests for perform."""

    async def test_lists_orders(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """A 200 response with a JSON body is a success."""
        aioresponses.get(ORDERS_URL, status=200, payload=order_list())

        outcome = await target.perform(orders.list_orders(), {})

        assert outcome.succeeded
        assert outcome.status == 200
        assert outcome.error_kind is None
        assert outcome.latency >= 0

    async def test_creates_order_with_rendered_body(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """Sends the rendered JSON body and the per-request timeout."""
        aioresponses.post(ORDERS_URL, status=201, payload=order(order_id="7"))
        operation = Operation(
            method="POST",
            path="/orders",
            body={"id": "{id}", "item": "Item {id}", "amount": "{amount}"},
            timeout=1.0,
        )

        outcome = await target.perform(operation, {"id": "7", "amount": 70})

        assert outcome.succeeded
        call = aioresponses.requests[("POST", URL(ORDERS_URL))][0]
        assert call.kwargs["json"] == {"id": "7", "item": "Item 7", "amount": 70}
        assert call.kwargs["timeout"] == aiohttp.ClientTimeout(total=1.0)

    async def test_uses_configured_timeout_by_default(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """Operations without their own timeout use the target's."""
        aioresponses.get(ORDERS_URL, status=200, payload=[])

        await target.perform(orders.list_orders(), {})

        call = aioresponses.requests[("GET", URL(ORDERS_URL))][0]
        assert call.kwargs["timeout"] == aiohttp.ClientTimeout(total=3.0)

    async def test_non_success_status_is_http_status_failure(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """Non-2xx responses are failures of kind http_status."""
        aioresponses.put(
            f"{ORDERS_URL}/9/increase", status=404, payload={"message": "not found"}
        )

        outcome = await target.perform(orders.increase_amount("9"), {})

        assert not outcome.succeeded
        assert outcome.error_kind == "http_status"
        assert outcome.status == 404
        assert outcome.message == (
            "PUT /orders/9/increase returned unexpected status 404"
        )

    async def test_unexpected_success_code_is_failure(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """expected_status narrows what counts as success."""
        aioresponses.post(ORDERS_URL, status=200, payload=order())
        operation = Operation(
            method="POST", path="/orders", body=order(), expected_status=[201]
        )

        outcome = await target.perform(operation, {})

        assert outcome.error_kind == "http_status"

    async def test_connection_error_is_network_failure(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """Transport errors are failures of kind network."""
        aioresponses.get(
            ORDERS_URL, exception=aiohttp.ClientConnectionError("Connection refused")
        )

        outcome = await target.perform(orders.list_orders(), {})

        assert not outcome.succeeded
        assert outcome.error_kind == "network"
        assert outcome.status is None
        assert outcome.message is not None
        assert "Connection refused" in outcome.message

    async def test_timeout_is_network_failure(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """Timeouts are failures of kind network."""
        aioresponses.get(ORDERS_URL, exception=TimeoutError())

        outcome = await target.perform(orders.list_orders(), {})

        assert outcome.error_kind == "network"
        assert outcome.message == "GET /orders timed out after 3.0s"

    async def test_invalid_json_is_decode_failure(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """Malformed bodies are failures of kind decode."""
        aioresponses.get(ORDERS_URL, status=200, body="<html>oops</html>")

        outcome = await target.perform(orders.list_orders(), {})

        assert not outcome.succeeded
        assert outcome.error_kind == "decode"
        assert outcome.status == 200

    async def test_skips_decoding_when_not_expected(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """Operations that do not expect JSON accept any body."""
        aioresponses.delete(f"{ORDERS_URL}/3", status=204, body="")

        outcome = await target.perform(orders.delete_order("3"), {})

        assert outcome.succeeded
        assert outcome.status == 204

    async def test_no_content_on_amount_adjustment_succeeds(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """A 204 from an increase is judged by its status alone."""
        aioresponses.put(f"{ORDERS_URL}/1/increase", status=204, body="")

        outcome = await target.perform(orders.increase_amount("1"), {})

        assert outcome.succeeded
        assert outcome.status == 204
        assert ("PUT", URL(f"{ORDERS_URL}/1/increase")) in aioresponses.requests

    async def test_empty_body_without_extract_succeeds(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """JSON operations accept a 2xx response with no body."""
        aioresponses.put(f"{ORDERS_URL}/1", status=200, body="")
        operation = Operation(method="PUT", path="/orders/1", body=order())

        outcome = await target.perform(operation, {})

        assert outcome.succeeded
        assert outcome.error_kind is None

    async def test_no_content_with_extract_is_decode_failure(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """A field cannot be captured from a response without a body."""
        aioresponses.post(ORDERS_URL, status=204, body="")
        operation = Operation(
            method="POST", path="/orders", body=order(), extract={"id": "order_id"}
        )

        outcome = await target.perform(operation, {})

        assert outcome.error_kind == "decode"
        assert outcome.status == 204

    async def test_extracts_variables(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """Captures top-level response fields."""
        aioresponses.post(
            ORDERS_URL,
            status=200,
            payload={"message": "Order created successfully", "order_id": "abc"},
        )
        operation = Operation(
            method="POST", path="/orders", body=order(), extract={"id": "order_id"}
        )

        outcome = await target.perform(operation, {})

        assert outcome.succeeded
        assert outcome.captured == {"id": "abc"}

    async def test_missing_extract_field_is_decode_failure(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """A response without the field to capture is a decode failure."""
        aioresponses.post(ORDERS_URL, status=200, payload=[order()])
        operation = Operation(
            method="POST", path="/orders", body=order(), extract={"id": "order_id"}
        )

        outcome = await target.perform(operation, {})

        assert outcome.error_kind == "decode"
        assert outcome.message == "POST /orders response has no 'order_id' field"


class TestExecute:
    """Tests for executing whole workloads over HTTP."""

    async def test_create_then_read_back(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """Chains the created order's id into the follow-up request."""
        aioresponses.post(
            ORDERS_URL,
            status=200,
            payload={"message": "Order created successfully", "order_id": "abc"},
        )
        aioresponses.get(f"{ORDERS_URL}/abc", status=200, payload=order(order_id="abc"))
        workload = Workload(
            operations=[
                Operation(
                    method="POST",
                    path="/orders",
                    body={"item": "Item1", "amount": 10},
                    extract={"id": "order_id"},
                ),
                orders.get_order(),
            ]
        )

        outcomes = await target.execute(workload)

        assert [o.succeeded for o in outcomes] == [True, True]
        assert ("GET", URL(f"{ORDERS_URL}/abc")) in aioresponses.requests

    async def test_stops_after_failed_request(
        self,
        target: HttpTarget,
        aioresponses: aioresponses_cls,
    ) -> None:
        """Does not send requests after a failed one."""
        aioresponses.get(ORDERS_URL, status=503)
        workload = orders.default_workload()

        outcomes = await target.execute(workload)

        assert len(outcomes) == 1
        assert outcomes[0].error_kind == "http_status"
        assert ("POST", URL(ORDERS_URL)) not in aioresponses.requests
