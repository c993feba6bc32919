"""Operations against the orders resource of a CRUD service."""

from typing import Any

from crud_load_harness.models.workload import Operation, Workload

ORDERS_PATH = "/orders"


def list_orders() -> Operation:
    """GET /orders, returns every order."""
    return Operation(method="GET", path=ORDERS_PATH)


def get_order(order_id: str = "{id}") -> Operation:
    """GET /orders/{id}."""
    return Operation(method="GET", path=f"{ORDERS_PATH}/{order_id}")


def create_order(
    order_id: Any = "3", item: Any = "Item 3", amount: Any = 30
) -> Operation:
    """POST /orders with a full order record."""
    return Operation(
        method="POST",
        path=ORDERS_PATH,
        body={"id": order_id, "item": item, "amount": amount},
    )


def update_order(
    order_id: str = "{id}", item: Any = "{item}", amount: Any = "{amount}"
) -> Operation:
    """PUT /orders/{id} replacing the whole record, judged by status alone."""
    return Operation(
        method="PUT",
        path=f"{ORDERS_PATH}/{order_id}",
        body={"id": order_id, "item": item, "amount": amount},
        expect_json=False,
    )


def increase_amount(order_id: str = "{id}", amount: Any = 5) -> Operation:
    """PUT /orders/{id}/increase by the given amount."""
    return Operation(
        method="PUT",
        path=f"{ORDERS_PATH}/{order_id}/increase",
        body={"amount": amount},
        expect_json=False,
    )


def decrease_amount(order_id: str = "{id}", amount: Any = 5) -> Operation:
    """PUT /orders/{id}/decrease by the given amount."""
    return Operation(
        method="PUT",
        path=f"{ORDERS_PATH}/{order_id}/decrease",
        body={"amount": amount},
        expect_json=False,
    )


def delete_order(order_id: str = "{id}") -> Operation:
    """DELETE /orders/{id}, whose response body is not inspected."""
    return Operation(
        method="DELETE",
        path=f"{ORDERS_PATH}/{order_id}",
        expect_json=False,
    )


def default_workload() -> Workload:
    """Read the order list, then create order 3."""
    return Workload(operations=[list_orders(), create_order()])
