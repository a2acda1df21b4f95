"""Shared fixtures for API tests."""

from collections.abc import Callable
from typing import Any

import pytest
from fastapi.testclient import TestClient

BASKET = [
    {"product_id": "item1", "count": 3},
    {"product_id": "item2", "count": 2},
    {"product_id": "rice", "count": 1, "quantity": "1.5"},
]


@pytest.fixture
def place_order(client: TestClient, customer_headers: dict[str, str]) -> Callable[..., dict[str, Any]]:
    """Place an order at branch-1 and return the response body."""

    def _place(items: list[dict[str, Any]] | None = None, **extra: Any) -> dict[str, Any]:
        response = client.post(
            "/orders",
            json={"branch_id": "branch-1", "items": items or BASKET, **extra},
            headers=customer_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _place
