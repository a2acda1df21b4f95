"""Shared fixtures for E2E tests.

Scenarios drive the HTTP API the way the customer, branch and delivery
partner apps do, against a freshly seeded in-memory container.
"""

from dataclasses import dataclass
from typing import Any

import pytest
from fastapi.testclient import TestClient


@dataclass
class OrderFlow:
    """Each party's calls against one running API."""

    client: TestClient
    customer: dict[str, str]
    branch: dict[str, str]
    partner: dict[str, str]
    admin: dict[str, str]

    def place(self, items: list[dict[str, Any]], **extra: Any) -> dict[str, Any]:
        response = self.client.post(
            "/orders",
            json={"branch_id": "branch-1", "items": items, **extra},
            headers=self.customer,
        )
        assert response.status_code == 201, response.text
        return response.json()

    def branch_command(self, order_id: str, command: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        response = self.client.post(f"/orders/{order_id}/{command}", json=body, headers=self.branch)
        assert response.status_code == 200, response.text
        return response.json()

    def partner_status(self, order_id: str, status: str) -> dict[str, Any]:
        response = self.client.post(f"/orders/{order_id}/status", json={"status": status}, headers=self.partner)
        assert response.status_code == 200, response.text
        return response.json()

    def deliver(self, order_id: str) -> dict[str, Any]:
        """Pack, assign and walk an accepted delivery order to delivered."""
        self.branch_command(order_id, "pack")
        self.branch_command(order_id, "assign")
        self.partner_status(order_id, "arriving")
        return self.partner_status(order_id, "delivered")

    def wallet(self) -> dict[str, Any]:
        return self.client.get("/wallets/branch-1", headers=self.branch).json()


@pytest.fixture
def flow(client, customer_headers, branch_headers, partner_headers, admin_headers) -> OrderFlow:
    return OrderFlow(
        client=client,
        customer=customer_headers,
        branch=branch_headers,
        partner=partner_headers,
        admin=admin_headers,
    )
