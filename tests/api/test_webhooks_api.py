"""Tests for the payment webhook endpoint."""

from decimal import Decimal

from fastapi.testclient import TestClient


def payment_event(payment_id: str = "pay_001", amount: str = "500") -> dict[str, str]:
    return {"branch_id": "branch-1", "amount": amount, "external_payment_id": payment_id}


class TestPaymentWebhook:
    """Tests for POST /webhooks/payments."""

    def test_payment_applied(self, client: TestClient, admin_headers, branch_headers) -> None:
        response = client.post("/webhooks/payments", json=payment_event(), headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "processed"
        assert Decimal(data["balance"]) == Decimal("500")

        wallet = client.get("/wallets/branch-1", headers=branch_headers).json()
        assert Decimal(wallet["balance"]) == Decimal("500")

    def test_redelivery_is_duplicate(self, client: TestClient, admin_headers, branch_headers) -> None:
        """The same gateway payment credits the wallet once."""
        client.post("/webhooks/payments", json=payment_event(), headers=admin_headers)
        response = client.post("/webhooks/payments", json=payment_event(), headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "duplicate"
        assert Decimal(response.json()["balance"]) == Decimal("500")

        payments = client.get("/wallets/branch-1/payments", headers=branch_headers).json()
        assert payments["total"] == 1
        assert payments["items"][0]["external_payment_id"] == "pay_001"

    def test_requires_admin(self, client: TestClient, branch_headers) -> None:
        response = client.post("/webhooks/payments", json=payment_event(), headers=branch_headers)

        assert response.status_code == 403

    def test_requires_authentication(self, client: TestClient) -> None:
        response = client.post("/webhooks/payments", json=payment_event())

        assert response.status_code == 401

    def test_missing_payment_id(self, client: TestClient, admin_headers) -> None:
        response = client.post(
            "/webhooks/payments",
            json={"branch_id": "branch-1", "amount": "500"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        fields = [e["field"] for e in response.json()["details"]["errors"]]
        assert "body.external_payment_id" in fields
