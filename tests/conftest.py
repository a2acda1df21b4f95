"""Shared fixtures for HTTP-level tests.

Every test that touches the FastAPI app gets a freshly seeded container
and signs its own bearer tokens with the configured secret.
"""

from collections.abc import Callable
from decimal import Decimal

import jwt
import pytest
from fastapi.testclient import TestClient

from dailycart.application.container import ServiceContainer, reset_container
from dailycart.catalog.seed import SeedData
from dailycart.domain.entities import Branch, DeliveryPartner, Product
from dailycart.domain.state_machines import ApprovalStatus
from dailycart.domain.value_objects import Location, Role
from dailycart.infrastructure.config import settings
from dailycart.main import app


def http_seed() -> SeedData:
    """branch-1 sells and delivers; branch-2 is approved but pickup only."""
    return SeedData(
        branches=[
            Branch(
                id="branch-1",
                name="Koramangala",
                approval_status=ApprovalStatus.APPROVED,
                delivery_service_available=True,
                location=Location(latitude=12.93, longitude=77.62, address="Koramangala, Bengaluru"),
            ),
            Branch(id="branch-2", name="Indiranagar", approval_status=ApprovalStatus.APPROVED),
            Branch(id="branch-pending", name="Whitefield"),
        ],
        products=[
            Product(id="item1", branch_id="branch-1", name="item1", price=Decimal("50")),
            Product(id="item2", branch_id="branch-1", name="item2", price=Decimal("100")),
            Product(id="rice", branch_id="branch-1", name="Rice", price=Decimal("40"), is_loose=True, unit="kg"),
        ],
        partners=[
            DeliveryPartner(id="partner-1", branch_id="branch-1", name="Arjun", status=ApprovalStatus.APPROVED),
        ],
    )


@pytest.fixture
def container() -> ServiceContainer:
    """Replace the application container with a seeded one."""
    return reset_container(http_seed())


@pytest.fixture
def client(container: ServiceContainer) -> TestClient:
    """Test client without credentials."""
    return TestClient(app)


@pytest.fixture
def token_for() -> Callable[[Role, str], str]:
    """Sign a bearer token for a role and subject."""

    def _token(role: Role, subject_id: str) -> str:
        return jwt.encode(
            {"sub": subject_id, "role": role.value},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )

    return _token


@pytest.fixture
def headers_for(token_for) -> Callable[[Role, str], dict[str, str]]:
    """Authorization headers for a role and subject."""

    def _headers(role: Role, subject_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(role, subject_id)}"}

    return _headers


@pytest.fixture
def customer_headers(headers_for) -> dict[str, str]:
    return headers_for(Role.CUSTOMER, "cust-1")


@pytest.fixture
def branch_headers(headers_for) -> dict[str, str]:
    return headers_for(Role.BRANCH, "branch-1")


@pytest.fixture
def partner_headers(headers_for) -> dict[str, str]:
    return headers_for(Role.DELIVERY_PARTNER, "partner-1")


@pytest.fixture
def admin_headers(headers_for) -> dict[str, str]:
    return headers_for(Role.ADMIN, "ops")
