"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from dailycart.api.branches import router as branches_router
from dailycart.api.health import router as health_router
from dailycart.api.orders import router as orders_router
from dailycart.api.realtime import router as realtime_router
from dailycart.api.wallets import router as wallets_router
from dailycart.api.webhooks import router as webhooks_router

__all__ = [
    "branches_router",
    "health_router",
    "orders_router",
    "realtime_router",
    "wallets_router",
    "webhooks_router",
]
