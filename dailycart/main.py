"""DailyCart API main application module.

This module initializes the FastAPI application and configures
core middleware, routers, and startup/shutdown events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dailycart.api import (
    branches_router,
    health_router,
    orders_router,
    realtime_router,
    wallets_router,
    webhooks_router,
)
from dailycart.api.middleware import setup_middleware
from dailycart.application.container import get_container
from dailycart.infrastructure.config import settings
from dailycart.infrastructure.logging import configure_logging

configure_logging()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Starts the daily auto-close sweep and stops it on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    logger.info(
        "Starting DailyCart API",
        version=settings.api_version,
        debug=settings.debug,
        auto_accept_orders=settings.auto_accept_orders,
    )

    scheduler = get_container().scheduler
    if settings.auto_close_enabled:
        scheduler.start()

    yield

    await scheduler.stop()
    logger.info("Shutting down DailyCart API")


app = FastAPI(
    title="DailyCart API",
    description="Multi-tenant grocery delivery backend",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware (request ID, bearer auth, error handling)
setup_middleware(app)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(orders_router)
app.include_router(branches_router)
app.include_router(wallets_router)
app.include_router(webhooks_router)
app.include_router(realtime_router)
