"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Authentication
    jwt_secret: str = "dev-jwt-secret-change-in-production"
    jwt_algorithm: str = "HS256"

    # Wallet
    currency: str = "INR"
    minimum_balance: Decimal = Decimal("-100")
    min_payment_amount: Decimal = Decimal("30")

    # Orders
    auto_accept_orders: bool = True
    partner_max_concurrent_orders: int = 1

    # Auto-close sweep
    auto_close_enabled: bool = True
    auto_close_hour: int = 22
    auto_close_minute: int = 0
    auto_close_timezone: str = "Asia/Kolkata"

    # Directory seeding
    seed_file: str | None = None
    seed_demo_data: bool = False

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
