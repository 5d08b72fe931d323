"""
TripPay Backend Configuration
Environment variables and application settings
"""

from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = True

    # ARC Pay Hosted Checkout
    # Credentials come from the ARC Pay merchant portal (Admin > Integration Settings)
    arc_pay_base_url: str = "https://api.arcpay.travel/api/rest"
    arc_pay_api_version: int = 100
    arc_pay_merchant_id: str = ""
    arc_pay_api_password: str = ""
    arc_pay_merchant_name: str = "TripPay Travel"
    arc_pay_checkout_timeout: int = 900  # seconds the hosted page stays valid
    arc_pay_timeout: float = 30.0

    # Airline data for card brand interchange (flight bookings only)
    arc_enable_airline_data: bool = False
    arc_travel_agent_code: str = "TRIPPAY01"
    arc_travel_agent_name: str = "TripPay"

    # Frontend used to build return/cancel/redirect URLs
    frontend_url: str = "http://localhost:5173"

    # PostgreSQL Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = ""
    postgres_password: str = ""
    postgres_db: str = "trippay"
    database_url_override: Optional[str] = None  # e.g. "sqlite://" for tests

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return f"postgresql://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    @property
    def arc_pay_configured(self) -> bool:
        return bool(self.arc_pay_merchant_id and self.arc_pay_api_password)

    # CORS
    cors_origins: str = "*"

    # JWT Authentication (admin operations: refund, capture, void, quotes)
    jwt_secret: str = "trippay-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 720  # 12 hours
    admin_email: str = "admin@trippay.travel"
    admin_password_hash: str = ""  # sha256_crypt hash, see AuthService.hash_password

    # Email Notification Settings (payment receipts, cancellation notices)
    # Leave smtp_host empty to disable notifications.
    smtp_host: str = ""           # e.g., "smtp.gmail.com"
    smtp_port: int = 587          # TLS port (use 465 for SSL)
    smtp_user: str = ""
    smtp_password: str = ""
    from_email: Optional[str] = None  # Sender email (defaults to smtp_user)

    @property
    def cors_origins_list(self) -> list[str]:
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
