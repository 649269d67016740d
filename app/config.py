"""Application configuration via pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Boat Cruise"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "boatcruise"
    postgres_password: str = Field(default="boatcruise_secret")
    postgres_db: str = "boat_cruise"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    database_url_override: Optional[str] = None

    @computed_field
    @property
    def database_url(self) -> str:
        """Async PostgreSQL connection URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis (Celery broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @computed_field
    @property
    def redis_url(self) -> str:
        """Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # JWT Authentication
    jwt_secret_key: str = Field(default="your-super-secret-key-change-in-production")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Paystack
    paystack_secret_key: str = Field(default="sk_test_change_me")
    paystack_base_url: str = "https://api.paystack.co"
    paystack_currency: str = "NGN"
    paystack_timeout_seconds: float = 30.0
    payment_reference_prefix: str = "BKG"

    # Frontend (payment callback target)
    frontend_url: str = "http://localhost:3000"

    # Email (SendGrid)
    sendgrid_api_key: Optional[str] = None
    email_from_address: str = "noreply@boatcruise.ng"
    email_from_name: str = "Boat Cruise"

    # Booking lifecycle
    pending_payment_timeout_minutes: int = 15
    cancellation_claim_ttl_minutes: int = 10
    abandon_sweep_interval_seconds: int = 15 * 60
    completion_sweep_interval_seconds: int = 60 * 60
    run_sweepers_in_process: bool = True

    # CORS
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8080"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
