"""
Configuration management using Pydantic settings.
Handles database URL, JWT secrets, commission defaults and environment variables.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from decimal import Decimal
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from the environment and an optional .env file."""

    # Application configuration
    app_name: str = "HomesApp Platform API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    testing: bool = False

    # Database configuration
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/homesapp"
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # JWT configuration
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    jwt_refresh_token_expire_days: int = 7
    auth_cookie_name: str = "homesapp_session"
    auth_cookie_secure: bool = False

    # API configuration
    api_prefix: str = "/api"
    cors_origins: List[str] = ["http://localhost:5000", "http://localhost:5173"]
    max_request_size: int = 5 * 1024 * 1024  # 5MB

    # Pagination defaults
    default_page_size: int = 20
    max_page_size: int = 100

    # Business defaults
    default_currency: str = "MXN"
    default_rental_commission: Decimal = Decimal("10")
    default_listed_property_commission: Decimal = Decimal("5")
    default_recruited_property_commission: Decimal = Decimal("20")
    appointment_slot_minutes: int = 60
    import_match_score_cutoff: int = 85
    pdf_brand_name: str = "HomesApp"
    pdf_brand_tagline: str = "Tulum Rental Homes"

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("database_url", mode="before")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure an async driver is used."""
        if v and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v and v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v

    @field_validator("jwt_secret_key", mode="before")
    @classmethod
    def validate_jwt_secret_key(cls, v):
        """Validate JWT secret key strength."""
        if not v:
            raise ValueError("JWT_SECRET_KEY is required")
        if len(v) < 32 and v != "your-secret-key-change-in-production":
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters long")
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        return self.environment == "testing" or self.testing

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one instance of settings throughout the app lifecycle.
    """
    return Settings()


# Global settings instance
settings = get_settings()
