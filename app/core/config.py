from pydantic_settings import BaseSettings
from typing import List, Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Networth Pricing"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["*"]
    ALLOW_CREDENTIALS: bool = True

    # Market data providers
    TWELVE_DATA_API_KEY: Optional[str] = None
    TWELVE_DATA_BASE_URL: str = "https://api.twelvedata.com"
    MFAPI_BASE_URL: str = "https://api.mfapi.in"
    COINGECKO_BASE_URL: str = "https://api.coingecko.com/api/v3"
    CRYPTO_VS_CURRENCY: str = "inr"
    DEFAULT_EQUITY_COUNTRY: str = "India"

    # Pricing
    PRICE_CACHE_TTL_SECONDS: int = 300  # 5 minutes
    PROVIDER_TIMEOUT_SECONDS: float = 8.0

    # Celery
    REDIS_URL: str = "redis://localhost:6379/0"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    SENTRY_DSN: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
