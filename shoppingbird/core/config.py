"""
Application settings loaded from environment variables and .env file.
"""

from typing import List
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runtime configuration for the ShoppingBird service."""

    # Application
    app_name: str = "ShoppingBird POS"
    app_version: str = "1.0.0"
    debug: bool = False
    ENVIRONMENT: str = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./shoppingbird.db"
    SQL_ECHO: bool = False
    AUTO_CREATE_TABLES: bool = False

    # JWT Authentication
    JWT_SECRET: str = "change-this-in-production-secret-key"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 12

    # CORS
    cors_origins: List[str] = ["*"]
    cors_allow_credentials: bool = True

    # Product lookup (UPC item database)
    UPC_API_URL: str = "https://api.upcitemdb.com/prod/trial/lookup"
    UPC_API_TIMEOUT: float = 10.0

    # Money handling
    DEFAULT_DECIMAL_PLACES: int = 2

    # "price_lock" keeps amounts recorded at suspend time,
    # "reprice" recalculates lines against current prices and taxes
    SUSPENDED_COMPLETION_POLICY: str = "price_lock"

    @property
    def log_format(self) -> str:
        return "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
