"""
Configuration management for the User Service
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """User Service configuration loaded from environment variables"""

    # Server Configuration
    SERVICE_PORT: int = 1323
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./user_service.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # JWT Configuration (RS256)
    PRIVATE_KEY_FILE: str = "rsa"
    PUBLIC_KEY_FILE: Optional[str] = "rsa.pub"
    PRIVATE_KEY_PASSPHRASE: Optional[str] = None
    JWT_EXPIRE_MINUTES: int = 30

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
