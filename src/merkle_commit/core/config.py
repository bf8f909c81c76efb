"""
Merkle Commitment Service - Configuration
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    # Application
    APP_NAME: str = "Merkle Commitment Service"
    VERSION: str = "1.0.0"
    ENV: str = "development"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8082
    WORKERS: int = 1
    LOG_LEVEL: str = "INFO"

    # Merkle
    HASH_ALGORITHM: Literal["sha256", "sha3_256", "blake2b", "sha512"] = "sha256"
    ALLOW_EMPTY_LEAVES: bool = True
    MAX_LEAVES: int = Field(default=1_000_000, gt=0)

    # Root store
    ROOT_STORE_BACKEND: Literal["memory", "database"] = "memory"
    ROOT_STORE_RETRY_COUNT: int = Field(default=3, ge=1)
    ROOT_STORE_RETRY_DELAY: float = 0.5
    ROOT_STORE_RETRY_MAX_DELAY: float = 5.0

    # Database
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "merkle_commit"
    DB_USER: str = "merkle"
    DB_PASSWORD: str = ""
    DB_POOL_SIZE: int = 5
    DB_POOL_MAX_OVERFLOW: int = 10

    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # Authentication for root publication
    API_AUTH_ENABLED: bool = True
    API_KEY: Optional[str] = Field(default=None, min_length=16)

    # Metrics
    METRICS_ENABLED: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
