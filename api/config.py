"""
Configuration management for the blob store API.

Handles application settings with validation and environment-based configuration.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from storage.config import StorageConfig


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env file
    )

    # Application
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # API Configuration
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_WORKERS: int = 4
    API_RELOAD: bool = False
    API_LOG_LEVEL: str = "info"

    # Storage
    STORAGE_TYPE: str = "filesystem"  # filesystem, azure or s3
    STORAGE_NAME: str = "default"
    STORAGE_CONTAINER: str = "uploads"
    STORAGE_PATH: str = "./storage"
    STORAGE_PUBLIC_ACCESS: Optional[str] = "blob"  # blob, container or off
    STORAGE_BUFFERED: bool = True

    # Azure Blob Storage
    AZURE_CONNECTION_STRING: Optional[str] = None
    AZURE_ACCOUNT_NAME: Optional[str] = None
    AZURE_ACCOUNT_KEY: Optional[str] = None

    # S3-compatible storage
    S3_REGION: str = "us-east-1"
    S3_ENDPOINT_URL: Optional[str] = None
    S3_ACCESS_KEY: Optional[str] = None
    S3_SECRET_KEY: Optional[str] = None
    S3_PREFIX: str = ""

    # Resource Limits
    MAX_UPLOAD_SIZE: int = 512 * 1024 * 1024  # 512MB

    # CORS
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost", "https://localhost"])

    # Monitoring
    ENABLE_METRICS: bool = True

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @property
    def storage_config(self) -> StorageConfig:
        """Build the backend configuration for the configured container."""
        return StorageConfig(
            type=self.STORAGE_TYPE,
            name=self.STORAGE_NAME,
            container=self.STORAGE_CONTAINER,
            base_path=self.STORAGE_PATH,
            connection_string=self.AZURE_CONNECTION_STRING,
            account_name=self.AZURE_ACCOUNT_NAME,
            account_key=self.AZURE_ACCOUNT_KEY,
            region=self.S3_REGION,
            endpoint_url=self.S3_ENDPOINT_URL,
            access_key=self.S3_ACCESS_KEY,
            secret_key=self.S3_SECRET_KEY,
            prefix=self.S3_PREFIX,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
