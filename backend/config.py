# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./scent_stock.db"

    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    FRONTEND_URL: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    # Attachments
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_MB: int = 50

    # Shopify Admin API (product sync) and webhook verification
    SHOPIFY_STORE_NAME: Optional[str] = None
    SHOPIFY_API_KEY: Optional[str] = None
    SHOPIFY_API_PASSWORD: Optional[str] = None
    SHOPIFY_API_VERSION: str = "2024-01"
    SHOPIFY_SYNC_ENABLED: bool = False
    SHOPIFY_WEBHOOK_SECRET: Optional[str] = None

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()
