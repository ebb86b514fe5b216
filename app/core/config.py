# app/core/config.py
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root (where app/ and main.py live)
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Tests set their environment in conftest.py instead
DOTENV = os.getenv("DOTENV_PATH", os.path.join(BASE_DIR, ".env"))
if os.path.exists(DOTENV):
    load_dotenv(dotenv_path=DOTENV)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file_encoding="utf-8",
    )

    # App Environment
    ENVIRONMENT: str = "development"
    API_V1_STR: str = "/api/v1"

    # Database (required from environment)
    DB_HOST: str
    DB_PORT: int
    DB_USER: str
    DB_PASSWORD: str
    DB_NAME: str
    DB_SSL_MODE: str = "prefer"
    DB_CA_CERT_FILE: Optional[str] = None
    # Bulk contributor adds hold one pooled connection per attempt
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 20
    # Seconds a request waits for a free pooled connection
    DB_ACQUIRE_TIMEOUT: float = 10.0

    # Pagination
    PAGE_LIMIT_DEFAULT: int = 10
    PAGE_LIMIT_MAX: int = 100

    # Firebase
    FIREBASE_SERVICE_ACCOUNT_KEY_PATH: str = "service-account.json"

    # Sentry
    SENTRY_DSN: Optional[str] = None

    @property
    def DATABASE_URL(self) -> str:
        dsn = (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}"
            f"/{self.DB_NAME}?sslmode={self.DB_SSL_MODE}"
        )
        if self.DB_SSL_MODE in ["verify-ca", "verify-full"] and self.DB_CA_CERT_FILE:
            ca_cert_path = os.path.join(BASE_DIR, "certs", self.DB_CA_CERT_FILE)
            dsn = f"{dsn}&sslrootcert={ca_cert_path}"
        return dsn


# Cached in production/development; tests need to rebuild after monkeypatching env.
if os.getenv("ENVIRONMENT") == "test":
    def get_settings() -> Settings:
        """Get settings without caching for tests."""
        return Settings()
else:
    @lru_cache()
    def get_settings() -> Settings:
        """Get cached settings for production/development."""
        return Settings()


settings = get_settings()
