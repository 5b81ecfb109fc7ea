from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    PROJECT_NAME: str = "SWM Dashboard"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Database
    DATABASE_URL: str = "sqlite:///./swm_dashboard.db"
    DATABASE_ECHO: bool = False

    # Authentication server (Better Auth compatible admin API)
    AUTH_BASE_URL: str = "http://localhost:3000"
    AUTH_API_PREFIX: str = "/api/auth"
    AUTH_TIMEOUT_SECONDS: float = 30.0
    AUTH_SESSION_COOKIE: str = "better-auth.session_token"
    SESSION_CACHE_TTL_SECONDS: int = 60
    REQUIRE_AUTH: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    # Seeding
    SEED_DATA_PATH: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
