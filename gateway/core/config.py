"""
Gateway configuration management with environment-based settings.
"""
import json
from functools import lru_cache
from typing import Annotated, Dict, List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from ..models.callers import CallerRegistration


class Settings(BaseSettings):
    """Main gateway settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ============= Application Settings =============
    APP_NAME: str = "OpenNotes API Gateway"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Secure proxy for the OpenNotes API with a quiz store"
    ENVIRONMENT: str = Field(default="development")
    DOCUMENTATION_URL: str = "https://nagusamecs.github.io/OpenNotesAPI/docs.html"

    # ============= Server Settings =============
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8787)
    RELOAD: bool = Field(default=False)

    # ============= Upstream API =============
    UPSTREAM_API_URL: str = "https://open-notes.tebby2008-li.workers.dev"
    UPSTREAM_API_KEY: SecretStr = Field(default="")
    UPSTREAM_ORIGIN: str = "https://nagusamecs.github.io"
    UPSTREAM_REFERER: str = "https://nagusamecs.github.io/OpenNotesAPI/"
    UPSTREAM_TIMEOUT_SECONDS: float = 10.0

    # ============= Callers & Credentials =============
    APP_TOKENS: Dict[str, CallerRegistration] = Field(default_factory=dict)
    ADMIN_TOKEN: Optional[SecretStr] = None
    SESSION_SECRET: SecretStr = Field(default="dev-session-secret-change-me")
    SESSION_ALGORITHM: str = "HS256"
    SESSION_TTL_MINUTES: int = 60 * 24 * 7
    OFFICIAL_FRONTEND_HOST: str = "nagusamecs.github.io"

    # ============= Rate Limiting =============
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_DEFAULT: int = 100
    OFFICIAL_FRONTEND_RATE_LIMIT: int = 1000

    # ============= Auth Code Handoff =============
    AUTH_CODE_TTL_SECONDS: int = 300
    AUTH_CODE_ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = [
        "https://nagusamecs.github.io",
        "http://localhost:1420",
        "tauri://localhost",
    ]
    DESKTOP_CLIENT_SECRET: Optional[SecretStr] = None

    # ============= State & Storage =============
    STATE_BACKEND: str = "memory"  # memory or redis
    REDIS_URL: str = "redis://localhost:6379/0"
    QUIZ_STORE_URL: Optional[str] = None
    QUIZ_STORE_ECHO: bool = False
    SEED_QUIZZES: bool = True

    # CORS Settings
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["*"]
    CORS_ALLOW_METHODS: List[str] = ["GET", "POST", "DELETE", "OPTIONS"]
    CORS_ALLOW_HEADERS: List[str] = [
        "Content-Type",
        "Authorization",
        "X-App-Token",
        "X-Auth-Token",
        "X-Admin-Token",
        "X-Desktop-Secret",
    ]
    CORS_MAX_AGE: int = 86400

    # ============= Monitoring Settings =============
    SENTRY_DSN: Optional[str] = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    # ============= Logging Settings =============
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # json or text

    @field_validator("CORS_ORIGINS", "AUTH_CODE_ALLOWED_ORIGINS", mode="before")
    @classmethod
    def split_comma_list(cls, v):
        if isinstance(v, str):
            if v.lstrip().startswith("["):
                return json.loads(v)
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    @field_validator("STATE_BACKEND")
    @classmethod
    def check_state_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("memory", "redis"):
            raise ValueError("STATE_BACKEND must be 'memory' or 'redis'")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT.lower() == "production"

    def is_testing(self) -> bool:
        """Check if running in testing."""
        return self.ENVIRONMENT.lower() == "testing"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
