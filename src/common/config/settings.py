from pathlib import Path
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class DerbySettings(BaseSettings):
    """Configuration settings for the Derby gateway and its database."""

    HOST: str = "0.0.0.0"
    PORT: int = 3000

    DATABASE_URL: str = "sqlite://derby.db"
    SQL_PATH: str = str(Path.cwd() / "sql")
    LOG_SQL: bool = False
    DISABLE_SQL_CACHE: bool = False

    DB_POOL_MAX_SIZE: int = 20
    DB_POOL_IDLE_TIMEOUT: float = 30.0
    DB_CONNECT_TIMEOUT: float = 5.0

    # None keeps the per-provider default (sqlite: abort, postgres: continue)
    SQL_STATEMENT_ERROR_POLICY: Optional[str] = None
    SQL_BINDING_FALLBACK: bool = False

    STATIC_DIR: str = str(Path.cwd() / "public")
    API_PATH: str = "/api"

    CORS_ENABLED: bool = False
    CORS_ORIGIN: str = "*"
    CORS_METHODS: str = "GET, POST, PUT, DELETE, OPTIONS"
    CORS_HEADERS: str = "Content-Type, Authorization"

    LOG_LEVEL: str = "INFO"

    @field_validator("SQL_STATEMENT_ERROR_POLICY")
    @classmethod
    def normalize_policy(cls, value: Optional[str]) -> Optional[str]:
        """Reject unknown statement error policies early."""
        if value is None or not value.strip():
            return None
        cleaned = value.strip().lower().replace("_", "-")
        if cleaned not in {"abort", "continue", "abort-on-error", "continue-on-error"}:
            raise ValueError(
                f"Invalid SQL_STATEMENT_ERROR_POLICY '{value}'. Allowed values: abort, continue"
            )
        return cleaned.replace("-on-error", "")

    @model_validator(mode="after")
    def normalize_api_path(self) -> "DerbySettings":
        """Ensure API_PATH has a leading slash and no trailing slash."""
        path = "/" + self.API_PATH.strip().strip("/")
        self.API_PATH = path if path != "/" else "/api"
        return self

    class Config:
        """Pydantic config."""

        case_sensitive = True
        env_file = ".env"
        extra = "ignore"


def get_settings() -> DerbySettings:
    """Build settings from the current environment (and an optional .env file)."""
    return DerbySettings()
