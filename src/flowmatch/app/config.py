"""Application configuration via Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

# Resolve .env from the project root regardless of CWD
_ENV_FILE = Path(__file__).resolve().parents[3] / ".env"


class Settings(BaseSettings):
    """Central configuration loaded from environment variables / .env file."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./flowmatch.db"

    # Auth / JWT (tokens are issued by the account service; we only verify them)
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 1440

    # CORS / Frontend
    cors_origins: str = "http://localhost:3000"

    # Suggestions
    suggestion_min_score: int = 30
    suggestion_default_limit: int = 25
    suggestion_max_limit: int = 100
    suggestion_fresh_window_days: int = 7
    eligible_validation_statuses: str = "validated,approved,active"

    # General
    debug: bool = True

    model_config = {"env_file": str(_ENV_FILE), "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list.

        In debug mode, returns ["*"] to allow any origin (LAN IPs, etc.).
        """
        if self.debug:
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def eligible_statuses_list(self) -> list[str]:
        """Company validation statuses allowed to appear as suggestion candidates."""
        return [
            status.strip().lower()
            for status in self.eligible_validation_statuses.split(",")
            if status.strip()
        ]


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()
