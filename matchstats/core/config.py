"""
Application configuration with environment-specific settings.

Supported environment files (loaded in order of precedence):
1. .env.{ENVIRONMENT} (e.g., .env.production, .env.development)
2. .env (fallback)

Required secrets for production:
- ADMIN_USERNAME / ADMIN_PASSWORD (basic auth for the admin surface)
"""
import os
import logging
from pathlib import Path
from typing import Literal, Optional

from pydantic import ConfigDict
from pydantic_settings import BaseSettings

# Project root (two levels up from this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment-specific configuration."""

    # Environment
    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    model_config = ConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Application
    APP_NAME: str = "Match Stats Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Storage - a single SQLite file plus a sibling backups directory
    DATABASE_PATH: str = "./data/stats.db"
    BACKUP_DIR: Optional[str] = None  # Defaults to <database dir>/backups
    BACKUP_KEEP: int = 30  # 0 keeps every backup
    BACKUP_INTERVAL_HOURS: int = 24  # 0 disables the periodic backup job

    # Touch tracking / goal attribution
    ASSIST_WINDOW_MS: int = 3000
    TOUCH_RADIUS: float = 25.0  # player radius (15) + ball radius (10)
    TOUCH_DEBOUNCE_MS: int = 50
    TOUCH_HISTORY_SIZE: int = 5

    # Chat commands
    RANK_LIMIT: int = 10
    COMMAND_LOCALE: Literal["pl", "en"] = "pl"

    # Display-name prefix of synthetic (test) players removed by the purge
    SYNTHETIC_PLAYER_PREFIX: str = "___test"

    # Admin basic auth
    ADMIN_USERNAME: str = ""
    ADMIN_PASSWORD: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    @property
    def database_file(self) -> Path:
        """Resolved path of the SQLite database file."""
        return Path(self.DATABASE_PATH).expanduser().resolve()

    @property
    def backup_dir(self) -> Path:
        """Resolved backups directory (sibling of the database file by default)."""
        if self.BACKUP_DIR:
            return Path(self.BACKUP_DIR).expanduser().resolve()
        return self.database_file.parent / "backups"

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"

    def admin_auth_configured(self) -> bool:
        return bool(self.ADMIN_USERNAME and self.ADMIN_PASSWORD)

    def validate_required_secrets(self) -> list[str]:
        """
        Validate that required secrets are set for the current environment.

        Returns:
            List of missing secret names (empty if all present)
        """
        missing = []

        if self.is_production():
            if not self.ADMIN_USERNAME:
                missing.append("ADMIN_USERNAME")
            if not self.ADMIN_PASSWORD:
                missing.append("ADMIN_PASSWORD")

        return missing


def _load_env_file() -> Path:
    """
    Pick the environment file based on the ENVIRONMENT variable.

    Loads in order of precedence:
    1. .env.{ENVIRONMENT} (e.g., .env.production, .env.development)
    2. .env (fallback)
    """
    environment = os.getenv("ENVIRONMENT", "development")

    env_file = PROJECT_ROOT / f".env.{environment}"
    if env_file.exists():
        logger.info(f"Loading environment from {env_file.name}")
        return env_file

    default_env = PROJECT_ROOT / ".env"
    if default_env.exists():
        logger.info(f"Loading environment from .env (environment: {environment})")
        return default_env

    logger.debug(f"No environment file found for '{environment}' (checked .env.{environment}, .env)")
    return default_env


_env_file = _load_env_file()


class _SettingsWithEnvFile(Settings):
    model_config = ConfigDict(
        env_file=str(_env_file),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


settings = _SettingsWithEnvFile()

# Validate secrets on startup
missing_secrets = settings.validate_required_secrets()
if missing_secrets:
    logger.warning(f"Missing required secrets for {settings.ENVIRONMENT}: {', '.join(missing_secrets)}")
    if settings.is_production():
        raise ValueError(
            f"Cannot start in production with missing secrets: {', '.join(missing_secrets)}. "
            f"Please set these environment variables in .env.production"
        )
