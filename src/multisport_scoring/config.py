"""Configuration and environment variable validation for the scoring engine."""

import os
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_URL = "sqlite+aiosqlite:///multisport_scoring.db"


class Config:
    """Configuration class that loads and validates environment variables."""

    def __init__(self):
        self.load_config()

    def load_config(self):
        """Load and validate all environment variables."""
        # Environment detection
        self.environment = os.getenv("ENVIRONMENT", "development").lower()
        self.is_production = self.environment == "production"
        self.is_development = self.environment == "development"

        # Database configuration
        self.database_url = os.getenv("DATABASE_URL")
        self.db_echo = os.getenv("DB_ECHO", "false").lower() == "true"
        self.db_pool_size = int(os.getenv("DB_POOL_SIZE", "10"))

        # Logging
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        self._validate_config()

    def _validate_config(self):
        """Validate configuration and log warnings for potential issues."""
        if self.is_production:
            if not self.database_url:
                raise ValueError("DATABASE_URL must be set in production")
            if self.database_url.startswith("sqlite"):
                logger.warning("SQLite database configured in production environment")
        else:
            logger.info("Running in development mode")
            if not self.database_url:
                logger.warning(f"DATABASE_URL not set - using {DEFAULT_SQLITE_URL}")
                self.database_url = DEFAULT_SQLITE_URL

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            logger.warning(f"Unknown LOG_LEVEL {self.log_level!r}, falling back to INFO")
            self.log_level = "INFO"


@dataclass
class EngineConfig:
    """Configuration for the recomputation orchestrator"""

    # Serialize cascades touching the same event
    lock_per_event: bool = True

    # Metadata key holding event and composite stage results
    annotation_key: str = "results"

    # Reject registrations after the built-in methods are loaded
    freeze_registry: bool = True

    @classmethod
    def from_env(cls) -> 'EngineConfig':
        """Create configuration from environment variables"""
        return cls(
            lock_per_event=os.getenv('SCORING_LOCK_PER_EVENT', 'true').lower() == 'true',
            annotation_key=os.getenv('SCORING_ANNOTATION_KEY', 'results'),
            freeze_registry=os.getenv('SCORING_FREEZE_REGISTRY', 'true').lower() == 'true',
        )


# Global config instance
config = Config()
