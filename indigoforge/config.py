"""Runtime configuration: env-driven.

Centralized config using pydantic-settings. Reads from a .env file and
INDIGOFORGE_* environment variables. Core components never read this
module implicitly; the CLI resolves values here and injects them.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class IndigoConfig(BaseSettings):
    """Runtime configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export INDIGOFORGE_LOG_LEVEL=DEBUG
        export INDIGOFORGE_STATUS_DB_PATH=/data/status.db
        export INDIGOFORGE_RATE_LIMIT_REFILL_PER_SECOND=5

    Or via .env file::

        INDIGOFORGE_ENVIRONMENT=production
        INDIGOFORGE_API_BASE_URL=https://services.leadconnectorhq.com
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="INDIGOFORGE_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Storage paths
    status_db_path: Path = Path(".indigoforge/status.db")
    credentials_path: Path = Path(".indigoforge/credentials.json")

    # Provisioning API
    api_base_url: str = "https://services.leadconnectorhq.com"
    api_version: str = "2021-07-28"
    request_timeout_seconds: float = 30.0

    # Token bucket (100 burst, 10 req/sec average)
    rate_limit_capacity: int = 100
    rate_limit_refill_per_second: float = 10.0
    rate_limit_poll_interval_seconds: float = 0.5

    # Activity log ring buffer
    activity_log_capacity: int = 200

    # Skip steps already deployed by a previous run of the same plan
    resume_builds: bool = True

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


# Module-level singleton: import as `from indigoforge.config import config`
config = IndigoConfig()
