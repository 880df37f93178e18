"""Configuration management via environment variables.

Reads from .env file (via pydantic-settings) with sensible defaults.
All values can be overridden via environment variables.

Required:
    EDGAR_IDENTITY: Your name + email for SEC EDGAR API User-Agent header

Optional:
    MONGODB_URI: Metric store connection string
    CRON_SECRET: Bearer token the scheduler must present
    PORT: Server port
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # SEC EDGAR API identity (name + email, required by SEC)
    edgar_identity: str = "InsurIntel admin@insurintel.com"

    # MongoDB metric store
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "insurintel"

    # Shared secret for the scheduled trigger (empty = no auth check)
    cron_secret: str = ""

    # Ingestion run shape
    ingest_batch_size: int = 8          # companies per invocation
    ingest_budget_seconds: float = 60.0  # wall-clock budget per invocation
    upsert_batch_size: int = 500        # rows per bulk upsert
    max_workers: int = 4                # companies processed concurrently
    lookback_years: int = 5             # ignore facts with fy older than this

    port: int = 8877

    # Strip whitespace from string fields; the .env file often has
    # trailing spaces that break connection strings
    @field_validator("mongodb_uri", "cron_secret", "edgar_identity", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().strip('"').strip("'").strip()
        return v

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


_config: Settings | None = None


def get_config() -> Settings:
    """Get or create the shared Settings singleton."""
    global _config
    if _config is None:
        _config = Settings()
    return _config
