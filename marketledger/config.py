"""Runtime configuration — env-driven.

Centralized config using pydantic-settings. Reads from a .env file and
MARKETLEDGER_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class MarketConfig(BaseSettings):
    """Marketplace configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export MARKETLEDGER_FEE_PERCENT=2
        export MARKETLEDGER_LOG_LEVEL=DEBUG
        export MARKETLEDGER_JOURNAL_PATH=/data/journal.db

    Or via .env file::

        MARKETLEDGER_CURRENCY_DECIMALS=6
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MARKETLEDGER_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime
    log_level: str = "INFO"
    debug: bool = False

    # Marketplace defaults
    fee_percent: int = Field(default=1, ge=0)
    currency_decimals: int = Field(default=18, ge=0)

    # Storage
    journal_path: Path = Path(".marketledger/journal.db")


# Module-level singleton: import as `from marketledger.config import config`
config = MarketConfig()
