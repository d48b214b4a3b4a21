"""Production configuration — env-driven.

Centralized config using pydantic-settings for environment variable
support.  Reads from a .env file and NFTMARKET_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from nftmarket.models.listing import OverpaymentPolicy


class MarketConfig(BaseSettings):
    """Marketplace configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export NFTMARKET_ENVIRONMENT=staging
        export NFTMARKET_LOG_LEVEL=DEBUG
        export NFTMARKET_LEDGER_PATH=/data/market.db
        export NFTMARKET_OVERPAYMENT_POLICY=refund_buyer
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="NFTMARKET_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Storage
    ledger_path: Path = Path(".nftmarket/ledger.db")

    # The marketplace's own operator identity, as seen by asset registries
    marketplace_address: str = "0x" + "4d" * 20

    # Settlement
    overpayment_policy: OverpaymentPolicy = OverpaymentPolicy.FORFEIT
    currency_symbol: str = "ETH"

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


# Module-level singleton — import as `from nftmarket.config import config`
config = MarketConfig()
