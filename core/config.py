"""
Configuration Management Module

This module handles loading, validating, and providing access to application configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Every setting is optional with a documented default
- Converts comma-separated strings to lists (symbols, markets, contract ids)
- Builds per-exchange ConnectorOptions for the connector manager

Usage:
    from core.config import settings

    print(settings.funding_refresh_interval_ms)   # 120000
    print(settings.history_symbols_list)          # ['BTC', 'ETH']
"""

from typing import Dict, List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

from core.schemas import ConnectorOptions


def _csv_to_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        funding_refresh_interval_ms: Scheduler tick in milliseconds
        funding_history_symbols: Comma-separated base symbols refreshed every cycle
        funding_history_granularity_hours: Bucket size for scheduled history refreshes
        funding_history_lookback_hours: Window for scheduled history refreshes
        aster_*/paradex_*/lighter_*/hyperliquid_*/edgex_*: Per-exchange overrides
        app_host/app_port: Bind address for the FastAPI server
        log_level: Logging level
        request_timeout: Total timeout for a single upstream HTTP request (seconds)
        cors_origins: Comma-separated list of allowed CORS origins
    """

    # ============================================
    # Scheduler Configuration
    # ============================================

    funding_refresh_interval_ms: int = Field(
        default=120_000,
        description="Interval between refresh cycles in milliseconds"
    )

    funding_history_symbols: str = Field(
        default="BTC,ETH",
        description="Comma-separated list of base symbols for scheduled history refresh"
    )

    funding_history_granularity_hours: float = Field(
        default=1,
        description="History bucket granularity in hours"
    )

    funding_history_lookback_hours: float = Field(
        default=24,
        description="History lookback window in hours"
    )

    # ============================================
    # Exchange Overrides
    # ============================================

    aster_base_url: Optional[str] = Field(default=None, description="Aster REST base URL")
    aster_api_key: Optional[str] = Field(default=None, description="Aster API key (optional)")

    paradex_base_url: Optional[str] = Field(default=None, description="Paradex REST base URL")
    paradex_markets: str = Field(
        default="",
        description="Comma-separated explicit Paradex markets (e.g. BTC-USD-PERP)"
    )
    paradex_max_markets: Optional[int] = Field(default=None, description="Cap on polled Paradex markets")

    lighter_base_url: Optional[str] = Field(default=None, description="Lighter REST base URL")

    hyperliquid_base_url: Optional[str] = Field(default=None, description="Hyperliquid REST base URL")

    edgex_base_url: Optional[str] = Field(default=None, description="EdgeX REST base URL")
    edgex_contract_ids: str = Field(
        default="",
        description="Comma-separated explicit EdgeX contract ids or names"
    )
    edgex_max_contracts: Optional[int] = Field(default=None, description="Cap on polled EdgeX contracts")

    # ============================================
    # Application Configuration
    # ============================================

    app_host: str = Field(
        default="0.0.0.0",
        description="FastAPI server host address"
    )

    app_port: int = Field(
        default=4000,
        description="FastAPI server port"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    request_timeout: int = Field(
        default=30,
        description="HTTP request timeout in seconds"
    )

    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    # ============================================
    # Derived Properties
    # ============================================

    @property
    def history_symbols_list(self) -> List[str]:
        """
        Convert comma-separated history symbols to an uppercase list.

        Example:
            >>> settings.history_symbols_list
            ['BTC', 'ETH']
        """
        return [s.upper() for s in _csv_to_list(self.funding_history_symbols)]

    @property
    def paradex_markets_list(self) -> List[str]:
        return _csv_to_list(self.paradex_markets)

    @property
    def edgex_contract_ids_list(self) -> List[str]:
        return _csv_to_list(self.edgex_contract_ids)

    @property
    def cors_origins_list(self) -> List[str]:
        return _csv_to_list(self.cors_origins)

    def connector_options(self) -> Dict[str, ConnectorOptions]:
        """
        Build the per-exchange connector options.

        Returns:
            Mapping of exchange key ("aster", "paradex", ...) to ConnectorOptions.
            Unset values stay None so each connector applies its own defaults.
        """
        return {
            "aster": ConnectorOptions(
                base_url=self.aster_base_url,
                api_key=self.aster_api_key,
            ),
            "paradex": ConnectorOptions(
                base_url=self.paradex_base_url,
                markets=self.paradex_markets_list or None,
                max_markets=self.paradex_max_markets,
            ),
            "lighter": ConnectorOptions(base_url=self.lighter_base_url),
            "hyperliquid": ConnectorOptions(base_url=self.hyperliquid_base_url),
            "edgex": ConnectorOptions(
                base_url=self.edgex_base_url,
                contract_ids=self.edgex_contract_ids_list or None,
                max_contracts=self.edgex_max_contracts,
            ),
        }


# ============================================
# Global Settings Instance
# ============================================

settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration(config: Optional[Settings] = None) -> None:
    """
    Validate configuration settings on application startup.

    Raises:
        ValueError: If a setting is out of range
    """
    # logging.py imports this module, so the logger is imported lazily
    from core.logging import logger

    config = config or settings

    if config.funding_refresh_interval_ms <= 0:
        raise ValueError(
            f"FUNDING_REFRESH_INTERVAL_MS must be positive, got {config.funding_refresh_interval_ms}"
        )

    if config.funding_history_granularity_hours <= 0:
        raise ValueError(
            f"FUNDING_HISTORY_GRANULARITY_HOURS must be positive, got {config.funding_history_granularity_hours}"
        )

    if config.funding_history_lookback_hours <= 0:
        raise ValueError(
            f"FUNDING_HISTORY_LOOKBACK_HOURS must be positive, got {config.funding_history_lookback_hours}"
        )

    if not (1 <= config.app_port <= 65535):
        raise ValueError(f"Invalid port number: {config.app_port}. Must be between 1 and 65535")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{config.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"Refresh interval: {config.funding_refresh_interval_ms}ms")
    logger.info(f"History symbols: {', '.join(config.history_symbols_list) or '(none)'}")
    logger.info(
        f"History window: {config.funding_history_lookback_hours}h "
        f"at {config.funding_history_granularity_hours}h granularity"
    )
    logger.info(f"Server: {config.app_host}:{config.app_port}")
    logger.info(f"Log level: {config.log_level.upper()}")
