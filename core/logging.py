"""
Logging Setup

One stdout handler on the "fundingboard" logger; every module logs through a
child of it obtained with get_logger(__name__). Records still propagate, so
uvicorn and pytest's caplog see them too.

Usage:
    from core.logging import logger, get_logger

    logger.info("Refreshed latest funding: 412 snapshots from 5/5 connectors")

    log = get_logger(__name__)
    log.warning("Connector EdgeX failed to fetch latest funding: ...")

Levels:
    DEBUG    - HTTP traffic, synthesized Lighter history
    INFO     - Refresh summaries, connector lifecycle, startup banner
    WARNING  - Connector failures, rate-limit cooldowns, suspect records
    ERROR    - Startup/shutdown failures, failed health checks

The level comes from LOG_LEVEL (see core.config).
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "fundingboard"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _level(name: str) -> int:
    return getattr(logging, str(name).upper(), logging.INFO)


def setup_logging(log_level: str = "INFO", log_format: Optional[str] = None) -> logging.Logger:
    """
    Attach a stdout handler to the application logger and set its level.

    Calling it again replaces the handler instead of adding a second one.

    Example:
        >>> log = setup_logging("DEBUG")
        >>> log.info("Application started")
        2023-11-14 22:13:20 [INFO] fundingboard Application started
    """
    app_logger = logging.getLogger(ROOT_LOGGER_NAME)

    for handler in list(app_logger.handlers):
        if getattr(handler, "_fundingboard", False):
            app_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(log_format or DEFAULT_FORMAT, datefmt=DATE_FORMAT))
    handler._fundingboard = True
    app_logger.addHandler(handler)
    app_logger.setLevel(_level(log_level))

    return app_logger


# ============================================
# Application Logger
# ============================================

from core.config import settings  # noqa: E402

logger = setup_logging(log_level=settings.log_level)


def get_logger(name: str) -> logging.Logger:
    """
    Child logger of the application logger.

    Example:
        >>> get_logger("exchanges.edgex").name
        'fundingboard.exchanges.edgex'
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_log_level(level: str) -> None:
    """Change the application log level at runtime."""
    logger.setLevel(_level(level))


# ============================================
# Log Helpers
# ============================================

def log_api_request(exchange: str, endpoint: str, params: Optional[dict] = None) -> None:
    suffix = f" | Params: {params}" if params else ""
    logger.debug(f"API Request: {exchange} {endpoint}{suffix}")


def log_api_response(exchange: str, endpoint: str, status: int, response_time: Optional[float] = None) -> None:
    """
    Example:
        >>> log_api_response("aster", "/fapi/v1/premiumIndex", 200, 0.342)
        [DEBUG] API Response: aster /fapi/v1/premiumIndex | Status: 200 | Time: 0.342s
    """
    timing = f" | Time: {response_time:.3f}s" if response_time is not None else ""
    logger.debug(f"API Response: {exchange} {endpoint} | Status: {status}{timing}")


def log_connector_failure(connector: str, operation: str, error: BaseException) -> None:
    """
    Log a connector failure caught at the aggregation boundary.

    Example:
        >>> log_connector_failure("EdgeX", "latest funding", RuntimeError("boom"))
        [WARNING] Connector EdgeX failed to fetch latest funding: boom
    """
    logger.warning(f"Connector {connector} failed to fetch {operation}: {error}")
