"""
Connector Manager - Central Registry for Funding Connectors

The ConnectorManager builds every exchange connector from configuration and
owns their lifecycle. The aggregation service iterates over it; the API routes
list it.

Example Usage:
    manager = ConnectorManager()
    await manager.initialize_all()

    for connector in manager.connectors():
        snapshots = await connector.fetch_latest()

    await manager.shutdown_all()

Adding an exchange:
    1. Create exchanges/<name>/ with a FundingConnector subclass
    2. Add it to _connector_classes() below
"""

from typing import Dict, List, Optional

from core.config import settings
from core.connector_interface import FundingConnector
from core.logging import logger
from core.schemas import ConnectorOptions


def _connector_classes():
    # Each exchange module imports from core, so they can't be imported at module level
    from exchanges.aster import AsterConnector
    from exchanges.edgex import EdgeXConnector
    from exchanges.hyperliquid import HyperliquidConnector
    from exchanges.lighter import LighterConnector
    from exchanges.paradex import ParadexConnector

    return [
        AsterConnector,
        ParadexConnector,
        LighterConnector,
        HyperliquidConnector,
        EdgeXConnector,
    ]


class ConnectorManager:
    """
    Central Manager for Funding Connectors

    Attributes:
        registry: Mapping of connector name to connector instance, in fan-out order

    Example:
        >>> manager = ConnectorManager()
        >>> manager.list_connectors()
        ['aster', 'paradex', 'lighter', 'hyperliquid', 'edgex']
    """

    def __init__(
        self,
        connectors: Optional[List[FundingConnector]] = None,
        options: Optional[Dict[str, ConnectorOptions]] = None
    ):
        """
        Build the registry.

        Args:
            connectors: Explicit connector instances (tests); when omitted every
                        known connector is created from `options`
            options: Per-connector options keyed by connector name; defaults to
                     settings.connector_options()
        """
        if connectors is None:
            if options is None:
                options = settings.connector_options()
            connectors = [cls(options.get(cls.name)) for cls in _connector_classes()]

        self.registry: Dict[str, FundingConnector] = {c.name: c for c in connectors}

        logger.info(
            f"ConnectorManager initialized with {len(self.registry)} connector(s): "
            f"{', '.join(self.registry.keys())}"
        )

    # ============================================
    # Retrieval
    # ============================================

    def get_connector(self, name: str) -> FundingConnector:
        """
        Get a connector by name.

        Raises:
            ValueError: If the connector is not registered
        """
        name = name.lower()
        if name not in self.registry:
            available = ", ".join(self.registry.keys())
            raise ValueError(f"Connector '{name}' is not registered. Available connectors: {available}")
        return self.registry[name]

    def has_connector(self, name: str) -> bool:
        return name.lower() in self.registry

    def list_connectors(self) -> List[str]:
        return list(self.registry.keys())

    def connectors(self) -> List[FundingConnector]:
        return list(self.registry.values())

    # ============================================
    # Lifecycle Management
    # ============================================

    async def initialize_all(self) -> None:
        """
        Open every connector's HTTP session.

        A connector that fails to initialize is logged and skipped; it will try
        again lazily on its first fetch.
        """
        logger.info("Initializing all connectors...")

        for name, connector in self.registry.items():
            try:
                await connector.initialize()
                logger.info(f"✓ {connector.label} initialized successfully")
            except Exception as e:
                logger.error(f"✗ Failed to initialize {name}: {e}")

        logger.info("All connectors initialized")

    async def shutdown_all(self) -> None:
        """Close every connector's HTTP session."""
        logger.info("Shutting down all connectors...")

        for name, connector in self.registry.items():
            try:
                await connector.shutdown()
                logger.info(f"✓ {connector.label} shut down successfully")
            except Exception as e:
                logger.error(f"✗ Error shutting down {name}: {e}")

        logger.info("All connectors shut down")

    async def health_check_all(self) -> Dict[str, bool]:
        """
        Check every connector.

        Returns:
            Mapping of connector name to health status
        """
        health_status = {}
        for name, connector in self.registry.items():
            health_status[name] = await connector.health_check()
            logger.debug(f"{name}: {'healthy' if health_status[name] else 'unhealthy'}")
        return health_status

    def __repr__(self) -> str:
        return f"<ConnectorManager(connectors={self.list_connectors()})>"

    def __len__(self) -> int:
        return len(self.registry)


# ============================================
# Global Manager Instance
# ============================================

_manager: Optional[ConnectorManager] = None


def get_manager() -> ConnectorManager:
    """
    Get the global ConnectorManager instance (singleton pattern).

    Example:
        >>> from core.connector_manager import get_manager
        >>> aster = get_manager().get_connector("aster")
    """
    global _manager
    if _manager is None:
        _manager = ConnectorManager()
        logger.debug("Created global ConnectorManager instance")
    return _manager
