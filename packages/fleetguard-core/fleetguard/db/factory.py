"""
Database adapter factory.

Builds the connection manager and adapter from configuration. Nothing is
cached at module level; whoever opens a manager owns it and tears it down.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from fleetguard.config import FleetguardConfig, load_config
from fleetguard.db.adapter import DatabaseAdapter
from fleetguard.db.connection import ConnectionManager

logger = logging.getLogger(__name__)


def create_manager(
    config: Optional[FleetguardConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ConnectionManager:
    """
    Create a connection manager for the configured backend.

    Args:
        config: Optional FleetguardConfig. If not provided, loads from default location.
        transport: Optional httpx transport for the Supabase client

    Returns:
        Unconnected ConnectionManager

    Raises:
        ValueError: If database configuration is invalid
    """
    if config is None:
        config = load_config()

    manager = ConnectionManager(config.database, transport=transport)
    logger.info(f"Using {manager.get_client_type().value} backend")
    return manager


@asynccontextmanager
async def open_adapter(
    config: Optional[FleetguardConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[DatabaseAdapter]:
    """
    Connect, yield an adapter, and tear the connection down on every exit path.

    Usage:
        async with open_adapter(config) as db:
            await db.count("vehicles")
    """
    async with create_manager(config, transport=transport) as manager:
        yield DatabaseAdapter(manager)
