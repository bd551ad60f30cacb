"""
Data Store Factory

Builds the data store selected by configuration. The instance is created
once at application startup and passed to the services that need it.

Usage:
    from dinein.services.store import create_data_store

    store = create_data_store(settings, feed)
    rows = await store.select("orders", {"status": "pending"}, order_by="-created_at")
"""

import logging
from typing import Optional

from dinein.core.config import Settings
from dinein.database import build_engine
from dinein.services.store.base import BaseDataStore, COLLECTIONS
from dinein.services.store.mock import MockDataStore
from dinein.services.store.sql import SqlDataStore

logger = logging.getLogger(__name__)


def create_data_store(settings: Settings, feed=None) -> BaseDataStore:
    """
    Create the configured data store.

    Returns:
        MockDataStore for the "memory" backend, SqlDataStore for "sql"
    """
    backend = settings.resolved_store_backend

    if backend == "memory":
        logger.info("Data Store: Using MockDataStore (in-memory)")
        return MockDataStore(feed=feed)

    logger.info(f"Data Store: Using SqlDataStore ({settings.env_mode.value} mode)")
    engine = build_engine(settings.database_url, echo=settings.database_echo)
    return SqlDataStore(engine, feed=feed)


__all__ = [
    "create_data_store",
    "BaseDataStore",
    "MockDataStore",
    "SqlDataStore",
    "COLLECTIONS",
]
