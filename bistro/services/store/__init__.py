"""
Ordering Store Factory

Single entry point for building the document store used by the API.

Usage:
    from bistro.services.store import create_store

    store = create_store(settings)
    await store.connect()
    ...
    await store.close()

Environment Switching:
    - ENV_MODE=development → MockOrderingStore (in-memory, optional seed file)
    - ENV_MODE=staging/production → MongoOrderingStore
"""

import logging

from bistro.core.config import Settings
from bistro.services.store.base import BaseOrderingStore, WriteResult
from bistro.services.store.mock import MockOrderingStore
from bistro.services.store.mongo import MongoOrderingStore

logger = logging.getLogger(__name__)


def create_store(settings: Settings) -> BaseOrderingStore:
    """
    Build the store configured for the current environment.

    Unlike the payment service this is not cached: the application lifespan
    owns the instance and closes it at shutdown.
    """
    if settings.is_development:
        logger.info("Store: Using MockOrderingStore (development mode)")
        store = MockOrderingStore()
        if settings.seed_data_path:
            store.load_file(settings.seed_data_path)
        return store

    logger.info(
        f"Store: Using MongoOrderingStore ({settings.env_mode.value} mode)"
    )
    return MongoOrderingStore(settings.mongodb_url, settings.mongodb_database)


__all__ = [
    "create_store",
    "BaseOrderingStore",
    "WriteResult",
    "MockOrderingStore",
    "MongoOrderingStore",
]
