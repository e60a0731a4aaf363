"""
Document Store Connection Module
Owns the store's lifetime and exposes it to routes through dependency injection.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Request

from bistro.core.config import Settings
from bistro.services.store import BaseOrderingStore, create_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_store(settings: Settings) -> AsyncIterator[BaseOrderingStore]:
    """
    Acquire the store for the lifetime of the application.

    The store is connected on entry and always closed on exit, even when
    startup fails after the connection was made.
    """
    store = create_store(settings)
    await store.connect()
    logger.info(f"✅ Store connected ({store.provider_name})")
    try:
        yield store
    finally:
        await store.close()
        logger.info("✅ Store closed")


def get_store(request: Request) -> BaseOrderingStore:
    """
    Dependency injection for FastAPI routes.
    Returns the store opened by the application lifespan.
    """
    return request.app.state.store
