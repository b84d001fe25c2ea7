"""
Storefront Backend — Database Client Management
=================================================

What:  Async MongoDB client, database accessor, FastAPI dependency and
       startup/shutdown helpers.
Why:   Centralizes all connection logic in one place; services receive an
       `AsyncDatabase` and never build clients themselves.
How:   One `AsyncMongoClient` per process (it owns its own connection pool);
       each request gets the same database handle through `get_database`.
When:  Client is created lazily on first use and closed in the lifespan.

Index Strategy:
    categories.name (unique):  backs the "Category already exists" pre-check
    users.email (unique):      one admin account per address
    <content>.created_at DESC: listings and "recent" queries sort newest-first
"""

import logging
from typing import AsyncGenerator, Optional

from pymongo import ASCENDING, DESCENDING, AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from storefront.config import settings

logger = logging.getLogger(__name__)

# Collection names shared by the stores and the index bootstrap
PRODUCTS = "products"
CATEGORIES = "categories"
BLOGS = "blogs"
BANNERS = "banners"
USERS = "users"

CONTENT_COLLECTIONS = (PRODUCTS, CATEGORIES, BLOGS, BANNERS)

_client: Optional[AsyncMongoClient] = None


def get_client() -> AsyncMongoClient:
    """
    Return the process-wide Mongo client, creating it on first use.

    Why lazy: Importing the app (tests, the seed command) must not open
    sockets; pymongo connects on the first operation anyway.
    """
    global _client
    if _client is None:
        _client = AsyncMongoClient(
            settings.mongodb_uri,
            serverSelectionTimeoutMS=settings.db_timeout_ms,
            tz_aware=True,
        )
    return _client


def get_db() -> AsyncDatabase:
    """Database named in the URI, falling back to settings.database_name."""
    client = get_client()
    return client.get_default_database(default=settings.database_name)


async def get_database() -> AsyncGenerator[AsyncDatabase, None]:
    """
    FastAPI dependency that provides the database handle per request.

    Usage in a route:
        @router.get("/get/all")
        async def list_products(db: AsyncDatabase = Depends(get_database)):
            ...

    Tests override this dependency with an in-memory double.
    """
    yield get_db()


async def ensure_indexes(db: AsyncDatabase) -> None:
    """
    What:  Creates the indexes listed in the module docstring.
    When:  Application startup. create_index is idempotent.
    """
    await db[CATEGORIES].create_index([("name", ASCENDING)], unique=True)
    await db[USERS].create_index([("email", ASCENDING)], unique=True)
    for name in CONTENT_COLLECTIONS:
        await db[name].create_index([("created_at", DESCENDING)])
    logger.info("Mongo indexes ensured on %d collections", len(CONTENT_COLLECTIONS) + 1)


async def ping() -> bool:
    """Lightweight connectivity check used by /health."""
    try:
        await get_client().admin.command("ping")
        return True
    except Exception as e:
        logger.warning("Mongo ping failed: %s", str(e))
        return False


async def close_client() -> None:
    """
    What:  Closes the client and its pooled connections.
    When:  Application shutdown (lifespan handler).
    """
    global _client
    if _client is not None:
        await _client.close()
        _client = None
