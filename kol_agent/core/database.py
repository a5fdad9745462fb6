"""
Async SQLAlchemy engine and session factory for the tenant store.

PostgreSQL (pgvector) ranks with the native `<=>` operator. SQLite gets an
equivalent `cosine_distance(a, b)` SQL function registered on every connection
so local databases and tests run the same queries.
"""

import json
import logging
import math

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

logger = logging.getLogger(__name__)


def sqlite_cosine_distance(left: str | None, right: str | None) -> float | None:
    """Cosine distance between two pgvector text literals ('[0.1,0.2,...]'). NULL on bad input."""
    if left is None or right is None:
        return None
    a = json.loads(left)
    b = json.loads(right)
    if len(a) != len(b):
        return None
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return None
    return 1.0 - dot / (norm_a * norm_b)


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine; registers the SQLite distance function when needed."""
    engine = create_async_engine(database_url, echo=echo)
    if engine.dialect.name == "sqlite":

        @event.listens_for(engine.sync_engine, "connect")
        def _register_functions(dbapi_connection, connection_record) -> None:
            dbapi_connection.create_function("cosine_distance", 2, sqlite_cosine_distance)

    logger.info("[database] engine created dialect=%s", engine.dialect.name)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)
