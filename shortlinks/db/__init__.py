"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: Abstract base class for database implementations
- SQLiteAdapter / PostgreSQLAdapter: dialect-specific engine configuration
- Session management: Database session creation and management
- Counter store: shared async Redis client
"""

from shortlinks.db.interface import DatabaseAdapter
from shortlinks.db.redis_client import close_redis, get_redis
from shortlinks.db.session import async_session_maker, engine, get_session

__all__ = [
    "DatabaseAdapter",
    "get_session",
    "async_session_maker",
    "engine",
    "get_redis",
    "close_redis",
]
