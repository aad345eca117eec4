"""
PostgreSQL Database Adapter

Production backend (postgresql+asyncpg://...). Uses SQLAlchemy's default
queue pool with pre-ping so connections dropped by the server are replaced
transparently.
"""

from typing import Any, Optional

from sqlalchemy.pool import Pool

from shortlinks.db.interface import DatabaseAdapter


class PostgreSQLAdapter(DatabaseAdapter):
    """PostgreSQL database adapter implementation."""

    def get_pool_class(self) -> Optional[type[Pool]]:
        return None

    def get_connect_args(self) -> dict[str, Any]:
        return {}

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False,
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,
        }

    def get_dialect_name(self) -> str:
        return "postgresql"
