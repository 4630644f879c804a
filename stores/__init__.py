"""
Pluggable counter stores.

This package provides interchangeable backends for the shared counter:
- In-memory (default, single-process)
- Redis (single node, Sentinel or Cluster)
- PostgreSQL
- CockroachDB (reconnects once on failure)

Configure via the STORAGE_MODE environment variable:
- "memory" (default)
- "redis" (REDIS_MODE, REDIS_ADDR / REDIS_ADDRS)
- "postgres" (requires PG_URL)
- "cockroach" (requires PG_URL)
"""

from .base import CounterStore, get_store_backend
from .memory_store import InMemoryStore
from .postgres_store import CockroachStore, PostgresStore
from .redis_store import RedisStore

__all__ = [
    "CounterStore",
    "get_store_backend",
    "InMemoryStore",
    "RedisStore",
    "PostgresStore",
    "CockroachStore",
]
