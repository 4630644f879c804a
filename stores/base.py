"""
Base counter store interface and backend factory.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from errors import MissingConfigurationError
from observability import build_log_context, log_event

if TYPE_CHECKING:
    from app.core.settings import Settings

SUPPORTED_MODES = ("memory", "redis", "postgres", "cockroach")
POSTGRES_ALIASES = ("postgres", "postgresql", "pg")


class CounterStore(ABC):
    """
    Abstract base class for counter backends.

    A store owns exactly one shared counter. Implementations must make
    `incr` atomic under concurrent callers and must raise
    `StoreUnavailableError` (never return a sentinel) when the backend
    cannot be reached.
    """

    backend_name: str = "unknown"

    @abstractmethod
    def incr(self) -> int:
        """Increment the counter and return its new value."""
        pass

    @abstractmethod
    def get_info(self) -> str:
        """
        Return a string identifying the backend instance (node id, run id).

        Raises `InfoUnavailableError` on failure; callers treat that as
        "no descriptor" and carry on.
        """
        pass

    def close(self) -> None:
        """Release connections. Default no-op."""
        pass


def get_store_backend(settings: Optional["Settings"] = None) -> CounterStore:
    """
    Factory function to build the configured counter store.

    Configure via environment (see `Settings`):
    - STORAGE_MODE: "memory", "redis", "postgres", "cockroach" (default: "memory")
    - PG_URL / DATABASE_URL: required for postgres and cockroach
    - REDIS_MODE, REDIS_ADDR, REDIS_ADDRS: redis topology

    Unknown modes fall back to the in-memory store with a warning.
    Missing connection settings raise `ConfigurationError`.
    """
    if settings is None:
        from app.core.settings import Settings

        settings = Settings()

    ctx = build_log_context(tool="store_factory")
    mode = settings.STORAGE_MODE

    if mode == "redis":
        from .redis_store import RedisStore

        store: CounterStore = RedisStore.from_settings(settings)
        log_event("store_selected", ctx=ctx, data={"mode": "redis", "topology": settings.REDIS_MODE})
        return store

    if mode in POSTGRES_ALIASES or mode == "cockroach":
        if not settings.PG_URL:
            raise MissingConfigurationError("PG_URL", mode)

        from .postgres_store import CockroachStore, PostgresStore

        store_cls = CockroachStore if mode == "cockroach" else PostgresStore
        store = store_cls(settings.PG_URL, timeout_sec=settings.db_request_timeout_sec)
        log_event("store_selected", ctx=ctx, data={"mode": store.backend_name})
        return store

    from .memory_store import InMemoryStore

    if mode not in ("", "memory"):
        log_event(
            "storage_mode_unsupported",
            ctx=ctx,
            data={"mode": mode, "supported": list(SUPPORTED_MODES), "fallback": "memory"},
        )
    log_event("store_selected", ctx=ctx, data={"mode": "memory"})
    return InMemoryStore()
