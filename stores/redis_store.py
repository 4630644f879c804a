"""
Redis counter store for distributed deployments.

Supports three topologies, chosen once from settings:
- single: one Redis server (REDIS_ADDR)
- sentinel: master discovered through Sentinel (REDIS_ADDRS, REDIS_SENTINEL_MASTER)
- cluster: Redis Cluster seeded from REDIS_ADDRS
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from app.core.addresses import parse_address
from errors import (
    InfoUnavailableError,
    InvalidConfigurationError,
    MissingConfigurationError,
    classify_store_exception,
)
from observability.tracing import traced

from .base import CounterStore

if TYPE_CHECKING:
    from app.core.settings import Settings

logger = logging.getLogger(__name__)

REDIS_MODES = ("single", "sentinel", "cluster")
DEFAULT_REDIS_PORT = 6379
DEFAULT_SENTINEL_PORT = 26379


class RedisStore(CounterStore):
    """
    Redis-backed counter.

    `incr` maps to INCR on a single key, which Redis executes atomically, so
    no application-level locking is needed. Every socket operation is bounded
    by a short timeout and retries are disabled so an unreachable server
    fails the request fast.

    The client is built lazily: cluster clients contact a seed node on
    construction, and that must not turn a dead backend into a startup crash.
    """

    backend_name = "redis"

    def __init__(self, client_factory: Callable[[], Any], key: str = "count", topology: str = "single"):
        self._client_factory = client_factory
        self._client: Optional[Any] = None
        self._client_lock = threading.Lock()
        self._key = key
        self.topology = topology

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RedisStore":
        mode = settings.REDIS_MODE
        if mode not in REDIS_MODES:
            raise InvalidConfigurationError("REDIS_MODE", mode, list(REDIS_MODES))
        if mode in ("sentinel", "cluster") and not settings.REDIS_ADDRS:
            raise MissingConfigurationError("REDIS_ADDRS", f"redis (REDIS_MODE={mode})")

        timeout = settings.redis_timeout_sec
        if mode == "sentinel":
            factory = _sentinel_factory(
                settings.REDIS_ADDRS,
                settings.REDIS_SENTINEL_MASTER,
                password=settings.REDIS_PASSWORD,
                db=settings.REDIS_DB,
                timeout=timeout,
            )
        elif mode == "cluster":
            factory = _cluster_factory(settings.REDIS_ADDRS, password=settings.REDIS_PASSWORD, timeout=timeout)
        else:
            factory = _single_factory(
                settings.REDIS_ADDR,
                password=settings.REDIS_PASSWORD,
                db=settings.REDIS_DB,
                timeout=timeout,
            )
        return cls(factory, key=settings.REDIS_KEY, topology=mode)

    def _get_client(self) -> Any:
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = self._client_factory()
                    logger.info(f"Redis client ready (topology={self.topology})")
        return self._client

    @traced("store.redis.incr")
    def incr(self) -> int:
        try:
            return int(self._get_client().incr(self._key))
        except Exception as e:
            logger.error(f"Redis INCR error: {e}")
            raise classify_store_exception(e, self.backend_name) from e

    @traced("store.redis.get_info")
    def get_info(self) -> str:
        try:
            info = self._get_client().info("server")
        except Exception as e:
            raise InfoUnavailableError(self.backend_name, str(e)) from e
        run_id = _extract_run_id(info)
        if not run_id:
            raise InfoUnavailableError(self.backend_name, "run_id missing from INFO server")
        return run_id

    def close(self) -> None:
        if self._client is None:
            return
        try:
            self._client.close()
        except Exception as e:
            logger.error(f"Redis close error: {e}")
        finally:
            self._client = None


def _extract_run_id(info: Dict[str, Any]) -> Optional[str]:
    # Cluster clients answer INFO with {"host:port": {...}} per node.
    if "run_id" in info:
        return str(info["run_id"])
    for node_info in info.values():
        if isinstance(node_info, dict) and node_info.get("run_id"):
            return str(node_info["run_id"])
    return None


def _single_factory(addr: str, *, password: Optional[str], db: int, timeout: float) -> Callable[[], Any]:
    host, port = parse_address(addr, DEFAULT_REDIS_PORT)

    def build():
        import redis
        from redis.backoff import NoBackoff
        from redis.retry import Retry

        return redis.Redis(
            host=host,
            port=port,
            db=db,
            password=password,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
            retry=Retry(NoBackoff(), 0),
        )

    return build


def _sentinel_factory(
    addrs: List[str], master: str, *, password: Optional[str], db: int, timeout: float
) -> Callable[[], Any]:
    sentinels = [parse_address(a, DEFAULT_SENTINEL_PORT) for a in addrs]

    def build():
        from redis.backoff import NoBackoff
        from redis.retry import Retry
        from redis.sentinel import Sentinel

        # Applies both to the sentinel probes and to the master connections.
        fail_fast = {"socket_timeout": timeout, "socket_connect_timeout": timeout, "retry": Retry(NoBackoff(), 0)}
        sentinel = Sentinel(sentinels, sentinel_kwargs=dict(fail_fast), **fail_fast)
        return sentinel.master_for(master, password=password, db=db, decode_responses=True)

    return build


def _cluster_factory(addrs: List[str], *, password: Optional[str], timeout: float) -> Callable[[], Any]:
    seeds = [parse_address(a, DEFAULT_REDIS_PORT) for a in addrs]

    def build():
        from redis.backoff import NoBackoff
        from redis.cluster import ClusterNode, RedisCluster
        from redis.retry import Retry

        return RedisCluster(
            startup_nodes=[ClusterNode(host, port) for host, port in seeds],
            password=password,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
            retry=Retry(NoBackoff(), 0),
        )

    return build
