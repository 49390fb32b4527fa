"""Document store selection."""

import logging
from typing import Any, Dict, Optional

from points_service.store.base import DocumentStore
from points_service.store.memory_store import MemoryStore
from points_service.store.redis_store import RedisStore
from points_service.utils.config_loader import get_config

logger = logging.getLogger(__name__)


def _redis_store(store_config: Dict[str, Any]) -> RedisStore:
    redis_config = store_config.get("redis", {})
    return RedisStore(
        host=redis_config.get("host", "localhost"),
        port=redis_config.get("port", 6379),
        db=redis_config.get("db", 0),
        key_prefix=store_config.get("key_prefix", "points"),
        max_transaction_attempts=store_config.get("max_transaction_attempts", 5),
        max_connections=redis_config.get("max_connections", 50),
        socket_connect_timeout=redis_config.get("socket_connect_timeout", 5),
        socket_timeout=redis_config.get("socket_timeout", 5),
    )


async def get_store(config: Optional[Dict[str, Any]] = None) -> DocumentStore:
    """
    Build the configured document store.

    `store.backend` is one of:
        redis:  RedisStore, even if Redis is not reachable yet (health reports it)
        memory: MemoryStore, balances live only as long as the process
        auto:   RedisStore if Redis answers a ping, otherwise MemoryStore
    """
    store_config = (config or get_config()).get("store", {})
    backend = store_config.get("backend", "redis")
    attempts = store_config.get("max_transaction_attempts", 5)

    if backend == "memory":
        return MemoryStore(max_transaction_attempts=attempts)

    if backend == "redis":
        return _redis_store(store_config)

    if backend == "auto":
        store = _redis_store(store_config)
        if await store.ping():
            return store
        await store.close()
        logger.warning("Redis unavailable, falling back to MemoryStore")
        return MemoryStore(max_transaction_attempts=attempts)

    raise ValueError(f"Unknown store backend: {backend}")
