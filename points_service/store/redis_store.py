"""Async Redis document store with optimistic WATCH/MULTI/EXEC transactions."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import redis.asyncio as aioredis
from redis.asyncio import Redis
from redis.asyncio.client import Pipeline
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    TimeoutError as RedisTimeoutError,
    RedisError,
    WatchError,
)

from points_service.errors import StoreUnavailable
from points_service.store.base import DocumentStore, Transaction, TransactionConflict

logger = logging.getLogger(__name__)

INT_FIELDS = ("points",)


def _decode_record(raw: Dict[str, str]) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    record: Dict[str, Any] = dict(raw)
    for field in INT_FIELDS:
        if field in record:
            record[field] = int(record[field])
    return record


class RedisTransaction(Transaction):
    def __init__(self, pipe: Pipeline, user_id: str, user_key: str, activities_key: str):
        super().__init__(user_id)
        self.pipe = pipe
        self.user_key = user_key
        self.activities_key = activities_key

    async def snapshot(self) -> Optional[Dict[str, Any]]:
        # Pipeline is WATCHing, so this executes immediately.
        return _decode_record(await self.pipe.hgetall(self.user_key))


class RedisStore(DocumentStore):
    """
    Balance records are hashes at `{prefix}:users:{uid}`; activity records are
    JSON entries appended to the list `{prefix}:users:{uid}:activities`.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        key_prefix: str = "points",
        max_transaction_attempts: int = 5,
        max_connections: int = 50,
        socket_connect_timeout: int = 5,
        socket_timeout: int = 5,
        client: Optional[Redis] = None,
    ):
        super().__init__(max_transaction_attempts)
        self.host = host
        self.port = port
        self.key_prefix = key_prefix
        self._redis: Optional[Redis] = client
        self._connection_url = f"redis://{host}:{port}/{db}"
        self._max_connections = max_connections
        self._socket_connect_timeout = socket_connect_timeout
        self._socket_timeout = socket_timeout

    def user_key(self, user_id: str) -> str:
        return f"{self.key_prefix}:users:{user_id}"

    def activities_key(self, user_id: str) -> str:
        return f"{self.user_key(user_id)}:activities"

    async def _initialize(self) -> Redis:
        if self._redis is None:
            self._redis = aioredis.from_url(
                self._connection_url,
                max_connections=self._max_connections,
                socket_connect_timeout=self._socket_connect_timeout,
                socket_timeout=self._socket_timeout,
                decode_responses=True,
            )
        return self._redis

    async def _begin(self, user_id: str) -> Transaction:
        client = await self._initialize()
        pipe = client.pipeline(transaction=True)
        user_key = self.user_key(user_id)
        try:
            await pipe.watch(user_key)
        except (RedisConnectionError, RedisTimeoutError) as e:
            await pipe.reset()
            raise StoreUnavailable(f"Redis unavailable at {self.host}:{self.port}: {e}") from e
        return RedisTransaction(pipe, user_id, user_key, self.activities_key(user_id))

    async def _commit(self, tx: Transaction) -> None:
        pipe = tx.pipe
        seconds, micros = await pipe.time()
        server_time = datetime.fromtimestamp(seconds + micros / 1_000_000, tz=timezone.utc).isoformat()

        pipe.multi()
        for field, amount in tx.increments.items():
            pipe.hincrby(tx.user_key, field, amount)
        if tx.fields:
            pipe.hset(tx.user_key, mapping=tx.fields)
        for activity in tx.activities:
            pipe.rpush(tx.activities_key, json.dumps({**activity, "time": server_time}))
        try:
            await pipe.execute()
        except WatchError as e:
            raise TransactionConflict(tx.user_id) from e

    async def _release(self, tx: Transaction) -> None:
        await tx.pipe.reset()

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        client = await self._initialize()
        return _decode_record(await client.hgetall(self.user_key(user_id)))

    async def list_activities(self, user_id: str) -> List[Dict[str, Any]]:
        client = await self._initialize()
        entries = await client.lrange(self.activities_key(user_id), 0, -1)
        return [json.loads(entry) for entry in entries]

    async def ping(self) -> bool:
        """Check if Redis is available."""
        try:
            client = await self._initialize()
            return bool(await client.ping())
        except RedisError as e:
            logger.warning("Redis ping failed: %s", e)
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis is not None:
            try:
                await self._redis.aclose()
            finally:
                self._redis = None
