"""Async in-memory document store."""

import asyncio
import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from points_service.store.base import DocumentStore, Transaction, TransactionConflict


class MemoryTransaction(Transaction):
    def __init__(self, store: "MemoryStore", user_id: str):
        super().__init__(user_id)
        self._store = store
        self.read_version = store.version_of(user_id)

    async def snapshot(self) -> Optional[Dict[str, Any]]:
        return await self._store._read(self.user_id)


class MemoryStore(DocumentStore):
    """
    In-process store with versioned records.

    Each record carries a version bumped on every commit. A transaction
    remembers the version it started from and its commit is refused if the
    record moved in between, which is the same optimistic contract the Redis
    backend gets from WATCH.
    """

    def __init__(self, max_transaction_attempts: int = 5):
        super().__init__(max_transaction_attempts)
        self.users: Dict[str, Dict[str, Any]] = {}
        self.activities: Dict[str, List[Dict[str, Any]]] = {}
        self._versions: Dict[str, int] = {}
        self.lock = asyncio.Lock()

    def version_of(self, user_id: str) -> int:
        return self._versions.get(user_id, 0)

    async def _begin(self, user_id: str) -> Transaction:
        return MemoryTransaction(self, user_id)

    async def _commit(self, tx: Transaction) -> None:
        async with self.lock:
            if self.version_of(tx.user_id) != tx.read_version:
                raise TransactionConflict(tx.user_id)

            record = self.users.setdefault(tx.user_id, {})
            for field, amount in tx.increments.items():
                record[field] = record.get(field, 0) + amount
            record.update(tx.fields)

            now = datetime.now(timezone.utc).isoformat()
            log = self.activities.setdefault(tx.user_id, [])
            for activity in tx.activities:
                log.append({**activity, "time": now})

            self._versions[tx.user_id] = tx.read_version + 1

    async def _read(self, user_id: str) -> Optional[Dict[str, Any]]:
        async with self.lock:
            record = self.users.get(user_id)
            return copy.deepcopy(record) if record is not None else None

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._read(user_id)

    async def list_activities(self, user_id: str) -> List[Dict[str, Any]]:
        async with self.lock:
            return copy.deepcopy(self.activities.get(user_id, []))

    async def ping(self) -> bool:
        return True
