"""Document store contract: user balance records plus their activity records."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from points_service.errors import TransactionContention

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionConflict(Exception):
    """Raised by a backend when a watched record changed before commit."""


class Transaction(ABC):
    """
    Read-modify-write scope over a single user balance record.

    Writes are buffered and only become visible when the store commits them,
    all together or not at all.
    """

    def __init__(self, user_id: str):
        self.user_id = user_id
        self.increments: Dict[str, int] = {}
        self.fields: Dict[str, Any] = {}
        self.activities: List[Dict[str, Any]] = []

    @abstractmethod
    async def snapshot(self) -> Optional[Dict[str, Any]]:
        """Current record, or None if the user has no record yet."""

    def increment(self, field: str, amount: int) -> None:
        self.increments[field] = self.increments.get(field, 0) + amount

    def merge(self, fields: Dict[str, Any]) -> None:
        self.fields.update(fields)

    def add_activity(self, activity_id: str, data: Dict[str, Any]) -> None:
        """Queue an activity record; its `time` is assigned by the store at commit."""
        self.activities.append({"id": activity_id, **data})

    @property
    def has_writes(self) -> bool:
        return bool(self.increments or self.fields or self.activities)


class DocumentStore(ABC):
    """Base store with the optimistic-concurrency retry loop."""

    def __init__(self, max_transaction_attempts: int = 5):
        if max_transaction_attempts < 1:
            raise ValueError("max_transaction_attempts must be at least 1")
        self.max_transaction_attempts = max_transaction_attempts

    async def run_transaction(self, user_id: str, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        """
        Run `fn` inside a transaction on `user_id`'s record and commit its writes.

        `fn` is re-run from a fresh snapshot whenever the commit conflicts with a
        concurrent writer. Exceptions raised by `fn` abort the transaction and
        propagate with nothing written.

        Raises:
            TransactionContention: If every attempt conflicted
        """
        for attempt in range(1, self.max_transaction_attempts + 1):
            tx = await self._begin(user_id)
            try:
                result = await fn(tx)
                if tx.has_writes:
                    await self._commit(tx)
                return result
            except TransactionConflict:
                logger.debug("Transaction conflict for user %s (attempt %d)", user_id, attempt)
            finally:
                await self._release(tx)
        raise TransactionContention(self.max_transaction_attempts)

    @abstractmethod
    async def _begin(self, user_id: str) -> Transaction:
        ...

    @abstractmethod
    async def _commit(self, tx: Transaction) -> None:
        """Apply buffered writes atomically; raise TransactionConflict if the record moved."""

    async def _release(self, tx: Transaction) -> None:
        return None

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def list_activities(self, user_id: str) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        return None
