import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from points_service.errors import PolicyRejected
from points_service.store.base import DocumentStore, Transaction

logger = logging.getLogger(__name__)

# Returns None to accept the award, or the rejection reason.
PolicyCheck = Callable[[Dict[str, Any]], Optional[str]]


@dataclass
class AwardResult:
    added: int
    points: int


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


async def apply_award(
    store: DocumentStore,
    subject_id: str,
    increment: int,
    policy_check: PolicyCheck,
    activity_text: str,
    fields: Optional[Dict[str, Any]] = None,
    total_score: Optional[Union[int, float]] = None,
) -> AwardResult:
    """
    Atomically award points to a user and record the activity.

    Args:
        store: Document store holding balance and activity records
        subject_id: Verified user id owning the balance record
        increment: Points to add, a positive integer
        policy_check: Evaluated against the current record snapshot (an empty
            dict when the user has no record); re-evaluated on every retry
        activity_text: Description stored with the activity record
        fields: Extra fields merged into the balance record on success
        total_score: Optional numeric context stored with the activity

    Returns:
        AwardResult with the points added and the user's new total

    Raises:
        PolicyRejected: If policy_check rejects the award; nothing is written
        TransactionContention: If the store ran out of conflict retries
    """
    if not _is_positive_int(increment):
        raise ValueError(f"increment must be a positive integer, got {increment!r}")

    async def _award(tx: Transaction) -> int:
        snapshot = await tx.snapshot() or {}
        reason = policy_check(snapshot)
        if reason is not None:
            raise PolicyRejected(reason)

        tx.increment("points", increment)
        if fields:
            tx.merge(fields)
        tx.add_activity(uuid.uuid4().hex, {"text": activity_text, "totalScore": total_score or None})
        return int(snapshot.get("points", 0)) + increment

    try:
        committed_total = await store.run_transaction(subject_id, _award)
    except PolicyRejected as e:
        logger.info("Award rejected for user %s: %s", subject_id, e.error)
        raise

    # Best-effort re-read; the commit already happened either way.
    try:
        record = await store.get_user(subject_id)
        points = int(record.get("points", 0)) if record else 0
    except Exception:
        logger.warning(
            "Re-read after commit failed for user %s, reporting in-transaction total",
            subject_id,
            exc_info=True,
        )
        points = committed_total

    logger.info("Awarded %d points to user %s (total %d)", increment, subject_id, points)
    return AwardResult(added=increment, points=points)
