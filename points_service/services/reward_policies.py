"""Per-endpoint award policies: once-per-day ad reward and capped game points."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from points_service.errors import BadRequest
from points_service.models.enum import RewardError
from points_service.models.request import AdRewardRequest, GamePointsRequest
from points_service.services.reward_engine import AwardResult, PolicyCheck, apply_award
from points_service.store.base import DocumentStore
from points_service.utils.config_loader import get_config

AD_ACTIVITY_TEXT = "Watched daily ad +{points} pts (server)"
GAME_ACTIVITY_TEXT = "Game: +{points} pts (level {level})"


def day_key(now: Optional[datetime] = None) -> str:
    """UTC calendar date as `YYYY-M-D` (no zero padding)."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return f"{now.year}-{now.month}-{now.day}"


def _as_int(value: Any) -> Optional[int]:
    """JSON number with an integral value, else None. Booleans are not numbers here."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _rewards_config() -> Dict[str, Any]:
    return get_config().get("rewards", {})


def ensure_owner(subject_id: str, user_id: Optional[str]) -> None:
    if not user_id or user_id != subject_id:
        raise BadRequest(RewardError.USER_MISMATCH.value)


def not_claimed_on(key: str) -> PolicyCheck:
    def check(snapshot: Dict[str, Any]) -> Optional[str]:
        if snapshot.get("lastAdShown") == key:
            return RewardError.ALREADY_CLAIMED.value
        return None

    return check


def within_cap(points: int, max_points: int) -> PolicyCheck:
    def check(snapshot: Dict[str, Any]) -> Optional[str]:
        if 0 < points <= max_points:
            return None
        return RewardError.POINTS_TOO_LARGE.value

    return check


def validate_game_award(req: GamePointsRequest, max_points: int, max_level: int):
    """
    Fail-fast anti-abuse checks, run before any transaction is opened.

    Returns:
        (points, level) with level None when absent
    """
    points = _as_int(req.points)
    if points is None or points <= 0:
        raise BadRequest(RewardError.INVALID_POINTS.value)
    if points > max_points:
        raise BadRequest(RewardError.POINTS_TOO_LARGE.value)

    level = None
    if req.level is not None:
        level = _as_int(req.level)
        if level is None or level < 0 or level > max_level:
            raise BadRequest(RewardError.INVALID_LEVEL.value)
    return points, level


async def apply_ad_reward(store: DocumentStore, subject_id: str, req: AdRewardRequest) -> AwardResult:
    ensure_owner(subject_id, req.userId)

    points = int(_rewards_config().get("ad_reward_points", 100))
    today = day_key()
    return await apply_award(
        store,
        subject_id,
        points,
        not_claimed_on(today),
        AD_ACTIVITY_TEXT.format(points=points),
        fields={"lastAdShown": today},
    )


async def award_game_points(store: DocumentStore, subject_id: str, req: GamePointsRequest) -> AwardResult:
    ensure_owner(subject_id, req.userId)

    cfg = _rewards_config()
    max_points = int(cfg.get("max_points_per_call", 1000))
    points, level = validate_game_award(req, max_points, int(cfg.get("max_level", 500)))

    return await apply_award(
        store,
        subject_id,
        points,
        within_cap(points, max_points),
        GAME_ACTIVITY_TEXT.format(points=points, level="?" if level is None else level),
        total_score=req.totalScore,
    )
