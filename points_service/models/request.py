from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class AdRewardRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    userId: Optional[str] = Field(None, description="User ID; must match the token subject")


class GamePointsRequest(BaseModel):
    """
    Game award payload.

    `points` and `level` are accepted as raw JSON values and range-checked by
    the reward policies, so that each violation gets its own error code.
    """

    model_config = ConfigDict(extra="ignore")

    userId: Optional[str] = Field(None, description="User ID; must match the token subject")
    points: Any = Field(None, description="Points to award (1..max_points_per_call)")
    level: Any = Field(None, description="Level reached (0..max_level)")
    totalScore: Optional[Union[int, float]] = Field(None, description="Total game score, stored with the activity")
