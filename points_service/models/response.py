from pydantic import BaseModel


class RewardResponse(BaseModel):
    ok: bool = True
    added: int
    points: int


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
