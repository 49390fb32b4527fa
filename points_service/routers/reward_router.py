import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional, Type, TypeVar

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from points_service.errors import BadRequest, RewardServiceError, ServerError
from points_service.models.enum import RewardError
from points_service.models.request import AdRewardRequest, GamePointsRequest
from points_service.models.response import ErrorResponse, RewardResponse
from points_service.routers.dependencies import get_authorization, get_store, get_token_verifier
from points_service.services.reward_engine import AwardResult
from points_service.services.reward_policies import apply_ad_reward, award_game_points
from points_service.services.token_verifier import TokenVerifier
from points_service.store.base import DocumentStore
from points_service.utils.config_loader import get_config

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Rewards"])

RequestModel = TypeVar("RequestModel", bound=BaseModel)

ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


def _request_body_doc(model: Type[BaseModel]) -> dict:
    # Bodies are parsed by hand after authentication; document them for OpenAPI.
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": model.model_json_schema()}},
        }
    }


def error_response(error: RewardServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=ErrorResponse(error=error.error).model_dump(),
    )


async def parse_body(request: Request, model: Type[RequestModel]) -> RequestModel:
    """
    Read and validate the JSON body.

    Raises:
        BadRequest: If the body is missing, is not JSON, or does not fit `model`
    """
    try:
        return model.model_validate(await request.json())
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError):
        raise BadRequest(RewardError.INVALID_BODY.value)


def _request_timeout() -> float:
    return float(get_config().get("server", {}).get("request_timeout_seconds", 30))


async def _handle(
    name: str,
    verifier: TokenVerifier,
    authorization: Optional[str],
    award: Callable[[str], Awaitable[AwardResult]],
):
    """
    Verify the caller, run the award and map every outcome to one response.

    The whole sequence runs under the request time budget; running out of it
    cancels the award before it commits.
    """

    async def _run() -> AwardResult:
        subject_id = await verifier.verify(authorization)
        return await award(subject_id)

    timeout = _request_timeout()
    try:
        result = await asyncio.wait_for(_run(), timeout=timeout)
        return RewardResponse(added=result.added, points=result.points)
    except RewardServiceError as e:
        return error_response(e)
    except asyncio.TimeoutError:
        logger.error("%s exceeded %ss budget", name, timeout)
        return error_response(ServerError())
    except Exception:
        logger.exception("%s error", name)
        return error_response(ServerError())


@router.post(
    "/applyAdReward",
    response_model=RewardResponse,
    responses=ERROR_RESPONSES,
    openapi_extra=_request_body_doc(AdRewardRequest),
)
async def apply_ad_reward_endpoint(
    request: Request,
    authorization: Optional[str] = Depends(get_authorization),
    store: DocumentStore = Depends(get_store),
    verifier: TokenVerifier = Depends(get_token_verifier),
):
    """
    Award the daily ad reward, at most once per UTC day.

    A second claim on the same day answers 200 with ok=false.
    """

    async def award(subject_id: str) -> AwardResult:
        req = await parse_body(request, AdRewardRequest)
        return await apply_ad_reward(store, subject_id, req)

    return await _handle("applyAdReward", verifier, authorization, award)


@router.post(
    "/awardGamePoints",
    response_model=RewardResponse,
    responses=ERROR_RESPONSES,
    openapi_extra=_request_body_doc(GamePointsRequest),
)
async def award_game_points_endpoint(
    request: Request,
    authorization: Optional[str] = Depends(get_authorization),
    store: DocumentStore = Depends(get_store),
    verifier: TokenVerifier = Depends(get_token_verifier),
):
    """Award points earned in a game, bounded per call and by level."""

    async def award(subject_id: str) -> AwardResult:
        req = await parse_body(request, GamePointsRequest)
        return await award_game_points(store, subject_id, req)

    return await _handle("awardGamePoints", verifier, authorization, award)
