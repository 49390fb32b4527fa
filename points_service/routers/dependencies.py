from typing import Optional

from fastapi import Header, Request

from points_service.services.token_verifier import TokenVerifier
from points_service.store.base import DocumentStore


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


async def get_authorization(authorization: Optional[str] = Header(None)) -> Optional[str]:
    return authorization
