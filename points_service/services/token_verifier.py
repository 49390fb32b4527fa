"""Bearer token verification against the identity provider."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import jwt

from points_service.errors import Unauthorized
from points_service.models.enum import RewardError
from points_service.utils.config_loader import get_config

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class TokenVerifier:
    """
    Verifies identity-provider ID tokens (JWTs) and returns their subject.

    Signing keys come from the provider's JWKS endpoint, or from a shared
    secret when one is configured (HS256, local development and tests).
    """

    def __init__(
        self,
        project_id: str,
        algorithms: Optional[List[str]] = None,
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
        jwks_url: Optional[str] = None,
        secret: Optional[str] = None,
        leeway_seconds: int = 0,
    ):
        if not secret and not jwks_url:
            raise ValueError("TokenVerifier needs either a jwks_url or a secret")
        self.project_id = project_id
        self.algorithms = algorithms or (["HS256"] if secret else ["RS256"])
        self.issuer = issuer or f"https://securetoken.google.com/{project_id}"
        self.audience = audience or project_id
        self.secret = secret
        self.leeway_seconds = leeway_seconds
        self._jwks_client = jwt.PyJWKClient(jwks_url) if not secret else None

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "TokenVerifier":
        auth = (config or get_config()).get("auth", {})
        return cls(
            project_id=auth.get("project_id", ""),
            algorithms=auth.get("algorithms"),
            issuer=auth.get("issuer"),
            audience=auth.get("audience"),
            jwks_url=auth.get("jwks_url"),
            secret=auth.get("secret"),
            leeway_seconds=auth.get("leeway_seconds", 0),
        )

    async def _signing_key(self, token: str) -> Any:
        if self.secret:
            return self.secret
        # PyJWKClient fetches over blocking HTTP
        signing_key = await asyncio.to_thread(self._jwks_client.get_signing_key_from_jwt, token)
        return signing_key.key

    async def verify(self, authorization: Optional[str]) -> str:
        """
        Verify an `Authorization` header value and return the subject id.

        Raises:
            Unauthorized: If the header is missing or malformed, or the token
                fails signature, expiry, issuer or audience checks
        """
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise Unauthorized(RewardError.MISSING_AUTH.value)
        token = authorization[len(BEARER_PREFIX):].strip()
        if not token:
            raise Unauthorized(RewardError.MISSING_AUTH.value)

        try:
            key = await self._signing_key(token)
            claims = jwt.decode(
                token,
                key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                leeway=self.leeway_seconds,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.PyJWTError as e:
            logger.warning("ID token verification failed: %s", e)
            raise Unauthorized(RewardError.INVALID_TOKEN.value)

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            logger.warning("ID token has an empty subject")
            raise Unauthorized(RewardError.INVALID_TOKEN.value)
        return subject
