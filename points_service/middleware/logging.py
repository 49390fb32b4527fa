"""Logging middleware for request/response logging."""

import logging
from typing import Callable
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("points_service.access")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log request and response details."""

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = getattr(request.state, 'request_id', '-')
        client = request.client.host if request.client else 'unknown'
        logger.info("[%s] %s %s - Client: %s", request_id, request.method, request.url.path, client)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("[%s] Error: %s", request_id, e)
            raise
        logger.info("[%s] Response: %s", request_id, response.status_code)
        return response
