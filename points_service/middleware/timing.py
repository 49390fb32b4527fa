"""Timing middleware for tracking request processing time."""

import time
from typing import Callable
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


class TimingMiddleware(BaseHTTPMiddleware):
    """Middleware to add request processing time to response headers."""

    async def dispatch(self, request: Request, call_next: Callable):
        start_time = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Process-Time"] = str(round(time.perf_counter() - start_time, 4))
        return response
