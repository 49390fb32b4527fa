"""Middleware package for the Points Award Service."""

from .request_id import RequestIDMiddleware, RequestIDLogFilter, request_id_var
from .timing import TimingMiddleware
from .logging import LoggingMiddleware
from .security_headers import SecurityHeadersMiddleware

__all__ = [
    "RequestIDMiddleware",
    "RequestIDLogFilter",
    "TimingMiddleware",
    "LoggingMiddleware",
    "SecurityHeadersMiddleware",
    "request_id_var",
]
