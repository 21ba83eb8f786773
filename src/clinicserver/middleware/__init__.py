"""
Middleware: code that runs around every request.

    LoggingMiddleware   access log, text or JSON
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "LoggingMiddleware",
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "RequestLog",
]
