"""
=============================================================================
ACCESS LOGGING
=============================================================================

One line per request on the "clinicserver.access" logger.

TEXT (Apache-like):

    10.0.4.17 - - [19/Oct/2026:09:12:03 +0000] "POST /doctor" 200 14 3.41ms a1b2c3d4

JSON:

    {"request_id": "a1b2c3d4", "method": "POST", "path": "/doctor",
     "client_ip": "10.0.4.17", "status_code": 200, "content_length": 14,
     "duration_ms": 3.41, ...}

The request id only appears in logs; it is not sent back to the client.
Request bodies are never logged, since they hold patient data.
=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from .base import Middleware, NextHandler

logger = logging.getLogger("clinicserver.access")


@dataclass
class RequestLog:
    """One access-log entry."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms {self.request_id}'
        )


class LoggingMiddleware(Middleware):
    """
    Times each request and writes an access-log entry.

    A handler that raises is logged here and the exception re-raised; the
    server turns it into a 500.

    Usage:
        pipeline.add(LoggingMiddleware(log_format="json"))
    """

    def __init__(self, log_format: str = "text"):
        self.log_format = log_format

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"[{request_id}] Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        entry = RequestLog(
            request_id=request_id,
            method=request.method or "-",
            path=request.path or "-",
            query=str(request.query_params) if request.query_params else "",
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.info(json.dumps(entry.to_dict()))
        else:
            logger.info(entry.to_text())

        return response
