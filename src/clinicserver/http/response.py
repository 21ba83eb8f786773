"""
=============================================================================
RESPONSE WRITER
=============================================================================

Builds the bytes sent back on a connection.

=============================================================================
RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   HTTP/1.1 200 OK\r\n                      ← status line            │
    │   Content-Type: application/json\r\n       ← declared headers only  │
    │   \r\n                                     ← blank line             │
    │   [{"id":1,"name":"Ada",...}]              ← body                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Nothing is added automatically: no Content-Length, Date or Server header.
The connection is closed after every response, which is how clients know
the body has ended.

Error responses carry no headers at all:

    HTTP/1.1 500 INTERNAL SERVER ERROR\r\n
    \r\n
    Error parsing request

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Union
import json

from .status_codes import HTTPStatus


JSON_CONTENT_TYPE = "application/json"


@dataclass
class HTTPResponse:
    """
    A response waiting to be written to a socket.

        Handler returns          to_bytes()              Connection sends
        HTTPResponse    ─────►   serializes    ─────►    socket.sendall()
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Example: "HTTP/1.1 404 NOT FOUND"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def to_bytes(self) -> bytes:
        """
        Serialize to status line, declared headers, blank line, body.

        Returns:
            Complete response ready for socket.sendall().
        """
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        head = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return head + self.body


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# Handlers never build HTTPResponse by hand:
#
#     return ok("Doctor created")
#     return ok([d.model_dump() for d in doctors])
#     return internal_error("Error creating doctor")
#
# =============================================================================


def ok(body: Union[str, list, dict] = "") -> HTTPResponse:
    """
    Create a 200 OK response with a JSON content type.

    Lists and dicts are serialized as JSON. Strings are sent as they are:
    creation confirmations are plain text even though the content type
    says JSON, which is what existing clients expect.
    """
    if isinstance(body, (list, dict)):
        payload = json.dumps(body, ensure_ascii=False, separators=(",", ":"))
    else:
        payload = body
    return HTTPResponse(
        status=HTTPStatus.OK,
        headers={"Content-Type": JSON_CONTENT_TYPE},
    ).set_body(payload)


def json_list(items: Any) -> HTTPResponse:
    """200 OK with a JSON array of pydantic models."""
    return ok([item.model_dump(mode="json") for item in items])


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return HTTPResponse(status=HTTPStatus.BAD_REQUEST).set_body(message)


def not_found(message: str = "404 Not Found") -> HTTPResponse:
    """
    Create a 404 Not Found response.

    Sent for every request that no route accepts, whether or not the path
    exists under another method.
    """
    return HTTPResponse(status=HTTPStatus.NOT_FOUND).set_body(message)


def payload_too_large(message: str = "Request too large") -> HTTPResponse:
    return HTTPResponse(status=HTTPStatus.PAYLOAD_TOO_LARGE).set_body(message)


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """
    Create a 500 Internal Server Error response.

    The message is a fixed, generic text. Exception details belong in the
    server log, never in the body.
    """
    return HTTPResponse(status=HTTPStatus.INTERNAL_SERVER_ERROR).set_body(message)


def service_unavailable(message: str = "Service Unavailable") -> HTTPResponse:
    return HTTPResponse(status=HTTPStatus.SERVICE_UNAVAILABLE).set_body(message)
