"""
HTTP protocol pieces: request parsing, routing and response writing.
"""

from .request import (
    HTTPParseError,
    HTTPRequest,
    RequestParser,
    RequestTooLarge,
    extract_body,
    get_id,
    parse_request,
)
from .response import (
    HTTPResponse,
    bad_request,
    internal_error,
    json_list,
    not_found,
    ok,
    payload_too_large,
    service_unavailable,
)
from .router import Route, RouteMatch, Router
from .status_codes import HTTPStatus

__all__ = [
    "HTTPParseError",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "RequestParser",
    "RequestTooLarge",
    "Route",
    "RouteMatch",
    "Router",
    "bad_request",
    "extract_body",
    "get_id",
    "internal_error",
    "json_list",
    "not_found",
    "ok",
    "parse_request",
    "payload_too_large",
    "service_unavailable",
]
