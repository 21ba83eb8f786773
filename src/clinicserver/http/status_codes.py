"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The statuses this server can answer with, and the reason phrase written
on the status line for each.

    HTTP/1.1 404 NOT FOUND
             ─── ─────────
              │      │
              │      └── reason phrase (always upper case here)
              └───────── status code

Existing clients of the clinic server match on the full status line, so
reason phrases are the upper-case forms below rather than the mixed-case
RFC 7231 text.
=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Status codes used by the clinic server.

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'NOT FOUND'
    """

    # 2xx SUCCESS
    OK = 200                         # record created, or a listing

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400                # patient id in the path is not an integer
    NOT_FOUND = 404                  # no route for method + path
    PAYLOAD_TOO_LARGE = 413          # request exceeds max_request_size

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500      # bad body, store failure, handler crash
    SERVICE_UNAVAILABLE = 503        # worker queue full

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _STATUS_PHRASES.get(self, "UNKNOWN")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "BAD REQUEST",
    HTTPStatus.NOT_FOUND: "NOT FOUND",
    HTTPStatus.PAYLOAD_TOO_LARGE: "PAYLOAD TOO LARGE",
    HTTPStatus.INTERNAL_SERVER_ERROR: "INTERNAL SERVER ERROR",
    HTTPStatus.SERVICE_UNAVAILABLE: "SERVICE UNAVAILABLE",
}
