"""
=============================================================================
REQUEST PARSER
=============================================================================

Turns the raw bytes of one request into an HTTPRequest.

=============================================================================
REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   POST /prescription HTTP/1.1\r\n         ← request line            │
    │   Host: clinic.local:8080\r\n             ← headers                 │
    │   Content-Type: application/json\r\n                                │
    │   Content-Length: 141\r\n                                           │
    │   \r\n                                    ← blank line              │
    │   {"patient_id": 7, "age": 41, ...}       ← body                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
LENIENCY
=============================================================================

The parser never rejects a request. Clinic front-desk tools send loosely
formed requests and the server answers all of them:

    Bytes that are not UTF-8     → replaced with U+FFFD
    Missing or odd request line  → empty method and path (routes to 404)
    Header line without a colon  → skipped
    No blank line at all         → the whole text is the body

The body is everything after the LAST "\r\n\r\n" in the request. A body
that itself contains a blank line is therefore cut at that line; JSON
bodies from real clients never do.

The only error raised here is RequestTooLarge, for requests above the
configured size limit.
=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import parse_qs, unquote, urlsplit


HEADER_TERMINATOR = b"\r\n\r\n"
BLANK_LINE = "\r\n\r\n"


class HTTPParseError(Exception):
    """
    Raised when a request cannot be turned into an HTTPRequest.

    Carries the status code the server should answer with.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class RequestTooLarge(HTTPParseError):
    """The request is bigger than max_request_size (413)."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"Request too large: {size} bytes (limit {limit})",
            status_code=413,
        )
        self.size = size
        self.limit = limit


@dataclass
class HTTPRequest:
    """
    A parsed request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         "GET", "POST", ... or "" if the request line was odd
        path:           Request path without the query string
        version:        "HTTP/1.1" as sent, or "" if missing
        headers:        Header names lower-cased, duplicates comma-joined
        query_params:   "?a=1&a=2" → {"a": ["1", "2"]}
        body:           Decoded text after the last blank line
        path_params:    Filled in by the router: {"patient_id": "42"}
        client_address: (ip, port) of the peer
        raw:            The bytes as received

    =========================================================================
    """

    method: str
    path: str
    version: str = ""

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list] = field(default_factory=dict)
    body: str = ""

    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: tuple = ("", 0)
    raw: bytes = b""

    @property
    def content_length(self) -> int:
        """Content-Length as an int, 0 when missing or not a number."""
        try:
            return max(int(self.headers.get("content-length", 0)), 0)
        except ValueError:
            return 0

    @property
    def content_type(self) -> Optional[str]:
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    def get_header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    ==========================================================================
    PARSING ALGORITHM
    ==========================================================================

        1. Enforce the size limit
        2. Decode the bytes as UTF-8, replacing invalid sequences
        3. Header section = text before the first blank line
        4. Request line = first line, split on whitespace
        5. Headers = remaining lines of the header section
        6. Body = text after the last blank line

    ==========================================================================
    """

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple = ("", 0),
    ) -> HTTPRequest:
        """
        Parse raw request data.

        Args:
            data: Raw request bytes from the socket.
            client_address: The peer's (ip, port), for logging.

        Returns:
            Parsed HTTPRequest. Never fails on malformed input.

        Raises:
            RequestTooLarge: If data exceeds max_request_size.
        """
        if len(data) > self.max_request_size:
            raise RequestTooLarge(len(data), self.max_request_size)

        text = data.decode("utf-8", errors="replace")

        head = text.partition(BLANK_LINE)[0]
        lines = head.split("\r\n")

        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=extract_body(text),
            client_address=client_address,
            raw=data,
        )

    def _parse_request_line(self, line: str) -> tuple:
        """
        Split "METHOD TARGET VERSION" into its parts.

        Anything with fewer than two whitespace-separated tokens yields an
        empty method and path.
        """
        parts = line.split()
        if len(parts) < 2:
            return "", "", {}, ""

        method, target = parts[0], parts[1]
        version = parts[2] if len(parts) > 2 else ""

        # "/prescription-list/7?verbose=1" → "/prescription-list/7", {"verbose": ["1"]}
        parsed = urlsplit(target)
        path = unquote(parsed.path)
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        return method, path, query_params, version

    def _parse_headers(self, lines: list) -> Dict[str, str]:
        headers: Dict[str, str] = {}

        for line in lines:
            name, colon, value = line.partition(":")
            if not colon or not name.strip():
                continue

            name = name.strip().lower()
            value = value.strip()

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


# =============================================================================
# HELPERS
# =============================================================================


def extract_body(text: str) -> str:
    """
    Text after the last blank line, or all of it if there is none.

        >>> extract_body('POST /doctor HTTP/1.1\\r\\n\\r\\n{"name": "Ada"}')
        '{"name": "Ada"}'
        >>> extract_body("no separator")
        'no separator'
    """
    _, separator, body = text.rpartition(BLANK_LINE)
    return body if separator else text


def get_id(text: str) -> str:
    """
    Third "/"-separated segment of text, up to the first whitespace.

    Works on a bare path as well as on a whole request line:

        >>> get_id("GET /prescription-list/42 HTTP/1.1")
        '42'
        >>> get_id("/prescription-list/42")
        '42'
        >>> get_id("/doctor")
        ''
    """
    segments = text.split("/")
    if len(segments) < 3:
        return ""

    tokens = segments[2].split()
    return tokens[0] if tokens else ""


def parse_request(
    data: bytes,
    client_address: tuple = ("", 0),
    max_size: int = 1024 * 1024,
) -> HTTPRequest:
    """One-shot wrapper around RequestParser.parse()."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
