"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted socket for exactly one request/response exchange.

    accept() ──► Connection ──► read_request() ──► send_response() ──► close()
                    NEW            READING            WRITING          CLOSED

There is no keep-alive: whatever the client asks for, the socket is
closed after the first response.

=============================================================================
READING A REQUEST
=============================================================================

    1. recv() until the header terminator (\r\n\r\n) has arrived
    2. read Content-Length from the header section
    3. recv() until exactly that many body bytes are buffered; anything
       after them is dropped

Without a Content-Length header the request is whatever arrived with the
headers.

A client that closes its side early gets whatever it managed to send
parsed as-is. A request growing past max_request_size raises
RequestTooLarge before more is read.
=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..http.request import HEADER_TERMINATOR, RequestTooLarge

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    One accepted client socket.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Where the exchange currently is.
        created_at: Accept time, for logging durations.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        # None means fully blocking reads.
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request from the socket.

        Returns:
            The request bytes, or None if the client closed the
            connection without sending anything.

        Raises:
            TimeoutError: No data arrived within the read timeout.
            RequestTooLarge: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        try:
            # ─────────────────────────────────────────────────────────────
            # STEP 1: Read until the header section is complete
            # ─────────────────────────────────────────────────────────────
            while HEADER_TERMINATOR not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return self._buffer or None
                self._append(chunk)

            # ─────────────────────────────────────────────────────────────
            # STEP 2: Work out how long the whole request is
            # ─────────────────────────────────────────────────────────────
            #
            #   POST /doctor HTTP/1.1\r\n
            #   Content-Length: 58\r\n
            #   \r\n                ← header_end
            #   {"name": ...}       ← body_start, 58 bytes
            #
            header_end = self._buffer.find(HEADER_TERMINATOR)
            body_start = header_end + len(HEADER_TERMINATOR)
            content_length = self._parse_content_length(self._buffer[:header_end])
            if content_length is None:
                # No length declared: whatever arrived with the headers is the body.
                return self._buffer

            request_end = body_start + content_length
            if request_end > self.max_request_size:
                raise RequestTooLarge(request_end, self.max_request_size)

            # ─────────────────────────────────────────────────────────────
            # STEP 3: Read the rest of the body
            # ─────────────────────────────────────────────────────────────
            while len(self._buffer) < request_end:
                chunk = self._recv()
                if not chunk:
                    logger.debug(
                        f"[{self.id}] Client closed after "
                        f"{len(self._buffer) - body_start} of {content_length} body bytes"
                    )
                    break
                self._append(chunk)

            # Bytes past the declared body are not part of this request.
            return self._buffer[:request_end]

        except socket.timeout:
            if self._buffer:
                logger.debug(f"[{self.id}] Read timed out, using {len(self._buffer)} bytes received")
                return self._buffer
            raise TimeoutError("Request read timeout")

    def _append(self, chunk: bytes):
        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(len(self._buffer), self.max_request_size)

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _parse_content_length(self, headers: bytes) -> Optional[int]:
        """
        Content-Length from raw header bytes, None if missing or invalid.

        Needed before the request can be parsed, so this is a plain
        line scan rather than a full header parse.
        """
        header_text = headers.decode("utf-8", errors="replace").lower()
        for line in header_text.split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    value = int(line.split(":", 1)[1].strip())
                except ValueError:
                    return None
                return value if value >= 0 else None
        return None

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send the complete response.

        Returns:
            True if sent, False if the client had gone away. A failed
            send ends the exchange; there is nothing else to do.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection.

            shutdown(SHUT_WR)  → client sees end of response
            drain              → discard anything the client still sends
            close()            → release the descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
