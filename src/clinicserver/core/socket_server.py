"""
=============================================================================
SOCKET SERVER
=============================================================================

The TCP layer: bind, listen, accept, hand each socket on.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   bind()    socket() → SO_REUSEADDR → bind(host, port) → listen()  │
    │      │                                                               │
    │      ▼                                                               │
    │   serve()   while running:                                           │
    │                 accept() ──► Connection ──► connection_handler()    │
    │                    │                                                 │
    │                    ├── timeout (1s)  → check running flag, loop     │
    │                    └── OSError       → log, keep accepting          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

bind() is separate from serve() so the caller can fail fast on a busy
port, and so tests can bind port 0 and read back the port the OS chose.
=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection

logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP server.

    Usage:
        server = SocketServer(config)
        server.bind()                    # raises OSError if the port is taken
        server.serve(handle_connection)  # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._shutdown_event = threading.Event()
        self._previous_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port), with the real port when 0 was requested."""
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restarting the server should not wait out TIME_WAIT on the port.
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up every second to notice shutdown().
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        """
        SIGTERM and SIGINT trigger a graceful shutdown.

        Python only allows signal handlers on the main thread; a server
        run from another thread (as in the test suite) is stopped by
        calling shutdown() instead.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._previous_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def bind(self):
        """
        Create the listening socket.

        Raises:
            OSError: The address is in use or not permitted.
        """
        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        self._socket = sock
        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")

    def serve(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown() is called.

        bind() is called first if it has not been already. A shutdown()
        that came earlier makes this return without accepting.
        """
        if self._socket is None:
            self.bind()

        if self._shutdown_event.is_set():
            logger.info("Shutdown requested before serving; not accepting connections")
            self._cleanup()
            return

        self._running = True
        self._setup_signals()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while not self._shutdown_event.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._shutdown_event.is_set():
                    break
                # One failed accept (EMFILE, ECONNABORTED, ...) must not
                # stop the server.
                logger.error(f"Accept error: {e}")
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop accepting. Safe to call more than once, from any thread."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self):
        self._running = False
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        logger.info("Socket server stopped")
