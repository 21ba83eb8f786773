"""
=============================================================================
CLINIC RECORDS SERVER
=============================================================================

Ties the pieces together:

    SocketServer ──accept──► Connection
                                │
                 workers == 0 ──┼── handled inline, one at a time
                 workers  > 0 ──┴── ThreadPool (503 when the queue is full)
                                │
                                ▼
         read_request ─► RequestParser ─► middleware ─► Router ─► handler
                                                                     │
         close ◄─ send_response ◄─ HTTPResponse.to_bytes ◄───────────┘

=============================================================================
ERRORS AT THE CONNECTION LEVEL
=============================================================================

    RequestTooLarge            → 413 "Request too large"
    read timeout, no data      → connection closed, nothing sent
    handler raised             → 500 "Internal Server Error"
    queue full (pool mode)     → 503 "Service Unavailable"
    send failed                → logged, connection closed

None of these stop the accept loop.
=============================================================================
"""

import logging
from typing import Callable, Optional, Tuple

from .config import ServerConfig
from .core import Connection, ConnectionState, SocketServer, ThreadPool
from .http import (
    HTTPRequest,
    HTTPResponse,
    RequestParser,
    RequestTooLarge,
    Router,
    internal_error,
    payload_too_large,
    service_unavailable,
)
from .middleware import Middleware, MiddlewarePipeline

logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level_name: str) -> int:
    """
    Set up root logging once and the package's level.

    basicConfig() does nothing if the root logger already has handlers,
    so an embedding application (or pytest) keeps its own setup.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    logging.getLogger("clinicserver").setLevel(level)
    return level


class HTTPServer:
    """
    Request server for the clinic endpoints.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=8080, workers=4))
        server.use(LoggingMiddleware())
        RecordHandlers(store).register(server.router)

        server.bind()     # OSError if the port is taken
        server.run()      # blocks until SIGINT/SIGTERM or shutdown()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool: Optional[ThreadPool] = None
        if self.config.workers > 0:
            self._thread_pool = ThreadPool(
                workers=self.config.workers,
                queue_size=self.config.queue_size,
            )

        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._router = router or Router(prefix_matching=self.config.legacy_routing)
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

    def use(self, middleware: Middleware) -> "HTTPServer":
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def bind(self):
        """
        Bind the listening socket without serving yet.

        Raises:
            OSError: Port in use or permission denied.
        """
        self._socket_server.bind()

    def run(self):
        """Serve until shutdown. Binds first if bind() was not called."""
        self._handler = self._middleware.wrap(self._router.handle)

        if self._thread_pool is not None:
            self._thread_pool.start()

        mode = f"{self.config.workers} workers" if self._thread_pool else "serial"
        routing = "prefix" if self._router.prefix_matching else "exact"
        logger.info(f"{self.config.server_name} starting ({mode}, {routing} routing)")
        for line in self._router.describe():
            logger.info(f"  {line}")

        try:
            self._socket_server.serve(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._stop_workers()

    def shutdown(self):
        """Stop accepting connections; run() returns once in-flight work ends."""
        self._socket_server.shutdown()

    def _stop_workers(self):
        if self._thread_pool is not None:
            self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called on the accept thread for every new connection."""
        if self._thread_pool is None:
            self._process_connection(conn)
            return

        if not self._thread_pool.submit(self._process_connection, conn):
            logger.warning(f"[{conn.id}] Worker queue full, rejecting connection")
            with conn:
                conn.send_response(service_unavailable().to_bytes())

    def _process_connection(self, conn: Connection):
        """One complete exchange: read, parse, dispatch, write, close."""
        with conn:
            try:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        logger.debug(f"[{conn.id}] Client closed without sending a request")
                        return
                    request = self._parser.parse(raw_request, conn.address)
                except RequestTooLarge as e:
                    logger.warning(f"[{conn.id}] {e}")
                    conn.send_response(payload_too_large().to_bytes())
                    return
                except TimeoutError:
                    logger.info(f"[{conn.id}] No request from {conn.client_ip} before timeout")
                    return

                conn.state = ConnectionState.PROCESSING
                response = self._dispatch(conn, request)
                conn.send_response(response.to_bytes())

            except Exception as e:
                logger.exception(f"[{conn.id}] Connection error: {e}")

    def _dispatch(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error: {e}")
            return internal_error()
