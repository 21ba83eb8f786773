"""
Application factory: a configured HTTPServer with the clinic routes.
"""

from typing import Optional

from .config import ServerConfig
from .handlers import RecordHandlers
from .middleware import LoggingMiddleware
from .server import HTTPServer
from .store import RecordStore


def create_store(config: ServerConfig) -> RecordStore:
    return RecordStore.from_url(
        config.database_url,
        pool_size=config.db_pool_size,
        connect_timeout=config.db_connect_timeout,
    )


def create_app(config: Optional[ServerConfig] = None, store: Optional[RecordStore] = None) -> HTTPServer:
    """
    Build the server: access logging first, then the five record routes.

    Args:
        config: Server configuration. Defaults to ServerConfig().
        store: Record store to use. Built from config.database_url if
               not given; the schema is NOT bootstrapped here.

    Example:
        config = ServerConfig(port=0, database_url="sqlite://")
        store = create_store(config)
        store.bootstrap()
        server = create_app(config, store)
        server.run()
    """
    config = config or ServerConfig()
    store = store or create_store(config)

    server = HTTPServer(config)
    server.use(LoggingMiddleware(log_format=config.log_format))
    RecordHandlers(store).register(server.router)

    return server
