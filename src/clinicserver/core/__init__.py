"""
Core networking: listening socket, per-client connections, worker pool.
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = ["Connection", "ConnectionState", "SocketServer", "ThreadPool"]
