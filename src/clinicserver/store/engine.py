"""
Engine construction for the record store.

One engine per process. PostgreSQL gets a real connection pool with
pre-ping and a connect timeout; SQLite (used by the test suite) gets the
settings it needs to be shared across worker threads.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

APPLICATION_NAME = "clinic_records"


def normalize_url(database_url: str) -> URL:
    """
    Parse a database URL, pinning PostgreSQL URLs to the psycopg driver.

    "postgres://" and bare "postgresql://" would otherwise select the
    psycopg2 dialect, which is not installed.
    """
    url = make_url(database_url)
    if url.drivername in ("postgres", "postgresql"):
        url = url.set(drivername="postgresql+psycopg")
    return url


def create_store_engine(
    database_url: str,
    pool_size: int = 5,
    connect_timeout: int = 10,
) -> Engine:
    url = normalize_url(database_url)

    if url.get_backend_name() == "postgresql":
        engine = create_engine(
            url,
            pool_size=pool_size,
            max_overflow=pool_size * 2,
            pool_pre_ping=True,
            pool_recycle=3600,
            connect_args={
                "application_name": APPLICATION_NAME,
                "connect_timeout": connect_timeout,
            },
        )
    elif url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # A single shared connection, otherwise every checkout would see
        # its own empty in-memory database.
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    elif url.get_backend_name() == "sqlite":
        engine = create_engine(url, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(url, pool_size=pool_size, pool_pre_ping=True)

    logger.debug(f"Record store engine: {engine.url.render_as_string(hide_password=True)}")
    return engine
