"""
=============================================================================
CLINICSERVER - Record-Keeping Server for a Clinic
=============================================================================

Accepts doctor, patient and prescription records over a small HTTP/1.1
subset, stores them in PostgreSQL and answers two lookups: all doctors,
and one patient's prescriptions joined with the prescribing doctor.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    clinicserver/
    ├── __init__.py          # Package exports
    ├── __main__.py          # CLI entry point (python -m clinicserver)
    ├── app.py               # create_app(): server + routes + logging
    ├── server.py            # HTTPServer: connection handling
    ├── config.py            # ServerConfig dataclass
    ├── models.py            # Doctor, Patient, Prescription (pydantic)
    ├── core/                # Sockets and threads
    │   ├── socket_server.py # Bind, listen, accept loop
    │   ├── connection.py    # One request/response per connection
    │   └── thread_pool.py   # Optional worker pool
    ├── http/                # Protocol
    │   ├── request.py       # Lenient request parsing, get_id()
    │   ├── response.py      # Status line + headers + body
    │   ├── router.py        # Exact and prefix routing
    │   └── status_codes.py  # Statuses and reason phrases
    ├── middleware/          # Access logging
    ├── handlers/            # The five clinic endpoints
    └── store/               # SQLAlchemy tables and RecordStore

=============================================================================
QUICK START
=============================================================================

    from clinicserver import ServerConfig, create_app, create_store

    config = ServerConfig(port=8080)
    store = create_store(config)
    store.bootstrap()

    server = create_app(config, store)
    server.run()

Or from a shell:

    DATABASE_URL=postgresql+psycopg://user:pw@db/clinic python -m clinicserver

=============================================================================
"""

__version__ = "1.0.0"

from .app import create_app, create_store
from .config import ServerConfig
from .server import HTTPServer

__all__ = ["HTTPServer", "ServerConfig", "create_app", "create_store", "__version__"]
