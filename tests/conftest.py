"""
Shared fixtures.

The record store runs on SQLite so the suite needs no PostgreSQL:
unit tests use a private in-memory database, live-server tests a file
database that every worker thread can open its own connection to.
"""

import json
import socket
import threading
from pathlib import Path
from typing import Callable, Generator, Optional

import pytest

from clinicserver import ServerConfig, create_app
from clinicserver.server import HTTPServer
from clinicserver.store import RecordStore


# =============================================================================
# SAMPLE PAYLOADS AND REQUESTS
# =============================================================================


@pytest.fixture
def doctor_payload() -> dict:
    return {"name": "Amara Okafor", "specialization": "Cardiology", "experience": "12 years"}


@pytest.fixture
def patient_payload() -> dict:
    return {"name": "Tomas Lind", "gender": "male"}


@pytest.fixture
def prescription_payload() -> dict:
    return {
        "patient_id": 42,
        "age": 57,
        "symptoms": "chest pain on exertion",
        "diagnosis": "stable angina",
        "doctor_id": 1,
        "advice": "avoid heavy lifting",
        "medicine": "nitroglycerin 0.4mg",
    }


@pytest.fixture
def sample_post_request(doctor_payload: dict) -> bytes:
    body = json.dumps(doctor_payload).encode()
    return (
        b"POST /doctor HTTP/1.1\r\n"
        b"Host: clinic.local:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def sample_get_request() -> bytes:
    return (
        b"GET /prescription-list/42?verbose=1 HTTP/1.1\r\n"
        b"Host: clinic.local:8080\r\n"
        b"User-Agent: frontdesk/2.3\r\n"
        b"Accept: application/json\r\n"
        b"\r\n"
    )


# =============================================================================
# RECORD STORES
# =============================================================================


@pytest.fixture
def store() -> Generator[RecordStore, None, None]:
    """Bootstrapped in-memory store."""
    record_store = RecordStore.from_url("sqlite://")
    record_store.bootstrap()
    yield record_store
    record_store.dispose()


@pytest.fixture
def empty_store() -> Generator[RecordStore, None, None]:
    """Reachable store whose tables were never created."""
    record_store = RecordStore.from_url("sqlite://")
    yield record_store
    record_store.dispose()


@pytest.fixture
def unreachable_store(tmp_path: Path) -> Generator[RecordStore, None, None]:
    """Store whose every connection attempt fails."""
    record_store = RecordStore.from_url(f"sqlite:///{tmp_path / 'missing' / 'clinic.db'}")
    yield record_store
    record_store.dispose()


@pytest.fixture
def file_store(tmp_path: Path) -> Generator[RecordStore, None, None]:
    record_store = RecordStore.from_url(f"sqlite:///{tmp_path / 'clinic.db'}")
    record_store.bootstrap()
    yield record_store
    record_store.dispose()


# =============================================================================
# LIVE SERVER
# =============================================================================


class LiveServer:
    """Runs an HTTPServer in a background thread on an OS-chosen port."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        # Bound before the thread starts, so early connections wait in
        # the backlog instead of being refused.
        self.server.bind()
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def send(self, raw: bytes, half_close: bool = False) -> bytes:
        """Send raw bytes and read the response until the server closes."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as sock:
            sock.sendall(raw)
            if half_close:
                sock.shutdown(socket.SHUT_WR)
            chunks = []
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def request(self, method: str, path: str, body=None) -> "Reply":
        if body is None:
            payload = b""
        elif isinstance(body, (dict, list)):
            payload = json.dumps(body).encode()
        else:
            payload = body.encode() if isinstance(body, str) else body

        raw = (
            f"{method} {path} HTTP/1.1\r\n"
            f"Host: 127.0.0.1:{self.port}\r\n"
            f"Content-Type: application/json\r\n"
            f"Content-Length: {len(payload)}\r\n"
            f"\r\n"
        ).encode() + payload
        return Reply(self.send(raw))


class Reply:
    """A raw response split into status line, headers and body."""

    def __init__(self, raw: bytes):
        self.raw = raw
        head, _, body = raw.partition(b"\r\n\r\n")
        lines = head.decode().split("\r\n")
        self.status_line = lines[0]
        self.status = int(self.status_line.split()[1])
        self.headers = dict(line.split(": ", 1) for line in lines[1:] if line)
        self.text = body.decode()

    def json(self):
        return json.loads(self.text)


@pytest.fixture
def make_server(file_store: RecordStore) -> Generator[Callable[..., LiveServer], None, None]:
    """
    Factory for live servers sharing one file-backed store.

        live = make_server(workers=0, legacy_routing=True)
        reply = live.request("GET", "/doctor")
    """
    started = []

    def factory(store: Optional[RecordStore] = None, **overrides) -> LiveServer:
        settings = dict(host="127.0.0.1", port=0, workers=2, timeout=5.0, log_level="WARNING")
        settings.update(overrides)
        live = LiveServer(create_app(ServerConfig(**settings), store or file_store))
        live.start()
        started.append(live)
        return live

    yield factory

    for live in started:
        live.stop()


@pytest.fixture
def live_server(make_server) -> LiveServer:
    return make_server()
