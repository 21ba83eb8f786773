"""
End-to-end tests over real sockets against a live server.
"""

import json
import logging
import socket
import threading
import time

import pytest

from clinicserver import ServerConfig, create_app
from clinicserver.store import RecordStore


class TestRecordFlow:
    def test_create_then_list_doctor(self, live_server, doctor_payload):
        created = live_server.request("POST", "/doctor", doctor_payload)
        listed = live_server.request("GET", "/doctor")

        assert created.status_line == "HTTP/1.1 200 OK"
        assert created.headers == {"Content-Type": "application/json"}
        assert created.text == "Doctor created"

        matches = [d for d in listed.json() if d["name"] == doctor_payload["name"]]
        assert len(matches) == 1
        assert matches[0]["id"] is not None
        assert matches[0]["specialization"] == doctor_payload["specialization"]
        assert matches[0]["experience"] == doctor_payload["experience"]

    def test_historical_experience_key_round_trips(self, live_server):
        payload = {"name": "Old Client", "specialization": "GP", "experiance": "3"}

        live_server.request("POST", "/doctor", payload)
        [doctor] = [d for d in live_server.request("GET", "/doctor").json() if d["name"] == "Old Client"]

        assert doctor["experiance"] == "3"
        assert doctor["experience"] == "3"

    def test_create_patient(self, live_server, patient_payload):
        reply = live_server.request("POST", "/patient", patient_payload)

        assert reply.status == 200
        assert reply.text == "Patient created"

    def test_prescription_listing_includes_doctor(self, live_server, doctor_payload, prescription_payload):
        live_server.request("POST", "/doctor", doctor_payload)
        doctor_id = live_server.request("GET", "/doctor").json()[0]["id"]
        prescription_payload.update(doctor_id=doctor_id, patient_id=1234)

        created = live_server.request("POST", "/prescription", prescription_payload)
        listed = live_server.request("GET", "/prescription-list/1234")

        assert created.text == "Prescription created"
        [detail] = listed.json()
        assert detail["doctor_name"] == doctor_payload["name"]
        assert detail["doctor_specialization"] == doctor_payload["specialization"]
        assert detail["diagnosis"] == prescription_payload["diagnosis"]

    def test_dangling_doctor_absent(self, live_server, prescription_payload):
        prescription_payload.update(doctor_id=987654, patient_id=77)
        live_server.request("POST", "/prescription", prescription_payload)

        assert live_server.request("GET", "/prescription-list/77").json() == []

    def test_patient_without_prescriptions(self, live_server):
        reply = live_server.request("GET", "/prescription-list/555")

        assert reply.status == 200
        assert reply.text == "[]"


class TestErrorResponses:
    def test_invalid_patient_id(self, live_server):
        reply = live_server.request("GET", "/prescription-list/abc")

        assert reply.raw == b"HTTP/1.1 400 BAD REQUEST\r\n\r\nInvalid patient ID"

    def test_unknown_method_is_404(self, live_server):
        reply = live_server.request("DELETE", "/doctor")

        assert reply.raw == b"HTTP/1.1 404 NOT FOUND\r\n\r\n404 Not Found"

    def test_404_distinct_from_500(self, live_server):
        not_found = live_server.request("GET", "/nowhere")
        bad_body = live_server.request("POST", "/doctor", "{not json")

        assert not_found.status == 404
        assert bad_body.raw == b"HTTP/1.1 500 INTERNAL SERVER ERROR\r\n\r\nError parsing request"
        assert not_found.text != bad_body.text

    def test_garbage_request_line(self, live_server):
        reply = live_server.send(b"\x00\x01garbage\r\n\r\n")

        assert reply.startswith(b"HTTP/1.1 404 NOT FOUND\r\n")

    def test_request_too_large(self, make_server):
        live = make_server(max_request_size=8192, buffer_size=1024)
        body = b"x" * 20000
        raw = (
            b"POST /doctor HTTP/1.1\r\n"
            + f"Content-Length: {len(body)}\r\n\r\n".encode()
        )

        reply = live.send(raw)

        assert reply == b"HTTP/1.1 413 PAYLOAD TOO LARGE\r\n\r\nRequest too large"

    def test_store_down_at_runtime(self, make_server, tmp_path, doctor_payload):
        down = RecordStore.from_url(f"sqlite:///{tmp_path / 'gone' / 'clinic.db'}")
        live = make_server(store=down)

        created = live.request("POST", "/doctor", doctor_payload)
        listed = live.request("GET", "/doctor")

        assert created.text == "Error parsing request"
        assert listed.text == "Error connecting to the database"
        down.dispose()


class TestReading:
    def test_body_split_across_packets(self, live_server):
        body = b'{"name": "Split Packet", "gender": "f"}'
        head = f"POST /patient HTTP/1.1\r\nContent-Length: {len(body)}\r\n\r\n".encode()

        with socket.create_connection(("127.0.0.1", live_server.port), timeout=5.0) as sock:
            sock.sendall(head + body[:10])
            time.sleep(0.1)
            sock.sendall(body[10:])
            reply = b""
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                reply += chunk

        assert reply.endswith(b"Patient created")

    def test_bytes_after_declared_body_are_dropped(self, live_server):
        body = b'{"name": "A", "gender": "f"}'
        raw = f"POST /patient HTTP/1.1\r\nContent-Length: {len(body)}\r\n\r\n".encode() + body + b"JUNK"

        reply = live_server.send(raw)

        assert reply.endswith(b"Patient created")

    def test_no_content_length_uses_what_was_sent(self, live_server):
        raw = b'POST /patient HTTP/1.1\r\n\r\n{"name": "No Length", "gender": "m"}'

        reply = live_server.send(raw, half_close=True)

        assert reply.endswith(b"Patient created")

    def test_connection_closed_after_response(self, live_server):
        with socket.create_connection(("127.0.0.1", live_server.port), timeout=5.0) as sock:
            sock.sendall(b"GET /doctor HTTP/1.1\r\nConnection: keep-alive\r\n\r\n")
            data = b""
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                data += chunk

        assert data.startswith(b"HTTP/1.1 200 OK")


class TestRoutingModes:
    def test_exact_routing_rejects_suffix(self, live_server):
        assert live_server.request("GET", "/doctors").status == 404

    def test_exact_routing_rejects_encoded_newline(self, live_server):
        assert live_server.request("GET", "/doctor%0A").status == 404

    def test_legacy_routing_accepts_suffix(self, make_server, doctor_payload):
        live = make_server(legacy_routing=True)
        live.request("POST", "/doctors", doctor_payload)

        reply = live.request("GET", "/doctorsomething")

        assert reply.status == 200
        assert reply.json()[0]["name"] == doctor_payload["name"]

    def test_legacy_routing_patient_id(self, make_server):
        live = make_server(legacy_routing=True)

        assert live.request("GET", "/prescription-list/12/ignored").text == "[]"
        assert live.request("GET", "/prescription-list/").status == 400
        assert live.request("GET", "/prescription-list").text == "Invalid patient ID"


class TestConcurrency:
    @pytest.mark.parametrize("workers", [0, 4])
    def test_many_clients_each_get_a_complete_response(self, make_server, workers, doctor_payload):
        live = make_server(workers=workers)
        replies = {}
        errors = []

        def client(index: int):
            try:
                payload = dict(doctor_payload, name=f"Doctor {index}")
                replies[index] = live.request("POST", "/doctor", payload)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=client, args=(i,)) for i in range(12)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        assert all(reply.raw.endswith(b"Doctor created") for reply in replies.values())
        assert len(replies) == 12

        names = {d["name"] for d in live.request("GET", "/doctor").json()}
        assert {f"Doctor {i}" for i in range(12)} <= names


class TestAccessLog:
    def test_one_line_per_request(self, live_server, caplog):
        caplog.set_level(logging.INFO, logger="clinicserver.access")

        live_server.request("GET", "/doctor")
        live_server.request("GET", "/prescription-list/abc")

        lines = [r.getMessage() for r in caplog.records if r.name == "clinicserver.access"]
        assert len(lines) == 2
        assert '"GET /doctor" 200' in lines[0]
        assert '"GET /prescription-list/abc" 400' in lines[1]

    def test_json_format(self, make_server, caplog):
        caplog.set_level(logging.INFO, logger="clinicserver.access")
        live = make_server(log_format="json")

        live.request("GET", "/nowhere")

        [record] = [r for r in caplog.records if r.name == "clinicserver.access"]
        entry = json.loads(record.getMessage())
        assert entry["path"] == "/nowhere"
        assert entry["status_code"] == 404
        assert entry["client_ip"] == "127.0.0.1"


class TestLifecycle:
    def test_running_until_stopped(self, live_server):
        live_server.request("GET", "/doctor")
        assert live_server.server.is_running

        live_server.stop()

        assert not live_server.server.is_running

    def test_shutdown_before_run_is_kept(self, file_store):
        server = create_app(ServerConfig(host="127.0.0.1", port=0, workers=2), file_store)
        server.bind()
        server.shutdown()

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        thread.join(timeout=5.0)

        assert not thread.is_alive()
        assert not server.is_running
