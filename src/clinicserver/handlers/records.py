"""
=============================================================================
RECORD HANDLERS
=============================================================================

The five clinic endpoints, in routing priority order:

    ┌────────┬─────────────────────────────────┬──────────────────────────┐
    │ Method │ Path                            │ Handler                  │
    ├────────┼─────────────────────────────────┼──────────────────────────┤
    │ POST   │ /doctor                         │ create_doctor            │
    │ POST   │ /patient                        │ create_patient           │
    │ POST   │ /prescription                   │ create_prescription      │
    │ GET    │ /doctor                         │ list_doctors             │
    │ GET    │ /prescription-list/:patient_id  │ list_prescriptions       │
    └────────┴─────────────────────────────────┴──────────────────────────┘

=============================================================================
OUTCOMES
=============================================================================

Creation (doctor, patient, prescription):

    body does not decode        → 500 "Error parsing request"
    store unreachable           → 500 "Error parsing request"
    insert fails                → 500 "Error creating <entity>"
    stored                      → 200 "<Entity> created"

Listings:

    patient id not an int32     → 400 "Invalid patient ID"
    store unreachable           → 500 "Error connecting to the database"
    select fails                → 500 "Error fetching <entities>"
    ok                          → 200 JSON array ([] when empty)

Clients only ever see these fixed messages. What actually went wrong is
logged here with the request's client address.
=============================================================================
"""

import logging
import re
from typing import Callable, Optional, Type

from pydantic import ValidationError

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, bad_request, internal_error, json_list, ok
from ..http.router import Router
from ..models import INT32_MAX, INT32_MIN, Doctor, Patient, Prescription, Record
from ..store import RecordStore, StoreError, StoreUnavailable

logger = logging.getLogger(__name__)


PARSE_ERROR = "Error parsing request"
CONNECT_ERROR = "Error connecting to the database"
INVALID_PATIENT_ID = "Invalid patient ID"

_INTEGER = re.compile(r"[+-]?[0-9]+")


def parse_patient_id(value: str) -> Optional[int]:
    """
    Parse a path segment as a signed 32-bit integer.

    Only an optional sign followed by ASCII digits is accepted, so
    " 7", "7.0", "1_000" and "٣" are all rejected.

        >>> parse_patient_id("42")
        42
        >>> parse_patient_id("-3")
        -3
        >>> parse_patient_id("2147483648") is None
        True
    """
    if not _INTEGER.fullmatch(value):
        return None

    number = int(value)
    if not INT32_MIN <= number <= INT32_MAX:
        return None
    return number


class RecordHandlers:
    """
    Handlers bound to one RecordStore.

    Usage:
        handlers = RecordHandlers(store)
        handlers.register(router)
    """

    def __init__(self, store: RecordStore):
        self.store = store

    def register(self, router: Router) -> Router:
        """Add the five routes to router, in priority order."""
        router.add_route("/doctor", self.create_doctor, "POST", name="create_doctor")
        router.add_route("/patient", self.create_patient, "POST", name="create_patient")
        router.add_route("/prescription", self.create_prescription, "POST", name="create_prescription")
        router.add_route("/doctor", self.list_doctors, "GET", name="list_doctors")
        router.add_route(
            "/prescription-list/:patient_id",
            self.list_prescriptions,
            "GET",
            name="list_prescriptions",
        )
        return router

    # =========================================================================
    # CREATION
    # =========================================================================

    def _create(
        self,
        request: HTTPRequest,
        model: Type[Record],
        save: Callable[[Record], None],
        entity: str,
    ) -> HTTPResponse:
        # ─────────────────────────────────────────────────────────────────
        # STEP 1: Decode the body
        # ─────────────────────────────────────────────────────────────────
        try:
            record = model.from_body(request.body)
        except ValidationError as e:
            logger.warning(
                f"Rejected {entity} payload from {request.client_address[0]}: "
                f"{e.error_count()} error(s): {e.errors(include_url=False, include_input=False)}"
            )
            return internal_error(PARSE_ERROR)

        # ─────────────────────────────────────────────────────────────────
        # STEP 2: Store it
        # ─────────────────────────────────────────────────────────────────
        try:
            save(record)
        except StoreUnavailable as e:
            logger.error(f"Cannot store {entity}: {e}")
            return internal_error(PARSE_ERROR)
        except StoreError as e:
            logger.error(f"Failed to create {entity}: {e}")
            return internal_error(f"Error creating {entity}")

        logger.info(f"Created {entity}")
        return ok(f"{entity.capitalize()} created")

    def create_doctor(self, request: HTTPRequest) -> HTTPResponse:
        return self._create(request, Doctor, self.store.add_doctor, "doctor")

    def create_patient(self, request: HTTPRequest) -> HTTPResponse:
        return self._create(request, Patient, self.store.add_patient, "patient")

    def create_prescription(self, request: HTTPRequest) -> HTTPResponse:
        return self._create(request, Prescription, self.store.add_prescription, "prescription")

    # =========================================================================
    # LISTINGS
    # =========================================================================

    def list_doctors(self, request: HTTPRequest) -> HTTPResponse:
        try:
            doctors = self.store.list_doctors()
        except StoreUnavailable as e:
            logger.error(f"Cannot list doctors: {e}")
            return internal_error(CONNECT_ERROR)
        except StoreError as e:
            logger.error(f"Failed to fetch doctors: {e}")
            return internal_error("Error fetching doctors")

        return json_list(doctors)

    def list_prescriptions(self, request: HTTPRequest) -> HTTPResponse:
        """Prescriptions of one patient, each with its doctor's details."""
        raw_id = request.path_params.get("patient_id", "")
        patient_id = parse_patient_id(raw_id)
        if patient_id is None:
            logger.info(f"Invalid patient id {raw_id!r} from {request.client_address[0]}")
            return bad_request(INVALID_PATIENT_ID)

        try:
            details = self.store.list_prescription_details(patient_id)
        except StoreUnavailable as e:
            logger.error(f"Cannot list prescriptions: {e}")
            return internal_error(CONNECT_ERROR)
        except StoreError as e:
            logger.error(f"Failed to fetch prescriptions for patient {patient_id}: {e}")
            return internal_error("Error fetching prescriptions")

        return json_list(details)
