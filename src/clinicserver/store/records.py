"""
=============================================================================
RECORD STORE
=============================================================================

The only component that talks to the database.

    Handler ──► RecordStore ──► Engine (pool) ──► PostgreSQL
                    │
                    └── raises StoreUnavailable / StoreError

Every operation checks a connection out of the engine's pool, runs one
parameterized statement and returns the connection. Two failure points are
kept apart because handlers answer them differently:

    engine.connect() fails   →  StoreUnavailable
    the statement fails      →  StoreError

Rows are mapped positionally into the pydantic models; column order in
the SELECT lists below is part of the contract.
=============================================================================
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List

from sqlalchemy import insert, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..models import Doctor, Patient, Prescription, PrescriptionDetail
from .engine import create_store_engine
from .errors import StoreError, StoreUnavailable
from .tables import Base, DoctorRow, PatientRow, PrescriptionRow

logger = logging.getLogger(__name__)


class RecordStore:
    """
    Persistence for doctors, patients and prescriptions.

    Thread-safe: the engine's pool hands each caller its own connection.

    Example:
        store = RecordStore.from_url("sqlite://")
        store.bootstrap()
        store.add_doctor(Doctor(name="Ada", specialization="GP", experience="5 years"))
        store.list_doctors()
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_url(
        cls,
        database_url: str,
        pool_size: int = 5,
        connect_timeout: int = 10,
    ) -> "RecordStore":
        """
        Raises:
            StoreError: The URL is malformed or names an unknown dialect.
        """
        try:
            engine = create_store_engine(database_url, pool_size, connect_timeout)
        except SQLAlchemyError as e:
            raise StoreError(f"Invalid database URL: {e}") from e
        return cls(engine)

    # ─────────────────────────────────────────────────────────────────────
    # CONNECTIONS
    # ─────────────────────────────────────────────────────────────────────

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        try:
            conn = self.engine.connect()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Cannot connect to record store: {e}") from e

        with conn:
            yield conn

    def bootstrap(self) -> None:
        """
        Create the doctors, patients and prescriptions tables if missing.

        Raises:
            StoreUnavailable: The database could not be reached.
            StoreError: A CREATE TABLE statement failed.
        """
        with self._connection() as conn:
            try:
                Base.metadata.create_all(conn)
                conn.commit()
            except SQLAlchemyError as e:
                raise StoreError(f"Schema bootstrap failed: {e}") from e
        logger.info("Record store schema ready")

    # ─────────────────────────────────────────────────────────────────────
    # INSERTS
    # ─────────────────────────────────────────────────────────────────────

    def _insert(self, statement, entity: str) -> None:
        with self._connection() as conn:
            try:
                conn.execute(statement)
                conn.commit()
            except SQLAlchemyError as e:
                raise StoreError(f"Insert into {entity} failed: {e}") from e

    def add_doctor(self, doctor: Doctor) -> None:
        self._insert(
            # Keyed by attribute: the column itself is named "experiance".
            insert(DoctorRow).values({
                DoctorRow.name: doctor.name,
                DoctorRow.specialization: doctor.specialization,
                DoctorRow.experience: doctor.experience,
            }),
            "doctors",
        )

    def add_patient(self, patient: Patient) -> None:
        self._insert(
            insert(PatientRow).values(name=patient.name, gender=patient.gender),
            "patients",
        )

    def add_prescription(self, prescription: Prescription) -> None:
        # The client-supplied id is never written; the store assigns one.
        values = prescription.model_dump(exclude={"id"})
        self._insert(insert(PrescriptionRow).values(**values), "prescriptions")

    # ─────────────────────────────────────────────────────────────────────
    # QUERIES
    # ─────────────────────────────────────────────────────────────────────

    def _select(self, statement, entity: str) -> list:
        with self._connection() as conn:
            try:
                return list(conn.execute(statement))
            except SQLAlchemyError as e:
                raise StoreError(f"Select from {entity} failed: {e}") from e

    def list_doctors(self) -> List[Doctor]:
        rows = self._select(
            select(
                DoctorRow.id,
                DoctorRow.name,
                DoctorRow.specialization,
                DoctorRow.experience,
            ).order_by(DoctorRow.id),
            "doctors",
        )
        return [
            Doctor(id=row[0], name=row[1], specialization=row[2], experience=row[3])
            for row in rows
        ]

    def list_prescription_details(self, patient_id: int) -> List[PrescriptionDetail]:
        """
        Prescriptions of one patient, joined with the prescribing doctor.

        Inner join: a prescription whose doctor_id matches no doctor is
        left out. An unknown patient yields an empty list.
        """
        rows = self._select(
            select(
                PrescriptionRow.id,
                PrescriptionRow.patient_id,
                PrescriptionRow.age,
                PrescriptionRow.symptoms,
                PrescriptionRow.diagnosis,
                PrescriptionRow.doctor_id,
                PrescriptionRow.advice,
                PrescriptionRow.medicine,
                DoctorRow.name,
                DoctorRow.specialization,
            )
            .join(DoctorRow, PrescriptionRow.doctor_id == DoctorRow.id)
            .where(PrescriptionRow.patient_id == patient_id)
            .order_by(PrescriptionRow.id),
            "prescriptions",
        )
        return [
            PrescriptionDetail(
                prescription_id=row[0],
                patient_id=row[1],
                age=row[2],
                symptoms=row[3],
                diagnosis=row[4],
                doctor_id=row[5],
                advice=row[6],
                medicine=row[7],
                doctor_name=row[8],
                doctor_specialization=row[9],
            )
            for row in rows
        ]

    def dispose(self) -> None:
        """Close every pooled connection."""
        self.engine.dispose()
