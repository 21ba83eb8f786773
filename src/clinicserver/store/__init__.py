"""Record store: SQLAlchemy tables, engine setup and the RecordStore facade."""

from .engine import create_store_engine, normalize_url
from .errors import StoreError, StoreUnavailable
from .records import RecordStore
from .tables import Base, DoctorRow, PatientRow, PrescriptionRow

__all__ = [
    "Base",
    "DoctorRow",
    "PatientRow",
    "PrescriptionRow",
    "RecordStore",
    "StoreError",
    "StoreUnavailable",
    "create_store_engine",
    "normalize_url",
]
