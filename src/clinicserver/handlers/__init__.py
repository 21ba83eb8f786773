"""
Request handlers for the clinic endpoints.

    from clinicserver.handlers import RecordHandlers

    RecordHandlers(store).register(router)
"""

from .records import RecordHandlers, parse_patient_id

__all__ = ["RecordHandlers", "parse_patient_id"]
