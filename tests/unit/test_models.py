"""
Unit tests for record decoding.
"""

import json

import pytest
from pydantic import ValidationError

from clinicserver.models import INT32_MAX, Doctor, Patient, Prescription


class TestDoctor:
    def test_decode(self, doctor_payload: dict):
        doctor = Doctor.from_body(json.dumps(doctor_payload))

        assert doctor.id is None
        assert doctor.name == "Amara Okafor"
        assert doctor.experience == "12 years"

    def test_historical_spelling_accepted(self):
        doctor = Doctor.from_body('{"name": "A", "specialization": "B", "experiance": "3"}')

        assert doctor.experience == "3"

    def test_both_spellings_dumped(self):
        doctor = Doctor.from_body('{"name": "A", "specialization": "B", "experiance": "3"}')

        dumped = doctor.model_dump(mode="json")

        assert dumped["experience"] == "3"
        assert dumped["experiance"] == "3"

    def test_experience_must_be_text(self):
        with pytest.raises(ValidationError):
            Doctor.from_body('{"name": "A", "specialization": "B", "experience": 3}')

    def test_missing_field(self):
        with pytest.raises(ValidationError):
            Doctor.from_body('{"name": "A", "specialization": "B"}')


class TestPatient:
    def test_unknown_keys_ignored(self):
        patient = Patient.from_body('{"name": "T", "gender": "f", "ward": 4}')

        assert patient.model_dump() == {"id": None, "name": "T", "gender": "f"}

    def test_client_id_is_accepted_but_optional(self):
        patient = Patient.from_body('{"id": 99, "name": "T", "gender": "f"}')

        assert patient.id == 99

    @pytest.mark.parametrize("body", ["", "not json", "[]", "null", '{"name": "T"}'])
    def test_malformed_bodies(self, body: str):
        with pytest.raises(ValidationError):
            Patient.from_body(body)


class TestPrescription:
    def test_decode(self, prescription_payload: dict):
        prescription = Prescription.from_body(json.dumps(prescription_payload))

        assert prescription.patient_id == 42
        assert prescription.doctor_id == 1

    @pytest.mark.parametrize("field", ["patient_id", "age", "doctor_id"])
    def test_integer_fields_reject_strings(self, prescription_payload: dict, field: str):
        prescription_payload[field] = "7"

        with pytest.raises(ValidationError):
            Prescription.from_body(json.dumps(prescription_payload))

    def test_integer_fields_reject_floats(self, prescription_payload: dict):
        prescription_payload["age"] = 41.5

        with pytest.raises(ValidationError):
            Prescription.from_body(json.dumps(prescription_payload))

    def test_int32_bounds(self, prescription_payload: dict):
        prescription_payload["patient_id"] = INT32_MAX
        assert Prescription.from_body(json.dumps(prescription_payload)).patient_id == INT32_MAX

        prescription_payload["patient_id"] = INT32_MAX + 1
        with pytest.raises(ValidationError):
            Prescription.from_body(json.dumps(prescription_payload))

    def test_text_fields_reject_numbers(self, prescription_payload: dict):
        prescription_payload["medicine"] = 5

        with pytest.raises(ValidationError):
            Prescription.from_body(json.dumps(prescription_payload))
