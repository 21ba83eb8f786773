"""
=============================================================================
CLINIC RECORDS
=============================================================================

Pydantic models for the three persisted entities and the derived,
read-only prescription detail.

    Doctor ◄─────── doctor_id ─────── Prescription ─────── patient_id ──────► Patient
       │                                   │
       └──── name, specialization ─────────┴──► PrescriptionDetail (inner join)

Neither reference is enforced: a prescription may point at a patient or a
doctor that does not exist. Prescriptions with a dangling doctor_id simply
never appear in a PrescriptionDetail listing.

Payloads are decoded in strict mode, so "42" is not an integer and 42 is
not a string. Unknown keys are ignored, as is any "id" sent by a client.
=============================================================================
"""

from typing import Annotated, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field


INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

Int32 = Annotated[int, Field(ge=INT32_MIN, le=INT32_MAX)]


class Record(BaseModel):
    """Base for all clinic records."""

    model_config = ConfigDict(strict=True, extra="ignore")

    @classmethod
    def from_body(cls, body: str):
        """
        Decode a request body into this record type.

        Raises:
            pydantic.ValidationError: If the body is not JSON or does not
                                      match the record's shape.
        """
        return cls.model_validate_json(body)


class Doctor(Record):
    id: Optional[int] = None
    name: str
    specialization: str
    # Free text ("5 years", "since 2010"), never coerced to a number.
    # "experiance" is the spelling older clients send.
    experience: str = Field(validation_alias=AliasChoices("experience", "experiance"))

    @computed_field
    @property
    def experiance(self) -> str:
        """Listings carry both spellings, so older clients read back what they sent."""
        return self.experience


class Patient(Record):
    id: Optional[int] = None
    name: str
    gender: str


class Prescription(Record):
    id: Optional[int] = None
    patient_id: Int32
    age: Int32
    symptoms: str
    diagnosis: str
    doctor_id: Int32
    advice: str
    medicine: str


class PrescriptionDetail(Record):
    """A prescription joined with its doctor's name and specialization."""

    prescription_id: Optional[int] = None
    patient_id: int
    age: int
    symptoms: str
    diagnosis: str
    doctor_id: int
    advice: str
    medicine: str
    doctor_name: str
    doctor_specialization: str
