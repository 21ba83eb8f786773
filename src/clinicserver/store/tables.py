"""
=============================================================================
PERSISTED LAYOUT
=============================================================================

Three tables, each with a store-assigned integer primary key:

    doctors        id, name, specialization, experiance
    patients       id, name, gender
    prescriptions  id, patient_id, age, symptoms, diagnosis,
                   doctor_id (nullable), advice, medicine

No foreign keys are declared: prescriptions may reference patients and
doctors that do not exist.

Base.metadata.create_all() only creates missing tables, so bootstrapping
on every start is safe.
=============================================================================
"""

from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class DoctorRow(Base):
    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    specialization: Mapped[str] = mapped_column(String, nullable=False)
    # Existing databases spell the column this way.
    experience: Mapped[str] = mapped_column("experiance", String, nullable=False)


class PatientRow(Base):
    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    gender: Mapped[str] = mapped_column(String, nullable=False)


class PrescriptionRow(Base):
    __tablename__ = "prescriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    patient_id: Mapped[int] = mapped_column(Integer, nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    symptoms: Mapped[str] = mapped_column(String, nullable=False)
    diagnosis: Mapped[str] = mapped_column(String, nullable=False)
    doctor_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    advice: Mapped[str] = mapped_column(String, nullable=False)
    medicine: Mapped[str] = mapped_column(String, nullable=False)
