"""
Record-store models: the clinic tables the resource gateway reads.

These tables belong to the surrounding clinic application. They are mapped
here so the SQL record store and the tests can use them; the token core never
writes to them except to create an appointment for a redeemed booking grant.
"""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text

from .db_base import JSON, CreatedAtMixin
from .db_config import Base


class Patient(Base, CreatedAtMixin):
    __tablename__ = "patients"

    id = Column(String(100), primary_key=True)
    full_name = Column(String(200), nullable=True)
    email = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    blood_group = Column(String(10), nullable=True)
    address = Column(Text, nullable=True)
    medical_conditions = Column(JSON, nullable=True)
    allergies = Column(JSON, nullable=True)
    emergency_contact = Column(String(200), nullable=True)


class Doctor(Base, CreatedAtMixin):
    __tablename__ = "doctors"

    id = Column(String(100), primary_key=True)
    full_name = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    specialization = Column(String(100), nullable=True)
    qualification = Column(String(100), nullable=True)
    experience_years = Column(Integer, nullable=True)
    consultation_fee = Column(Numeric(10, 2), nullable=True)
    clinic_name = Column(String(200), nullable=True)
    clinic_address = Column(Text, nullable=True)
    # Private fields never leave the record store through a booking view
    license_number = Column(String(100), nullable=True)


class Appointment(Base, CreatedAtMixin):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True)
    patient_id = Column(String(100), ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(String(100), ForeignKey("doctors.id"), nullable=False, index=True)
    appointment_date = Column(DateTime(timezone=True), nullable=False)
    type = Column(String(50), nullable=True)
    symptoms = Column(Text, nullable=True)
    status = Column(String(30), nullable=False, default="scheduled")
    notes = Column(Text, nullable=True)


class Prescription(Base, CreatedAtMixin):
    __tablename__ = "prescriptions"

    id = Column(String(36), primary_key=True)
    patient_id = Column(String(100), ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(String(100), ForeignKey("doctors.id"), nullable=False, index=True)
    medications = Column(JSON, nullable=True)
    diagnosis = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
