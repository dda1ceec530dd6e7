"""
Bounded views returned by the resource gateway.

Each view whitelists the fields a token holder may see; anything not declared
here never leaves the record store.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..constants import TokenScope
from ..utils.token_utils import ensure_utc


class _ViewModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True, frozen=True, alias_generator=to_camel, populate_by_name=True
    )


class PatientSummary(_ViewModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    address: Optional[str] = None
    medical_conditions: Optional[Any] = None
    allergies: Optional[Any] = None
    emergency_contact: Optional[str] = None


class AppointmentSummary(_ViewModel):
    id: str
    doctor_id: str
    appointment_date: datetime
    type: Optional[str] = None
    symptoms: Optional[str] = None
    status: str
    notes: Optional[str] = None

    @field_validator("appointment_date")
    @classmethod
    def normalize_utc(cls, v):
        return ensure_utc(v)


class PrescriptionSummary(_ViewModel):
    id: str
    doctor_id: str
    created_at: datetime
    medications: Optional[Any] = None
    diagnosis: Optional[str] = None
    instructions: Optional[str] = None

    @field_validator("created_at")
    @classmethod
    def normalize_utc(cls, v):
        return ensure_utc(v)


class DoctorPublicProfile(_ViewModel):
    id: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    specialization: Optional[str] = None
    qualification: Optional[str] = None
    experience_years: Optional[int] = None
    consultation_fee: Optional[Decimal] = None
    clinic_name: Optional[str] = None
    clinic_address: Optional[str] = None


class HealthRecordView(_ViewModel):
    scope: Literal[TokenScope.READ_HEALTH_RECORD] = TokenScope.READ_HEALTH_RECORD
    patient: PatientSummary
    appointments: List[AppointmentSummary] = Field(default_factory=list)
    prescriptions: List[PrescriptionSummary] = Field(default_factory=list)


class DoctorBookingView(_ViewModel):
    scope: Literal[TokenScope.BOOKING_WITH_DOCTOR] = TokenScope.BOOKING_WITH_DOCTOR
    doctor: DoctorPublicProfile
    # Spend with BookingService.create_appointment; valid for one appointment
    booking_grant_id: int


class BookedAppointment(_ViewModel):
    """Appointment created by spending a booking grant."""

    appointment_id: str
    doctor_id: str
    patient_id: str
    appointment_date: datetime
