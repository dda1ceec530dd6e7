"""
Record store used by the resource gateway and booking service.

RecordStore is the contract the core relies on; SqlRecordStore reads the
clinic tables through SQLAlchemy. The gateway only ever asks for bounded,
most-recent-first slices.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..constants import AppointmentStatus
from ..db.db_record_models import Appointment, Doctor, Patient, Prescription
from ..schemas.view_schemas import (
    AppointmentSummary,
    DoctorPublicProfile,
    PatientSummary,
    PrescriptionSummary,
)


class RecordStore(ABC):
    """Read access to patient and doctor data, plus appointment creation."""

    @abstractmethod
    def get_patient_profile(self, patient_id: str) -> Optional[PatientSummary]:
        ...

    @abstractmethod
    def list_recent_appointments(self, patient_id: str, limit: int) -> List[AppointmentSummary]:
        ...

    @abstractmethod
    def list_recent_prescriptions(self, patient_id: str, limit: int) -> List[PrescriptionSummary]:
        ...

    @abstractmethod
    def get_doctor_profile(self, doctor_id: str) -> Optional[DoctorPublicProfile]:
        ...

    @abstractmethod
    def patient_exists(self, patient_id: str) -> bool:
        ...

    @abstractmethod
    def create_appointment(
        self,
        patient_id: str,
        doctor_id: str,
        appointment_date: datetime,
        appointment_type: str,
        symptoms: Optional[str] = None,
    ) -> str:
        """Create a scheduled appointment and return its id."""


class SqlRecordStore(RecordStore):
    """RecordStore over the clinic tables in the same database as the tokens."""

    def __init__(self, session: Session):
        self.session = session

    def get_patient_profile(self, patient_id: str) -> Optional[PatientSummary]:
        patient = self.session.get(Patient, patient_id)
        if patient is None:
            return None
        return PatientSummary.model_validate(patient)

    def list_recent_appointments(self, patient_id: str, limit: int) -> List[AppointmentSummary]:
        rows = self.session.execute(
            select(Appointment)
            .where(Appointment.patient_id == patient_id)
            .order_by(Appointment.appointment_date.desc())
            .limit(limit)
        ).scalars()
        return [AppointmentSummary.model_validate(row) for row in rows]

    def list_recent_prescriptions(self, patient_id: str, limit: int) -> List[PrescriptionSummary]:
        rows = self.session.execute(
            select(Prescription)
            .where(Prescription.patient_id == patient_id)
            .order_by(Prescription.created_at.desc())
            .limit(limit)
        ).scalars()
        return [PrescriptionSummary.model_validate(row) for row in rows]

    def get_doctor_profile(self, doctor_id: str) -> Optional[DoctorPublicProfile]:
        doctor = self.session.get(Doctor, doctor_id)
        if doctor is None:
            return None
        return DoctorPublicProfile.model_validate(doctor)

    def patient_exists(self, patient_id: str) -> bool:
        return self.session.get(Patient, patient_id) is not None

    def create_appointment(
        self,
        patient_id: str,
        doctor_id: str,
        appointment_date: datetime,
        appointment_type: str,
        symptoms: Optional[str] = None,
    ) -> str:
        appointment = Appointment(
            id=str(uuid.uuid4()),
            patient_id=patient_id,
            doctor_id=doctor_id,
            appointment_date=appointment_date,
            type=appointment_type,
            symptoms=symptoms,
            status=AppointmentStatus.SCHEDULED.value,
        )
        self.session.add(appointment)
        self.session.flush()
        return appointment.id
