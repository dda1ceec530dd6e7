"""
Booking redemption.

A successful validation of a booking_with_doctor token yields a grant; that
grant may be spent on exactly one appointment with the token's doctor.
"""

from datetime import datetime
from functools import partial
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..config import AppConfig
from ..constants import Limits, TokenScope
from ..context.operation_context import operation
from ..db.db_config import DatabaseManager
from ..exceptions import PermissionDeniedError, RecordNotFoundError, validation_failed
from ..repositories.record_store import RecordStore, SqlRecordStore
from ..repositories.token_repository import TokenRepository
from ..schemas.view_schemas import BookedAppointment
from ..utils.logger import token_preview
from ..utils.token_utils import ensure_utc
from .base_service import BaseTokenService


class BookingService(BaseTokenService):
    """Creates appointments authorized by booking grants."""

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        config: Optional[AppConfig] = None,
        clock=None,
        record_store_factory: Callable[[Session], RecordStore] = SqlRecordStore,
    ):
        super().__init__(db_manager, config, clock)
        self.record_store_factory = record_store_factory

    @operation()
    def create_appointment(
        self,
        grant_id: int,
        token_id: str,
        patient_id: str,
        appointment_date: datetime,
        appointment_type: str = "in_person",
        symptoms: Optional[str] = None,
    ) -> BookedAppointment:
        """
        Spend a booking grant on one appointment.

        Args:
            grant_id: ``booking_grant_id`` from the DoctorBookingView
            token_id: The token the grant was issued for
            patient_id: Patient the appointment is for
            appointment_date: Requested slot; naive values are taken as UTC
            appointment_type: e.g. "in_person" or "video"
            symptoms: Free text from the patient

        Raises:
            InvalidArgumentError: Malformed arguments
            RecordNotFoundError: Unknown grant, patient or doctor
            PermissionDeniedError: Not a booking grant, or already spent
        """
        if isinstance(grant_id, bool) or not isinstance(grant_id, int):
            raise validation_failed("grant_id", grant_id, "must be an integer")
        self._require_text("token_id", token_id, Limits.MAX_TOKEN_ID_LENGTH)
        self._require_text("patient_id", patient_id)
        self._require_text("appointment_type", appointment_type, 50)
        if not isinstance(appointment_date, datetime):
            raise validation_failed("appointment_date", appointment_date, "must be a datetime")

        booked = self._run(
            "create_appointment",
            partial(
                self._book_once,
                grant_id,
                token_id,
                patient_id,
                ensure_utc(appointment_date),
                appointment_type,
                symptoms,
            ),
        )

        self.logger.info(
            "Appointment booked from grant",
            extra={
                "grant_id": grant_id,
                "token_preview": token_preview(token_id),
                "appointment_id": booked.appointment_id,
                "doctor_id": booked.doctor_id,
            },
        )
        return booked

    def _book_once(
        self,
        grant_id: int,
        token_id: str,
        patient_id: str,
        appointment_date: datetime,
        appointment_type: str,
        symptoms: Optional[str],
    ) -> BookedAppointment:
        now = self.clock()
        with self.db_manager.session_scope() as session:
            repo = TokenRepository(session)
            store = self.record_store_factory(session)

            if repo.get_access_entry_token_id(grant_id) != token_id:
                raise RecordNotFoundError("Booking grant", grant_id=grant_id)

            doctor_id, scope = repo.get_subject_and_scope(token_id)
            if scope != TokenScope.BOOKING_WITH_DOCTOR:
                raise PermissionDeniedError("create_appointment", "grant", grant_id=grant_id)

            if not store.patient_exists(patient_id):
                raise RecordNotFoundError("Patient", patient_id=patient_id)
            if store.get_doctor_profile(doctor_id) is None:
                raise RecordNotFoundError("Doctor", grant_id=grant_id)

            if not repo.mark_access_redeemed(grant_id, token_id, now):
                raise PermissionDeniedError(
                    "create_appointment", "grant", grant_id=grant_id, reason="already redeemed"
                )

            appointment_id = store.create_appointment(
                patient_id=patient_id,
                doctor_id=doctor_id,
                appointment_date=appointment_date,
                appointment_type=appointment_type,
                symptoms=symptoms,
            )
            return BookedAppointment(
                appointment_id=appointment_id,
                doctor_id=doctor_id,
                patient_id=patient_id,
                appointment_date=appointment_date,
            )
