"""
Resource gateway.

Turns a ResourceGrant into the bounded view its scope allows. The gateway does
no authorization of its own: holding a grant is the authorization, and only
the validator creates grants from stored state.
"""

from functools import partial
from typing import Callable, Optional, Union

from sqlalchemy.orm import Session

from ..config import AppConfig
from ..constants import Limits, TokenScope
from ..context.operation_context import operation
from ..db.db_config import DatabaseManager
from ..exceptions import InvalidArgumentError, RecordNotFoundError
from ..repositories.record_store import RecordStore, SqlRecordStore
from ..schemas.token_schemas import ResourceGrant
from ..schemas.view_schemas import DoctorBookingView, HealthRecordView
from .base_service import BaseTokenService

ResourceView = Union[HealthRecordView, DoctorBookingView]


class ResourceGateway(BaseTokenService):
    """Read-only access to the record store on behalf of a grant."""

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        config: Optional[AppConfig] = None,
        clock=None,
        record_store_factory: Callable[[Session], RecordStore] = SqlRecordStore,
    ):
        super().__init__(db_manager, config, clock)
        self.record_store_factory = record_store_factory

    @property
    def record_limit(self) -> int:
        return min(self.config.gateway.record_limit, Limits.RECORD_VIEW_LIMIT)

    @operation()
    def resolve(self, grant: ResourceGrant) -> ResourceView:
        """
        Build the view for ``grant``.

        Returns:
            HealthRecordView for read_health_record grants,
            DoctorBookingView for booking_with_doctor grants

        Raises:
            InvalidArgumentError: Not a ResourceGrant
            RecordNotFoundError: The granted subject has no profile
        """
        if not isinstance(grant, ResourceGrant):
            raise InvalidArgumentError("A resource grant is required", field="grant")

        return self._run("resolve_grant", partial(self._resolve_once, grant))

    def _resolve_once(self, grant: ResourceGrant) -> ResourceView:
        with self.db_manager.session_scope() as session:
            store = self.record_store_factory(session)
            if grant.scope == TokenScope.READ_HEALTH_RECORD:
                return self._health_record_view(store, grant)
            return self._booking_view(store, grant)

    def _health_record_view(self, store: RecordStore, grant: ResourceGrant) -> HealthRecordView:
        patient = store.get_patient_profile(grant.subject_id)
        if patient is None:
            raise RecordNotFoundError("Patient", grant_id=grant.grant_id)

        limit = self.record_limit
        return HealthRecordView(
            patient=patient,
            appointments=store.list_recent_appointments(grant.subject_id, limit),
            prescriptions=store.list_recent_prescriptions(grant.subject_id, limit),
        )

    def _booking_view(self, store: RecordStore, grant: ResourceGrant) -> DoctorBookingView:
        doctor = store.get_doctor_profile(grant.subject_id)
        if doctor is None:
            raise RecordNotFoundError("Doctor", grant_id=grant.grant_id)
        return DoctorBookingView(doctor=doctor, booking_grant_id=grant.grant_id)
