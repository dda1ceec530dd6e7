"""Pydantic schemas for tokens, gateway views and API bodies."""

from .request_schemas import (
    AccessTokenRequest,
    AccessTokenResponse,
    ApiModel,
    BookAppointmentRequest,
    BookAppointmentResponse,
    IssueTokenRequest,
    IssueTokenResponse,
    ListTokensRequest,
    ListTokensResponse,
    RevokeTokenRequest,
    RevokeTokenResponse,
    ValidateTokenRequest,
    ValidateTokenResponse,
)
from .token_schemas import IssuedToken, ResourceGrant, TokenRead, TokenRecord
from .view_schemas import (
    AppointmentSummary,
    BookedAppointment,
    DoctorBookingView,
    DoctorPublicProfile,
    HealthRecordView,
    PatientSummary,
    PrescriptionSummary,
)

__all__ = [
    # Token snapshots and grants
    "IssuedToken",
    "ResourceGrant",
    "TokenRead",
    "TokenRecord",
    # Gateway views
    "AppointmentSummary",
    "BookedAppointment",
    "DoctorBookingView",
    "DoctorPublicProfile",
    "HealthRecordView",
    "PatientSummary",
    "PrescriptionSummary",
    # API bodies
    "AccessTokenRequest",
    "AccessTokenResponse",
    "ApiModel",
    "BookAppointmentRequest",
    "BookAppointmentResponse",
    "IssueTokenRequest",
    "IssueTokenResponse",
    "ListTokensRequest",
    "ListTokensResponse",
    "RevokeTokenRequest",
    "RevokeTokenResponse",
    "ValidateTokenRequest",
    "ValidateTokenResponse",
]
