"""
Fixed request and response schemas for the caller-facing API.

Bodies are camelCase on the wire. Unknown fields are rejected so a malformed
client cannot smuggle extra parameters past validation.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from ..constants import Limits, TokenScope
from .token_schemas import TokenRead
from .view_schemas import DoctorBookingView, HealthRecordView


def _scope_tag(value: Any) -> Any:
    if isinstance(value, str):
        return TokenScope(value)
    return value


# Accepts both read_health_record and ReadHealthRecord
ScopeTag = Annotated[TokenScope, BeforeValidator(_scope_tag)]


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="forbid",
    )


class IssueTokenRequest(ApiModel):
    subject_id: str = Field(..., min_length=1, max_length=Limits.MAX_SUBJECT_ID_LENGTH)
    scope: ScopeTag
    ttl_seconds: Optional[StrictInt] = Field(default=None, description="Defaults per scope")
    max_uses: Optional[StrictInt] = None
    metadata: Optional[Dict[str, Any]] = None


class IssueTokenResponse(ApiModel):
    token_id: str
    expires_at: datetime
    qr_payload: str


class ValidateTokenRequest(ApiModel):
    token_id: str = Field(..., min_length=1, max_length=Limits.MAX_TOKEN_ID_LENGTH)
    consumer_id: str = Field(..., min_length=1, max_length=Limits.MAX_CONSUMER_ID_LENGTH)
    expected_subject_id: Optional[str] = Field(
        default=None, min_length=1, max_length=Limits.MAX_SUBJECT_ID_LENGTH
    )


class ValidateTokenResponse(ApiModel):
    subject_id: str
    scope: TokenScope
    grant_id: StrictInt


class RevokeTokenRequest(ApiModel):
    token_id: str = Field(..., min_length=1, max_length=Limits.MAX_TOKEN_ID_LENGTH)
    requested_by: str = Field(..., min_length=1, max_length=Limits.MAX_SUBJECT_ID_LENGTH)


class RevokeTokenResponse(ApiModel):
    ok: bool = True


class AccessTokenRequest(ValidateTokenRequest):
    """Validate and resolve in one call."""


class AccessTokenResponse(ValidateTokenResponse):
    view: Union[HealthRecordView, DoctorBookingView]


class BookAppointmentRequest(ApiModel):
    grant_id: StrictInt
    token_id: str = Field(..., min_length=1, max_length=Limits.MAX_TOKEN_ID_LENGTH)
    patient_id: str = Field(..., min_length=1, max_length=Limits.MAX_SUBJECT_ID_LENGTH)
    appointment_date: datetime
    appointment_type: str = Field(default="in_person", min_length=1, max_length=50)
    symptoms: Optional[str] = Field(default=None, max_length=2000)


class BookAppointmentResponse(ApiModel):
    appointment_id: str
    doctor_id: str


class ListTokensRequest(ApiModel):
    subject_id: str = Field(..., min_length=1, max_length=Limits.MAX_SUBJECT_ID_LENGTH)
    requested_by: str = Field(..., min_length=1, max_length=Limits.MAX_SUBJECT_ID_LENGTH)
    scope: Optional[ScopeTag] = None
    include_inactive: bool = True


class ListTokensResponse(ApiModel):
    tokens: List[TokenRead] = Field(default_factory=list)
