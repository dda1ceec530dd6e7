"""
Transport-independent request handlers for the caller-facing API.

Each handler takes the raw request body (JSON bytes/str, or an already decoded
mapping), validates it against a fixed schema before touching the store, calls
one service operation and returns an ApiResponse. Every failure is rendered as
the structured error body of its BaseError; nothing is turned into an empty
success.
"""

import uuid
from typing import Any, Callable, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import (
    BaseError,
    InvalidArgumentError,
    RetryableConflictError,
    StorageUnavailableError,
    clear_correlation_id,
    set_correlation_id,
)
from ..schemas.request_schemas import (
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
from ..services.booking_service import BookingService
from ..services.resource_gateway import ResourceGateway
from ..services.revocation_service import RevocationService
from ..services.token_issuer_service import TokenIssuerService
from ..services.token_query_service import TokenQueryService
from ..services.token_validator_service import TokenValidatorService
from ..utils.logger import get_logger

RequestT = TypeVar("RequestT", bound=ApiModel)
RawBody = Union[bytes, str, Mapping[str, Any], None]


class ApiResponse(BaseModel):
    """Status code plus JSON-ready body."""

    status_code: int
    body: dict


class TokenApi:
    """
    Caller-facing operations.

    Services default to the global database manager and config, so a host only
    needs ``initialize_db()`` before constructing this.
    """

    def __init__(
        self,
        issuer: Optional[TokenIssuerService] = None,
        validator: Optional[TokenValidatorService] = None,
        revocation: Optional[RevocationService] = None,
        gateway: Optional[ResourceGateway] = None,
        booking: Optional[BookingService] = None,
        query: Optional[TokenQueryService] = None,
    ):
        self.issuer = issuer or TokenIssuerService()
        self.validator = validator or TokenValidatorService()
        self.revocation = revocation or RevocationService()
        self.gateway = gateway or ResourceGateway()
        self.booking = booking or BookingService()
        self.query = query or TokenQueryService()
        self.logger = get_logger()

    def issue(self, raw: RawBody, correlation_id: Optional[str] = None) -> ApiResponse:
        def handle() -> BaseModel:
            request = _parse(IssueTokenRequest, raw)
            issued = self.issuer.issue(
                subject_id=request.subject_id,
                scope=request.scope,
                ttl_seconds=request.ttl_seconds,
                max_uses=request.max_uses,
                metadata=request.metadata,
            )
            return IssueTokenResponse(
                token_id=issued.token_id,
                expires_at=issued.expires_at,
                qr_payload=issued.qr_payload,
            )

        return self._handle("issue_token", handle, correlation_id, success_status=201)

    def validate(self, raw: RawBody, correlation_id: Optional[str] = None) -> ApiResponse:
        def handle() -> BaseModel:
            request = _parse(ValidateTokenRequest, raw)
            grant = self.validator.validate_and_consume(
                request.token_id, request.consumer_id, request.expected_subject_id
            )
            return ValidateTokenResponse(
                subject_id=grant.subject_id, scope=grant.scope, grant_id=grant.grant_id
            )

        return self._handle("validate_token", handle, correlation_id)

    def revoke(self, raw: RawBody, correlation_id: Optional[str] = None) -> ApiResponse:
        def handle() -> BaseModel:
            request = _parse(RevokeTokenRequest, raw)
            self.revocation.revoke(request.token_id, request.requested_by)
            return RevokeTokenResponse()

        return self._handle("revoke_token", handle, correlation_id)

    def access(self, raw: RawBody, correlation_id: Optional[str] = None) -> ApiResponse:
        """Validate a token and return the view it unlocks."""

        def handle() -> BaseModel:
            request = _parse(AccessTokenRequest, raw)
            grant = self.validator.validate_and_consume(
                request.token_id, request.consumer_id, request.expected_subject_id
            )
            view = self.gateway.resolve(grant)
            return AccessTokenResponse(
                subject_id=grant.subject_id,
                scope=grant.scope,
                grant_id=grant.grant_id,
                view=view,
            )

        return self._handle("access_resource", handle, correlation_id)

    def book(self, raw: RawBody, correlation_id: Optional[str] = None) -> ApiResponse:
        def handle() -> BaseModel:
            request = _parse(BookAppointmentRequest, raw)
            booked = self.booking.create_appointment(
                grant_id=request.grant_id,
                token_id=request.token_id,
                patient_id=request.patient_id,
                appointment_date=request.appointment_date,
                appointment_type=request.appointment_type,
                symptoms=request.symptoms,
            )
            return BookAppointmentResponse(
                appointment_id=booked.appointment_id, doctor_id=booked.doctor_id
            )

        return self._handle("book_appointment", handle, correlation_id, success_status=201)

    def list_tokens(
        self, params: Mapping[str, Any], correlation_id: Optional[str] = None
    ) -> ApiResponse:
        """List an owner's tokens from query-string parameters."""

        def handle() -> BaseModel:
            known = {k: v for k, v in params.items() if k in _LIST_PARAMS}
            request = _parse(ListTokensRequest, known)
            tokens = self.query.list_tokens(
                request.subject_id, request.requested_by, request.scope, request.include_inactive
            )
            return ListTokensResponse(tokens=tokens)

        return self._handle("list_tokens", handle, correlation_id)

    def _handle(
        self,
        name: str,
        handle: Callable[[], BaseModel],
        correlation_id: Optional[str],
        success_status: int = 200,
    ) -> ApiResponse:
        set_correlation_id(correlation_id or str(uuid.uuid4()))
        try:
            result = handle()
            return ApiResponse(
                status_code=success_status, body=result.model_dump(mode="json", by_alias=True)
            )
        except RetryableConflictError as e:
            # Services retry conflicts themselves; one escaping here is a lost race
            error: BaseError = StorageUnavailableError(operation=name, cause=e)
            return _error_response(error)
        except BaseError as e:
            return _error_response(e)
        except Exception as e:
            self.logger.exception(
                f"Unhandled error in {name}", extra={"error_type": type(e).__name__}
            )
            return _error_response(BaseError("Internal server error", cause=e, operation=name))
        finally:
            clear_correlation_id()


_LIST_PARAMS = {
    "subjectId",
    "subject_id",
    "requestedBy",
    "requested_by",
    "scope",
    "includeInactive",
    "include_inactive",
}


def _parse(model: Type[RequestT], raw: RawBody) -> RequestT:
    """Validate a request body, mapping schema failures to InvalidArgumentError."""
    try:
        if isinstance(raw, (bytes, str)):
            return model.model_validate_json(raw)
        return model.model_validate(raw if raw is not None else {})
    except PydanticValidationError as e:
        problems = [
            {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
            for err in e.errors(include_url=False, include_input=False)
        ]
        fields = ", ".join(p["loc"] for p in problems if p["loc"]) or "body"
        raise InvalidArgumentError(f"Invalid request: {fields}", problems=problems) from e


def _error_response(error: BaseError) -> ApiResponse:
    return ApiResponse(status_code=error.status_code, body=error.to_dict())
