"""Token services: issue, validate-and-consume, revoke, resolve, book, list."""

from .base_service import BaseTokenService
from .booking_service import BookingService
from .resource_gateway import ResourceGateway, ResourceView
from .revocation_service import RevocationService
from .token_issuer_service import TokenIssuerService
from .token_query_service import TokenQueryService
from .token_validator_service import TokenValidatorService

__all__ = [
    "BaseTokenService",
    "BookingService",
    "ResourceGateway",
    "ResourceView",
    "RevocationService",
    "TokenIssuerService",
    "TokenQueryService",
    "TokenValidatorService",
]
