"""
Pydantic schemas for tokens, grants and owner-facing token listings.

``TokenRecord`` is the immutable snapshot the repository hands out; all
usability rules are evaluated against a snapshot and an explicit instant so
services never reason about live ORM rows.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..constants import TokenScope, TokenStatus
from ..exceptions import (
    SubjectMismatchError,
    TokenExhaustedError,
    TokenExpiredError,
    TokenRejectedError,
    TokenRevokedError,
)
from ..utils.logger import token_preview
from ..utils.token_utils import ensure_utc


class TokenRecord(BaseModel):
    """Snapshot of a stored token."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    subject_id: str
    scope: TokenScope
    created_at: datetime
    expires_at: datetime
    max_uses: Optional[int] = None
    use_count: int = 0
    is_active: bool = True
    revoked_at: Optional[datetime] = None
    revoked_by: Optional[str] = None
    token_metadata: Optional[Dict[str, Any]] = None

    @field_validator("created_at", "expires_at", "revoked_at")
    @classmethod
    def normalize_utc(cls, v):
        return ensure_utc(v)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.use_count >= self.max_uses

    def rejection_for(
        self, now: datetime, expected_subject_id: Optional[str] = None
    ) -> Optional[Type[TokenRejectedError]]:
        """
        The rejection a validation at ``now`` would produce, or None if usable.

        Checks run in a fixed order: revoked, expired, exhausted, subject.
        """
        if not self.is_active:
            return TokenRevokedError
        if self.is_expired(now):
            return TokenExpiredError
        if self.is_exhausted():
            return TokenExhaustedError
        if expected_subject_id is not None and expected_subject_id != self.subject_id:
            return SubjectMismatchError
        return None

    def status(self, now: datetime) -> TokenStatus:
        if not self.is_active:
            return TokenStatus.REVOKED
        if self.is_expired(now):
            return TokenStatus.EXPIRED
        if self.is_exhausted():
            return TokenStatus.EXHAUSTED
        return TokenStatus.ACTIVE


class IssuedToken(BaseModel):
    """Result of a successful issue; the only time the raw id is handed out."""

    model_config = ConfigDict(frozen=True)

    token_id: str
    subject_id: str
    scope: TokenScope
    created_at: datetime
    expires_at: datetime
    max_uses: Optional[int] = None
    qr_payload: str


class ResourceGrant(BaseModel):
    """
    Post-validation proof that one scope/subject pair may be acted upon.

    Only the validator constructs grants from stored state; the gateway and
    booking service accept nothing else.
    """

    model_config = ConfigDict(frozen=True)

    grant_id: int
    token_id: str
    subject_id: str
    scope: TokenScope
    consumer_id: str
    granted_at: datetime


class TokenRead(BaseModel):
    """
    Owner-facing view of one of their tokens.

    Carries only a preview of the identifier; the full id is handed out once,
    at issue time, and listings must never turn into a way to recover it.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    token_preview: str
    subject_id: str
    scope: TokenScope
    status: TokenStatus
    created_at: datetime
    expires_at: datetime
    max_uses: Optional[int] = None
    use_count: int
    remaining_uses: Optional[int] = None
    revoked_at: Optional[datetime] = None
    accessed_by: List[str] = Field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_record(
        cls, record: TokenRecord, now: datetime, accessed_by: Sequence[str] = ()
    ) -> "TokenRead":
        remaining = None
        if record.max_uses is not None:
            remaining = max(record.max_uses - record.use_count, 0)
        return cls(
            token_preview=token_preview(record.id),
            subject_id=record.subject_id,
            scope=record.scope,
            status=record.status(now),
            created_at=record.created_at,
            expires_at=record.expires_at,
            max_uses=record.max_uses,
            use_count=record.use_count,
            remaining_uses=remaining,
            revoked_at=record.revoked_at,
            accessed_by=list(accessed_by),
            metadata=record.token_metadata,
        )
