"""
Access token models.

Just the data structure; lifecycle rules live in the repository and the
services. Rows are never deleted by the core so the access log stays
complete for audit.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
)

from ..constants import Limits, TokenScope
from .db_base import JSON, CreatedAtMixin, utc_now
from .db_config import Base


class AccessToken(Base, CreatedAtMixin):
    """A scoped, time- and use-bounded credential for one subject."""

    __tablename__ = "access_tokens"

    # Raw token string, matched by equality
    id = Column(String(Limits.MAX_TOKEN_ID_LENGTH), primary_key=True)

    subject_id = Column(String(Limits.MAX_SUBJECT_ID_LENGTH), nullable=False, index=True)
    scope = Column(
        Enum(
            TokenScope,
            name="token_scope",
            native_enum=False,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )

    # Lifecycle
    expires_at = Column(DateTime(timezone=True), nullable=False)
    max_uses = Column(Integer, nullable=True)
    use_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    revoked_by = Column(String(Limits.MAX_SUBJECT_ID_LENGTH), nullable=True)

    # Owner-supplied context
    token_metadata = Column("metadata", JSON, nullable=True)

    __table_args__ = (
        CheckConstraint("use_count >= 0", name="ck_access_tokens_use_count"),
        CheckConstraint("max_uses IS NULL OR max_uses >= 1", name="ck_access_tokens_max_uses"),
        Index("ix_access_tokens_subject_scope", "subject_id", "scope"),
    )


class TokenAccessLog(Base):
    """Append-only record of one successful redemption."""

    __tablename__ = "token_access_log"

    # Autoincrement id defines log order and doubles as the grant id
    id = Column(Integer, primary_key=True, autoincrement=True)
    token_id = Column(
        String(Limits.MAX_TOKEN_ID_LENGTH), ForeignKey("access_tokens.id"), nullable=False
    )
    consumer_id = Column(String(Limits.MAX_CONSUMER_ID_LENGTH), nullable=False)
    accessed_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    # Set once when a booking grant is spent on an appointment
    redeemed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_token_access_log_token", "token_id"),)
