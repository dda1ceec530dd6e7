"""
Token identifier and timestamp helpers.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..constants import Limits


def generate_token_id(num_bytes: int = Limits.TOKEN_ID_BYTES) -> str:
    """
    Generate a fresh, unguessable token identifier.

    Uses the OS CSPRNG; 16 bytes give 128 bits of entropy encoded as a
    22 character url-safe string, small enough for a QR code.
    """
    return secrets.token_urlsafe(num_bytes)


def utc_now() -> datetime:
    """Return current UTC time with timezone info attached."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime read back from the store to aware UTC.

    SQLite returns naive datetimes for DateTime(timezone=True) columns; the
    store only ever writes UTC, so a naive value is UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def expiry_from_ttl(created_at: datetime, ttl_seconds: int) -> datetime:
    """Compute ``expires_at`` for a token created at ``created_at``."""
    return created_at + timedelta(seconds=ttl_seconds)
