"""
Constants and enums for the scoped token core.

This module centralizes all magic strings and constants used throughout
the package to ensure consistency and maintainability.
"""

from enum import Enum


class TokenScope(str, Enum):
    """The single capability a token authorizes against its subject."""

    BOOKING_WITH_DOCTOR = "booking_with_doctor"
    READ_HEALTH_RECORD = "read_health_record"

    @classmethod
    def _missing_(cls, value):
        # Tags are also accepted as written by clients: ReadHealthRecord, BookingWithDoctor
        if isinstance(value, str):
            key = value.replace("_", "").lower()
            for member in cls:
                if member.value.replace("_", "") == key:
                    return member
        return None


class QRPayloadType(str, Enum):
    """Wire value of the ``type`` field embedded in QR payloads."""

    DOCTOR_BOOKING = "doctor_booking"
    HEALTH_RECORD_ACCESS = "health_record_access"


SCOPE_TO_QR_TYPE = {
    TokenScope.BOOKING_WITH_DOCTOR: QRPayloadType.DOCTOR_BOOKING,
    TokenScope.READ_HEALTH_RECORD: QRPayloadType.HEALTH_RECORD_ACCESS,
}

QR_TYPE_TO_SCOPE = {qr_type: scope for scope, qr_type in SCOPE_TO_QR_TYPE.items()}


class TokenStatus(str, Enum):
    """Derived, display-only status of a stored token."""

    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"
    EXHAUSTED = "exhausted"


class AppointmentStatus(str, Enum):
    """Status values written for appointments created through a booking grant."""

    SCHEDULED = "scheduled"


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    DATABASE_URL = "DATABASE_URL"
    DB_ECHO = "DB_ECHO"
    LOG_LEVEL = "LOG_LEVEL"
    STORAGE_TIMEOUT_SECONDS = "STORAGE_TIMEOUT_SECONDS"
    RETRY_MAX_ATTEMPTS = "RETRY_MAX_ATTEMPTS"
    HEALTH_RECORD_MAX_TTL_SECONDS = "HEALTH_RECORD_MAX_TTL_SECONDS"
    BOOKING_MAX_TTL_SECONDS = "BOOKING_MAX_TTL_SECONDS"
    GATEWAY_RECORD_LIMIT = "GATEWAY_RECORD_LIMIT"


# Numeric constants
class Limits:
    """System limits and thresholds."""

    # 16 random bytes = 128 bits before url-safe base64 encoding
    TOKEN_ID_BYTES = 16
    MAX_TOKEN_ID_LENGTH = 64
    MAX_SUBJECT_ID_LENGTH = 100
    MAX_CONSUMER_ID_LENGTH = 100
    MAX_ISSUE_ATTEMPTS = 5
    MAX_RETRY_ATTEMPTS = 3
    # Information-minimization cap for gateway views
    RECORD_VIEW_LIMIT = 10
    TOKEN_PREVIEW_CHARS = 6


# Time-related constants (in seconds)
class Timeouts:
    """Timeout and duration values in seconds."""

    STORAGE_CALL = 5
    POOL_CHECKOUT = 5
    ONE_HOUR = 3600
    ONE_DAY = 24 * ONE_HOUR
    ONE_WEEK = 7 * ONE_DAY
    ONE_YEAR = 365 * ONE_DAY
    # "Never expires" is modelled as an ordinary 100-year TTL (876000 hours)
    NEVER_EXPIRES = 876000 * ONE_HOUR
