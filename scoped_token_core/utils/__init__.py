"""Utility modules for the scoped token core."""

from .json_utils import dumps, loads
from .logger import ContextAwareLogger, configure_logging, get_logger, token_preview
from .qr_payload import QRPayload, build_qr_payload, parse_qr_payload
from .retry_utils import calculate_exponential_backoff, is_transient, run_with_retries
from .token_utils import ensure_utc, expiry_from_ttl, generate_token_id, utc_now

__all__ = [
    # JSON
    "dumps",
    "loads",
    # Logging utilities
    "ContextAwareLogger",
    "configure_logging",
    "get_logger",
    "token_preview",
    # QR payloads
    "QRPayload",
    "build_qr_payload",
    "parse_qr_payload",
    # Retry
    "calculate_exponential_backoff",
    "is_transient",
    "run_with_retries",
    # Token helpers
    "ensure_utc",
    "expiry_from_ttl",
    "generate_token_id",
    "utc_now",
]
