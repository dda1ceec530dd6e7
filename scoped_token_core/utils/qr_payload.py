"""
Opaque QR payload encoding.

The core only produces and parses the string; rendering it into an image is
left to whichever component displays it.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..constants import QR_TYPE_TO_SCOPE, SCOPE_TO_QR_TYPE, QRPayloadType, TokenScope
from ..exceptions import InvalidArgumentError
from .json_utils import dumps, loads


class QRPayload(BaseModel):
    """Fields embedded in a scannable code."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    token: str = Field(..., min_length=1)
    type: QRPayloadType
    subject_id: Optional[str] = None
    expires: Optional[datetime] = None

    @property
    def scope(self) -> TokenScope:
        return QR_TYPE_TO_SCOPE[self.type]


def build_qr_payload(
    token_id: str, scope: TokenScope, subject_id: str, expires_at: datetime
) -> str:
    """Serialize the compact JSON string that a QR image should carry."""
    payload = {
        "token": token_id,
        "type": SCOPE_TO_QR_TYPE[scope].value,
        "subject_id": subject_id,
        "expires": expires_at.isoformat(),
    }
    return dumps(payload, separators=(",", ":"))


def parse_qr_payload(raw: str, expected_scope: Optional[TokenScope] = None) -> QRPayload:
    """
    Parse a scanned payload string.

    Args:
        raw: The decoded text of the QR image
        expected_scope: Reject payloads for another product (e.g. a health
            record code scanned by the booking screen)

    Raises:
        InvalidArgumentError: Not a token payload, or the wrong kind of code
    """
    try:
        payload = QRPayload.model_validate(loads(raw))
    except (ValueError, TypeError, PydanticValidationError) as e:
        raise InvalidArgumentError("Unrecognized QR payload", field="qr_payload", cause=e)

    if expected_scope is not None and payload.scope != expected_scope:
        raise InvalidArgumentError(
            "QR payload is for a different kind of access",
            field="type",
            expected=expected_scope.value,
            actual=payload.type.value,
        )
    return payload
