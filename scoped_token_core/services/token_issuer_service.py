"""
Token issuance.

Creates a fresh token for an owner: validates the request against the
per-scope policy, draws an unguessable identifier and persists it with
``use_count = 0``. Identifier collisions are retried with a new identifier
and are never visible to the caller.
"""

from functools import partial
from typing import Any, Callable, Dict, Optional, Union

from ..config import AppConfig
from ..constants import TokenScope
from ..context.operation_context import operation
from ..db.db_config import DatabaseManager
from ..exceptions import RetryableConflictError, StorageUnavailableError, validation_failed
from ..repositories.token_repository import TokenRepository
from ..schemas.token_schemas import IssuedToken, TokenRecord
from ..utils.logger import token_preview
from ..utils.qr_payload import build_qr_payload
from ..utils.token_utils import expiry_from_ttl, generate_token_id
from .base_service import BaseTokenService


class TokenIssuerService(BaseTokenService):
    """Service for issuing scoped access tokens."""

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        config: Optional[AppConfig] = None,
        clock=None,
        id_generator: Callable[[], str] = generate_token_id,
    ):
        super().__init__(db_manager, config, clock)
        self.id_generator = id_generator

    @operation()
    def issue(
        self,
        subject_id: str,
        scope: Union[TokenScope, str],
        ttl_seconds: Optional[int] = None,
        max_uses: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> IssuedToken:
        """
        Issue a new token for ``subject_id``.

        Args:
            subject_id: Owner of the token (patient or doctor id)
            scope: Capability the token grants
            ttl_seconds: Lifetime in seconds; the scope default when omitted
            max_uses: Successful validations allowed; unlimited when omitted
            metadata: Free-form owner context stored alongside the token

        Returns:
            IssuedToken with the raw token id and its QR payload

        Raises:
            InvalidArgumentError: Any argument outside policy
            StorageUnavailableError: The store could not take the write
        """
        subject_id = self._require_text("subject_id", subject_id)
        scope = self._coerce_scope(scope)
        ttl_seconds = self._check_ttl(scope, ttl_seconds)
        self._check_max_uses(max_uses)
        if metadata is not None and not isinstance(metadata, dict):
            raise validation_failed("metadata", metadata, "must be an object")

        created_at = self.clock()
        expires_at = expiry_from_ttl(created_at, ttl_seconds)
        max_attempts = self.config.token_policy.max_issue_attempts

        record: Optional[TokenRecord] = None
        for attempt in range(max_attempts):
            token_id = self.id_generator()
            try:
                record = self._run(
                    "issue_token",
                    partial(
                        self._insert_once,
                        token_id,
                        subject_id,
                        scope,
                        created_at,
                        expires_at,
                        max_uses,
                        metadata,
                    ),
                )
                break
            except RetryableConflictError:
                self.logger.warning(
                    "Token id collision, regenerating",
                    extra={"attempt": attempt + 1, "max_attempts": max_attempts},
                )

        if record is None:
            raise StorageUnavailableError(
                "Could not allocate a unique token id",
                operation="issue_token",
                attempts=max_attempts,
            )

        self.logger.info(
            "Token issued",
            extra={
                "token_preview": token_preview(record.id),
                "subject_id": record.subject_id,
                "scope": record.scope.value,
                "expires_at": record.expires_at.isoformat(),
                "max_uses": record.max_uses,
            },
        )

        return IssuedToken(
            token_id=record.id,
            subject_id=record.subject_id,
            scope=record.scope,
            created_at=record.created_at,
            expires_at=record.expires_at,
            max_uses=record.max_uses,
            qr_payload=build_qr_payload(
                record.id, record.scope, record.subject_id, record.expires_at
            ),
        )

    def _insert_once(self, token_id, subject_id, scope, created_at, expires_at, max_uses, metadata):
        with self.db_manager.session_scope() as session:
            return TokenRepository(session).insert_if_absent(
                token_id=token_id,
                subject_id=subject_id,
                scope=scope,
                created_at=created_at,
                expires_at=expires_at,
                max_uses=max_uses,
                metadata=metadata,
            )

    @staticmethod
    def _coerce_scope(scope: Union[TokenScope, str]) -> TokenScope:
        if isinstance(scope, TokenScope):
            return scope
        try:
            return TokenScope(scope)
        except ValueError:
            raise validation_failed(
                "scope", scope, f"must be one of {[s.value for s in TokenScope]}"
            )

    def _check_ttl(self, scope: TokenScope, ttl_seconds: Optional[int]) -> int:
        policy = self.config.token_policy.for_scope(scope)
        if ttl_seconds is None:
            return policy.default_ttl_seconds
        # bool is an int subclass; True is not a lifetime
        if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int):
            raise validation_failed("ttl_seconds", ttl_seconds, "must be an integer")
        if ttl_seconds <= 0:
            raise validation_failed("ttl_seconds", ttl_seconds, "must be positive")
        if ttl_seconds > policy.max_ttl_seconds:
            raise validation_failed(
                "ttl_seconds",
                ttl_seconds,
                f"exceeds the {policy.max_ttl_seconds}s ceiling for {scope.value}",
            )
        return ttl_seconds

    @staticmethod
    def _check_max_uses(max_uses: Optional[int]) -> None:
        if max_uses is None:
            return
        if isinstance(max_uses, bool) or not isinstance(max_uses, int):
            raise validation_failed("max_uses", max_uses, "must be an integer")
        if max_uses < 1:
            raise validation_failed("max_uses", max_uses, "must be at least 1")
