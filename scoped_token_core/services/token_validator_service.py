"""
Token validation and consumption.

validate_and_consume is the only path that changes ``use_count``. The usability
check and the increment are one conditional UPDATE, and the access-log append
commits in the same transaction, so a grant is returned only for a use that
has durably been counted. When the UPDATE matches nothing the token is read
back to name the rejection.
"""

from functools import partial
from typing import Optional

from ..constants import Limits
from ..context.operation_context import operation
from ..exceptions import RetryableConflictError, TokenNotFoundError
from ..repositories.token_repository import TokenRepository, consume_mutation, usable_predicate
from ..schemas.token_schemas import ResourceGrant
from ..utils.logger import token_preview
from .base_service import BaseTokenService


class TokenValidatorService(BaseTokenService):
    """Service that redeems tokens for resource grants."""

    @operation()
    def validate_and_consume(
        self,
        token_id: str,
        consumer_id: str,
        expected_subject_id: Optional[str] = None,
    ) -> ResourceGrant:
        """
        Check a presented token and, if usable, consume one use.

        Args:
            token_id: Raw token string as presented
            consumer_id: Who is redeeming (recorded in the access log)
            expected_subject_id: Only accept tokens for this subject

        Returns:
            ResourceGrant for the token's scope and subject

        Raises:
            InvalidArgumentError: Blank or oversized identifiers
            TokenNotFoundError, TokenRevokedError, TokenExpiredError,
            TokenExhaustedError, SubjectMismatchError: Terminal rejections
            StorageUnavailableError: Storage failed transiently on every attempt
        """
        self._require_text("token_id", token_id, Limits.MAX_TOKEN_ID_LENGTH)
        self._require_text("consumer_id", consumer_id, Limits.MAX_CONSUMER_ID_LENGTH)
        if expected_subject_id is not None:
            self._require_text("expected_subject_id", expected_subject_id)

        grant = self._run(
            "validate_and_consume",
            partial(self._consume_once, token_id, consumer_id, expected_subject_id),
            retry_on_conflict=True,
        )

        self.logger.info(
            "Token consumed",
            extra={
                "token_preview": token_preview(token_id),
                "consumer_id": consumer_id,
                "scope": grant.scope.value,
                "grant_id": grant.grant_id,
            },
        )
        return grant

    def _consume_once(
        self, token_id: str, consumer_id: str, expected_subject_id: Optional[str]
    ) -> ResourceGrant:
        now = self.clock()
        with self.db_manager.session_scope() as session:
            repo = TokenRepository(session)

            if repo.compare_and_update(
                token_id, usable_predicate(now, expected_subject_id), consume_mutation()
            ):
                grant_id = repo.append_access(token_id, consumer_id, now)
                subject_id, scope = repo.get_subject_and_scope(token_id)
                return ResourceGrant(
                    grant_id=grant_id,
                    token_id=token_id,
                    subject_id=subject_id,
                    scope=scope,
                    consumer_id=consumer_id,
                    granted_at=now,
                )

            # Nothing was written; release the write transaction before diagnosing
            session.rollback()
            record = repo.get(token_id)
            if record is None:
                raise TokenNotFoundError(token_preview=token_preview(token_id))

            rejection = record.rejection_for(now, expected_subject_id)
            if rejection is None:
                raise RetryableConflictError(
                    "Token changed during validation", token_preview=token_preview(token_id)
                )
            raise rejection(token_preview=token_preview(token_id), consumer_id=consumer_id)
