"""Owner-facing token listings."""

from functools import partial
from typing import List, Optional

from ..constants import Limits, TokenScope, TokenStatus
from ..context.operation_context import operation
from ..exceptions import PermissionDeniedError, TokenNotFoundError
from ..repositories.token_repository import TokenRepository
from ..schemas.token_schemas import TokenRead
from ..utils.logger import token_preview
from .base_service import BaseTokenService


class TokenQueryService(BaseTokenService):
    """Read-only queries an owner makes about their own tokens."""

    @operation()
    def list_tokens(
        self,
        subject_id: str,
        requested_by: str,
        scope: Optional[TokenScope] = None,
        include_inactive: bool = True,
    ) -> List[TokenRead]:
        """
        List the tokens issued for ``subject_id``, newest first.

        Entries identify tokens by preview only, so a listing can never be
        redeemed.

        Args:
            subject_id: Owner whose tokens to list
            requested_by: Caller; must be the owner
            scope: Restrict to one scope
            include_inactive: Also return revoked, expired and used-up tokens

        Raises:
            PermissionDeniedError: ``requested_by`` is not ``subject_id``
        """
        self._require_text("subject_id", subject_id)
        self._require_text("requested_by", requested_by)
        if requested_by != subject_id:
            raise PermissionDeniedError("list", "tokens")

        now = self.clock()
        records, consumers = self._run("list_tokens", partial(self._list_once, subject_id, scope))
        tokens = [
            TokenRead.from_record(record, now, consumers[record.id]) for record in records
        ]
        if not include_inactive:
            tokens = [t for t in tokens if t.status == TokenStatus.ACTIVE]
        return tokens

    @operation()
    def get_token(self, token_id: str, requested_by: str) -> TokenRead:
        """
        Get one token for its owner.

        Raises:
            TokenNotFoundError: No such token
            PermissionDeniedError: ``requested_by`` does not own it
        """
        self._require_text("token_id", token_id, Limits.MAX_TOKEN_ID_LENGTH)
        self._require_text("requested_by", requested_by)

        record, consumers = self._run("get_token", partial(self._get_once, token_id))
        if record is None:
            raise TokenNotFoundError(token_preview=token_preview(token_id))
        if record.subject_id != requested_by:
            raise PermissionDeniedError("read", "token", token_preview=token_preview(token_id))
        return TokenRead.from_record(record, self.clock(), consumers)

    def _list_once(self, subject_id, scope):
        with self.db_manager.session_scope() as session:
            repo = TokenRepository(session)
            records = repo.list_for_subject(subject_id, scope)
            return records, repo.list_consumers([record.id for record in records])

    def _get_once(self, token_id):
        with self.db_manager.session_scope() as session:
            repo = TokenRepository(session)
            record = repo.get(token_id)
            if record is None:
                return None, []
            return record, repo.list_consumers([token_id])[token_id]
