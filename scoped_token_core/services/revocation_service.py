"""Owner-initiated token revocation."""

from datetime import datetime
from functools import partial

from ..constants import Limits
from ..context.operation_context import operation
from ..exceptions import PermissionDeniedError, TokenNotFoundError
from ..repositories.token_repository import TokenRepository
from ..utils.logger import token_preview
from .base_service import BaseTokenService


class RevocationService(BaseTokenService):
    @operation()
    def revoke(self, token_id: str, requested_by: str) -> None:
        """
        Permanently deactivate a token.

        Idempotent for the owner: revoking an already revoked (or expired)
        token succeeds without changing anything.

        Raises:
            InvalidArgumentError: Blank identifiers
            TokenNotFoundError: No such token
            PermissionDeniedError: ``requested_by`` is not the token's subject
        """
        self._require_text("token_id", token_id, Limits.MAX_TOKEN_ID_LENGTH)
        self._require_text("requested_by", requested_by)

        changed = self._run("revoke_token", partial(self._revoke_once, token_id, requested_by))

        self.logger.info(
            "Token revoked" if changed else "Token already inactive",
            extra={"token_preview": token_preview(token_id), "requested_by": requested_by},
        )

    def _revoke_once(self, token_id: str, requested_by: str) -> bool:
        now: datetime = self.clock()
        with self.db_manager.session_scope() as session:
            repo = TokenRepository(session)
            identity = repo.get_subject_and_scope(token_id)
            if identity is None:
                raise TokenNotFoundError(token_preview=token_preview(token_id))

            subject_id, _ = identity
            if subject_id != requested_by:
                raise PermissionDeniedError(
                    "revoke", "token", token_preview=token_preview(token_id)
                )

            return repo.set_inactive(token_id, requested_by, now)
