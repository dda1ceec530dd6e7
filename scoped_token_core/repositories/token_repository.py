"""
Token store backed by SQLAlchemy.

Every state change is a single conditional UPDATE evaluated by the database,
so concurrent callers on separate instances can never both pass a check that
only one of them should pass. The repository flushes but never commits; the
calling service owns the transaction boundary.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from ..constants import TokenScope
from ..db.db_token_models import AccessToken, TokenAccessLog
from ..exceptions import RetryableConflictError
from ..schemas.token_schemas import TokenRecord
from ..utils.logger import get_logger, token_preview


def usable_predicate(
    now: datetime, expected_subject_id: Optional[str] = None
) -> List[ColumnElement]:
    """
    SQL conditions that hold exactly when a token is usable at ``now``.

    Mirrors TokenRecord.rejection_for so the database and the diagnosis agree.
    """
    conditions: List[ColumnElement] = [
        AccessToken.is_active.is_(True),
        AccessToken.expires_at > now,
        (AccessToken.max_uses.is_(None)) | (AccessToken.use_count < AccessToken.max_uses),
    ]
    if expected_subject_id is not None:
        conditions.append(AccessToken.subject_id == expected_subject_id)
    return conditions


def consume_mutation() -> Dict[str, Any]:
    """Values applied by a successful consumption."""
    return {"use_count": AccessToken.use_count + 1}


class TokenRepository:
    """
    Repository for access tokens and their access log.

    Provides the four store primitives (get, insert_if_absent,
    compare_and_update, set_inactive) plus the audit and listing queries the
    services need.
    """

    def __init__(self, session: Session):
        self.session = session
        self.logger = get_logger()

    def get(self, token_id: str) -> Optional[TokenRecord]:
        """Read a token snapshot by its exact id; the access log is not touched."""
        token = self.session.execute(
            select(AccessToken)
            .where(AccessToken.id == token_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if token is None:
            return None
        return TokenRecord.model_validate(token)

    def get_subject_and_scope(self, token_id: str) -> Optional[Tuple[str, TokenScope]]:
        """Read only the immutable identity of a token."""
        row = self.session.execute(
            select(AccessToken.subject_id, AccessToken.scope).where(AccessToken.id == token_id)
        ).one_or_none()
        if row is None:
            return None
        return row.subject_id, row.scope

    def insert_if_absent(
        self,
        token_id: str,
        subject_id: str,
        scope: TokenScope,
        created_at: datetime,
        expires_at: datetime,
        max_uses: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TokenRecord:
        """
        Insert a new token with ``use_count = 0`` and ``is_active = True``.

        Raises:
            RetryableConflictError: A token with this id already exists
        """
        token = AccessToken(
            id=token_id,
            subject_id=subject_id,
            scope=scope,
            created_at=created_at,
            expires_at=expires_at,
            max_uses=max_uses,
            use_count=0,
            is_active=True,
            token_metadata=metadata,
        )
        self.session.add(token)
        try:
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            if self._exists(token_id):
                raise RetryableConflictError(
                    "Token id collision on insert",
                    cause=e,
                    token_preview=token_preview(token_id),
                ) from e
            raise

        self.logger.debug(
            "Token inserted",
            extra={
                "token_preview": token_preview(token_id),
                "subject_id": subject_id,
                "scope": scope.value,
            },
        )
        return TokenRecord.model_validate(token)

    def compare_and_update(
        self,
        token_id: str,
        predicate: Sequence[ColumnElement],
        mutation: Dict[str, Any],
    ) -> bool:
        """
        Apply ``mutation`` only if ``predicate`` holds, atomically.

        Returns:
            True if the row matched and was updated
        """
        result = self.session.execute(
            update(AccessToken)
            .where(AccessToken.id == token_id, *predicate)
            .values(**mutation)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def set_inactive(self, token_id: str, requested_by: str, now: datetime) -> bool:
        """
        Deactivate a token on behalf of its owner.

        Only flips active rows, so ``revoked_at``/``revoked_by`` record the
        first effective revocation and repeated calls change nothing.

        Returns:
            True if this call performed the transition
        """
        return self.compare_and_update(
            token_id,
            [AccessToken.subject_id == requested_by, AccessToken.is_active.is_(True)],
            {"is_active": False, "revoked_at": now, "revoked_by": requested_by},
        )

    def append_access(self, token_id: str, consumer_id: str, accessed_at: datetime) -> int:
        """Append one access-log entry and return its id."""
        entry = TokenAccessLog(token_id=token_id, consumer_id=consumer_id, accessed_at=accessed_at)
        self.session.add(entry)
        self.session.flush()
        return entry.id

    def get_access_entry_token_id(self, entry_id: int) -> Optional[str]:
        return self.session.execute(
            select(TokenAccessLog.token_id).where(TokenAccessLog.id == entry_id)
        ).scalar_one_or_none()

    def mark_access_redeemed(self, entry_id: int, token_id: str, now: datetime) -> bool:
        """
        Spend an access-log entry exactly once.

        Returns:
            True if this call redeemed the entry
        """
        result = self.session.execute(
            update(TokenAccessLog)
            .where(
                TokenAccessLog.id == entry_id,
                TokenAccessLog.token_id == token_id,
                TokenAccessLog.redeemed_at.is_(None),
            )
            .values(redeemed_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def list_for_subject(
        self, subject_id: str, scope: Optional[TokenScope] = None
    ) -> List[TokenRecord]:
        """All tokens owned by ``subject_id``, newest first."""
        query = select(AccessToken).where(AccessToken.subject_id == subject_id)
        if scope is not None:
            query = query.where(AccessToken.scope == scope)
        query = query.order_by(AccessToken.created_at.desc())
        tokens = self.session.execute(query).scalars().all()
        return [TokenRecord.model_validate(token) for token in tokens]

    def list_consumers(self, token_ids: Sequence[str]) -> Dict[str, List[str]]:
        """Consumer ids from the access log, in log order, keyed by token id."""
        consumers: Dict[str, List[str]] = {token_id: [] for token_id in token_ids}
        if not consumers:
            return consumers
        rows = self.session.execute(
            select(TokenAccessLog.token_id, TokenAccessLog.consumer_id)
            .where(TokenAccessLog.token_id.in_(list(consumers)))
            .order_by(TokenAccessLog.id)
        )
        for row in rows:
            consumers[row.token_id].append(row.consumer_id)
        return consumers

    def _exists(self, token_id: str) -> bool:
        return (
            self.session.execute(
                select(AccessToken.id).where(AccessToken.id == token_id)
            ).scalar_one_or_none()
            is not None
        )
