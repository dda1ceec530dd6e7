"""Tests for TokenRepository against a real SQLite database."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from scoped_token_core.constants import TokenScope
from scoped_token_core.db import TokenAccessLog
from scoped_token_core.exceptions import RetryableConflictError
from scoped_token_core.repositories.token_repository import (
    TokenRepository,
    consume_mutation,
    usable_predicate,
)
from scoped_token_core.utils.token_utils import ensure_utc

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def insert_token(db_manager):
    """Insert a token directly through the repository and return its record."""

    def _insert(token_id="tok-1", subject_id="patient-001", ttl=3600, max_uses=None, **kwargs):
        with db_manager.session_scope() as session:
            return TokenRepository(session).insert_if_absent(
                token_id=token_id,
                subject_id=subject_id,
                scope=kwargs.get("scope", TokenScope.READ_HEALTH_RECORD),
                created_at=NOW,
                expires_at=NOW + timedelta(seconds=ttl),
                max_uses=max_uses,
                metadata=kwargs.get("metadata"),
            )

    return _insert


def _consume(db_manager, token_id, now=NOW, expected_subject_id=None):
    with db_manager.session_scope() as session:
        return TokenRepository(session).compare_and_update(
            token_id, usable_predicate(now, expected_subject_id), consume_mutation()
        )


def _get(db_manager, token_id):
    with db_manager.session_scope() as session:
        return TokenRepository(session).get(token_id)


class TestInsertAndGet:
    def test_insert_sets_initial_state(self, insert_token):
        record = insert_token(max_uses=3, metadata={"note": "for Dr. Rao"})

        assert record.use_count == 0
        assert record.is_active is True
        assert record.max_uses == 3

    def test_get_round_trips_utc(self, db_manager, insert_token):
        insert_token(ttl=60, metadata={"note": "x"})
        record = _get(db_manager, "tok-1")

        assert record.created_at == NOW
        assert record.expires_at == NOW + timedelta(seconds=60)
        assert record.expires_at.tzinfo == timezone.utc
        assert record.scope == TokenScope.READ_HEALTH_RECORD
        assert record.token_metadata == {"note": "x"}

    def test_get_unknown_returns_none(self, db_manager):
        assert _get(db_manager, "missing") is None

    def test_get_subject_and_scope(self, db_manager, insert_token):
        insert_token(scope=TokenScope.BOOKING_WITH_DOCTOR, subject_id="doctor-042")
        with db_manager.session_scope() as session:
            assert TokenRepository(session).get_subject_and_scope("tok-1") == (
                "doctor-042",
                TokenScope.BOOKING_WITH_DOCTOR,
            )
            assert TokenRepository(session).get_subject_and_scope("nope") is None

    def test_duplicate_id_raises_retryable_conflict(self, insert_token):
        insert_token()
        with pytest.raises(RetryableConflictError):
            insert_token(subject_id="someone-else")

    def test_constraint_violation_is_not_a_conflict(self, insert_token):
        with pytest.raises(IntegrityError):
            insert_token(max_uses=0)


class TestCompareAndUpdate:
    def test_consume_increments_use_count(self, db_manager, insert_token):
        insert_token(max_uses=2)

        assert _consume(db_manager, "tok-1") is True
        assert _get(db_manager, "tok-1").use_count == 1

    def test_stops_at_max_uses(self, db_manager, insert_token):
        insert_token(max_uses=2)

        assert [_consume(db_manager, "tok-1") for _ in range(3)] == [True, True, False]
        assert _get(db_manager, "tok-1").use_count == 2

    def test_unlimited_uses(self, db_manager, insert_token):
        insert_token(max_uses=None)
        assert all(_consume(db_manager, "tok-1") for _ in range(5))
        assert _get(db_manager, "tok-1").use_count == 5

    def test_expired_at_exact_expiry(self, db_manager, insert_token):
        insert_token(ttl=60)

        assert _consume(db_manager, "tok-1", now=NOW + timedelta(seconds=59)) is True
        assert _consume(db_manager, "tok-1", now=NOW + timedelta(seconds=60)) is False

    def test_subject_predicate(self, db_manager, insert_token):
        insert_token()

        assert _consume(db_manager, "tok-1", expected_subject_id="patient-999") is False
        assert _consume(db_manager, "tok-1", expected_subject_id="patient-001") is True

    def test_unknown_id(self, db_manager):
        assert _consume(db_manager, "missing") is False


class TestSetInactive:
    def test_first_revocation_records_who_and_when(self, db_manager, insert_token):
        insert_token()
        with db_manager.session_scope() as session:
            assert TokenRepository(session).set_inactive("tok-1", "patient-001", NOW) is True

        record = _get(db_manager, "tok-1")
        assert record.is_active is False
        assert record.revoked_by == "patient-001"
        assert record.revoked_at == NOW

    def test_second_revocation_changes_nothing(self, db_manager, insert_token):
        insert_token()
        later = NOW + timedelta(hours=1)
        with db_manager.session_scope() as session:
            TokenRepository(session).set_inactive("tok-1", "patient-001", NOW)
        with db_manager.session_scope() as session:
            assert TokenRepository(session).set_inactive("tok-1", "patient-001", later) is False

        assert _get(db_manager, "tok-1").revoked_at == NOW

    def test_only_owner_matches(self, db_manager, insert_token):
        insert_token()
        with db_manager.session_scope() as session:
            assert TokenRepository(session).set_inactive("tok-1", "intruder", NOW) is False
        assert _get(db_manager, "tok-1").is_active is True

    def test_revoked_token_cannot_be_consumed(self, db_manager, insert_token):
        insert_token()
        with db_manager.session_scope() as session:
            TokenRepository(session).set_inactive("tok-1", "patient-001", NOW)
        assert _consume(db_manager, "tok-1") is False


class TestAccessLog:
    def test_append_orders_entries(self, db_manager, insert_token):
        insert_token()
        with db_manager.session_scope() as session:
            repo = TokenRepository(session)
            first = repo.append_access("tok-1", "dr-rao", NOW)
            second = repo.append_access("tok-1", "front-desk", NOW + timedelta(minutes=1))

        assert second > first
        with db_manager.session_scope() as session:
            assert TokenRepository(session).list_consumers(["tok-1", "tok-2"]) == {
                "tok-1": ["dr-rao", "front-desk"],
                "tok-2": [],
            }

    def test_redeem_entry_once(self, db_manager, insert_token):
        insert_token()
        with db_manager.session_scope() as session:
            entry_id = TokenRepository(session).append_access("tok-1", "kiosk", NOW)

        with db_manager.session_scope() as session:
            repo = TokenRepository(session)
            assert repo.get_access_entry_token_id(entry_id) == "tok-1"
            assert repo.mark_access_redeemed(entry_id, "tok-1", NOW) is True
            assert repo.mark_access_redeemed(entry_id, "tok-1", NOW) is False

        with db_manager.session_scope() as session:
            assert ensure_utc(session.get(TokenAccessLog, entry_id).redeemed_at) == NOW

    def test_redeem_requires_matching_token(self, db_manager, insert_token):
        insert_token()
        with db_manager.session_scope() as session:
            entry_id = TokenRepository(session).append_access("tok-1", "kiosk", NOW)
        with db_manager.session_scope() as session:
            assert TokenRepository(session).mark_access_redeemed(entry_id, "tok-2", NOW) is False


class TestListForSubject:
    def test_newest_first_filtered_by_scope(self, db_manager):
        with db_manager.session_scope() as session:
            repo = TokenRepository(session)
            for i, scope in enumerate(
                [TokenScope.READ_HEALTH_RECORD, TokenScope.BOOKING_WITH_DOCTOR, TokenScope.READ_HEALTH_RECORD]
            ):
                repo.insert_if_absent(
                    token_id=f"tok-{i}",
                    subject_id="patient-001",
                    scope=scope,
                    created_at=NOW + timedelta(minutes=i),
                    expires_at=NOW + timedelta(days=1),
                )
            repo.insert_if_absent(
                token_id="other",
                subject_id="patient-002",
                scope=TokenScope.READ_HEALTH_RECORD,
                created_at=NOW,
                expires_at=NOW + timedelta(days=1),
            )

        with db_manager.session_scope() as session:
            repo = TokenRepository(session)
            assert [r.id for r in repo.list_for_subject("patient-001")] == ["tok-2", "tok-1", "tok-0"]
            assert [
                r.id for r in repo.list_for_subject("patient-001", TokenScope.READ_HEALTH_RECORD)
            ] == ["tok-2", "tok-0"]
