"""Tests for token id, expiry and timestamp helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from scoped_token_core.utils.token_utils import ensure_utc, expiry_from_ttl, generate_token_id

EXPIRES = datetime(2026, 3, 8, 9, 0, tzinfo=timezone.utc)


class TestTokenUtils:
    def test_generate_token_id_shape(self):
        token_id = generate_token_id()
        # 16 bytes of url-safe base64 without padding
        assert len(token_id) == 22
        assert all(c.isalnum() or c in "-_" for c in token_id)

    def test_ensure_utc_naive(self):
        naive = datetime(2026, 1, 1, 12, 0)
        assert ensure_utc(naive) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_ensure_utc_converts_offsets(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        value = ensure_utc(datetime(2026, 1, 1, 17, 30, tzinfo=ist))
        assert value == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert value.tzinfo == timezone.utc

    def test_ensure_utc_none(self):
        assert ensure_utc(None) is None

    def test_expiry_from_ttl(self):
        assert expiry_from_ttl(EXPIRES, 3600) == EXPIRES + timedelta(hours=1)


@pytest.mark.slow
def test_one_million_token_ids_are_unique():
    ids = {generate_token_id() for _ in range(1_000_000)}
    assert len(ids) == 1_000_000
