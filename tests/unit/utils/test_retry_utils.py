"""Tests for bounded retry with exponential backoff."""

from unittest.mock import Mock

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from scoped_token_core.config import RetryConfig
from scoped_token_core.exceptions import (
    RetryableConflictError,
    StorageUnavailableError,
    TokenExpiredError,
)
from scoped_token_core.utils.retry_utils import (
    calculate_exponential_backoff,
    is_transient,
    run_with_retries,
)


def _operational_error():
    return OperationalError("UPDATE access_tokens", {}, Exception("database is locked"))


class TestCalculateExponentialBackoff:
    def test_progression_without_jitter(self):
        delays = [
            calculate_exponential_backoff(n, base_delay=0.05, max_delay=1.0, jitter=False)
            for n in range(6)
        ]
        assert delays == [0.05, 0.1, 0.2, 0.4, 0.8, 1.0]

    def test_jitter_stays_within_bounds(self):
        for _ in range(100):
            delay = calculate_exponential_backoff(2, base_delay=0.05, max_delay=1.0)
            assert 0.15 <= delay <= 0.25

    def test_never_below_base_delay(self):
        for _ in range(100):
            assert calculate_exponential_backoff(0, base_delay=0.05) >= 0.05

    def test_negative_retry_count(self):
        assert calculate_exponential_backoff(-1, base_delay=0.3) == 0.3


class TestIsTransient:
    def test_operational_error(self):
        assert is_transient(_operational_error())

    def test_pool_timeout(self):
        assert is_transient(PoolTimeoutError("QueuePool limit reached"))

    def test_invalidated_connection(self):
        error = DBAPIError("SELECT 1", {}, Exception("server closed"), connection_invalidated=True)
        assert is_transient(error)

    def test_integrity_error_is_not_transient(self):
        assert not is_transient(IntegrityError("INSERT", {}, Exception("UNIQUE")))

    def test_domain_error_is_not_transient(self):
        assert not is_transient(ValueError("nope"))


class TestRunWithRetries:
    @pytest.fixture
    def retry_config(self):
        return RetryConfig(max_attempts=3, base_delay=0.01, max_delay=0.1, jitter=False)

    def test_returns_first_success(self, retry_config):
        sleep = Mock()
        assert run_with_retries("op", lambda: 42, retry_config, sleep=sleep) == 42
        sleep.assert_not_called()

    def test_retries_transient_then_succeeds(self, retry_config):
        func = Mock(side_effect=[_operational_error(), _operational_error(), "ok"])
        sleep = Mock()

        assert run_with_retries("op", func, retry_config, sleep=sleep) == "ok"
        assert func.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [0.01, 0.02]

    def test_exhausted_retries_surface_unavailable(self, retry_config):
        func = Mock(side_effect=_operational_error())

        with pytest.raises(StorageUnavailableError) as exc_info:
            run_with_retries("validate_and_consume", func, retry_config, sleep=Mock())

        assert func.call_count == 3
        assert exc_info.value.kind == "Unavailable"
        assert isinstance(exc_info.value.cause, OperationalError)

    def test_domain_errors_are_not_retried(self, retry_config):
        func = Mock(side_effect=TokenExpiredError())

        with pytest.raises(TokenExpiredError):
            run_with_retries("op", func, retry_config, sleep=Mock())
        assert func.call_count == 1

    def test_conflict_propagates_by_default(self, retry_config):
        func = Mock(side_effect=RetryableConflictError())

        with pytest.raises(RetryableConflictError):
            run_with_retries("op", func, retry_config, sleep=Mock())
        assert func.call_count == 1

    def test_conflict_retried_when_enabled(self, retry_config):
        func = Mock(side_effect=[RetryableConflictError(), "granted"])

        result = run_with_retries("op", func, retry_config, retry_on_conflict=True, sleep=Mock())
        assert result == "granted"
        assert func.call_count == 2
