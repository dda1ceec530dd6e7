"""Tests for the operation decorator and context manager."""

from unittest.mock import Mock

import pytest

from scoped_token_core.context.operation_context import (
    OperationContext,
    OperationHandler,
    operation,
)
from scoped_token_core.exceptions import (
    TokenRevokedError,
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)


class ServiceForTesting:
    @operation()
    def succeed(self, value):
        return value * 2

    @operation
    def bare(self):
        return get_correlation_id()

    @operation("custom.name")
    def reject(self):
        raise TokenRevokedError()

    @operation()
    def revoked(self):
        raise TokenRevokedError()

    @operation()
    def crash(self):
        raise ValueError("unexpected")


class TestOperationContext:
    def test_generates_and_owns_correlation_id(self):
        ctx = OperationContext("op")
        try:
            assert ctx.owns_correlation_id
            assert get_correlation_id() == ctx.correlation_id
        finally:
            clear_correlation_id()

    def test_reuses_existing_correlation_id(self):
        set_correlation_id("request-1")
        try:
            ctx = OperationContext("op")
            assert ctx.correlation_id == "request-1"
            assert not ctx.owns_correlation_id
        finally:
            clear_correlation_id()


class TestOperationHandler:
    def test_logs_enter_and_exit(self):
        logger = Mock()
        with OperationHandler(logger).operation("issue", scope="read_health_record"):
            pass

        messages = [c.args[0] for c in logger.info.call_args_list]
        assert messages == ["ENTER: issue", "EXIT: issue"]
        exit_extra = logger.info.call_args_list[1].kwargs["extra"]
        assert exit_extra["status"] == "success"
        assert exit_extra["scope"] == "read_health_record"

    def test_client_errors_logged_at_info_and_enriched(self):
        logger = Mock()
        with pytest.raises(TokenRevokedError) as exc_info:
            with OperationHandler(logger).operation("validate"):
                raise TokenRevokedError()

        assert exc_info.value.context["operation_name"] == "validate"
        assert logger.info.call_args_list[-1].args[0] == "ERROR: validate -> Revoked: Token has been revoked"
        logger.error.assert_not_called()

    def test_unexpected_errors_logged_with_traceback(self):
        logger = Mock()
        with pytest.raises(KeyError):
            with OperationHandler(logger).operation("resolve"):
                raise KeyError("x")
        logger.exception.assert_called_once()

    def test_clears_owned_correlation_id(self):
        with OperationHandler(Mock()).operation("op"):
            assert get_correlation_id() is not None
        assert get_correlation_id() is None


class TestOperationDecorator:
    def test_returns_result(self):
        assert ServiceForTesting().succeed(21) == 42

    def test_without_parentheses(self):
        assert ServiceForTesting().bare() is not None
        assert get_correlation_id() is None

    def test_propagates_domain_errors(self):
        with pytest.raises(TokenRevokedError) as exc_info:
            ServiceForTesting().reject()
        assert exc_info.value.context["operation_name"] == "custom.name"

    def test_default_name_includes_class(self):
        with pytest.raises(TokenRevokedError) as exc_info:
            ServiceForTesting().revoked()
        assert exc_info.value.context["operation_name"] == (
            "test_operation_context.ServiceForTesting.revoked"
        )

    def test_propagates_unexpected_errors(self):
        with pytest.raises(ValueError):
            ServiceForTesting().crash()
