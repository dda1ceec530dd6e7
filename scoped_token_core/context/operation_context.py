"""
Operation context for handling cross-cutting concerns.

This module provides context management for service operations: ENTER/EXIT
logging, duration measurement, correlation ids and error enrichment.
"""

import time
import uuid
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Optional, TypeVar, Union

from ..exceptions import BaseError, clear_correlation_id, get_correlation_id, set_correlation_id
from ..utils.logger import ContextAwareLogger, get_logger


class OperationContext:
    """Context for a specific operation."""

    def __init__(self, operation_name: str, correlation_id: Optional[str] = None, **context):
        self.operation_name = operation_name
        self.operation_id = str(uuid.uuid4())

        existing = get_correlation_id()
        self.owns_correlation_id = correlation_id is None and existing is None
        self.correlation_id = correlation_id or existing or str(uuid.uuid4())

        # Child operations and errors pick the id up from thread-local storage
        set_correlation_id(self.correlation_id)

        self.context = context
        self.context["operation_id"] = self.operation_id
        self.context["correlation_id"] = self.correlation_id

        self.start_time = time.time()

    @property
    def duration_ms(self) -> float:
        """Get the operation duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


class OperationHandler:
    """Handles operation logging and error enrichment."""

    def __init__(self, logger: Optional[ContextAwareLogger] = None):
        self.logger = logger if logger is not None else get_logger()

    @contextmanager
    def operation(self, name: str, **context):
        """Context manager for operations."""
        op_ctx = OperationContext(name, **context)

        self.logger.info(
            f"ENTER: {name}",
            extra={
                **context,
                "operation_id": op_ctx.operation_id,
                "correlation_id": op_ctx.correlation_id,
            },
        )

        try:
            yield op_ctx

            self.logger.info(
                f"EXIT: {name}",
                extra={
                    **context,
                    "operation_id": op_ctx.operation_id,
                    "correlation_id": op_ctx.correlation_id,
                    "duration_ms": round(op_ctx.duration_ms, 2),
                    "status": "success",
                },
            )

        except BaseError as e:
            # Our exceptions - enrich with operation context
            e.add_context(
                operation_name=name,
                operation_id=op_ctx.operation_id,
                operation_duration_ms=op_ctx.duration_ms,
            )

            # BaseError already logged itself; 4xx outcomes are expected traffic
            log = self.logger.error if e.status_code >= 500 else self.logger.info
            log(
                f"ERROR: {name} -> {e.kind}: {e.message}",
                extra={
                    **context,
                    "operation_id": op_ctx.operation_id,
                    "correlation_id": op_ctx.correlation_id,
                    "duration_ms": round(op_ctx.duration_ms, 2),
                    "error_id": e.error_id,
                    "error_code": e.error_code.value,
                    "status": "error",
                },
            )
            raise

        except Exception as e:
            self.logger.exception(
                f"ERROR: {name} -> {type(e).__name__}: {str(e)}",
                extra={
                    **context,
                    "operation_id": op_ctx.operation_id,
                    "correlation_id": op_ctx.correlation_id,
                    "duration_ms": round(op_ctx.duration_ms, 2),
                    "error_type": type(e).__name__,
                    "status": "error",
                },
            )
            raise

        finally:
            if op_ctx.owns_correlation_id:
                clear_correlation_id()


F = TypeVar("F", bound=Callable[..., Any])


def operation(name: Union[Optional[str], Callable] = None):
    """
    Decorator for service operations.

    Arguments are never logged: they routinely contain live token ids.

    Args:
        name: Optional operation name. If not provided, one is built from the
             module, class and function names.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            if isinstance(name, str):
                op_name = name
            else:
                op_name = func.__name__
                if args and hasattr(args[0], "__class__"):
                    op_name = f"{args[0].__class__.__name__}.{op_name}"
                op_name = f"{func.__module__.split('.')[-1]}.{op_name}"

            handler = OperationHandler()
            with handler.operation(op_name, source_module=func.__module__):
                return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    # Handle usage as @operation (without parentheses)
    if callable(name):
        func = name
        name = None
        return decorator(func)

    return decorator
