"""Context management for cross-cutting concerns."""

from .operation_context import OperationContext, OperationHandler, operation

__all__ = ["OperationContext", "OperationHandler", "operation"]
