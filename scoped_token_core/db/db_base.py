"""
Shared column types and mixins.

Keeps the cross-database compatibility (SQLite for tests, PostgreSQL in
production) in one place.
"""

import json

from pydantic_core import to_jsonable_python
from sqlalchemy import Column, DateTime, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator

from ..utils.token_utils import utc_now


class JSON(TypeDecorator):
    """Cross-database JSON type for SQLite/PostgreSQL compatibility."""

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        else:
            return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value
        else:
            return json.dumps(to_jsonable_python(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value
        else:
            return json.loads(value)


class CreatedAtMixin:
    """Immutable creation timestamp."""

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)


__all__ = ["JSON", "CreatedAtMixin", "utc_now"]
