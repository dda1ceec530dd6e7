"""Storage access for tokens and clinic records."""

from .record_store import RecordStore, SqlRecordStore
from .token_repository import TokenRepository, consume_mutation, usable_predicate

__all__ = [
    "RecordStore",
    "SqlRecordStore",
    "TokenRepository",
    "consume_mutation",
    "usable_predicate",
]
