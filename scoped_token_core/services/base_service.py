"""
Base service implementation with common functionality for all token services.

Services hold no per-request state: each public call opens its own session
from the DatabaseManager and runs it through the bounded retry helper.
"""

from datetime import datetime
from typing import Any, Callable, Optional, TypeVar

from ..config import AppConfig, get_config
from ..constants import Limits
from ..db.db_config import DatabaseManager, get_db_manager
from ..exceptions import validation_failed
from ..utils.logger import get_logger
from ..utils.retry_utils import run_with_retries
from ..utils.token_utils import utc_now

T = TypeVar("T")


class BaseTokenService:
    """Base service with the shared collaborators of all token services."""

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        config: Optional[AppConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the base service.

        Args:
            db_manager: Database manager (default: the global one)
            config: Application config (default: the global one)
            clock: Returns the current aware UTC time (injectable for tests)
        """
        self._db_manager = db_manager
        self.config = config or get_config()
        self.clock = clock or utc_now
        self.logger = get_logger()

    @property
    def db_manager(self) -> DatabaseManager:
        return self._db_manager or get_db_manager()

    def _run(
        self, operation_name: str, attempt: Callable[[], T], retry_on_conflict: bool = False
    ) -> T:
        """Run one storage attempt with the configured retry bounds."""
        return run_with_retries(
            operation_name,
            attempt,
            retry_config=self.config.retry,
            retry_on_conflict=retry_on_conflict,
        )

    @staticmethod
    def _require_text(field: str, value: Any, max_length: int = Limits.MAX_SUBJECT_ID_LENGTH) -> str:
        """Reject missing, blank, non-string or over-long identifiers."""
        if not isinstance(value, str) or not value.strip():
            raise validation_failed(field, value, "must be a non-empty string")
        if len(value) > max_length:
            raise validation_failed(field, value[:max_length] + "...", f"longer than {max_length}")
        return value
