"""
SQLAlchemy models and database configuration.

This module provides a common entry point for all models.
"""

from .db_base import JSON, CreatedAtMixin, utc_now
from .db_config import (
    Base,
    DatabaseConfig,
    DatabaseManager,
    close_db,
    get_db_manager,
    get_production_config,
    import_all_models,
    initialize_db,
    set_db_manager,
)
from .db_record_models import Appointment, Doctor, Patient, Prescription
from .db_token_models import AccessToken, TokenAccessLog

__all__ = [
    # Base definitions
    "Base",
    "JSON",
    "CreatedAtMixin",
    "utc_now",
    # Configuration
    "DatabaseConfig",
    "DatabaseManager",
    "close_db",
    "get_db_manager",
    "get_production_config",
    "import_all_models",
    "initialize_db",
    "set_db_manager",
    # Models
    "AccessToken",
    "TokenAccessLog",
    "Appointment",
    "Doctor",
    "Patient",
    "Prescription",
]
