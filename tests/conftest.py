"""
Test fixtures for the scoped token core.

This module provides shared test fixtures including database setup, a
controllable clock, service factories and seeded clinic records.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from scoped_token_core.config import AppConfig, RetryConfig, reset_config, set_config
from scoped_token_core.db import (
    DatabaseConfig,
    DatabaseManager,
    Doctor,
    Patient,
    import_all_models,
    set_db_manager,
)
from scoped_token_core.exceptions import clear_correlation_id
from scoped_token_core.services import (
    BookingService,
    ResourceGateway,
    RevocationService,
    TokenIssuerService,
    TokenQueryService,
    TokenValidatorService,
)


class FakeClock:
    """Deterministic replacement for utc_now."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def app_config() -> AppConfig:
    """Global config with fast, deterministic retries."""
    config = AppConfig(
        retry=RetryConfig(max_attempts=3, base_delay=0.001, max_delay=0.01, jitter=False)
    )
    set_config(config)
    clear_correlation_id()
    yield config
    reset_config()
    clear_correlation_id()


@pytest.fixture
def db_manager(app_config) -> DatabaseManager:
    """Fresh SQLite in-memory database with all tables for each test."""
    import_all_models()
    manager = DatabaseManager(
        DatabaseConfig(db_type="sqlite", database=":memory:", development_mode=True)
    )
    manager.create_tables()
    set_db_manager(manager)

    yield manager

    set_db_manager(None)
    manager.drop_tables()
    manager.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def issuer(db_manager, app_config, clock) -> TokenIssuerService:
    return TokenIssuerService(db_manager, app_config, clock)


@pytest.fixture
def validator(db_manager, app_config, clock) -> TokenValidatorService:
    return TokenValidatorService(db_manager, app_config, clock)


@pytest.fixture
def revocation(db_manager, app_config, clock) -> RevocationService:
    return RevocationService(db_manager, app_config, clock)


@pytest.fixture
def gateway(db_manager, app_config, clock) -> ResourceGateway:
    return ResourceGateway(db_manager, app_config, clock)


@pytest.fixture
def booking(db_manager, app_config, clock) -> BookingService:
    return BookingService(db_manager, app_config, clock)


@pytest.fixture
def token_query(db_manager, app_config, clock) -> TokenQueryService:
    return TokenQueryService(db_manager, app_config, clock)


@pytest.fixture
def patient(db_manager) -> Patient:
    """A patient with a profile, used as the subject of health-record tokens."""
    with db_manager.session_scope() as session:
        row = Patient(
            id="patient-001",
            full_name="Asha Verma",
            email="asha@example.com",
            phone="+91-98000-00001",
            date_of_birth=date(1988, 4, 12),
            gender="female",
            blood_group="B+",
            address="12 Lake Road, Pune",
            medical_conditions=["asthma"],
            allergies=["penicillin"],
            emergency_contact="Ravi Verma +91-98000-00002",
        )
        session.add(row)
    return row


@pytest.fixture
def doctor(db_manager) -> Doctor:
    """A doctor with a public profile, used as the subject of booking tokens."""
    with db_manager.session_scope() as session:
        row = Doctor(
            id="doctor-042",
            full_name="Dr. Meera Iyer",
            phone="+91-98000-00042",
            specialization="Pulmonology",
            qualification="MD",
            experience_years=14,
            consultation_fee=Decimal("800.00"),
            clinic_name="Breathe Clinic",
            clinic_address="7 MG Road, Pune",
            license_number="MH-PUL-55821",
        )
        session.add(row)
    return row
