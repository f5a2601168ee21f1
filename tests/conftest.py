"""
Pytest configuration for slotbook.

Every test gets its own SQLite file under ``tmp_path`` so tests never share
state. SQLite transactions start with BEGIN IMMEDIATE, so a session that is
left inside a transaction blocks writers in other sessions; fixtures that
hand sessions to threads commit first.
"""

import os

# Set testing mode BEFORE any slotbook imports
os.environ["is_testing"] = "true"

from typing import Any, Callable, Dict, Iterator, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from slotbook.database import build_engine, get_db, init_db
from slotbook.main import app
from slotbook.models.provider import Provider
from slotbook.services.availability_service import AvailabilityService
from tests.scheduling_helpers import business_week


@pytest.fixture
def engine(tmp_path) -> Iterator[Engine]:
    test_engine = build_engine(f"sqlite:///{tmp_path / 'slotbook.db'}", pool_name="TEST")
    init_db(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )


@pytest.fixture
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def provider_factory(db: Session) -> Callable[..., Provider]:
    """Register a provider and publish a week (Mon-Fri 09:00-17:00 by default)."""

    def _create(
        timezone_name: str = "America/New_York",
        session_minutes: int = 60,
        week: Optional[Dict[str, Any]] = None,
        publish: bool = True,
    ) -> Provider:
        service = AvailabilityService(db)
        provider = service.register_provider(
            timezone=timezone_name, session_duration_minutes=session_minutes
        )
        if publish:
            service.save_weekly_availability(
                provider.id, week if week is not None else business_week()
            )
        return provider

    return _create


@pytest.fixture
def provider(provider_factory: Callable[..., Provider]) -> Provider:
    return provider_factory()


@pytest.fixture
def client(db: Session) -> Iterator[TestClient]:
    """API client whose requests run on the test session."""

    def _override_get_db() -> Iterator[Session]:
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
