"""Pytest fixtures for testing"""

import pytest
from decimal import Decimal
from typing import Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from ledgerdesk.api.dependencies import get_notifier
from ledgerdesk.api.main import create_app
from ledgerdesk.domain.models import ScheduleKind, ScheduleRecord
from ledgerdesk.domain.mutations import new_schedule
from ledgerdesk.infrastructure.database.models import Base
from ledgerdesk.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test_ledgerdesk.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

OWNER = "owner-a"


class RecordingNotifier:
    """Stands in for the webhook client and remembers what it was asked to publish"""

    def __init__(self):
        self.events: List[dict] = []

    async def publish(self, collection, record_id, operation, owner_id) -> None:
        self.events.append(
            {"collection": collection, "record_id": record_id, "operation": operation, "owner_id": owner_id}
        )


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(db: Session, notifier: RecordingNotifier) -> TestClient:
    """Create FastAPI test client with test database and owner header"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    return TestClient(app, headers={"X-Owner-ID": OWNER})


@pytest.fixture
def weekly_loan() -> ScheduleRecord:
    """4 weekly installments of a 1000 loan starting Monday 2024-01-01"""
    return new_schedule(
        ScheduleKind.LOAN,
        principal=Decimal("1000"),
        event_count=4,
        schedule_start="2024-01-01",
        frequency_days=7,
        client="Acme Ltd",
    )


@pytest.fixture
def weekly_reserve() -> ScheduleRecord:
    """1000 reserve deducted in 4 weekly steps from 2024-01-01"""
    return new_schedule(
        ScheduleKind.RESERVE,
        principal=Decimal("1000"),
        event_count=4,
        schedule_start="2024-01-01",
        frequency_days=7,
        client="Beta LLC",
    )
