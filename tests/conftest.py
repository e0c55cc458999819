"""Pytest fixtures for testing"""

import pytest
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from gestor_finance.api.dependencies import get_notifier
from gestor_finance.api.main import create_app
from gestor_finance.infrastructure.database.models import Base
from gestor_finance.infrastructure.database.session import get_db
from gestor_finance.infrastructure.database.store import InMemoryRecordStore, SqlRecordStore
from tests.builders import RecordingNotifier, material_record, seed_collections, service_record


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


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
    """Create FastAPI test client with test database and a recording notifier"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    return TestClient(app)


@pytest.fixture
def sql_store(db: Session) -> SqlRecordStore:
    return SqlRecordStore(db)


@pytest.fixture
def store() -> InMemoryRecordStore:
    """In-memory store with one client, two unpaid services and one material"""
    return InMemoryRecordStore(
        seed_collections(
            services=[
                service_record("svc-1", 100000),
                service_record("svc-2", 30000),
            ],
            materials=[material_record("mat-1", stock=10)],
        )
    )
