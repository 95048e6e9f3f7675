"""Pytest fixtures for API tests.

Provides a test client bound to an in-memory database and a session
manager wired to the fake repository and responder.
"""

from collections.abc import Generator
from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.api.dependencies import set_manager_instance
from src.api.main import app
from src.db.connection import get_db
from src.db.models import Base
from src.services.conversation_persistence_service import ScopedConversationStore
from src.services.session_flags import ScopedSessionFlagStore
from src.services.session_manager import ConversationSessionManager
from tests.helpers import FakeResponder


@pytest.fixture
def test_db() -> Generator[Session, None, None]:
    """Create an in-memory SQLite database for testing.

    Creates all tables, yields a session, and cleans up after test.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def responder() -> FakeResponder:
    """Assistant stand-in; tests append replies to ``responder.replies``."""
    return FakeResponder()


@pytest.fixture
def manager(
    executor, resolver, responder, test_db: Session
) -> Generator[ConversationSessionManager, None, None]:
    """Process-wide session manager for the app under test.

    Its stores write through the test database, one context per write.
    """

    @contextmanager
    def session_factory():
        yield test_db

    manager = ConversationSessionManager(
        executor,
        resolver,
        responder=responder,
        store=ScopedConversationStore(session_factory),
        flags=ScopedSessionFlagStore(session_factory),
    )
    set_manager_instance(manager)
    yield manager
    set_manager_instance(None)


@pytest.fixture
def client(test_db: Session, manager: ConversationSessionManager) -> Generator[TestClient, None, None]:
    """Create a TestClient with overridden database dependency.

    Args:
        test_db: Test database session fixture.
        manager: Session manager installed for the app.

    Yields:
        TestClient configured for testing.
    """

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
