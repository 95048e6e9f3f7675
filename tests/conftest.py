"""Root-level pytest fixtures for all tests.

Provides shared fixtures:
- Database fixtures (in-memory SQLite)
- Fake content repository and wired executor/resolver
- A fixed clock for recency-sensitive tests
"""

import os
import tempfile
from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path

# Keep the app's default SQLite file out of the user's data directory.
# Set before importing src.db, which binds its engine at import time.
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="studio-assistant-tests-")
os.environ.setdefault("STUDIO_ASSISTANT_DATA_DIR", _TEST_DATA_DIR)
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DATA_DIR}/test.db")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.db.models import Base
from src.orchestrator.actions.executor import ActionExecutor
from src.orchestrator.context.resolver import DocumentContextResolver
from src.services.content_operations import ContentOperations
from tests.helpers import FakeContentRepository

PROJECT_ROOT = Path(__file__).parent.parent


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests requiring external services"
    )


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """In-memory SQLite session with all tables created."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()


# ============================================================================
# Content Fixtures
# ============================================================================


@pytest.fixture
def fixed_now() -> datetime:
    """Reference 'now' used by recency-sensitive tests."""
    return datetime(2025, 3, 14, 15, 0, 0, tzinfo=UTC)


@pytest.fixture
def repository() -> FakeContentRepository:
    """In-memory content repository."""
    return FakeContentRepository()


@pytest.fixture
def executor(repository: FakeContentRepository) -> ActionExecutor:
    """Executor wired to the fake repository."""
    return ActionExecutor(ContentOperations(repository))


@pytest.fixture
def resolver(repository: FakeContentRepository) -> DocumentContextResolver:
    """Resolver wired to the fake repository."""
    return DocumentContextResolver(repository=repository)
