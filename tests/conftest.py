import os

# Keep the app away from any real database or bucket configured in the shell or a .env file
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.pop("RUN_MIGRATIONS", None)
os.environ.pop("AWS_S3_BUCKET_NAME", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from pool_manager.database import get_session  # noqa: E402
from pool_manager.main import app  # noqa: E402
from pool_manager.models.player import Player  # noqa: E402
from pool_manager.services.storage_service import get_storage_service  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. Use sqlite:///:memory: with StaticPool so ALL sessions share same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Tables are dropped after every test so schedules never leak between tests
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


def override_get_storage_service():
    """No bucket in tests; upload URLs come back empty"""
    return None


@pytest.fixture(name="session", scope="function")
def session_fixture():
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session and storage

    Overrides are set BEFORE TestClient() and stay in place for its lifetime.
    """
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_storage_service] = override_get_storage_service

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_player(session: Session):
    """Factory for persisted players"""

    def _make(name: str = "Player", ranking: int = 0, email: str = "") -> Player:
        player = Player(name=name, ranking=ranking, email=email)
        session.add(player)
        session.commit()
        session.refresh(player)
        return player

    return _make
