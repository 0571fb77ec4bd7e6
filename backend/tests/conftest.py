import os

# Keep the app's own engine off disk; every request goes through the test engine
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from matchprogram.database import get_session  # noqa: E402
from matchprogram.main import app  # noqa: E402
from matchprogram.models.player import Category, Gender, Player  # noqa: E402
from matchprogram.services.court_model import Participant  # noqa: E402
from matchprogram.services.match_program import registry  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models MUST be imported before create_all() (see tests/__init__.py)
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables are dropped after every test; the in-memory registry is cleared too
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on fresh tables"""
    SQLModel.metadata.create_all(test_engine)
    registry.clear()

    with Session(test_engine) as session:
        yield session

    registry.clear()
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place for the
    entire duration so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


def make_participant(pid, gender=Gender.male, category=Category.double, name=None, max_rounds=None):
    """In-memory participant for pure-logic tests"""
    return Participant(
        id=pid,
        name=name or pid.upper(),
        gender=gender,
        primary_category=category,
        max_rounds=max_rounds,
    )


@pytest.fixture
def add_players(session: Session):
    """Factory: add roster players, returns them in the given order"""

    def _add(*rows):
        players = []
        for row in rows:
            name, gender, category = row
            player = Player(name=name, gender=gender, primary_category=category)
            session.add(player)
            players.append(player)
        session.commit()
        for player in players:
            session.refresh(player)
        return players

    return _add
