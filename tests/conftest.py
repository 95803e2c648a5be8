"""
Pytest configuration and fixtures for the placement engine and the API
"""
import os

# must be set before boatyard.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "false"

import pytest
from fastapi.testclient import TestClient
from boatyard.database import Base, SessionLocal, engine
from boatyard.main import app
from boatyard.models import site, location, boat, boat_movement  # noqa: F401
from boatyard.placement.records import LayoutShape, LocationKind
from boatyard.placement.transitions import PlacementEngine
from factories import RecordingPersistence, make_boat, make_location


@pytest.fixture
def dock_a():
    return make_location("Dock A")

@pytest.fixture
def dock_b():
    return make_location("Dock B")

@pytest.fixture
def u_rack():
    return make_location("U Rack", shape=LayoutShape.U_SHAPED, rows=3, columns=4)

@pytest.fixture
def overflow_pool():
    return make_location("Overflow", kind=LocationKind.POOL)

@pytest.fixture
def boats():
    return [make_boat(f"A{i}") for i in range(1, 6)]

@pytest.fixture
def persistence():
    return RecordingPersistence()

@pytest.fixture
def movements():
    return []

@pytest.fixture
def placement_engine(dock_a, dock_b, u_rack, overflow_pool, boats, persistence, movements):
    return PlacementEngine(
        [dock_a, dock_b, u_rack, overflow_pool],
        boats,
        persist=persistence,
        listeners=[movements.append],
    )

@pytest.fixture(scope='function')
def db_session():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope='function')
def client(db_session):
    """FastAPI test client over a fresh in-memory database"""
    return TestClient(app)
