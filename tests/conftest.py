import os

# must be set before grade_speeder modules read their settings
os.environ.setdefault("GRADE_SPEEDER_DATABASE_URL", "sqlite:///./test_grade_speeder.db")
os.environ.setdefault("GRADE_SPEEDER_CONFIG", "./test_config.json")
os.environ["AUTOSAVE_INTERVAL_SECONDS"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from grade_speeder.clients.canvas import CanvasClient
from grade_speeder.core.config_store import ConfigStore
from grade_speeder.core.deps import (
    get_canvas_client,
    get_config_store,
    get_course_client,
    get_db,
    get_grading_session,
)
from grade_speeder.db.base import Base
from grade_speeder.db.session import engine
from grade_speeder.main import app
from grade_speeder.models.local_state import LocalStateEntry
from grade_speeder.services.grading_session import GradingSession
from grade_speeder.services.local_state import LocalStateStore
from tests.helpers import ASSIGNMENT_ID, BASE_URL, COURSE_ID, FakeCanvasSession

TEST_DB_FILE = "test_grade_speeder.db"

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create a fresh schema once for the whole test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if os.path.exists(TEST_DB_FILE):
        os.remove(TEST_DB_FILE)


@pytest.fixture(autouse=True)
def clean_local_state():
    db = TestingSessionLocal()
    try:
        db.query(LocalStateEntry).delete()
        db.commit()
        yield
    finally:
        db.close()


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def local_state(db):
    return LocalStateStore(db)


@pytest.fixture()
def config_store(tmp_path):
    return ConfigStore(tmp_path / "config.json")


@pytest.fixture()
def configured_store(config_store):
    config_store.update(
        {
            "base_url": BASE_URL,
            "course_id": COURSE_ID,
            "assignment_id": ASSIGNMENT_ID,
            "access_token": "secret-token",
        }
    )
    return config_store


@pytest.fixture()
def grading_session():
    return GradingSession()


@pytest.fixture()
def canvas_session():
    return FakeCanvasSession()


@pytest.fixture()
def client(config_store, grading_session):
    """Test client with the test DB, a temp config file and a fresh grading session."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_config_store] = lambda: config_store
    app.dependency_overrides[get_grading_session] = lambda: grading_session
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def canvas_client(client, configured_store, canvas_session):
    """Same client, with Canvas calls answered by `canvas_session`."""
    def canvas():
        return CanvasClient.from_config(configured_store.load(), session=canvas_session)

    app.dependency_overrides[get_canvas_client] = canvas
    app.dependency_overrides[get_course_client] = canvas
    return client
