import os
import sys
from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure tests use an in-memory SQLite DB and JSON columns stay generic
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("FORCE_GENERIC_JSON", "1")
# No outbound model calls: the engine runs in demo mode unless a test injects a backend
os.environ.pop("OPENAI_API_KEY", None)

# Ensure the project root is on sys.path so `import telecare` works when running
# pytest from the repository root.
ROOT_DIR = Path(__file__).resolve().parents[2]  # repository root
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from telecare.app import app  # noqa: E402
from telecare.auth.deps import get_current_user  # noqa: E402
from telecare.db.session import Base, get_db  # noqa: E402
from telecare.models.user import Patient, User  # noqa: E402
from telecare.routes.health_routes import get_analysis_engine  # noqa: E402
from telecare.services.symptom_engine import SymptomAnalysisEngine  # noqa: E402

from fakes import FakeRepository, StepClock  # noqa: E402

TEST_USER_ID = "user-1"
OTHER_USER_ID = "user-2"

# In-memory SQLite shared across connections
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    implicit_returning=False,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def create_schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


def _override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = _override_get_db
app.dependency_overrides[get_current_user] = lambda: SimpleNamespace(id=TEST_USER_ID, email="u@example.com")
app.dependency_overrides[get_analysis_engine] = lambda: SymptomAnalysisEngine(backend=None)

# Code paths that open SessionLocal directly (startup seeding) use the test engine too
import telecare.db.session as session_mod  # noqa: E402
session_mod.engine = engine
session_mod.SessionLocal = TestingSessionLocal
import telecare.models as models_mod  # noqa: E402
models_mod.engine = engine
import telecare.app as app_mod  # noqa: E402
app_mod.SessionLocal = TestingSessionLocal


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    # ensure limiter state fresh each test
    app.state.limiter.reset()
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def _make_patient(db, user_id: str, **overrides) -> Patient:
    if db.get(User, user_id) is None:
        db.add(User(id=user_id, email=f"{user_id}@example.com", hashed_password="x"))
        db.flush()
    fields = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "date_of_birth": date(1990, 3, 10),
        "gender": "female",
        "allergies": ["penicillin"],
        "medications": ["ibuprofen"],
        "medical_history": ["asthma"],
    }
    fields.update(overrides)
    patient = Patient(user_id=user_id, **fields)
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


@pytest.fixture
def make_patient(db):
    def _factory(user_id: str = TEST_USER_ID, **overrides) -> Patient:
        return _make_patient(db, user_id, **overrides)
    return _factory


@pytest.fixture
def owned_patient(make_patient):
    return make_patient(TEST_USER_ID)


@pytest.fixture
def other_patient(make_patient):
    return make_patient(OTHER_USER_ID, first_name="Grace", last_name="Hopper")


@pytest.fixture
def fake_repo():
    return FakeRepository()


@pytest.fixture
def step_clock():
    return StepClock()
