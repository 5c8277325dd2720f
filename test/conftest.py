import sys
from pathlib import Path
from datetime import timedelta

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from core.entities import UserRole
from core.utils import utcnow
from database import models
from database.connection import Database
from services.admin_logger import AdminLogger
from services.data_service_factory import DataServiceFactory
from services.database_data_service import DatabaseDataService
from storage.local_store import MemoryStore


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_tables()
    yield db
    db.drop_tables()
    db.engine.dispose()


@pytest.fixture
def service(database):
    return DatabaseDataService(database, secret_key="test-secret")


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def admin_logger(service, store):
    return AdminLogger(service, store)


@pytest.fixture
def admin(service):
    result = service.sign_up("admin@ecowave.com", "s3cret-pass", "Ada Admin", UserRole.ADMIN)
    assert result.error is None
    return result.data


@pytest.fixture
def seed_mission(database):
    """A running mission with one pending submission; returns (user_id, mission_id)."""
    now = utcnow()
    with database.get_session() as session:
        user = models.User(email="river@example.com", first_name="River", last_name="Song", role="user")
        mission = models.Mission(
            title="Beach Cleanup",
            points_reward=150,
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=6),
        )
        session.add_all([user, mission])
        session.flush()
        session.add(models.MissionSubmission(
            user_id=user.user_id,
            mission_id=mission.mission_id,
            photo_upload_count=2,
            status="PENDING",
            photo_path_1="missions/1/a.jpg",
            photo_path_2="missions/1/b.jpg",
        ))
        return str(user.user_id), str(mission.mission_id)


@pytest.fixture
def client(service, admin_logger, admin, monkeypatch):
    """TestClient wired to the SQLite-backed service, authenticated as an admin."""
    from fastapi.testclient import TestClient
    from app import app

    monkeypatch.setattr(config, "data_service", service)
    monkeypatch.setattr(config, "admin_logger", admin_logger)
    admin_logger.test_database_connection()

    # No context manager: the lifespan (real database, S3) is not started
    test_client = TestClient(app)
    test_client.headers["Authorization"] = f"Bearer {admin.access_token}"
    return test_client


@pytest.fixture(autouse=True)
def reset_factory():
    yield
    DataServiceFactory.reset()
