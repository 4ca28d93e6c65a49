"""Shared fixtures: a throwaway SQLite clinic and an API client bound to it."""

import os

# Configure before any vetschedule import reads the environment
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["ENVIRONMENT"] = "test"

from datetime import date
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from vetschedule.database import Base, build_engine, get_db
from vetschedule.models import GuardianAnimal, Hospital, HospitalStaff, TimeTemplate

MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
WEDNESDAY = date(2030, 1, 9)


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so separate sessions really contend for the write lock."""
    test_engine = build_engine(f"sqlite:///{tmp_path / 'vetschedule-test.db'}")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clinic(db):
    """Two hospitals, their staff, two guardians and a weekly schedule for hosp-1.

    Monday:    09:00-12:00 every 30 min, 2 per slot; 13:00-14:00 every 30 min, 1 per slot
    Tuesday:   closed (no templates)
    Wednesday: 09:00-09:50 every 30 min, 1 per slot
    """
    db.add_all(
        [
            Hospital(id="hosp-1", name="Happy Paws"),
            Hospital(id="hosp-2", name="Other Clinic"),
        ]
    )
    db.flush()
    db.add_all(
        [
            HospitalStaff(hospital_id="hosp-1", user_id="admin-1", position="OWNER"),
            HospitalStaff(hospital_id="hosp-1", user_id="vet-1", position="VET"),
            HospitalStaff(hospital_id="hosp-1", user_id="staff-1", position="RECEPTIONIST"),
            HospitalStaff(hospital_id="hosp-2", user_id="admin-2", position="OWNER"),
            GuardianAnimal(guardian_id="guardian-1", animal_id="animal-1"),
            GuardianAnimal(guardian_id="guardian-2", animal_id="animal-2"),
            TimeTemplate(
                hospital_id="hosp-1", day_of_week=1, start_time="09:00", end_time="12:00",
                slot_duration=30, max_concurrent=2,
            ),
            TimeTemplate(
                hospital_id="hosp-1", day_of_week=1, start_time="13:00", end_time="14:00",
                slot_duration=30, max_concurrent=1,
            ),
            TimeTemplate(
                hospital_id="hosp-1", day_of_week=3, start_time="09:00", end_time="09:50",
                slot_duration=30, max_concurrent=1,
            ),
        ]
    )
    db.commit()
    return SimpleNamespace(
        hospital_id="hosp-1",
        other_hospital_id="hosp-2",
        monday=MONDAY,
        tuesday=TUESDAY,
        wednesday=WEDNESDAY,
    )


@pytest.fixture
def client(session_factory, clinic):
    """TestClient whose requests each get a fresh session on the test database."""
    from vetschedule.domain.scheduling.router import booking_rate_limit
    from vetschedule.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    async def no_rate_limit():
        return None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[booking_rate_limit] = no_rate_limit
    yield TestClient(app)
    app.dependency_overrides.clear()


def as_user(user_id: str, role: str) -> dict:
    """Gateway headers for an acting user"""
    return {"X-User-Id": user_id, "X-User-Role": role}


GUARDIAN = as_user("guardian-1", "GUARDIAN")
OTHER_GUARDIAN = as_user("guardian-2", "GUARDIAN")
ADMIN = as_user("admin-1", "HOSPITAL_ADMIN")
OTHER_ADMIN = as_user("admin-2", "HOSPITAL_ADMIN")
VET = as_user("vet-1", "VET")
STAFF = as_user("staff-1", "STAFF")
SUPER_ADMIN = as_user("root", "SUPER_ADMIN")
