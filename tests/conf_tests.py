import os
from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from roombooker.main import app
from roombooker.db import Base, get_db, init_database
from roombooker.domain.enums import Role
from roombooker.models.room import Room
from roombooker.models.user import User
from roombooker.services.lifecycle import ReservationService
from roombooker.services.locks import RoomLockRegistry
from roombooker.utils.auth import create_access_token, get_password_hash

# Test database setup
if not os.path.exists("./out"):
    os.makedirs("./out")

SQLALCHEMY_DATABASE_URL = "sqlite:///./out/tests.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Recreate test tables so schema changes are picked up
Base.metadata.drop_all(bind=engine)
init_database(engine)


# Dependency override
def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db

client = TestClient(app)

# Fixed "now" for service tests: bookings on 2024-06-10 are in the future.
NOW = datetime(2024, 6, 1, 9, 0, 0)
DAY = date(2024, 6, 10)


# Fixtures
@pytest.fixture(autouse=True)
def clear_db():
    """Clear all data from all tables after each test"""
    with engine.connect() as conn:
        trans = conn.begin()
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        trans.commit()


@pytest.fixture
def test_db():
    """Provide a database session for testing"""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_next_user():
    """Helper function to generate unique emails"""
    if not hasattr(get_next_user, "user_count"):
        get_next_user.user_count = 0
    get_next_user.user_count += 1
    return get_next_user.user_count


def make_user(db, role=Role.USER, password="testpassword", last_name=None):
    number = get_next_user()
    user = User(
        email=f"user_{number}@example.com",
        first_name="User",
        last_name=last_name or str(number),
        hashed_password=get_password_hash(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_room(db, name="Conference Room A", capacity=10, location="Floor 1", available=True):
    room = Room(name=name, capacity=capacity, location=location, available=available)
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


def headers_for(user):
    token = create_access_token({"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


def make_service(db, now=NOW, **kwargs):
    return ReservationService(db, locks=RoomLockRegistry(5), clock=lambda: now, **kwargs)


@pytest.fixture
def test_user(test_db):
    """Fixture to create a regular user in the database"""
    return make_user(test_db)


@pytest.fixture
def other_user(test_db):
    return make_user(test_db)


@pytest.fixture
def reviewer(test_db):
    return make_user(test_db, role=Role.RESPONSABLE)


@pytest.fixture
def admin(test_db):
    return make_user(test_db, role=Role.ADMIN)


@pytest.fixture
def test_room(test_db):
    return make_room(test_db)


@pytest.fixture
def auth_headers(test_user):
    """Fixture to get authentication headers for the regular user"""
    return headers_for(test_user)


@pytest.fixture
def reviewer_headers(reviewer):
    return headers_for(reviewer)


@pytest.fixture
def admin_headers(admin):
    return headers_for(admin)
