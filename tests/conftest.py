"""Pytest configuration and fixtures."""

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.database import Base, get_db
from src.main import app


class AuthHeaders(dict):
    """Dict subclass that also stores user_id and email."""

    def __init__(self, *args, user_id: int | None = None, email: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.email = email


# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace("/checkin", "/checkin_test")
else:
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        from sqlalchemy_utils import create_database, database_exists

        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    from src import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture(scope="function")
def client(db):
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register(client, email: str, name: str) -> AuthHeaders:
    """Register a user and return their auth headers."""
    response = client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": "testpass123", "name": name},
    )
    assert response.status_code == 201
    data = response.json()
    return AuthHeaders(
        {"Authorization": f"Bearer {data['access_token']}"},
        user_id=data["user"]["id"],
        email=email,
    )


@pytest.fixture
def auth_headers(client):
    """Auth headers for a consumer user."""
    return register(client, "test@example.com", "Test User")


@pytest.fixture
def owner_headers(client):
    """Auth headers for a business owner."""
    return register(client, "owner@example.com", "Owner")


@pytest.fixture
def business(client, owner_headers):
    """A business owned by the owner user."""
    response = client.post("/api/v1/businesses", headers=owner_headers, json={"name": "Acme Cafe"})
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def created_visit(client, auth_headers, business):
    """A visit by the consumer, with its one-time token."""
    response = client.post(
        "/api/v1/visits", headers=auth_headers, json={"business_id": business["id"]}
    )
    assert response.status_code == 201
    return response.json()
