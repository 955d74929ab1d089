"""Pytest fixtures."""

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from agromart.db.base import Base
from agromart import models  # noqa: F401 - register for create_all
from agromart.db.session import get_db
from agromart.main import app
from agromart.models import Listing, User

TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session")
def setup_db():
    """Create tables once for test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(setup_db):
    """Test client with overridden DB."""
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def session_factory(setup_db):
    """Open short-lived sessions to inspect rows written through the API."""
    return TestingSessionLocal


class Account:
    """A registered test user with an auth header."""

    def __init__(self, id: int, email: str, username: str, role: str, token: str):
        self.id = id
        self.email = email
        self.username = username
        self.role = role
        self.headers = {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(client):
    """Register a user (admins are promoted directly in the DB) and log in."""

    def _make(prefix: str = "user", role: str = "buyer") -> Account:
        suffix = uuid.uuid4().hex[:8]
        email = f"{prefix}_{suffix}@test.com"
        username = f"{prefix}_{suffix}"
        r = client.post(
            "/auth/register",
            json={
                "email": email,
                "password": "pass",
                "full_name": prefix.title(),
                "username": username,
                "role": "buyer" if role == "admin" else role,
            },
        )
        assert r.status_code == 200, r.text
        user_id = r.json()["id"]
        if role == "admin":
            with TestingSessionLocal() as db:
                db.get(User, user_id).role = "admin"
                db.commit()
        token = client.post("/auth/login", json={"email": email, "password": "pass"}).json()["access_token"]
        return Account(user_id, email, username, role, token)

    return _make


@pytest.fixture
def make_listing(setup_db):
    """Insert an active listing directly, bypassing the verification gate."""

    def _make(farmer_id: int, lat: float, lng: float, quantity: int = 10, category: str = "vegetables") -> int:
        with TestingSessionLocal() as db:
            listing = Listing(
                farmer_id=farmer_id,
                title="Test produce",
                category=category,
                price=2.5,
                unit="kg",
                quantity_available=quantity,
                status="active",
                location={"lat": lat, "lng": lng},
            )
            db.add(listing)
            db.commit()
            return listing.id

    return _make
