"""
Pytest configuration and shared fixtures for testing the Luggage Storage API.
"""
import os

# Must be set before the application modules read their configuration
os.environ.setdefault("LUGGAGE_DATABASE_URL", "sqlite://")
os.environ.setdefault("LUGGAGE_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LUGGAGE_BCRYPT_ROUNDS", "4")

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from luggage_api.clock import utcnow
from luggage_api.database import Base
from luggage_api.main import app
from luggage_api.deps import get_db, get_password_hash
from luggage_api import models


# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with the test database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(db_session, email, full_name, password, role):
    user = models.User(
        email=email,
        full_name=full_name,
        hashed_password=get_password_hash(password),
        role=role,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session):
    return _make_user(db_session, "admin@example.com", "Admin User", "adminpass123", models.Role.ADMIN)


@pytest.fixture
def regular_user(db_session):
    return _make_user(db_session, "regular@example.com", "Regular User", "regularpass123", models.Role.USER)


@pytest.fixture
def other_user(db_session):
    return _make_user(db_session, "other@example.com", "Other Traveller", "otherpass123", models.Role.USER)


@pytest.fixture
def host_user(db_session):
    return _make_user(db_session, "host@example.com", "Helen Host", "hostpass123", models.Role.HOST)


@pytest.fixture
def other_host(db_session):
    return _make_user(db_session, "host2@example.com", "Second Host", "host2pass123", models.Role.HOST)


def login(client, email: str, password: str) -> str:
    response = client.post("/users/login", json={"email": email, "password": password})
    return response.json()["access_token"]


@pytest.fixture
def admin_token(client, admin_user):
    return login(client, "admin@example.com", "adminpass123")


@pytest.fixture
def regular_token(client, regular_user):
    return login(client, "regular@example.com", "regularpass123")


@pytest.fixture
def other_token(client, other_user):
    return login(client, "other@example.com", "otherpass123")


@pytest.fixture
def host_token(client, host_user):
    return login(client, "host@example.com", "hostpass123")


@pytest.fixture
def other_host_token(client, other_host):
    return login(client, "host2@example.com", "host2pass123")


def make_location(db_session, host, **overrides):
    fields = dict(
        host_id=host.id,
        name="Central Station Lockers",
        address="1 Station Square",
        city="Amsterdam",
        lat=52.3791,
        lng=4.9003,
        price_per_hour=Decimal("5.00"),
        capacity=10,
        hours="Mon-Sun: 7AM-11PM",
        is_active=True,
    )
    fields.update(overrides)
    location = models.Location(**fields)
    db_session.add(location)
    db_session.commit()
    db_session.refresh(location)
    return location


@pytest.fixture
def sample_location(db_session, host_user):
    return make_location(db_session, host_user)


@pytest.fixture
def sample_locations(db_session, host_user):
    """
    Three active locations in Amsterdam and Rotterdam plus one inactive one.
    """
    return [
        make_location(db_session, host_user),
        make_location(
            db_session,
            host_user,
            name="Museum Quarter Storage",
            address="12 Museumplein",
            lat=52.3579,
            lng=4.8816,
            price_per_hour=Decimal("8.50"),
            capacity=4,
        ),
        make_location(
            db_session,
            host_user,
            name="Rotterdam Centraal Bags",
            address="5 Stationsplein",
            city="Rotterdam",
            lat=51.9249,
            lng=4.4690,
            price_per_hour=Decimal("3.00"),
            capacity=25,
        ),
        make_location(
            db_session,
            host_user,
            name="Closed Canal Shop",
            address="99 Prinsengracht",
            city="Utrecht",
            lat=52.3752,
            lng=4.8840,
            is_active=False,
        ),
    ]


def make_booking(db_session, user, location, hours_from_now=24, duration_hours=2, status=models.BookingStatus.PENDING):
    start = utcnow().replace(microsecond=0) + timedelta(hours=hours_from_now)
    booking = models.Booking(
        user_id=user.id,
        location_id=location.id,
        start_time=start,
        end_time=start + timedelta(hours=duration_hours),
        price_cents=int(duration_hours * location.price_per_hour * 100),
        status=status,
    )
    db_session.add(booking)
    db_session.commit()
    db_session.refresh(booking)
    return booking


@pytest.fixture
def sample_booking(db_session, regular_user, sample_location):
    return make_booking(db_session, regular_user, sample_location)


def get_auth_header(token: str) -> dict:
    """
    Helper function to create authorization header.
    """
    return {"Authorization": f"Bearer {token}"}
