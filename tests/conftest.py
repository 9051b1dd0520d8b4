from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from notes_api.auth import PasswordHasher, TokenCodec
from notes_api.config import Settings
from notes_api.database import Database
from notes_api.main import create_app
from notes_api.stores import CredentialStore

TEST_SECRET = "test-secret"


class FakeClock:
    """Deterministic clock for store timestamps."""

    def __init__(self, start=datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds=1):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'notes.db'}",
        secret_key=TEST_SECRET,
        bcrypt_rounds=4,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def database(settings):
    database = Database(settings.database_url)
    database.migrate()
    yield database
    database.dispose()


@pytest.fixture
def session(database):
    db = database.session()
    yield db
    db.close()


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens():
    return TokenCodec(TEST_SECRET)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_user(session):
    """Insert a user row directly; the hash is never checked by note tests."""
    def _make_user(email="ann@x.com", name="Ann"):
        return CredentialStore(session).create_user(name, email, "not-a-real-hash")
    return _make_user


@pytest.fixture
def register(client):
    """Register through the API and return the JSON body."""
    def _register(name="Ann", email="ann@x.com", password="secret1"):
        response = client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password, "confirmPassword": password},
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _register


@pytest.fixture
def bearer():
    def _bearer(token):
        return {"Authorization": f"Bearer {token}"}
    return _bearer
