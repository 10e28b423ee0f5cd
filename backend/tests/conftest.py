"""
Pulseo - Test Configuration

Each test gets its own SQLite file, so no state leaks between tests.
"""

import pytest
from argon2 import PasswordHasher as Argon2Hasher
from fastapi.testclient import TestClient

from pulseo.config import Config
from pulseo.main import create_app
from pulseo.models.database import Database
from pulseo.services.password import PasswordHasher
from pulseo.services.tokens import TokenService


TEST_SECRET = "test-secret-key-with-enough-length-0123"
STRONG_PASSWORD = "Str0ng!Passw0rd12"


def cheap_hasher() -> PasswordHasher:
    """Argon2 with minimal cost parameters to keep the suite fast."""
    return PasswordHasher(Argon2Hasher(time_cost=1, memory_cost=8, parallelism=1))


@pytest.fixture
def config(tmp_path) -> Config:
    config = Config(environment="test")
    config.database.path = str(tmp_path / "pulseo-test.db")
    config.auth.jwt_secret = TEST_SECRET
    return config


@pytest.fixture
def app(config):
    app = create_app(config)
    app.state.password_hasher = cheap_hasher()
    return app


@pytest.fixture
def client(app):
    """Test client with the application lifespan (database open) running."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(TEST_SECRET)


@pytest.fixture
async def database(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'pulseo-store.db'}")
    await database.open()
    yield database
    await database.close()


@pytest.fixture
async def db_session(database):
    async for session in database.session():
        yield session


def register(client, username="alice", email="alice@x.com", password=STRONG_PASSWORD):
    return client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": password},
    )


def login(client, email="alice@x.com", password=STRONG_PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def post_with_cookies(client, path, **cookies):
    """POST with exactly the given cookies, ignoring whatever the client holds."""
    client.cookies.clear()
    header = "; ".join(f"{name}={value}" for name, value in cookies.items())
    headers = {"Cookie": header} if header else {}
    return client.post(path, headers=headers)


@pytest.fixture
def signed_in(client):
    """A registered user whose session cookies are held by ``client``."""
    response = register(client)
    assert response.status_code == 201
    return response.json()["data"]["user"]
