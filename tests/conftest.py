import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from config import Settings
from main import create_app


def make_settings(**overrides) -> Settings:
    values = {"SEED_DEMO_DATA": False, "DATABASE_URL": None, "DATABASE_NAME": None}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def memory_store(settings):
    """A fresh, empty in-memory backend installed as the active database."""
    return database.init_db(settings)


@pytest.fixture
def mongo_store(settings):
    """The Mongo backend over a throwaway mongomock client."""
    client = mongomock.MongoClient(tz_aware=True)
    client.drop_database(database.DEFAULT_DATABASE_NAME)
    yield database.init_db(settings, client=client)
    client.drop_database(database.DEFAULT_DATABASE_NAME)


@pytest.fixture(params=["memory", "mongo"])
def store(request):
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def strict_client(client_factory):
    return client_factory(STRICT_STATUS_TRANSITIONS=True)


@pytest.fixture
def auth_headers(client):
    client.post("/auth/register", json={
        "username": "thandi",
        "email": "thandi@example.org",
        "password": "s3cret-pass",
        "firstName": "Thandi",
        "lastName": "Mokoena",
        "role": "STAFF",
    })
    response = client.post("/auth/login", json={"username": "thandi", "password": "s3cret-pass"})
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def address():
    return {
        "street": "12 Long St",
        "city": "Cape Town",
        "state": "Western Cape",
        "postalCode": "8001",
        "country": "South Africa",
    }


@pytest.fixture
def client_factory():
    """Build a client for an app with non-default settings."""
    def build(**overrides):
        return TestClient(create_app(make_settings(**overrides)))
    return build
