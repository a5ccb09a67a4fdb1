import mongomock
import pytest
from fastapi.testclient import TestClient

from main import create_app
from seed_data import seed_data


@pytest.fixture
def database():
    client = mongomock.MongoClient(tz_aware=True)
    yield client["course_shop_test"]
    client.close()


@pytest.fixture
def seeded(database):
    seed_data(database)
    return database


@pytest.fixture
def client(database):
    with TestClient(create_app(database)) as c:
        yield c
