"""
Shared fixtures: an in-memory MongoDB (mongomock) behind a TestClient.
"""
import os

# keep the module-level app in main.py from reaching a real cluster
for name in ("DATABASE_URL", "DB_USER", "DB_PASS"):
    os.environ.pop(name, None)
os.environ["LOG_LEVEL"] = "WARNING"

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import create_token
from main import create_app


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["aircncDB"]


@pytest.fixture
def client(mongo_db):
    return TestClient(create_app(mongo_db))


@pytest.fixture
def bearer():
    """Build an Authorization header carrying a token for the given email."""
    def make(email):
        return {"Authorization": f"Bearer {create_token({'email': email})}"}
    return make
