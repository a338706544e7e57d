"""Pytest fixtures: an in-memory MongoDB per test via mongomock."""

import uuid

import mongomock
import pytest
from bson.binary import Binary


@pytest.fixture
def client():
    return mongomock.MongoClient()


@pytest.fixture
def db(client):
    return client["nubo_test"]


@pytest.fixture
def new_id():
    """Factory for UUID ids stored the way the schema stores them."""
    return lambda: Binary.from_uuid(uuid.uuid4())
