import os
import sys

# Allow running pytest from the repo root or from within `tests/`.
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

import pytest
from fastapi.testclient import TestClient

from hive_api.database import get_store
from hive_api.service import app
from hive_api.store import MemoryStore
from tests.factories import make_db


@pytest.fixture
def store():
    return MemoryStore(make_db({1: 3, 2: 2}, admins=["999"], names=[("123", "Dana")]))


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
