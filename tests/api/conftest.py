"""Fixtures for API tests."""
import pytest
from fastapi.testclient import TestClient

from app.database import get_db
from app.main import app


@pytest.fixture
def client(engine, db):
    """TestClient whose requests share the test session.

    Factories only flush, so the endpoints see rows the test created
    without a commit.
    """
    app.dependency_overrides[get_db] = lambda: db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
