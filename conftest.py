import os

import pytest
from fastapi.testclient import TestClient

from librarydesk.api import create_app
from librarydesk.catalog import Catalog
from librarydesk.config import settings
from librarydesk.ledger import Ledger
from librarydesk.ui_helpers import OUTPUT_MODE_ENV


@pytest.fixture
def db_file(tmp_path, request):
    # Create a unique database file for each test
    return str(tmp_path / f"test_{request.node.name}.db")


@pytest.fixture
def catalog(db_file):
    return Catalog(db_file=db_file)


@pytest.fixture
def ledger(db_file, catalog):
    return Ledger(db_file=db_file)


@pytest.fixture
def anon_client(db_file):
    with TestClient(create_app(db_file)) as test_client:
        yield test_client


@pytest.fixture
def client(anon_client):
    response = anon_client.post(
        "/api/login",
        json={"username": settings.admin_username, "password": settings.admin_password},
    )
    assert response.status_code == 200
    return anon_client


@pytest.fixture(autouse=True)
def plain_cli_output(monkeypatch):
    # Output mode is stored in the environment by the CLI; keep tests independent
    monkeypatch.delenv(OUTPUT_MODE_ENV, raising=False)
    yield
    os.environ.pop(OUTPUT_MODE_ENV, None)
