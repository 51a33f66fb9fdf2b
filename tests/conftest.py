# tests/conftest.py

import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch

import main


@pytest.fixture(scope="session")
def client():
    return TestClient(main.app)


# ----------------------------------------------------------
# Disable Supabase for ALL tests (seed target set, no snapshots)
# ----------------------------------------------------------
@pytest.fixture(autouse=True)
def mock_supabase():
    with patch("utils.supabase_client.get_supabase", return_value=None), \
         patch("utils.supabase_client.is_supabase_configured", return_value=False):
        yield


@pytest.fixture
def party_counts():
    return [
        {"variable": "PARTY", "category": "DEM", "n": 40},
        {"variable": "PARTY", "category": "REP", "n": 35},
        {"variable": "PARTY", "category": "IND_OTHER", "n": 25},
    ]
