import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_DISABLED", "1")
os.environ.setdefault("ENV", "test")


@pytest.fixture(autouse=True)
def clean_memory_stores():
    from src.infrastructure.database.repositories import account_repository, profile_repository

    account_repository.clear_memory_store()
    profile_repository.clear_memory_store()
    yield
    account_repository.clear_memory_store()
    profile_repository.clear_memory_store()


@pytest.fixture()
def client() -> TestClient:
    # lazy import after env configured
    from src.main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture()
def stores():
    """Memory-mode identity store, profile store and oracle."""
    from src.domain.services.admin_oracle import AdminExistenceOracle
    from src.infrastructure.database.repositories.account_repository import AccountRepository
    from src.infrastructure.database.repositories.profile_repository import ProfileRepository

    accounts = AccountRepository(None)
    profiles = ProfileRepository(None)
    return accounts, profiles, AdminExistenceOracle(accounts)
