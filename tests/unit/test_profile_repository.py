import pytest

from src.domain.exceptions import ProfileStoreError
from src.infrastructure.database.repositories.profile_repository import ProfileRepository


@pytest.fixture
def repo():
    return ProfileRepository(None)


def test_create_and_get(repo):
    created = repo.create(account_id="u1", email="a@x.com", full_name="A", is_admin=True)
    assert created.created_at is not None
    fetched = repo.get("u1")
    assert fetched == created
    assert fetched.is_admin is True


def test_get_missing_returns_none(repo):
    assert repo.get("nope") is None


def test_create_twice_fails(repo):
    repo.create(account_id="u1", email="a@x.com", full_name="A", is_admin=False)
    with pytest.raises(ProfileStoreError):
        repo.create(account_id="u1", email="a@x.com", full_name="A again", is_admin=False)
    assert repo.get("u1").full_name == "A"


def test_delete_is_idempotent(repo):
    repo.create(account_id="u1", email="a@x.com", full_name="A", is_admin=False)
    repo.delete("u1")
    repo.delete("u1")
    assert repo.get("u1") is None


def test_set_full_name_keeps_other_fields(repo):
    created = repo.create(account_id="u1", email="a@x.com", full_name="A", is_admin=True)
    updated = repo.set_full_name("u1", "Alice")
    assert updated.full_name == "Alice"
    assert updated.email == created.email
    assert updated.is_admin is True
    assert updated.created_at == created.created_at


def test_set_full_name_missing_profile(repo):
    assert repo.set_full_name("ghost", "Casper") is None
